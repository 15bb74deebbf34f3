"""
Phylogeny Module
Progressive MSA, protein distances, neighbor-joining and bootstrap support
"""

from .distances import MAX_DISTANCE, DistanceMatrix, distance_matrix, pairwise_distance
from .msa import ProgressiveAligner, align_many
from .tree_builder import (
    Bipartition,
    Branch,
    NeighborJoining,
    Tree,
    TreeNode,
    UPGMA,
    build_nj_tree,
)
from .tree_io import to_newick, write_tree
from .tree_utils import attach_support, bootstrap_support

__all__ = [
    "MAX_DISTANCE",
    "DistanceMatrix",
    "distance_matrix",
    "pairwise_distance",
    "ProgressiveAligner",
    "align_many",
    "Bipartition",
    "Branch",
    "NeighborJoining",
    "Tree",
    "TreeNode",
    "UPGMA",
    "build_nj_tree",
    "to_newick",
    "write_tree",
    "attach_support",
    "bootstrap_support",
]
