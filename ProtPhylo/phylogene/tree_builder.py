"""
Tree construction algorithms for phylogenetic analysis
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

import numpy as np

from ..errors import InsufficientInputError
from .distances import DistanceMatrix

logger = logging.getLogger(__name__)

# leaf ids on the side of a branch that excludes the smallest leaf id
Bipartition = FrozenSet[str]

_Q_RTOL = 1e-9
_Q_ATOL = 1e-12


# =========================
# Core tree data structure
# =========================
@dataclass(eq=False)
class TreeNode:
    """Represents a node in a phylogenetic tree"""
    name: Optional[str] = None
    branch_length: float = 0.0
    children: List['TreeNode'] = None
    parent: Optional['TreeNode'] = field(default=None, repr=False)
    # bootstrap support (percent) of the branch above this node
    support: Optional[float] = None

    def __post_init__(self):
        if self.children is None:
            self.children = []

    def is_leaf(self) -> bool:
        return len(self.children) == 0

    def add_child(self, child: 'TreeNode', branch_length: float) -> None:
        child.branch_length = branch_length
        child.parent = self
        self.children.append(child)

    def get_leaves(self) -> List['TreeNode']:
        if self.is_leaf():
            return [self]
        leaves: List['TreeNode'] = []
        for ch in self.children:
            leaves.extend(ch.get_leaves())
        return leaves

    def iter_preorder(self) -> Iterator['TreeNode']:
        yield self
        for ch in self.children:
            yield from ch.iter_preorder()


@dataclass(frozen=True, eq=False)
class Branch:
    """Unrooted edge; `node` is the endpoint farther from the root"""
    node: TreeNode
    length: float
    split: Bipartition
    internal: bool


def normalize_split(side: FrozenSet[str], taxa: FrozenSet[str]) -> Bipartition:
    """Orientation-independent form of the split side | taxa - side"""
    ref = min(taxa)
    return frozenset(side) if ref not in side else frozenset(taxa - side)


class Tree:
    """
    Rooted storage of an unrooted tree.

    A root with exactly two children is only a drawing convenience: its two
    edges are reported by `branches()` as a single branch.
    """

    def __init__(self, root: TreeNode):
        self.root = root

    def leaves(self) -> List[TreeNode]:
        return self.root.get_leaves()

    @property
    def leaf_names(self) -> List[str]:
        return [leaf.name for leaf in self.leaves()]

    def _leaf_sets(self) -> Dict[int, FrozenSet[str]]:
        sets: Dict[int, FrozenSet[str]] = {}

        def visit(node: TreeNode) -> FrozenSet[str]:
            if node.is_leaf():
                s = frozenset([node.name])
            else:
                s = frozenset().union(*(visit(ch) for ch in node.children))
            sets[id(node)] = s
            return s

        visit(self.root)
        return sets

    def branches(self) -> List[Branch]:
        taxa = frozenset(self.leaf_names)
        leaf_sets = self._leaf_sets()
        merged_root = len(self.root.children) == 2
        out: List[Branch] = []
        for node in self.root.iter_preorder():
            if node is self.root:
                continue
            length = node.branch_length
            if merged_root and node.parent is self.root:
                if node is self.root.children[1]:
                    continue
                length += self.root.children[1].branch_length
            side = leaf_sets[id(node)]
            internal = 1 < len(side) < len(taxa) - 1
            out.append(Branch(node, length, normalize_split(side, taxa), internal))
        return out

    def internal_branches(self) -> List[Branch]:
        return [b for b in self.branches() if b.internal]

    def bipartitions(self) -> Set[Bipartition]:
        return {b.split for b in self.internal_branches()}

    def total_length(self) -> float:
        return sum(b.length for b in self.branches())

    def to_newick(self, include_branch_lengths: bool = True,
                  include_support: bool = True) -> str:
        from .tree_io import to_newick
        return to_newick(self.root, include_branch_lengths, include_support) + ";"

    def __repr__(self) -> str:
        return f"Tree({self.to_newick()})"


# =========================
# UPGMA (average linkage) - guide trees
# =========================
class UPGMA:
    """
    UPGMA (Unweighted Pair Group Method with Arithmetic Mean)
    Average-linkage clustering; used for MSA guide trees.
    """

    def __init__(self, distance_matrix: np.ndarray, taxa_names: List[str]):
        self.distance_matrix = np.asarray(distance_matrix, dtype=float).copy()
        self.taxa_names = list(taxa_names)
        self.n = len(self.taxa_names)

    @staticmethod
    def _closest_pair(D: np.ndarray, active: np.ndarray) -> Tuple[int, int]:
        """Smallest distance among active clusters; row-major first on ties"""
        iu, ju = np.triu_indices(len(active), 1)
        t = int(np.argmin(D[np.ix_(active, active)][iu, ju]))
        return int(active[iu[t]]), int(active[ju[t]])

    def build_tree(self) -> TreeNode:
        if self.n < 1:
            raise InsufficientInputError("UPGMA needs at least one taxon")
        nodes = [TreeNode(name=nm) for nm in self.taxa_names]
        sizes = np.ones(self.n)
        # cluster height above its tips (ultrametric)
        heights = np.zeros(self.n)
        alive = np.ones(self.n, dtype=bool)
        D = self.distance_matrix.copy()

        for _ in range(self.n - 1):
            active = np.flatnonzero(alive)
            i, j = self._closest_pair(D, active)

            h = float(D[i, j]) / 2.0
            parent = TreeNode()
            parent.add_child(nodes[i], max(0.0, h - float(heights[i])))
            parent.add_child(nodes[j], max(0.0, h - float(heights[j])))

            # size-weighted average linkage; slot i takes the merged cluster
            merged = (sizes[i] * D[i] + sizes[j] * D[j]) / (sizes[i] + sizes[j])
            D[i, :] = merged
            D[:, i] = merged
            D[i, i] = 0.0
            alive[j] = False

            nodes[i] = parent
            sizes[i] += sizes[j]
            heights[i] = h

        return nodes[int(np.flatnonzero(alive)[0])]


# =========================
# Neighbor-Joining (unrooted)
# =========================
class NeighborJoining:
    """
    Neighbor-Joining (Saitou & Nei)
    No molecular clock; produces an unrooted binary tree.
    """

    def __init__(self, distance_matrix: np.ndarray, taxa_names: List[str]):
        self.distance_matrix = np.asarray(distance_matrix, dtype=float).copy()
        self.taxa_names = list(taxa_names)
        self.n = len(self.taxa_names)

    @staticmethod
    def _select_pair(Q: np.ndarray, ids: List[int]) -> Tuple[int, int]:
        """Minimal Q; ties go to the lowest i + j, then the lowest i"""
        m = len(ids)
        iu, ju = np.triu_indices(m, 1)
        q = Q[iu, ju]
        q_min = q.min()
        tied = np.flatnonzero(np.isclose(q, q_min, rtol=_Q_RTOL, atol=_Q_ATOL))
        candidates = [(ids[iu[t]] + ids[ju[t]], ids[iu[t]], ids[ju[t]]) for t in tied]
        _, i, j = min(candidates)
        return i, j

    def build_tree(self) -> TreeNode:
        if self.n < 2:
            raise InsufficientInputError(
                f"Neighbor-joining needs at least 2 taxa, got {self.n}"
            )
        clusters: Dict[int, TreeNode] = {i: TreeNode(name=nm) for i, nm in enumerate(self.taxa_names)}
        D = self.distance_matrix.copy()

        while len(clusters) > 2:
            ids = sorted(clusters.keys())
            m = len(ids)

            sub = D[np.ix_(ids, ids)]
            row_sum = sub.sum(axis=1)
            Q = (m - 2) * sub - row_sum[:, None] - row_sum[None, :]
            i, j = self._select_pair(Q, ids)
            r_i = float(row_sum[ids.index(i)])
            r_j = float(row_sum[ids.index(j)])

            dij = float(D[i, j])
            li = 0.5 * dij + (r_i - r_j) / (2 * (m - 2))
            lj = dij - li

            node = TreeNode()
            # negative lengths are an NJ artefact, not an error
            node.add_child(clusters[i], max(0.0, li))
            node.add_child(clusters[j], max(0.0, lj))

            # index i now holds the joined node
            for k in ids:
                if k == i or k == j:
                    continue
                new_dist = 0.5 * (D[i, k] + D[j, k] - dij)
                D[i, k] = new_dist
                D[k, i] = new_dist

            D[j, :] = np.inf
            D[:, j] = np.inf

            clusters[i] = node
            del clusters[j]

        # join the last two at the midpoint of their branch
        a, b = sorted(clusters.keys())
        half = max(0.0, float(D[a, b]) / 2.0)
        root = TreeNode()
        root.add_child(clusters[a], half)
        root.add_child(clusters[b], half)
        return root


def build_nj_tree(dm: DistanceMatrix) -> Tree:
    """
    Neighbor-joining tree from a distance matrix

    Example:
        >>> dm = DistanceMatrix(("a", "b"), [[0, 0.2], [0.2, 0]])
        >>> build_nj_tree(dm).branches()[0].length
        0.2
    """
    if len(dm) < 2:
        raise InsufficientInputError(
            f"At least 2 labelled rows are required to build a tree, got {len(dm)}"
        )
    logger.debug("Neighbor-joining over %d taxa", len(dm))
    return Tree(NeighborJoining(dm.values, list(dm.labels)).build_tree())


def build_upgma_tree(dm: DistanceMatrix) -> Tree:
    return Tree(UPGMA(dm.values, list(dm.labels)).build_tree())
