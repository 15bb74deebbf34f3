"""
ProtPhylo
Protein similarity search and phylogenetic reconstruction
"""
import logging

from .errors import (
    EmptyInputError,
    InsufficientInputError,
    InvalidParameterError,
    NumericDegeneracyError,
    OperationCancelledError,
    ProtPhyloError,
)
from .parallel import CancelToken
from .records import MultipleAlignment, Sequence
from .seq_alignment import (
    AlignmentResult,
    RankedHit,
    ScoringMatrix,
    align,
    find_by_motif,
    percent_identity,
    rank,
    top_n,
    translate_motif,
)
from .settings import AnalysisSettings
from .workflows import (
    PhyloResult,
    build_tree,
    build_tree_async,
    filter_by_length,
    find_similar,
    find_similar_async,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "EmptyInputError",
    "InsufficientInputError",
    "InvalidParameterError",
    "NumericDegeneracyError",
    "OperationCancelledError",
    "ProtPhyloError",
    "CancelToken",
    "MultipleAlignment",
    "Sequence",
    "AlignmentResult",
    "RankedHit",
    "ScoringMatrix",
    "align",
    "find_by_motif",
    "percent_identity",
    "rank",
    "top_n",
    "translate_motif",
    "AnalysisSettings",
    "PhyloResult",
    "build_tree",
    "build_tree_async",
    "filter_by_length",
    "find_similar",
    "find_similar_async",
]
