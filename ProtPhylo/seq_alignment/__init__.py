"""
Sequence Alignment Module
Provides scoring, local pairwise alignment, hit ranking and motif search
"""

from .scoring import BLOSUM62, ScoringMatrix
from .pairwise import (
    PairwiseAligner,
    AlignmentResult,
    align
)
from .ranking import RankedHit, percent_identity, rank, top_n
from .motif import translate_motif, find_by_motif

__all__ = [
    "BLOSUM62",
    "ScoringMatrix",
    "PairwiseAligner",
    "AlignmentResult",
    "align",
    "RankedHit",
    "percent_identity",
    "rank",
    "top_n",
    "translate_motif",
    "find_by_motif",
]
