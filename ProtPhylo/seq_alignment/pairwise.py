"""
Pairwise Sequence Alignment Module
Smith-Waterman local alignment with affine gap penalties (Gotoh)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import numpy as np

from ..errors import EmptyInputError
from ..records import GAP, Sequence, check_ascii
from .scoring import ScoringMatrix

logger = logging.getLogger(__name__)

NEG_INF = float('-inf')
_EPS = 1e-9


@dataclass(frozen=True)
class AlignmentResult:
    """Optimal local alignment of a query against a target"""
    aligned_query: str
    aligned_target: str
    score: float
    query_start: int = 0
    query_end: int = 0
    target_start: int = 0
    target_end: int = 0

    def __post_init__(self):
        if len(self.aligned_query) != len(self.aligned_target):
            raise ValueError("aligned rows must have equal length")

    def __len__(self) -> int:
        return len(self.aligned_query)

    def __str__(self) -> str:
        return (
            f"Alignment Score: {self.score}\n"
            f"Length: {len(self)}\n"
            f"Range: [{self.query_start}-{self.query_end}] x "
            f"[{self.target_start}-{self.target_end}]\n"
        )

    @property
    def match_string(self) -> str:
        """'|' identical, '.' substitution, ' ' gap"""
        out = []
        for a, b in zip(self.aligned_query, self.aligned_target):
            if a == GAP or b == GAP:
                out.append(' ')
            elif a == b:
                out.append('|')
            else:
                out.append('.')
        return ''.join(out)

    def nmatch(self) -> int:
        """Number of identical (non-gap) columns"""
        return sum(1 for a, b in zip(self.aligned_query, self.aligned_target)
                   if a == b and a != GAP)

    def format(self, width: int = 60) -> str:
        """Blocked text view with match indicators"""
        lines = []
        match = self.match_string
        for start in range(0, len(self), width):
            end = start + width
            lines.append(f"query:   {self.aligned_query[start:end]}")
            lines.append(f"         {match[start:end]}")
            lines.append(f"target:  {self.aligned_target[start:end]}")
            lines.append("")
        return "\n".join(lines)


class PairwiseAligner:
    """Smith-Waterman local aligner with affine gaps"""

    def __init__(self, scoring: Optional[ScoringMatrix] = None):
        """
        Parameters:
        -----------
        scoring : ScoringMatrix
            Substitution table and gap costs (default BLOSUM62, open 10, extend 1)
        """
        self.scoring = scoring if scoring is not None else ScoringMatrix.blosum62()

    def _fill_matrix(
        self,
        seq1: str,
        seq2: str,
        sub: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, float, Tuple[int, int]]:
        """
        Fill H (best ending here), E (gap in target, vertical) and
        F (gap in query, horizontal).
        """
        len1, len2 = len(seq1), len(seq2)
        gap_open = self.scoring.gap_open
        gap_extend = self.scoring.gap_extend

        H = np.zeros((len1 + 1, len2 + 1), dtype=np.float64)
        E = np.full((len1 + 1, len2 + 1), NEG_INF, dtype=np.float64)
        F = np.full((len1 + 1, len2 + 1), NEG_INF, dtype=np.float64)

        max_score = 0.0
        max_pos = (0, 0)

        for i in range(1, len1 + 1):
            # E and the diagonal term only depend on row i-1
            E[i, 1:] = np.maximum(H[i - 1, 1:] - gap_open, E[i - 1, 1:] - gap_extend)
            diag = (H[i - 1, :-1] + sub[i - 1]).tolist()
            e_row = E[i].tolist()

            h_row = [0.0] * (len2 + 1)
            f_row = [NEG_INF] * (len2 + 1)
            for j in range(1, len2 + 1):
                f = max(h_row[j - 1] - gap_open, f_row[j - 1] - gap_extend)
                f_row[j] = f
                h = max(0.0, diag[j - 1], e_row[j], f)
                h_row[j] = h
                if h > max_score:
                    max_score = h
                    max_pos = (i, j)

            H[i] = h_row
            F[i] = f_row

        return H, E, F, max_score, max_pos

    def _traceback(
        self,
        seq1: str,
        seq2: str,
        sub: np.ndarray,
        H: np.ndarray,
        E: np.ndarray,
        F: np.ndarray,
        max_pos: Tuple[int, int]
    ) -> Tuple[str, str, int, int]:
        """Walk back from max_pos until a zero cell; diagonal > up > left"""
        gap_open = self.scoring.gap_open
        aligned1: List[str] = []
        aligned2: List[str] = []
        i, j = max_pos
        state = 'H'

        while i > 0 and j > 0:
            if state == 'H':
                current = H[i, j]
                if current <= 0:
                    break
                if abs(current - (H[i - 1, j - 1] + sub[i - 1, j - 1])) < _EPS:
                    aligned1.append(seq1[i - 1])
                    aligned2.append(seq2[j - 1])
                    i -= 1
                    j -= 1
                elif abs(current - E[i, j]) < _EPS:
                    state = 'E'
                else:
                    state = 'F'
            elif state == 'E':
                aligned1.append(seq1[i - 1])
                aligned2.append(GAP)
                # gap opened from H, otherwise extended from E
                if abs(E[i, j] - (H[i - 1, j] - gap_open)) < _EPS:
                    state = 'H'
                i -= 1
            else:
                aligned1.append(GAP)
                aligned2.append(seq2[j - 1])
                if abs(F[i, j] - (H[i, j - 1] - gap_open)) < _EPS:
                    state = 'H'
                j -= 1

        return ''.join(reversed(aligned1)), ''.join(reversed(aligned2)), i, j

    def align(
        self,
        query: Union[Sequence, str],
        target: Union[Sequence, str],
        score_only: bool = False,
        verbose: bool = False
    ) -> Union[AlignmentResult, float]:
        """
        Perform local pairwise alignment

        Parameters:
        -----------
        query, target : Sequence or str
            Sequences to align (non-empty)
        score_only : bool
            If True, return only the optimal score
        verbose : bool
            Log matrix size and result at INFO level

        Returns:
        --------
        AlignmentResult or float
        """
        seq1 = query.residues if isinstance(query, Sequence) else check_ascii(query, "query").upper()
        seq2 = target.residues if isinstance(target, Sequence) else check_ascii(target, "target").upper()
        if not seq1 or not seq2:
            raise EmptyInputError("Both sequences must be non-empty for alignment")

        log = logger.info if verbose else logger.debug
        log("Aligning %d x %d residues (%s, gap open %s, extend %s)",
            len(seq1), len(seq2), self.scoring.name,
            self.scoring.gap_open, self.scoring.gap_extend)

        sub = self.scoring.pair_scores(seq1, seq2)
        H, E, F, max_score, max_pos = self._fill_matrix(seq1, seq2, sub)

        if score_only:
            return max_score

        aligned1, aligned2, start1, start2 = self._traceback(
            seq1, seq2, sub, H, E, F, max_pos
        )

        result = AlignmentResult(
            aligned_query=aligned1,
            aligned_target=aligned2,
            score=max_score,
            query_start=start1,
            query_end=max_pos[0],
            target_start=start2,
            target_end=max_pos[1],
        )
        log("Score %.2f over %d columns", max_score, len(result))
        return result


def align(
    query: Union[Sequence, str],
    target: Union[Sequence, str],
    scoring: Optional[ScoringMatrix] = None
) -> AlignmentResult:
    """
    Smith-Waterman local alignment of `query` against `target`

    Examples:
    ---------
    >>> result = align("MKT", "MKT")
    >>> result.score
    15.0
    """
    return PairwiseAligner(scoring).align(query, target)
