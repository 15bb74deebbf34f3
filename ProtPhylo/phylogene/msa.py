"""
Multiple Sequence Alignment (MSA) - Progressive (ClustalW-style)
- Guide distances from Smith-Waterman identity (parallel stage)
- Average-linkage (UPGMA) guide tree
- Profile-profile global alignment with affine gaps
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Dict, List, Optional, Sequence as Seq, Tuple

import numpy as np

from ..errors import InvalidParameterError
from ..parallel import CancelToken, run_indexed
from ..records import GAP, MultipleAlignment, Sequence, ensure_sequences
from ..seq_alignment.pairwise import PairwiseAligner
from ..seq_alignment.ranking import percent_identity
from ..seq_alignment.scoring import ALPHABET, ScoringMatrix, encode
from .distances import DistanceMatrix
from .tree_builder import TreeNode, UPGMA

logger = logging.getLogger(__name__)

_GAP_CODE = ord(GAP)
NEG_INF = float('-inf')

# traceback states
_M, _X, _Y = 0, 1, 2


# -------------------------
# Data structures
# -------------------------
@dataclass
class _Profile:
    names: List[str]
    seqs: List[str]  # same length

    def length(self) -> int:
        return len(self.seqs[0]) if self.seqs else 0

    def nseq(self) -> int:
        return len(self.seqs)

    def to_column_counts(self) -> np.ndarray:
        """
        (L x K) residue counts per column over the scoring alphabet.
        Gaps are not counted.
        """
        L = self.length()
        counts = np.zeros((L, len(ALPHABET)), dtype=np.float64)
        cols = np.arange(L)
        for s in self.seqs:
            residue = np.array([c != GAP for c in s], dtype=bool)
            if not residue.any():
                continue
            codes = encode(s.replace(GAP, 'X'))
            np.add.at(counts, (cols[residue], codes[residue]), 1.0)
        return counts

    def as_array(self) -> np.ndarray:
        return np.array([list(s.encode('ascii')) for s in self.seqs],
                        dtype=np.uint8).reshape(self.nseq(), self.length())


# -------------------------
# Distance & guide tree
# -------------------------
def _identity_distance(pair: Tuple[int, int], seqs: Seq[str],
                       scoring: ScoringMatrix) -> float:
    i, j = pair
    aln = PairwiseAligner(scoring).align(seqs[i], seqs[j])
    return 1.0 - percent_identity(aln) / 100.0


def identity_distances(sequences: Seq[Sequence],
                       scoring: ScoringMatrix,
                       n_jobs: Optional[int] = 1,
                       backend: str = "process",
                       cancel: Optional[CancelToken] = None) -> DistanceMatrix:
    """1 - identity fraction of the local alignment of every pair"""
    residues = [s.residues for s in sequences]
    n = len(residues)
    pairs = [(i, j) for i in range(n) for j in range(i + 1, n)]
    logger.info("MSA guide distances: %d pairwise alignments", len(pairs))
    dists = run_indexed(
        partial(_identity_distance, seqs=residues, scoring=scoring),
        pairs, n_jobs=n_jobs, backend=backend, cancel=cancel,
    )
    D = np.zeros((n, n), dtype=np.float64)
    for (i, j), d in zip(pairs, dists):
        D[i, j] = D[j, i] = d
    return DistanceMatrix(tuple(s.id for s in sequences), D)


def guide_tree(dm: DistanceMatrix) -> TreeNode:
    """Average-linkage guide tree"""
    return UPGMA(dm.values, list(dm.labels)).build_tree()


# -------------------------
# Profile-profile DP (affine)
# -------------------------
def _column_score_matrix(profA: _Profile, profB: _Profile,
                         scoring: ScoringMatrix) -> np.ndarray:
    """
    S[i,j] = average substitution score over all residue pairs of
    column i of A and column j of B (gap positions contribute 0)
    """
    cA = profA.to_column_counts()
    cB = profB.to_column_counts()
    table = scoring.table.astype(np.float64)
    return (cA @ table @ cB.T) / (profA.nseq() * profB.nseq())


def _profile_profile_align(profA: _Profile, profB: _Profile,
                           scoring: ScoringMatrix) -> _Profile:
    """
    Global Gotoh DP on profile columns. Returns the merged profile.

    Existing gap columns of either profile are kept as they are; new gaps
    are only ever inserted as whole columns.
    """
    S = _column_score_matrix(profA, profB, scoring)
    L1, L2 = S.shape
    gap_open = scoring.gap_open
    gap_ext = scoring.gap_extend

    # M = column pair, X = gap in B (consume A), Y = gap in A (consume B)
    M = np.full((L1 + 1, L2 + 1), NEG_INF)
    X = np.full((L1 + 1, L2 + 1), NEG_INF)
    Y = np.full((L1 + 1, L2 + 1), NEG_INF)
    ptrM = np.zeros((L1 + 1, L2 + 1), dtype=np.uint8)
    ptrX = np.zeros((L1 + 1, L2 + 1), dtype=np.uint8)
    ptrY = np.zeros((L1 + 1, L2 + 1), dtype=np.uint8)

    M[0, 0] = 0.0
    for i in range(1, L1 + 1):
        X[i, 0] = -(gap_open + (i - 1) * gap_ext)
        ptrX[i, 0] = _M if i == 1 else _X
    for j in range(1, L2 + 1):
        Y[0, j] = -(gap_open + (j - 1) * gap_ext)
        ptrY[0, j] = _M if j == 1 else _Y

    for i in range(1, L1 + 1):
        # M and X only depend on row i-1
        prev = np.stack([M[i - 1, :-1], X[i - 1, :-1], Y[i - 1, :-1]])
        ptrM[i, 1:] = prev.argmax(axis=0)
        M[i, 1:] = prev.max(axis=0) + S[i - 1]

        up = np.stack([M[i - 1, 1:] - gap_open, X[i - 1, 1:] - gap_ext,
                       Y[i - 1, 1:] - gap_open])
        ptrX[i, 1:] = up.argmax(axis=0)
        X[i, 1:] = up.max(axis=0)

        m_row = M[i].tolist()
        x_row = X[i].tolist()
        y_row = [NEG_INF] * (L2 + 1)
        p_row = [0] * (L2 + 1)
        for j in range(1, L2 + 1):
            cands = (m_row[j - 1] - gap_open, x_row[j - 1] - gap_open,
                     y_row[j - 1] - gap_ext)
            best = max(cands)
            y_row[j] = best
            # M > X > Y on ties
            p_row[j] = (_M, _X, _Y)[cands.index(best)]
        Y[i] = y_row
        ptrY[i] = p_row

    # Traceback from the bottom-right corner
    i, j = L1, L2
    finals = (M[i, j], X[i, j], Y[i, j])
    state = finals.index(max(finals))
    colsA: List[int] = []
    colsB: List[int] = []
    while i > 0 or j > 0:
        if j == 0:
            state = _X
        elif i == 0:
            state = _Y
        if state == _M:
            colsA.append(i - 1)
            colsB.append(j - 1)
            state = ptrM[i, j]
            i -= 1
            j -= 1
        elif state == _X:
            colsA.append(i - 1)
            colsB.append(-1)
            state = ptrX[i, j]
            i -= 1
        else:
            colsA.append(-1)
            colsB.append(j - 1)
            state = ptrY[i, j]
            j -= 1
    colsA.reverse()
    colsB.reverse()

    return _Profile(
        names=profA.names + profB.names,
        seqs=_realize(profA, colsA) + _realize(profB, colsB),
    )


def _realize(prof: _Profile, cols: List[int]) -> List[str]:
    """Rows of `prof` laid out on the merged columns (-1 = gap column)"""
    idx = np.asarray(cols, dtype=np.intp)
    arr = prof.as_array()
    if arr.shape[1] == 0:
        out = np.full((prof.nseq(), len(idx)), _GAP_CODE, dtype=np.uint8)
    else:
        out = np.where(idx[None, :] >= 0, arr[:, np.maximum(idx, 0)], _GAP_CODE)
    return [row.astype(np.uint8).tobytes().decode('ascii') for row in out]


# -------------------------
# Orchestrator (MSA)
# -------------------------
class ProgressiveAligner:
    """
    Progressive MSA:
      1) identity distances from pairwise local alignments
      2) average-linkage guide tree
      3) profile-profile merges along the guide tree, leaves first
    """

    def __init__(self, scoring: Optional[ScoringMatrix] = None,
                 n_jobs: Optional[int] = 1, backend: str = "process",
                 cancel: Optional[CancelToken] = None):
        self.scoring = scoring if scoring is not None else ScoringMatrix.blosum62(10.0, 0.2)
        self.n_jobs = n_jobs
        self.backend = backend
        self.cancel = cancel
        self.guide: Optional[TreeNode] = None

    def _merge(self, node: TreeNode, profiles: Dict[str, _Profile]) -> _Profile:
        if node.is_leaf():
            return profiles[node.name]
        merged = self._merge(node.children[0], profiles)
        for child in node.children[1:]:
            right = self._merge(child, profiles)
            if self.cancel is not None:
                self.cancel.raise_if_cancelled()
            logger.debug("Merging profiles of %d and %d sequences",
                         merged.nseq(), right.nseq())
            merged = _profile_profile_align(merged, right, self.scoring)
        return merged

    def align(self, sequences: Seq[Sequence]) -> MultipleAlignment:
        seqs = ensure_sequences(sequences, minimum=2)
        ids = [s.id for s in seqs]
        if len(set(ids)) != len(ids):
            raise InvalidParameterError("sequence ids must be unique")

        dm = identity_distances(seqs, self.scoring, self.n_jobs,
                                self.backend, self.cancel)
        self.guide = guide_tree(dm)

        profiles = {s.id: _Profile([s.id], [s.residues]) for s in seqs}
        final = self._merge(self.guide, profiles)

        by_name = dict(zip(final.names, final.seqs))
        msa = MultipleAlignment(tuple(ids), tuple(by_name[i] for i in ids))
        logger.info("MSA complete: %d sequences x %d columns", len(msa), msa.n_columns)
        return msa


def align_many(sequences: Seq[Sequence],
               scoring: Optional[ScoringMatrix] = None,
               n_jobs: Optional[int] = 1,
               backend: str = "process",
               cancel: Optional[CancelToken] = None) -> MultipleAlignment:
    """
    Progressive multiple alignment of >= 2 sequences

    Rows are returned in input order.

    Example:
        >>> msa = align_many([Sequence("a", "MKTAY"), Sequence("b", "MKAY")])
        >>> msa.rows
        ('MKTAY', 'MK-AY')
    """
    return ProgressiveAligner(scoring, n_jobs, backend, cancel).align(sequences)
