"""
Protein evolutionary distances from a multiple alignment.

Methods:
- 'jtt'     : Kimura protein correction  d = -ln(1 - p - p^2/5)  (default;
              the closed-form stand-in for JTT distances)
- 'poisson' : Poisson correction  d = -ln(1 - p)
- 'p'       : uncorrected proportion of differing columns

p is computed over the columns that are not a gap in both rows; a residue
against a gap counts as a difference. Saturated pairs (undefined
logarithm) and pairs without comparable columns get MAX_DISTANCE.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from ..records import GAP, MultipleAlignment, check_ascii

logger = logging.getLogger(__name__)

MAX_DISTANCE = 10.0

_GAP_CODE = ord(GAP)
_METHODS = ('jtt', 'poisson', 'p')


@dataclass(frozen=True, eq=False)
class DistanceMatrix:
    """Symmetric N x N distances with a zero diagonal"""
    labels: Tuple[str, ...]
    values: np.ndarray

    def __post_init__(self):
        values = np.asarray(self.values, dtype=np.float64)
        n = len(self.labels)
        if values.shape != (n, n):
            raise ValueError(f"distance matrix must be {n}x{n}, got {values.shape}")
        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return len(self.labels)

    def __getitem__(self, pair: Tuple[str, str]) -> float:
        a, b = pair
        return float(self.values[self.labels.index(a), self.labels.index(b)])

    @classmethod
    def from_pairs(cls, labels: Sequence[str], pairs: dict) -> "DistanceMatrix":
        """Build from {(label_a, label_b): distance}; unlisted pairs are 0"""
        labels = list(labels)
        idx = {nm: i for i, nm in enumerate(labels)}
        D = np.zeros((len(labels), len(labels)), dtype=np.float64)
        for (a, b), d in pairs.items():
            D[idx[a], idx[b]] = D[idx[b], idx[a]] = d
        return cls(tuple(labels), D)


def _correct(p: np.ndarray, method: str) -> np.ndarray:
    """Apply the substitution-model correction to difference proportions"""
    if method == 'p':
        return p
    if method == 'poisson':
        arg = 1.0 - p
    elif method == 'jtt':
        arg = 1.0 - p - 0.2 * p * p
    else:
        raise ValueError(f"Unknown method: {method}")
    with np.errstate(divide='ignore', invalid='ignore'):
        d = -np.log(arg)
    d = np.where(arg > 0, d, MAX_DISTANCE)
    # + 0.0 turns -0.0 into 0.0
    return np.clip(d, 0.0, MAX_DISTANCE) + 0.0


def _encode_rows(rows: Sequence[str]) -> np.ndarray:
    if not rows:
        return np.empty((0, 0), dtype=np.uint8)
    L = len(rows[0])
    arr = np.empty((len(rows), L), dtype=np.uint8)
    for i, r in enumerate(rows):
        if len(r) != L:
            raise ValueError("alignment rows must have equal length")
        arr[i] = np.frombuffer(check_ascii(r, f"row {i}").upper().encode('ascii'), dtype=np.uint8)
    return arr


def _distance_rows(X: np.ndarray, i: int, method: str) -> np.ndarray:
    """Distances from row i to every row of X (vectorised over rows)"""
    gap = X == _GAP_CODE
    compared = ~(gap[i][None, :] & gap)            # (n, L) not double-gap
    differ = (X[i][None, :] != X) & compared
    denom = compared.sum(axis=1).astype(np.float64)
    with np.errstate(divide='ignore', invalid='ignore'):
        p = differ.sum(axis=1) / denom
    d = _correct(np.nan_to_num(p, nan=0.0), method)
    return np.where(denom > 0, d, MAX_DISTANCE)


def pairwise_distance(row_a: str, row_b: str, method: str = 'jtt') -> float:
    """
    Corrected distance between two aligned rows of equal length

    Example:
        >>> pairwise_distance("MKT-A", "MKT-A")
        0.0
    """
    if method not in _METHODS:
        raise ValueError(f"Unknown method: {method}")
    X = _encode_rows([row_a, row_b])
    return float(_distance_rows(X, 0, method)[1])


def distance_matrix(msa: MultipleAlignment, method: str = 'jtt') -> DistanceMatrix:
    """
    Pairwise corrected distances over all rows of an alignment.

    Returns
    -------
    DistanceMatrix
        Symmetric, zero diagonal, labels in alignment order.
    """
    method = method.lower()
    if method not in _METHODS:
        raise ValueError(f"Unknown method: {method}")
    X = _encode_rows(list(msa.rows))
    n = X.shape[0]
    D = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        row = _distance_rows(X, i, method)
        D[i, i + 1:] = row[i + 1:]
    D = D + D.T
    np.fill_diagonal(D, 0.0)
    saturated = int(np.count_nonzero(D[np.triu_indices(n, 1)] >= MAX_DISTANCE))
    if saturated:
        logger.debug("%d pair(s) saturated at MAX_DISTANCE=%s", saturated, MAX_DISTANCE)
    return DistanceMatrix(tuple(msa.ids), D)

