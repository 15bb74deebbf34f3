"""
Percent identity and ranking of alignment hits
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from ..errors import InvalidParameterError
from ..records import GAP
from .pairwise import AlignmentResult


@dataclass(frozen=True)
class RankedHit:
    """One target's similarity to the query"""
    target_id: str
    identity_percent: float
    score: float
    aligned_length: int
    target_length: int = 0

    def __str__(self) -> str:
        return (f"{self.target_id} | Identity: {self.identity_percent:.2f}% "
                f"| Score: {self.score:.2f}")


def percent_identity(alignment: AlignmentResult) -> float:
    """
    Identical columns / columns without a gap in either row, x 100.

    Returns 0.0 when no gap-free column exists.
    """
    identical = 0
    effective = 0
    for a, b in zip(alignment.aligned_query, alignment.aligned_target):
        if a == GAP or b == GAP:
            continue
        effective += 1
        if a == b:
            identical += 1
    if effective == 0:
        return 0.0
    return identical / effective * 100.0


def make_hit(target_id: str, alignment: AlignmentResult, target_length: int = 0) -> RankedHit:
    return RankedHit(
        target_id=target_id,
        identity_percent=percent_identity(alignment),
        score=float(alignment.score),
        aligned_length=len(alignment),
        target_length=target_length,
    )


def rank(hits: Iterable[RankedHit]) -> List[RankedHit]:
    """Descending identity, then descending score; input order breaks ties"""
    # sorted() is stable, so equal keys keep their input order
    return sorted(hits, key=lambda h: (-h.identity_percent, -h.score))


def top_n(ranked: List[RankedHit], n: int) -> List[RankedHit]:
    """
    First `n` hits of an already ranked list.

    Empty when the best hit has 0% identity (nothing significant).
    """
    if n <= 0:
        raise InvalidParameterError("top_n must be a positive integer")
    if not ranked or ranked[0].identity_percent == 0:
        return []
    return list(ranked[:n])
