"""
In-memory sequence records consumed by the alignment and tree routines
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import numpy as np

from .errors import EmptyInputError, InsufficientInputError, InvalidParameterError

GAP = "-"


def check_ascii(text: str, label: str) -> str:
    """Residue letters are single ASCII characters; anything else is rejected"""
    if not text.isascii():
        bad = next(c for c in text if not c.isascii())
        raise InvalidParameterError(f"{label}: non-ASCII residue {bad!r}")
    return text


@dataclass(frozen=True)
class Sequence:
    """A labelled protein sequence (header + residues)"""
    id: str
    residues: str

    def __post_init__(self):
        check_ascii(self.residues, f"sequence '{self.id}'")
        # frozen dataclass -> bypass __setattr__ to normalise case
        object.__setattr__(self, "residues", self.residues.upper())

    def __len__(self) -> int:
        return len(self.residues)


@dataclass(frozen=True)
class MultipleAlignment:
    """Equal-length aligned rows, one per sequence id"""
    ids: Tuple[str, ...]
    rows: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "ids", tuple(self.ids))
        object.__setattr__(self, "rows", tuple(self.rows))
        if len(self.ids) != len(self.rows):
            raise ValueError("ids and rows must have the same length")
        object.__setattr__(self, "rows", tuple(
            check_ascii(r, f"alignment row '{i}'").upper() for i, r in zip(self.ids, self.rows)
        ))
        if len({len(r) for r in self.rows}) > 1:
            raise ValueError("all alignment rows must share the same column count")

    @property
    def n_columns(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def __len__(self) -> int:
        return len(self.rows)

    def as_dict(self) -> Dict[str, str]:
        return dict(zip(self.ids, self.rows))

    def take_columns(self, indices: Iterable[int]) -> "MultipleAlignment":
        """New alignment built from the given column indices (repeats allowed)"""
        idx = np.asarray(list(indices), dtype=np.intp)
        if self.n_columns == 0 and idx.size:
            raise InsufficientInputError("alignment has no columns to sample")
        arr = self.as_array()
        picked = arr[:, idx] if idx.size else arr[:, :0]
        rows = tuple(r.tobytes().decode("ascii") for r in picked)
        return MultipleAlignment(self.ids, rows)

    def as_array(self) -> np.ndarray:
        """(n, L) uint8 array of ASCII residue codes"""
        if not self.rows:
            return np.empty((0, 0), dtype=np.uint8)
        return np.array([list(r.encode("ascii")) for r in self.rows],
                        dtype=np.uint8).reshape(len(self.rows), self.n_columns)


def ensure_sequences(sequences: Iterable[Sequence], minimum: int = 1,
                     what: str = "sequences") -> List[Sequence]:
    """Materialise and validate an ordered set of records"""
    seqs = list(sequences)
    if len(seqs) < minimum:
        raise InsufficientInputError(
            f"At least {minimum} {what} are required, got {len(seqs)}"
        )
    for s in seqs:
        if len(s) == 0:
            raise EmptyInputError(f"Sequence '{s.id}' is empty")
    return seqs
