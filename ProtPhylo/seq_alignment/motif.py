"""
PROSITE-like motif patterns translated to regular expressions
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List

from ..errors import InvalidParameterError
from ..records import Sequence

logger = logging.getLogger(__name__)

_REPEAT = re.compile(r"X\((\d+)\)")


def translate_motif(pattern: str) -> str:
    """
    Translate 'X(n)' repeats and literal hyphens into a wildcard regex.

    >>> translate_motif("P-X(2)-G")
    'P..G'
    """
    if not pattern:
        raise InvalidParameterError("Motif pattern cannot be empty")
    expanded = _REPEAT.sub(lambda m: "X" * int(m.group(1)), pattern)
    return expanded.replace("-", "").replace("X", ".")


def compile_motif(pattern: str) -> "re.Pattern[str]":
    return re.compile(translate_motif(pattern))


def find_by_motif(sequences: Iterable[Sequence], pattern: str) -> List[Sequence]:
    """Sequences whose residues contain at least one match of `pattern`"""
    regex = compile_motif(pattern)
    logger.info("Searching for motif %r (regex %r)", pattern, regex.pattern)
    found = [s for s in sequences if regex.search(s.residues)]
    logger.info("Found %d sequence(s) containing the motif", len(found))
    return found
