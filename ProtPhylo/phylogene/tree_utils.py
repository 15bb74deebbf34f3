"""
Bootstrap resampling and branch support
"""
from __future__ import annotations

import logging
from collections import Counter
from functools import partial
from typing import Dict, List, Optional

import numpy as np

from ..errors import InsufficientInputError, InvalidParameterError
from ..parallel import CancelToken, run_indexed
from ..records import MultipleAlignment
from .distances import distance_matrix
from .tree_builder import Bipartition, Tree, build_nj_tree

logger = logging.getLogger(__name__)


def draw_column_indices(n_columns: int, num_replicates: int,
                        seed: Optional[int] = None) -> np.ndarray:
    """
    (num_replicates, n_columns) column indices drawn uniformly with replacement

    All replicates are drawn up front from one generator, so results do not
    depend on how replicates are later scheduled.
    """
    rng = np.random.default_rng(seed)
    return rng.integers(0, n_columns, size=(num_replicates, n_columns))


def replicate_bipartitions(columns: np.ndarray, msa: MultipleAlignment,
                           method: str = 'jtt') -> List[Bipartition]:
    """Internal bipartitions of the NJ tree built from one resampled alignment"""
    replicate = msa.take_columns(columns)
    tree = build_nj_tree(distance_matrix(replicate, method=method))
    return sorted(tree.bipartitions(), key=sorted)


def bootstrap_support(msa: MultipleAlignment,
                      num_replicates: int,
                      method: str = 'jtt',
                      seed: Optional[int] = None,
                      n_jobs: Optional[int] = 1,
                      backend: str = 'process',
                      cancel: Optional[CancelToken] = None) -> Counter:
    """
    Count how many replicate trees contain each bipartition

    Args:
        msa: Source alignment (at least 2 rows, at least 1 column)
        num_replicates: Number of bootstrap replicates (> 0)
        method: Distance correction passed to distance_matrix
        seed: Seed for numpy.random.default_rng
        n_jobs: Worker pool size (1 = inline, None/0 = all CPUs)
        backend: 'thread' | 'process'
        cancel: Optional CancelToken checked between replicates

    Returns:
        Counter mapping Bipartition -> number of replicates containing it

    Example:
        >>> counts = bootstrap_support(msa, 100, seed=1)
        >>> tree = attach_support(tree, counts, 100)
    """
    if isinstance(num_replicates, bool) or not isinstance(num_replicates, (int, np.integer)) \
            or num_replicates <= 0:
        raise InvalidParameterError("num_replicates must be a positive integer")
    if len(msa) < 2:
        raise InsufficientInputError("Bootstrap needs an alignment with at least 2 rows")
    if msa.n_columns == 0:
        raise InsufficientInputError("Bootstrap needs an alignment with at least 1 column")

    logger.info("Bootstrap: %d replicates over %d columns", num_replicates, msa.n_columns)
    indices = draw_column_indices(msa.n_columns, int(num_replicates), seed)
    per_replicate = run_indexed(
        partial(replicate_bipartitions, msa=msa, method=method),
        list(indices),
        n_jobs=n_jobs,
        backend=backend,
        cancel=cancel,
    )

    counts: Counter = Counter()
    for splits in per_replicate:
        counts.update(splits)
    logger.info("Bootstrap complete: %d distinct bipartitions", len(counts))
    return counts


def attach_support(tree: Tree, counts: Dict[Bipartition, int],
                   num_replicates: int) -> Tree:
    """
    Write support = 100 * count / num_replicates onto every internal branch

    Branches whose bipartition never appeared get 0. A two-child root's
    edges form one branch, so both root children receive the same value.
    """
    if num_replicates <= 0:
        raise InvalidParameterError("num_replicates must be a positive integer")
    merged_root = len(tree.root.children) == 2
    for branch in tree.internal_branches():
        support = 100.0 * counts.get(branch.split, 0) / num_replicates
        branch.node.support = support
        if merged_root and branch.node.parent is tree.root:
            for sibling in tree.root.children:
                if not sibling.is_leaf():
                    sibling.support = support
    return tree


def branch_supports(tree: Tree) -> Dict[Bipartition, float]:
    """Bipartition -> support for every internal branch that carries one"""
    return {b.split: b.node.support for b in tree.internal_branches()
            if b.node.support is not None}
