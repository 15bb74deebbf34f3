"""
Similarity search and tree-building workflows.

Callers supply validated in-memory records; nothing here prompts, plots,
or reads files.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Iterable, List, Optional

from .errors import EmptyInputError, InvalidParameterError
from .parallel import CancelToken, run_indexed
from .phylogene.distances import DistanceMatrix, distance_matrix
from .phylogene.msa import align_many
from .phylogene.tree_builder import Tree, build_nj_tree
from .phylogene.tree_utils import attach_support, bootstrap_support
from .records import MultipleAlignment, Sequence, ensure_sequences
from .seq_alignment.pairwise import PairwiseAligner
from .seq_alignment.ranking import RankedHit, make_hit, rank, top_n as _top_n
from .seq_alignment.scoring import ScoringMatrix
from .settings import DEFAULT_BOOTSTRAPS, DEFAULT_TOP_N, AnalysisSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class PhyloResult:
    """Everything produced by one tree-building request"""
    msa: MultipleAlignment
    distances: DistanceMatrix
    tree: Tree
    num_bootstraps: int = 0

    def to_newick(self) -> str:
        return self.tree.to_newick()


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _score_target(target: Sequence, query: Sequence, scoring: ScoringMatrix) -> RankedHit:
    aln = PairwiseAligner(scoring).align(query, target)
    return make_hit(target.id, aln, len(target))


def find_similar(query: Sequence,
                 targets: Iterable[Sequence],
                 top_n: int = DEFAULT_TOP_N,
                 scoring: Optional[ScoringMatrix] = None,
                 n_jobs: Optional[int] = None,
                 backend: Optional[str] = None,
                 cancel: Optional[CancelToken] = None,
                 settings: Optional[AnalysisSettings] = None) -> List[RankedHit]:
    """
    Rank targets by percent identity of their local alignment to `query`

    Parameters
    ----------
    query : Sequence
        Non-empty query record.
    targets : iterable of Sequence
        Non-empty set; empty target sequences are skipped.
    top_n : int
        Number of hits to return (> 0).
    scoring : ScoringMatrix, optional
        Default BLOSUM62, gap open 10, gap extend 1.
    n_jobs, backend : optional
        Worker pool size (0 = all CPUs) and 'thread' | 'process';
        taken from `settings` when not given.
    settings : AnalysisSettings, optional
        Fallback for scoring, n_jobs and backend (default AnalysisSettings()).

    Returns
    -------
    list of RankedHit
        Best first; empty when no target shares any identity with the query.
    """
    if not _is_count(top_n) or top_n <= 0:
        raise InvalidParameterError("top_n must be a positive integer")
    if len(query) == 0:
        raise EmptyInputError("Query sequence is empty")
    targets = list(targets)
    if not targets:
        raise EmptyInputError("Target sequence set is empty")
    settings = settings if settings is not None else AnalysisSettings()
    n_jobs = settings.n_jobs if n_jobs is None else n_jobs
    backend = settings.backend if backend is None else backend
    if scoring is None:
        scoring = settings.search_scoring()

    usable = [t for t in targets if len(t) > 0]
    if len(usable) < len(targets):
        logger.info("Skipping %d empty target sequence(s)", len(targets) - len(usable))

    logger.info("Performing local alignment against %d target sequences "
                "(%s, gap open %s, gap extend %s)", len(usable), scoring.name,
                scoring.gap_open, scoring.gap_extend)
    hits = run_indexed(partial(_score_target, query=query, scoring=scoring),
                       usable, n_jobs=n_jobs, backend=backend, cancel=cancel)

    best = _top_n(rank(hits), top_n)
    if not best:
        logger.info("No sequences with significant similarity were found")
    return best


def build_tree(sequences: Iterable[Sequence],
               num_bootstraps: int = DEFAULT_BOOTSTRAPS,
               scoring: Optional[ScoringMatrix] = None,
               method: str = 'jtt',
               seed: Optional[int] = None,
               n_jobs: Optional[int] = None,
               backend: Optional[str] = None,
               cancel: Optional[CancelToken] = None,
               settings: Optional[AnalysisSettings] = None) -> PhyloResult:
    """
    MSA -> corrected distances -> neighbor-joining tree (+ bootstrap)

    Parameters
    ----------
    sequences : iterable of Sequence
        At least two non-empty records with unique ids.
    num_bootstraps : int
        Replicates for branch support; 0 skips the bootstrap.
    scoring : ScoringMatrix, optional
        Used by the MSA; default BLOSUM62, gap open 10, gap extend 0.2.
    method : str
        Distance correction ('jtt' | 'poisson' | 'p').
    seed : int, optional
        Seed for bootstrap column resampling.
    n_jobs, backend : optional
        Worker pool size (0 = all CPUs) and 'thread' | 'process'.
    settings : AnalysisSettings, optional
        Fallback for scoring, seed, n_jobs and backend wherever those are
        not given explicitly (default AnalysisSettings()).

    Returns
    -------
    PhyloResult
    """
    if not _is_count(num_bootstraps) or num_bootstraps < 0:
        raise InvalidParameterError("num_bootstraps must be a non-negative integer")
    seqs = ensure_sequences(sequences, minimum=2)
    ids = [s.id for s in seqs]
    if len(set(ids)) != len(ids):
        raise InvalidParameterError("sequence ids must be unique")
    settings = settings if settings is not None else AnalysisSettings()
    n_jobs = settings.n_jobs if n_jobs is None else n_jobs
    backend = settings.backend if backend is None else backend
    seed = settings.seed if seed is None else seed
    if scoring is None:
        scoring = settings.msa_scoring()

    logger.info("Performing multiple sequence alignment of %d sequences", len(seqs))
    msa = align_many(seqs, scoring, n_jobs=n_jobs, backend=backend, cancel=cancel)

    logger.info("Calculating pairwise distance matrix (%s)", method)
    dm = distance_matrix(msa, method=method)

    logger.info("Constructing neighbor-joining tree")
    tree = build_nj_tree(dm)

    if num_bootstraps > 0:
        counts = bootstrap_support(msa, num_bootstraps, method=method, seed=seed,
                                   n_jobs=n_jobs, backend=backend, cancel=cancel)
        attach_support(tree, counts, num_bootstraps)

    return PhyloResult(msa=msa, distances=dm, tree=tree, num_bootstraps=num_bootstraps)


def filter_by_length(sequences: Iterable[Sequence], min_len: int,
                     max_len: int) -> List[Sequence]:
    """Records whose length lies in [min_len, max_len], input order kept"""
    if min_len < 0 or max_len < min_len:
        raise InvalidParameterError(
            f"Invalid length range [{min_len}, {max_len}]"
        )
    kept = [s for s in sequences if min_len <= len(s) <= max_len]
    logger.info("%d sequence(s) within length range [%d, %d]", len(kept), min_len, max_len)
    return kept


# --------- async wrappers ---------

async def find_similar_async(query: Sequence, targets: Iterable[Sequence],
                             top_n: int = DEFAULT_TOP_N, **kwargs) -> List[RankedHit]:
    """
    Async version: runs find_similar in the default executor.
    (Does not speed up the computation; only keeps the event loop free.)
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, partial(find_similar, query, list(targets), top_n, **kwargs)
    )


async def build_tree_async(sequences: Iterable[Sequence],
                           num_bootstraps: int = DEFAULT_BOOTSTRAPS,
                           **kwargs) -> PhyloResult:
    """Async version of build_tree (runs in the default executor)"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, partial(build_tree, list(sequences), num_bootstraps, **kwargs)
    )
