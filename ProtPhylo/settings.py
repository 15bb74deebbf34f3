"""
Default parameters for similarity search and tree construction
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .seq_alignment.scoring import ScoringMatrix

# Similarity search (Smith-Waterman): BLOSUM62, gap open 10, gap extend 1
SEARCH_GAP_OPEN = 10.0
SEARCH_GAP_EXTEND = 1.0
DEFAULT_TOP_N = 20

# Progressive MSA: BLOSUM62, gap open 10, gap extend 0.2
MSA_GAP_OPEN = 10.0
MSA_GAP_EXTEND = 0.2

DEFAULT_BOOTSTRAPS = 100

# Worker pool
DEFAULT_N_JOBS = 1
DEFAULT_BACKEND = "process"


@dataclass(frozen=True)
class AnalysisSettings:
    """Bundle of defaults; every field can be overridden per call"""
    search_gap_open: float = SEARCH_GAP_OPEN
    search_gap_extend: float = SEARCH_GAP_EXTEND
    msa_gap_open: float = MSA_GAP_OPEN
    msa_gap_extend: float = MSA_GAP_EXTEND
    top_n: int = DEFAULT_TOP_N
    num_bootstraps: int = DEFAULT_BOOTSTRAPS
    n_jobs: Optional[int] = DEFAULT_N_JOBS
    backend: str = DEFAULT_BACKEND
    seed: Optional[int] = None

    @classmethod
    def from_env(cls, prefix: str = "PROTPHYLO_") -> "AnalysisSettings":
        """
        Read worker-pool and RNG settings from the environment.

        PROTPHYLO_N_JOBS : int, 0 = all CPUs
        PROTPHYLO_BACKEND : 'thread' | 'process'
        PROTPHYLO_SEED : int
        """
        n_jobs = os.environ.get(prefix + "N_JOBS")
        seed = os.environ.get(prefix + "SEED")
        return cls(
            n_jobs=int(n_jobs) if n_jobs else DEFAULT_N_JOBS,
            backend=os.environ.get(prefix + "BACKEND", DEFAULT_BACKEND),
            seed=int(seed) if seed else None,
        )

    def search_scoring(self) -> ScoringMatrix:
        return ScoringMatrix.blosum62(self.search_gap_open, self.search_gap_extend)

    def msa_scoring(self) -> ScoringMatrix:
        return ScoringMatrix.blosum62(self.msa_gap_open, self.msa_gap_extend)
