import pytest

from ProtPhylo.records import Sequence
from ProtPhylo.seq_alignment.scoring import ScoringMatrix


@pytest.fixture
def blosum():
    return ScoringMatrix.blosum62(gap_open=10, gap_extend=1)


@pytest.fixture
def family():
    """Two pairs of close homologues"""
    return [
        Sequence("a1", "MKTAYIAKQRQISFVKSHFSRQ"),
        Sequence("a2", "MKTAYIAKQRQISFVKSHFSRE"),
        Sequence("b1", "MKVLWAALLVTFLAGCQAKVEQ"),
        Sequence("b2", "MKVLWAALLVTFLAGCQAKIEQ"),
    ]
