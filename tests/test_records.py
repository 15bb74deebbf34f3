import pytest

from ProtPhylo.errors import EmptyInputError, InsufficientInputError, InvalidParameterError
from ProtPhylo.records import MultipleAlignment, Sequence, ensure_sequences


def test_sequence_is_uppercased_and_frozen():
    s = Sequence("id1", "mktay")
    assert s.residues == "MKTAY"
    assert len(s) == 5
    with pytest.raises(AttributeError):
        s.residues = "X"


def test_alignment_rows_must_share_length():
    with pytest.raises(ValueError):
        MultipleAlignment(("a", "b"), ("MKT", "MK"))
    with pytest.raises(ValueError):
        MultipleAlignment(("a",), ("MKT", "MKT"))


def test_take_columns_with_repeats():
    msa = MultipleAlignment(("a", "b"), ("MKT-", "MRTA"))
    resampled = msa.take_columns([3, 0, 0, 2])
    assert resampled.ids == ("a", "b")
    assert resampled.rows == ("-MMT", "AMMT")
    assert resampled.n_columns == msa.n_columns
    assert msa.as_dict() == {"a": "MKT-", "b": "MRTA"}


def test_ensure_sequences():
    seqs = [Sequence("a", "MKT"), Sequence("b", "MK")]
    assert ensure_sequences(iter(seqs), minimum=2) == seqs
    with pytest.raises(InsufficientInputError):
        ensure_sequences(seqs[:1], minimum=2)
    with pytest.raises(EmptyInputError):
        ensure_sequences([Sequence("a", "")])


def test_non_ascii_residues_rejected():
    with pytest.raises(InvalidParameterError, match="non-ASCII"):
        Sequence("bad", "MKTÄY")
    with pytest.raises(InvalidParameterError, match="non-ASCII"):
        MultipleAlignment(("a", "b"), ("MKT", "MKé"))
