import pytest

from ProtPhylo.errors import EmptyInputError, InsufficientInputError, InvalidParameterError
from ProtPhylo.phylogene.msa import ProgressiveAligner, align_many
from ProtPhylo.records import Sequence


def _degap(row):
    return row.replace("-", "")


def test_rows_keep_input_order_and_residues(family):
    msa = align_many(family)
    assert msa.ids == tuple(s.id for s in family)
    assert len({len(r) for r in msa.rows}) == 1
    for seq, row in zip(family, msa.rows):
        assert _degap(row) == seq.residues
    assert msa.n_columns >= max(len(s) for s in family)


def test_identical_sequences_need_no_gaps():
    seqs = [Sequence("x", "MKTAYIAKQR"), Sequence("y", "MKTAYIAKQR"), Sequence("z", "MKTAYIAKQR")]
    msa = align_many(seqs)
    assert msa.rows == ("MKTAYIAKQR",) * 3


def test_deletion_is_opened_as_gap():
    seqs = [Sequence("long", "MKTAYIAKQRQISFVKSHFSRQ"), Sequence("short", "MKTAYIAKQRSHFSRQ")]
    msa = align_many(seqs)
    assert msa.rows[0] == "MKTAYIAKQRQISFVKSHFSRQ"
    assert _degap(msa.rows[1]) == "MKTAYIAKQRSHFSRQ"
    assert msa.rows[1].count("-") == 6


def test_unequal_lengths_and_guide_tree(family):
    seqs = family + [Sequence("c1", "MSTNPKPQRKTKRNTNRRPQDVKFPGG")]
    aligner = ProgressiveAligner(n_jobs=2, backend="thread")
    msa = aligner.align(seqs)
    assert len(msa) == 5
    assert sorted(leaf.name for leaf in aligner.guide.get_leaves()) == sorted(s.id for s in seqs)
    for seq, row in zip(seqs, msa.rows):
        assert _degap(row) == seq.residues


def test_needs_two_sequences():
    with pytest.raises(InsufficientInputError):
        align_many([Sequence("a", "MKT")])


def test_empty_sequence_rejected():
    with pytest.raises(EmptyInputError):
        align_many([Sequence("a", "MKT"), Sequence("b", "")])


def test_duplicate_ids_rejected():
    with pytest.raises(InvalidParameterError):
        align_many([Sequence("a", "MKT"), Sequence("a", "MKS")])
