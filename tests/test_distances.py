import math

import numpy as np
import pytest

from ProtPhylo.errors import InvalidParameterError
from ProtPhylo.phylogene.distances import (MAX_DISTANCE, DistanceMatrix, distance_matrix,
                                           pairwise_distance)
from ProtPhylo.records import MultipleAlignment


def test_identical_rows_have_zero_distance():
    assert pairwise_distance("MKT-A", "MKT-A") == 0.0


def test_kimura_correction_value():
    # 2 differences over 10 columns
    p = 0.2
    expected = -math.log(1 - p - p * p / 5)
    assert pairwise_distance("MKTAYIAKQR", "MKTAHIAKQW") == pytest.approx(expected)


def test_double_gap_columns_are_ignored():
    # 4 comparable columns, 1 difference
    d = pairwise_distance("MK--TA", "MR--TA")
    assert d == pytest.approx(-math.log(1 - 0.25 - 0.25 ** 2 / 5))


def test_residue_against_gap_counts_as_difference():
    assert pairwise_distance("MKTA", "MKT-", method='p') == pytest.approx(0.25)


def test_poisson_correction():
    assert pairwise_distance("MKTA", "MKTW", method='poisson') == pytest.approx(-math.log(0.75))


def test_saturated_pair_is_clamped():
    # p = 1 makes the log argument negative
    assert pairwise_distance("AAAA", "WWWW") == MAX_DISTANCE


def test_no_comparable_columns_is_clamped():
    assert pairwise_distance("--", "--") == MAX_DISTANCE


def test_unknown_method():
    with pytest.raises(ValueError):
        pairwise_distance("MK", "MK", method="gamma")


def test_matrix_symmetric_zero_diagonal():
    msa = MultipleAlignment(
        ("a", "b", "c", "d"),
        ("MKTAYIAKQR", "MKTAHIAKQR", "MRT-YLAKQW", "WWWWWWWWWW"),
    )
    dm = distance_matrix(msa)
    assert dm.labels == ("a", "b", "c", "d")
    np.testing.assert_allclose(dm.values, dm.values.T)
    np.testing.assert_array_equal(np.diag(dm.values), 0.0)
    assert (dm.values >= 0).all()
    assert dm["a", "b"] == pytest.approx(pairwise_distance("MKTAYIAKQR", "MKTAHIAKQR"))
    assert dm["c", "d"] == MAX_DISTANCE


def test_matrix_matches_pairwise():
    rows = ("MKTAYIAKQR", "MKT-HIAKQR", "MRT-YLAKQW")
    dm = distance_matrix(MultipleAlignment(("x", "y", "z"), rows))
    for i in range(3):
        for j in range(3):
            if i != j:
                assert dm.values[i, j] == pytest.approx(pairwise_distance(rows[i], rows[j]))


def test_from_pairs():
    dm = DistanceMatrix.from_pairs(["a", "b", "c"], {("a", "b"): 0.1, ("a", "c"): 0.3, ("b", "c"): 0.3})
    assert dm["b", "a"] == 0.1
    assert dm["c", "c"] == 0.0


def test_shape_mismatch_rejected():
    with pytest.raises(ValueError):
        DistanceMatrix(("a", "b"), np.zeros((3, 3)))


def test_pairwise_distance_rejects_non_ascii_rows():
    with pytest.raises(InvalidParameterError):
        pairwise_distance("MKTÄY", "MKTAY")
