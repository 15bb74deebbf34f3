import numpy as np
import pytest

from ProtPhylo.errors import InsufficientInputError
from ProtPhylo.phylogene.distances import DistanceMatrix
from ProtPhylo.phylogene.tree_builder import (UPGMA, NeighborJoining, build_nj_tree,
                                              build_upgma_tree, normalize_split)


def _dm(labels, pairs):
    return DistanceMatrix.from_pairs(labels, pairs)


def _split(tree, *names):
    return normalize_split(frozenset(names), frozenset(tree.leaf_names))


def test_two_taxa_single_branch():
    tree = build_nj_tree(_dm(["a", "b"], {("a", "b"): 0.37}))
    branches = tree.branches()
    assert len(branches) == 1
    assert branches[0].length == pytest.approx(0.37)
    assert tree.internal_branches() == []
    assert sorted(tree.leaf_names) == ["a", "b"]


def test_three_taxa_join_order():
    dm = _dm(["1", "2", "3"], {("1", "2"): 0.1, ("1", "3"): 0.3, ("2", "3"): 0.3})
    tree = build_nj_tree(dm)
    leaf = {n.name: n for n in tree.leaves()}
    assert leaf["1"].parent is leaf["2"].parent
    assert leaf["3"].parent is not leaf["1"].parent
    assert leaf["1"].branch_length == pytest.approx(0.05)
    assert leaf["2"].branch_length == pytest.approx(0.05)
    assert tree.total_length() == pytest.approx(0.35)


def test_additive_four_taxa_recovered():
    # ((A:2,B:3):3,(C:4,D:5))
    dm = _dm(["A", "B", "C", "D"], {
        ("A", "B"): 5, ("A", "C"): 9, ("A", "D"): 10,
        ("B", "C"): 10, ("B", "D"): 11, ("C", "D"): 9,
    })
    tree = build_nj_tree(dm)
    assert tree.bipartitions() == {frozenset({"C", "D"})}
    lengths = {b.split: b.length for b in tree.branches()}
    assert lengths[_split(tree, "A")] == pytest.approx(2)
    assert lengths[_split(tree, "B")] == pytest.approx(3)
    assert lengths[_split(tree, "C")] == pytest.approx(4)
    assert lengths[_split(tree, "D")] == pytest.approx(5)
    assert lengths[_split(tree, "A", "B")] == pytest.approx(3)
    assert tree.total_length() == pytest.approx(17)


def test_bipartition_orientation_independent():
    taxa = frozenset("ABCDE")
    assert normalize_split(frozenset("AB"), taxa) == normalize_split(frozenset("CDE"), taxa)
    assert normalize_split(frozenset("AB"), taxa) == frozenset("CDE")


def test_negative_lengths_clamped():
    dm = _dm(["A", "B", "C"], {("A", "B"): 1, ("A", "C"): 10, ("B", "C"): 1})
    tree = build_nj_tree(dm)
    assert all(node.branch_length >= 0 for node in tree.root.iter_preorder())
    assert all(b.length >= 0 for b in tree.branches())


def test_tree_is_binary_with_all_leaves():
    rng = np.random.default_rng(0)
    pts = rng.random((7, 3))
    D = np.sqrt(((pts[:, None, :] - pts[None, :, :]) ** 2).sum(-1))
    labels = [f"t{i}" for i in range(7)]
    tree = build_nj_tree(DistanceMatrix(tuple(labels), D))
    assert sorted(tree.leaf_names) == labels
    for node in tree.root.iter_preorder():
        assert len(node.children) in (0, 2)
    # an unrooted binary tree on n leaves has n - 3 internal branches
    assert len(tree.internal_branches()) == 4
    assert len(tree.branches()) == 2 * 7 - 3


@pytest.mark.parametrize("labels", [[], ["only"]])
def test_too_few_taxa(labels):
    dm = DistanceMatrix(tuple(labels), np.zeros((len(labels), len(labels))))
    with pytest.raises(InsufficientInputError):
        build_nj_tree(dm)
    with pytest.raises(InsufficientInputError):
        NeighborJoining(dm.values, labels).build_tree()


def test_upgma_groups_closest_pair():
    dm = _dm(["a", "b", "c"], {("a", "b"): 2, ("a", "c"): 6, ("b", "c"): 6})
    root = UPGMA(dm.values, list(dm.labels)).build_tree()
    names = [[leaf.name for leaf in ch.get_leaves()] for ch in root.children]
    assert sorted(names, key=len) == [["c"], ["a", "b"]]
    # ultrametric: every tip 3 below the root
    tree = build_upgma_tree(dm)
    for leaf in tree.leaves():
        depth, node = 0.0, leaf
        while node.parent is not None:
            depth += node.branch_length
            node = node.parent
        assert depth == pytest.approx(3)


def test_branch_lengths_are_python_floats():
    dm = _dm(["a", "b", "c", "d"], {("a", "b"): 0.3, ("a", "c"): 0.5, ("a", "d"): 0.6,
                                    ("b", "c"): 0.6, ("b", "d"): 0.7, ("c", "d"): 0.3})
    for tree in (build_nj_tree(dm), build_upgma_tree(dm)):
        for node in tree.root.iter_preorder():
            assert type(node.branch_length) is float
        assert all(type(b.length) is float for b in tree.branches())
    assert repr(build_nj_tree(_dm(["a", "b"], {("a", "b"): 0.2})).branches()[0].length) == "0.2"


def test_upgma_ties_join_first_pair():
    # every pair at the same distance: (a, b) first, then (ab, c)
    labels = ["a", "b", "c"]
    dm = _dm(labels, {("a", "b"): 1, ("a", "c"): 1, ("b", "c"): 1})
    root = UPGMA(dm.values, labels).build_tree()
    inner, last = root.children
    assert last.name == "c"
    assert [leaf.name for leaf in inner.get_leaves()] == ["a", "b"]
    assert inner.branch_length == pytest.approx(0.0)
    assert last.branch_length == pytest.approx(0.5)


def test_upgma_average_linkage_weights_cluster_sizes():
    labels = ["a", "b", "c", "d"]
    dm = _dm(labels, {("a", "b"): 2, ("a", "c"): 4, ("b", "c"): 4,
                      ("a", "d"): 10, ("b", "d"): 10, ("c", "d"): 16})
    root = UPGMA(dm.values, labels).build_tree()
    # d joins last at (10 + 10 + 16) / 3 = 12
    d = next(leaf for leaf in root.get_leaves() if leaf.name == "d")
    assert d.parent is root
    assert d.branch_length == pytest.approx(6.0)
