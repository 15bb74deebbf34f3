import asyncio

import pytest

from ProtPhylo import (AnalysisSettings, CancelToken, EmptyInputError, InsufficientInputError,
                       InvalidParameterError, OperationCancelledError, Sequence,
                       build_tree, build_tree_async, filter_by_length, find_similar,
                       find_similar_async)

QUERY = Sequence("query", "MKTAYIAKQR")


@pytest.fixture
def targets():
    return [
        Sequence("unrelated", "GGGGG"),
        Sequence("mutant", "MKTAHIAKQR"),
        Sequence("exact", "MKTAYIAKQR"),
        Sequence("empty", ""),
        Sequence("exact_copy", "MKTAYIAKQR"),
    ]


def test_find_similar_ranks_hits(targets):
    hits = find_similar(QUERY, targets, top_n=10)
    assert [h.target_id for h in hits] == ["exact", "exact_copy", "mutant", "unrelated"]
    assert hits[0].identity_percent == 100.0
    assert hits[0].score == 49
    assert hits[2].identity_percent == pytest.approx(90.0)
    assert hits[2].score == 44
    assert hits[0].target_length == 10


def test_find_similar_truncates(targets):
    hits = find_similar(QUERY, targets, top_n=2)
    assert [h.target_id for h in hits] == ["exact", "exact_copy"]


def test_find_similar_thread_pool_matches_inline(targets):
    inline = find_similar(QUERY, targets, top_n=10)
    pooled = find_similar(QUERY, targets, top_n=10, n_jobs=3, backend="thread")
    assert inline == pooled


def test_find_similar_process_pool(targets):
    hits = find_similar(QUERY, targets, top_n=1, n_jobs=2, backend="process")
    assert hits[0].target_id == "exact"


def test_no_significant_hit_returns_empty():
    assert find_similar(QUERY, [Sequence("g", "GGGG"), Sequence("w", "WWW")], top_n=5) == []


def test_find_similar_validation(targets):
    with pytest.raises(EmptyInputError):
        find_similar(Sequence("q", ""), targets)
    with pytest.raises(EmptyInputError):
        find_similar(QUERY, [])
    with pytest.raises(InvalidParameterError):
        find_similar(QUERY, targets, top_n=0)


def test_find_similar_cancelled(targets):
    token = CancelToken()
    token.cancel()
    with pytest.raises(OperationCancelledError):
        find_similar(QUERY, targets, cancel=token)


def test_build_tree_without_bootstrap(family):
    result = build_tree(family, num_bootstraps=0)
    assert sorted(result.tree.leaf_names) == sorted(s.id for s in family)
    assert result.num_bootstraps == 0
    assert all(b.node.support is None for b in result.tree.internal_branches())
    assert result.distances.labels == tuple(s.id for s in family)
    # the two homologue pairs form the only internal split
    assert result.tree.bipartitions() == {frozenset({"b1", "b2"})}
    assert result.to_newick().endswith(";")


def test_build_tree_with_bootstrap(family):
    result = build_tree(family, num_bootstraps=20, seed=42)
    supports = [b.node.support for b in result.tree.internal_branches()]
    assert supports
    assert all(0.0 <= s <= 100.0 for s in supports)


def test_build_tree_settings_seed_reproducible(family):
    settings = AnalysisSettings(n_jobs=2, backend="thread", seed=7)
    first = build_tree(family, num_bootstraps=10, settings=settings)
    second = build_tree(family, num_bootstraps=10, seed=7)
    assert first.to_newick() == second.to_newick()


def test_explicit_pool_arguments_override_settings(targets):
    settings = AnalysisSettings(n_jobs=2, backend="no-such-backend")
    inline = find_similar(QUERY, targets, top_n=10)
    assert find_similar(QUERY, targets, top_n=10, backend="thread", settings=settings) == inline
    assert find_similar(QUERY, targets, top_n=10, n_jobs=1, settings=settings) == inline
    with pytest.raises(ValueError):
        find_similar(QUERY, targets, top_n=10, settings=settings)


def test_build_tree_two_sequences():
    seqs = [Sequence("a", "MKTAYIAKQR"), Sequence("b", "MKTAHIAKQR")]
    result = build_tree(seqs, num_bootstraps=0)
    branches = result.tree.branches()
    assert len(branches) == 1
    assert branches[0].length == pytest.approx(result.distances["a", "b"])


def test_build_tree_validation(family):
    with pytest.raises(InsufficientInputError):
        build_tree(family[:1], num_bootstraps=0)
    with pytest.raises(InvalidParameterError):
        build_tree(family, num_bootstraps=-1)
    with pytest.raises(InvalidParameterError):
        build_tree([Sequence("a", "MKT"), Sequence("a", "MKS")], num_bootstraps=0)


def test_async_wrappers(targets, family):
    hits = asyncio.run(find_similar_async(QUERY, targets, top_n=1))
    assert hits[0].target_id == "exact"
    result = asyncio.run(build_tree_async(family, num_bootstraps=5, seed=1))
    assert len(result.msa) == 4


def test_filter_by_length():
    seqs = [Sequence("a", "M" * 5), Sequence("b", "M" * 50), Sequence("c", "M" * 10)]
    assert [s.id for s in filter_by_length(seqs, 5, 10)] == ["a", "c"]
    assert filter_by_length(seqs, 100, 200) == []
    with pytest.raises(InvalidParameterError):
        filter_by_length(seqs, 10, 5)
    with pytest.raises(InvalidParameterError):
        filter_by_length(seqs, -1, 5)
