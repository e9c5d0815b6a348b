from __future__ import annotations

from contracts import MATCHES_FIELD, QUERY_FIELD
from core.rewriter import rewrite


def test_rewrite_strips_query_and_adds_matches():
    source = {"query": {"match_all": {}}, "title": "t"}

    rewritten = rewrite(source, ["q1", "q2"])

    assert rewritten == {"title": "t", "percosert": ["q1", "q2"]}
    assert QUERY_FIELD not in rewritten


def test_rewrite_keeps_empty_matches():
    rewritten = rewrite({"title": "t"}, [])

    assert rewritten[MATCHES_FIELD] == []


def test_rewrite_overwrites_caller_supplied_matches_field():
    rewritten = rewrite({"title": "t", "percosert": ["forged"]}, ["q1"])

    assert rewritten["percosert"] == ["q1"]


def test_rewrite_preserves_field_order_and_does_not_mutate_input():
    source = {"b": 1, "query": {"term": {"b": 1}}, "a": {"nested": True}}

    rewritten = rewrite(source, ["q1"])

    assert list(rewritten) == ["b", "a", "percosert"]
    assert source == {"b": 1, "query": {"term": {"b": 1}}, "a": {"nested": True}}


def test_rewrite_keeps_matcher_order():
    rewritten = rewrite({}, ["q2", "q1", "q3"])

    assert rewritten["percosert"] == ["q2", "q1", "q3"]
