#!/usr/bin/env python3
"""Tests for ranking and the exclude/assign refinement hooks."""

import pytest

from aggregation import MentionAggregate, rank_mentions
from test_framework import ROOT_URI, build_corpus


def _corpus():
    return build_corpus(
        [
            ("a", "Heat", ROOT_URI),
            ("b", "Ronin", ROOT_URI),
            ("c", "Heat again", ROOT_URI),
            ("d", "Alien", ROOT_URI),
            ("e", "nothing", ROOT_URI),
        ]
    )


def _labels():
    return {
        ROOT_URI: [],
        "a": ["Heat"],
        "b": ["Ronin"],
        "c": ["Heat", "Heat"],
        "d": ["Alien", "Ronin"],
        "e": [],
    }


def test_rank_by_count_then_title():
    counts = rank_mentions(_labels(), _corpus())
    assert [(mc.mention, mc.count) for mc in counts] == [
        ("Heat", 2),
        ("Ronin", 2),
        ("Alien", 1),
    ]
    assert [p.uri for p in counts[0].posts] == ["a", "c"]


def test_root_labels_never_counted():
    labels = _labels()
    labels[ROOT_URI] = ["Heat"]
    counts = rank_mentions(labels, _corpus())
    assert counts[0].count == 2


def test_exclude_and_include():
    aggregate = MentionAggregate(_labels(), _corpus())
    aggregate.exclude("Heat")
    assert [mc.mention for mc in aggregate.mention_counts] == ["Ronin", "Alien"]
    assert {p.uri for p in aggregate.uncategorized} == {"a", "c", "e"}
    aggregate.include("Heat")
    assert aggregate.mention_counts[0].mention == "Heat"


def test_assign_overrides_one_post():
    aggregate = MentionAggregate(_labels(), _corpus())
    aggregate.assign("e", "Alien")
    assert aggregate.labels_for("e") == ["Alien"]
    counts = {mc.mention: mc.count for mc in aggregate.mention_counts}
    assert counts["Alien"] == 2
    aggregate.unassign("e")
    assert aggregate.labels_for("e") == []


def test_assign_replaces_existing_labels():
    aggregate = MentionAggregate(_labels(), _corpus())
    aggregate.assign("d", ["Aliens"])
    counts = {mc.mention: mc.count for mc in aggregate.mention_counts}
    assert counts == {"Heat": 2, "Ronin": 1, "Aliens": 1}


def test_assign_rejects_root_and_unknown_posts():
    aggregate = MentionAggregate(_labels(), _corpus())
    with pytest.raises(ValueError):
        aggregate.assign(ROOT_URI, "Heat")
    with pytest.raises(KeyError):
        aggregate.assign("at://nowhere", "Heat")


def test_top_n():
    aggregate = MentionAggregate(_labels(), _corpus())
    assert [mc.mention for mc in aggregate.top(1)] == ["Heat"]
    assert len(aggregate.top()) == 3


def test_uncategorized_excludes_root():
    aggregate = MentionAggregate(_labels(), _corpus())
    assert [p.uri for p in aggregate.uncategorized] == ["e"]
