#!/usr/bin/env python3
"""Tests for label inheritance along reply chains."""

from corpus import Corpus
from test_framework import ROOT_URI, build_corpus, make_post, suppress_logging
from thread_inheritance import (
    InheritanceOutcome,
    ThreadInheritance,
    inherit,
    resolve_inheritance,
)


def test_inherits_from_direct_parent():
    corpus = build_corpus([("b", "The Godfather", ROOT_URI), ("c", "yes!!", "b")])
    label_of = {"b": ["The Godfather"], "c": []}
    result = resolve_inheritance(corpus.get("c"), label_of, corpus)
    assert result.outcome is InheritanceOutcome.INHERITED
    assert result.labels == ("The Godfather",)
    assert result.source_uri == "b"
    assert result.depth == 1


def test_inherits_through_reaction_chain():
    corpus = build_corpus(
        [
            ("b", "Heat", ROOT_URI),
            ("c", "this", "b"),
            ("d", "🔥", "c"),
            ("e", "lol", "d"),
        ]
    )
    label_of = {"b": ["Heat"]}
    result = resolve_inheritance(corpus.get("e"), label_of, corpus)
    assert result.labels == ("Heat",)
    assert result.source_uri == "b"
    assert result.depth == 3


def test_nearest_labeled_ancestor_wins():
    corpus = build_corpus(
        [("b", "Heat", ROOT_URI), ("c", "Ronin", "b"), ("d", "yes", "c")]
    )
    label_of = {"b": ["Heat"], "c": ["Ronin"]}
    assert inherit(corpus.get("d"), label_of, corpus) == ["Ronin"]


def test_multi_label_parent_passes_all_labels():
    corpus = build_corpus([("b", "Heat and Ronin", ROOT_URI), ("c", "both!", "b")])
    label_of = {"b": ["Heat", "Ronin"]}
    assert inherit(corpus.get("c"), label_of, corpus) == ["Heat", "Ronin"]


def test_unlabeled_root_ends_walk():
    corpus = build_corpus([("b", "yes!!", ROOT_URI)])
    result = resolve_inheritance(corpus.get("b"), {}, corpus)
    assert result.outcome is InheritanceOutcome.NO_PARENT_TITLE
    assert result.labels == ()


def test_labeled_root_can_be_a_source():
    corpus = build_corpus([("b", "yes!!", ROOT_URI)])
    result = resolve_inheritance(corpus.get("b"), {ROOT_URI: ["Jaws"]}, corpus)
    assert result.outcome is InheritanceOutcome.INHERITED
    assert result.source_uri == ROOT_URI


def test_orphan_parent():
    corpus = build_corpus([("b", "yes!!", "at://deleted")])
    result = resolve_inheritance(corpus.get("b"), {}, corpus)
    assert result.outcome is InheritanceOutcome.ORPHAN_PARENT
    assert result.labels == ()


def test_cycle_terminates():
    corpus = build_corpus([("a", "yes", "b"), ("b", "this", "a")])
    with suppress_logging():
        result = resolve_inheritance(corpus.get("a"), {}, corpus)
    assert result.outcome is InheritanceOutcome.CYCLE_GUARD
    assert result.labels == ()


def test_self_parent_terminates():
    corpus = build_corpus([("a", "yes", "a")])
    with suppress_logging():
        result = resolve_inheritance(corpus.get("a"), {}, corpus)
    assert result.outcome is InheritanceOutcome.CYCLE_GUARD


def test_root_itself_never_inherits():
    corpus = build_corpus([("b", "Heat", ROOT_URI)])
    result = resolve_inheritance(corpus.root, {"b": ["Heat"]}, corpus)
    assert result.labels == ()


def test_walk_is_bounded_by_corpus_size():
    posts = [make_post(ROOT_URI, "Best movie?", parent_uri=None)]
    posts += [
        make_post(f"p{i}", "yes", parent_uri=f"p{i - 1}" if i else ROOT_URI)
        for i in range(50)
    ]
    corpus = Corpus.from_posts(posts)
    result = ThreadInheritance(corpus, {ROOT_URI: ["Heat"]}).resolve(corpus.get("p49"))
    assert result.labels == ("Heat",)
    assert result.depth == 50
