#!/usr/bin/env python3
"""Tests for canonical label construction."""

from canonicalizer import Canonicalizer
from models import Confidence, ValidationEntry


def _entry(key, title=None):
    return ValidationEntry(key, title is not None, title, Confidence.HIGH, "test")


def test_canonical_title_used_verbatim():
    canonicalizer = Canonicalizer()
    assert canonicalizer.canonical_for(_entry("godfather", "The Godfather")) == "The Godfather"
    assert canonicalizer.canonical_for(_entry("good one")) is None
    assert canonicalizer.canonical_for(None) is None


def test_group_by_identical_title():
    groups = Canonicalizer().group(
        [
            _entry("godfather", "The Godfather"),
            _entry("the godfather", "The Godfather"),
            _entry("good one"),
            _entry("godfather 2", "The Godfather Part II"),
        ]
    )
    assert groups == {
        "The Godfather": ["godfather", "the godfather"],
        "The Godfather Part II": ["godfather 2"],
    }


def test_different_authority_strings_not_merged():
    groups = Canonicalizer().group(
        [_entry("alien", "Alien"), _entry("aliens", "Aliens")]
    )
    assert set(groups) == {"Alien", "Aliens"}


def test_longest_match_wins():
    resolved = {
        "The Godfather Part II": _entry("the godfather part ii", "The Godfather Part II"),
        "Godfather": _entry("godfather", "The Godfather"),
    }
    labels = Canonicalizer().labels_for(["Godfather", "The Godfather Part II"], resolved)
    assert labels == ["The Godfather Part II"]


def test_labels_follow_candidate_order_and_dedupe():
    resolved = {
        "Heat": _entry("heat", "Heat"),
        "Ronin": _entry("ronin", "Ronin"),
        "HEAT": _entry("heat", "Heat"),
        "Nope": _entry("nope"),
    }
    labels = Canonicalizer().labels_for(["Ronin", "Nope", "Heat", "HEAT"], resolved)
    assert labels == ["Ronin", "Heat"]


def test_unresolved_candidates_ignored():
    assert Canonicalizer().labels_for(["Heat"], {}) == []
