#!/usr/bin/env python3
"""Tests for candidate extraction rules."""

from candidate_extractor import (
    DEFAULT_RULES,
    CandidateExtractor,
    CandidateRule,
    extract_candidates,
)


def test_title_case_run_with_connectors():
    assert extract_candidates("Definitely Raiders of the Lost Ark") == [
        "Definitely Raiders of the Lost Ark"
    ]
    assert extract_candidates("Kramer vs. Kramer, every single time") == [
        "Kramer vs. Kramer"
    ]


def test_title_case_needs_two_capitalized_tokens():
    # A single capitalized word is not a title case run; short text catches it
    assert extract_candidates("Heat") == ["Heat"]
    assert extract_candidates("my dad watched jaws every summer") == []


def test_title_case_is_per_line():
    text = "Top two:\nThe Fugitive\nDie Hard"
    assert extract_candidates(text) == ["The Fugitive", "Die Hard"]


def test_quoted_candidates():
    assert extract_candidates('Has to be "the princess bride" honestly') == [
        "the princess bride"
    ]
    assert extract_candidates("Has to be “The Princess Bride”") == [
        "The Princess Bride"
    ]


def test_quoted_noise_and_prose_dropped():
    assert "movie" not in extract_candidates('that is a "movie" for sure, anyway')
    assert extract_candidates('he always said "my favorite is the next one" lol ok') == []


def test_quoted_single_lowercase_word_dropped():
    assert extract_candidates('this one is "peak" cinema, for real though') == []


def test_all_caps_recased():
    assert "Top Gun" in extract_candidates("TOP GUN no question")
    assert extract_candidates("OMG LOL that was so funny, what a time") == []


def test_image_alt_candidate():
    text = "[image alt: Jurassic Park poster]"
    assert "Jurassic Park poster" in extract_candidates(text)


def test_short_text_fallback_only_when_nothing_else_fires():
    assert extract_candidates("Tremors!") == ["Tremors"]
    # Title case already fired, so the whole text is not added as well
    assert extract_candidates("Die Hard, obviously") == ["Die Hard"]


def test_short_text_rejects_prose_and_stopwords():
    assert extract_candidates("I like stuff") == []
    assert extract_candidates("Classic") == []
    assert extract_candidates("NOPE") == []
    assert extract_candidates("Something with way too many words in it") == []


def test_noise_phrases_dropped():
    text = "Me Too. I have nothing to add to this thread except that it is lovely"
    assert extract_candidates(text) == []


def test_dedup_preserves_first_seen_order():
    text = '"Jaws" and then Jaws 2, and "Jaws" again\nJaws Jaws'
    candidates = extract_candidates(text)
    assert candidates == list(dict.fromkeys(candidates))
    assert candidates[0] == "Jaws"


def test_original_casing_kept():
    assert extract_candidates("THE THING") == ["The Thing"]
    assert extract_candidates("The Thing") == ["The Thing"]


def test_custom_rule_table():
    hashtag_rule = CandidateRule(
        "hashtag", lambda text: [w[1:] for w in text.split() if w.startswith("#")]
    )
    extractor = CandidateExtractor(DEFAULT_RULES).with_rule(hashtag_rule)
    pairs = extractor.extract_with_sources("Die Hard #Christmas")
    assert ("Die Hard", "title_case") in pairs
    assert ("Christmas", "hashtag") in pairs


def test_empty_text():
    assert extract_candidates("") == []
    assert extract_candidates(None) == []
