"""Text utilities for Thread Mention Tally.

Shared text processing functions used by classification, extraction and
the validation cache.
"""

import re
import unicodedata

# Pictographs, dingbats, flags and the variation selector that follows many emoji
EMOJI_RE = re.compile(
    "[\U0001f000-\U0001faff%s-%s%s-%s%s%s]+"
    % (chr(0x2600), chr(0x27BF), chr(0x2B00), chr(0x2BFF), chr(0xFE0F), chr(0x200D))
)
URL_RE = re.compile(r"https?://\S+")
HANDLE_OR_TAG_RE = re.compile(r"[#@]\S+")
WHITESPACE_RE = re.compile(r"\s+")

# Curly quotes and primes folded to their ASCII form before normalization
_QUOTE_FOLD = str.maketrans(
    {
        chr(0x2018): "'",
        chr(0x2019): "'",
        chr(0x2032): "'",
        chr(0x201C): '"',
        chr(0x201D): '"',
    }
)


def normalize_key(candidate: str) -> str:
    """Normalize a candidate string into a validation cache key.

    Case-folds, removes apostrophes, turns every other punctuation
    character into a space, collapses whitespace and trims. Two strings
    that differ only in case, spacing or trivial punctuation share a key.

    Args:
        candidate: Raw candidate text as extracted from a post.

    Returns:
        The normalized key (possibly empty).
    """
    if not candidate:
        return ""

    text = unicodedata.normalize("NFKC", candidate).translate(_QUOTE_FOLD)
    text = text.casefold().replace("'", "")

    chars = []
    for ch in text:
        if ch == "&" or ch.isalnum() or ch.isspace():
            chars.append(ch)
        else:
            chars.append(" ")
    return WHITESPACE_RE.sub(" ", "".join(chars)).strip()


def strip_emoji(text: str) -> str:
    """Remove emoji and pictographic symbols from text."""
    return EMOJI_RE.sub("", text)


def clean_post_text(text: str) -> str:
    """Strip emoji, hashtags, mentions and URLs, then collapse whitespace."""
    cleaned = strip_emoji(text)
    cleaned = URL_RE.sub("", cleaned)
    cleaned = HANDLE_OR_TAG_RE.sub("", cleaned)
    return WHITESPACE_RE.sub(" ", cleaned).strip()


def word_count(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def recase_all_caps(text: str) -> str:
    """Turn 'THE GODFATHER' into 'The Godfather'."""
    return " ".join(word[:1] + word[1:].lower() for word in text.split())


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate text to a maximum length with suffix.

    Args:
        text: Text to truncate.
        max_length: Maximum length including suffix.
        suffix: Suffix to add when truncating.

    Returns:
        Truncated text or original if shorter than max_length.
    """
    if not text or len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix


# ============================================================================
# Unit Tests
# ============================================================================
def _create_module_tests():
    """Create unit tests for text_utils module."""
    from test_framework import TestSuite

    suite = TestSuite("Text Utilities Tests")

    def test_normalize_key_case_and_space():
        assert normalize_key("The Matrix") == normalize_key("the   matrix")
        assert normalize_key("  The Matrix!! ") == "the matrix"

    def test_normalize_key_apostrophes():
        assert normalize_key("Schindler’s List") == "schindlers list"
        assert normalize_key("Schindler's List") == "schindlers list"

    def test_clean_post_text():
        assert clean_post_text("Heat 🔥 #dadmovies https://x.co/a") == "Heat"

    def test_recase_all_caps():
        assert recase_all_caps("THE GODFATHER") == "The Godfather"

    def test_truncate_text():
        assert truncate_text("abcdefghij", 6) == "abc..."
        assert truncate_text("abc", 6) == "abc"

    suite.add_test("normalize_key case/space", test_normalize_key_case_and_space)
    suite.add_test("normalize_key apostrophes", test_normalize_key_apostrophes)
    suite.add_test("clean_post_text", test_clean_post_text)
    suite.add_test("recase_all_caps", test_recase_all_caps)
    suite.add_test("truncate_text", test_truncate_text)

    return suite
