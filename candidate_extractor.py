"""Candidate extraction from content replies.

Pulls plausible entity-name strings out of post text. Each strategy is a
named ``CandidateRule``; rules run independently, so one post may yield
several candidates. The ``short_text`` rule is a fallback that only runs
when no other rule produced anything.

No resolution happens here: candidates keep their original casing and
are normalized later by the validation cache.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from config import Config
from entity_constants import (
    CAPS_NOISE,
    QUOTED_NOISE,
    QUOTED_SENTENCE_PREFIX_PATTERN,
    TITLE_CONNECTORS,
    is_noise_phrase,
    is_reaction_stopword,
    starts_like_sentence,
)
from text_utils import clean_post_text, recase_all_caps, word_count

logger = logging.getLogger(__name__)

_SEPARATOR = r"(?:\s+|:\s*|-\s*)"
_CONNECTOR = "|".join(re.escape(word) for word in TITLE_CONNECTORS)
_TITLE_WORD = r"[A-Z][a-z']+"

TITLE_CASE_RE = re.compile(
    rf"\b({_TITLE_WORD}(?:{_SEPARATOR}(?:(?:{_CONNECTOR}){_SEPARATOR})*{_TITLE_WORD})+)"
)
ALL_CAPS_RE = re.compile(r"\b([A-Z]{2,}(?:\s+[A-Z]{2,})+)\b")
IMAGE_ALT_RE = re.compile(r"\[image alt: ([^\]]+)\]")
TRAILING_PUNCTUATION_RE = re.compile(r"[.!?,;:]+$")

QUOTED_MAX_WORDS = 10
IMAGE_ALT_MAX_LENGTH = 60
IMAGE_ALT_MAX_WORDS = 8


@dataclass(frozen=True)
class CandidateRule:
    """A named extraction strategy. ``fallback`` rules run only if nothing else fired."""

    name: str
    extract: Callable[[str], list[str]]
    fallback: bool = False


def _quoted_pattern(max_length: int) -> re.Pattern[str]:
    return re.compile(rf'["“]([^"”]{{2,{max_length}}})["”]')


def quoted_rule(max_length: int = 60) -> CandidateRule:
    """Text inside straight or curly double quotes."""
    pattern = _quoted_pattern(max_length)

    def extract(text: str) -> list[str]:
        found = []
        for match in pattern.finditer(text):
            candidate = match.group(1).strip()
            if len(candidate) < 2 or word_count(candidate) > QUOTED_MAX_WORDS:
                continue
            if candidate.lower() in QUOTED_NOISE:
                continue
            if QUOTED_SENTENCE_PREFIX_PATTERN.match(candidate):
                continue
            # A single lowercase word in quotes is emphasis, not a title
            if word_count(candidate) >= 2 or candidate[0].isupper():
                found.append(candidate)
        return found

    return CandidateRule("quoted", extract)


def _extract_title_case(text: str) -> list[str]:
    found = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        for match in TITLE_CASE_RE.finditer(line):
            candidate = match.group(1).strip()
            if len(candidate) >= 3 and not is_noise_phrase(candidate):
                found.append(candidate)
    return found


def _extract_all_caps(text: str) -> list[str]:
    found = []
    for line in text.splitlines():
        for match in ALL_CAPS_RE.finditer(line):
            raw = match.group(1).strip()
            if len(raw) < 4:
                continue
            if all(word in CAPS_NOISE for word in raw.split()):
                continue
            found.append(recase_all_caps(raw))
    return found


def _extract_image_alt(text: str) -> list[str]:
    found = []
    for match in IMAGE_ALT_RE.finditer(text):
        alt = match.group(1).strip()
        if alt and len(alt) <= IMAGE_ALT_MAX_LENGTH and word_count(alt) <= IMAGE_ALT_MAX_WORDS:
            found.append(alt)
    return found


def short_text_rule(max_length: int = 60, max_words: int = 5) -> CandidateRule:
    """The whole reply as one candidate, when it looks like a bare title."""

    def extract(text: str) -> list[str]:
        cleaned = clean_post_text(IMAGE_ALT_RE.sub("", text))
        cleaned = TRAILING_PUNCTUATION_RE.sub("", cleaned).strip()
        if len(cleaned) < 2 or len(cleaned) > max_length:
            return []
        if word_count(cleaned) > max_words:
            return []
        if not cleaned[0].isupper():
            return []
        if starts_like_sentence(cleaned) or is_noise_phrase(cleaned):
            return []
        if is_reaction_stopword(cleaned) or cleaned in CAPS_NOISE:
            return []
        # All-caps single words are acronyms or shouting
        if cleaned.isalpha() and cleaned.isupper():
            return []
        return [cleaned]

    return CandidateRule("short_text", extract, fallback=True)


def build_default_rules(
    quoted_max_length: Optional[int] = None,
    short_max_length: Optional[int] = None,
    short_max_words: Optional[int] = None,
) -> tuple[CandidateRule, ...]:
    """Build the standard rule table, taking thresholds from config by default."""
    return (
        quoted_rule(quoted_max_length or Config.QUOTED_MAX_LENGTH),
        CandidateRule("title_case", _extract_title_case),
        CandidateRule("all_caps", _extract_all_caps),
        CandidateRule("image_alt", _extract_image_alt),
        short_text_rule(
            short_max_length or Config.SHORT_TEXT_MAX_LENGTH,
            short_max_words or Config.SHORT_TEXT_MAX_WORDS,
        ),
    )


DEFAULT_RULES: tuple[CandidateRule, ...] = build_default_rules()


class CandidateExtractor:
    """Run a rule table over post text and collect unique candidates."""

    def __init__(self, rules: Optional[Iterable[CandidateRule]] = None):
        self.rules: tuple[CandidateRule, ...] = tuple(
            rules if rules is not None else DEFAULT_RULES
        )

    def extract_with_sources(self, text: Optional[str]) -> list[tuple[str, str]]:
        """
        Extract candidates along with the name of the rule that found each.

        Returns:
            ``(candidate, rule_name)`` pairs, first-seen order, no duplicates.
        """
        if not text or not text.strip():
            return []

        seen: set[str] = set()
        results: list[tuple[str, str]] = []

        def collect(rule: CandidateRule) -> None:
            for candidate in rule.extract(text):
                if candidate not in seen:
                    seen.add(candidate)
                    results.append((candidate, rule.name))

        for rule in self.rules:
            if not rule.fallback:
                collect(rule)

        if not results:
            for rule in self.rules:
                if rule.fallback:
                    collect(rule)
                    if results:
                        break

        return results

    def extract_candidates(self, text: Optional[str]) -> list[str]:
        return [candidate for candidate, _ in self.extract_with_sources(text)]

    def with_rule(self, rule: CandidateRule) -> "CandidateExtractor":
        """Return a new extractor with one more rule."""
        return CandidateExtractor(self.rules + (rule,))


_default_extractor = CandidateExtractor()


def extract_candidates(text: Optional[str]) -> list[str]:
    """Extract candidates with the default rule table."""
    return _default_extractor.extract_candidates(text)


# ============================================================================
# Unit Tests
# ============================================================================
def _create_module_tests():
    """Create unit tests for candidate_extractor module."""
    from test_framework import TestSuite

    suite = TestSuite("Candidate Extractor Tests")

    def test_title_case_with_connectors():
        assert "Raiders of the Lost Ark" in extract_candidates(
            "Has to be Raiders of the Lost Ark, no contest"
        )

    def test_quoted():
        assert extract_candidates('my dad loved "Smokey and the Bandit"') == [
            "Smokey and the Bandit"
        ]

    def test_short_text_fallback():
        assert extract_candidates("Heat.") == ["Heat"]
        assert extract_candidates("I like stuff") == []

    def test_noise_dropped():
        text = "Me Too. I have nothing to add to this thread except that it is lovely"
        assert extract_candidates(text) == []

    suite.add_test("Title case with connectors", test_title_case_with_connectors)
    suite.add_test("Quoted span", test_quoted)
    suite.add_test("Short text fallback", test_short_text_fallback)
    suite.add_test("Noise dropped", test_noise_dropped)

    return suite
