"""Reaction detection for thread replies.

A reaction is a reply that carries no content of its own ("yes!!", "lol",
a lone emoji). Reactions contribute no candidates; they inherit the labels
of the nearest labeled ancestor instead.

Classification is an ordered, first-match-wins table of named rules, so
each rule can be tested and extended on its own.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Pattern

from config import Config

logger = logging.getLogger(__name__)

# Emoji variation selector, dropped before pattern matching
_VARIATION_SELECTOR = chr(0xFE0F)

CAPITALIZED_WORD_RE = re.compile(r"[A-Z][a-z]{2,}")

# Agreement, acknowledgment and endorsement openers
_ENDORSEMENT_PATTERNS: list[str] = [
    r"^(yes|yep|yeah|yup|agreed|exactly|absolutely|definitely|this|same|correct|100%|💯)",
    r"^(so good|great|amazing|incredible|love (it|this)|hell yeah|oh hell yeah)",
    r"^(came here to say this|this is (it|the one|mine)|good (call|choice|pick|answer))",
    r"^(underrated|overrated|classic|banger|legendary|goat|peak)",
    r"^(bop|tune|anthem|jam|slaps|bangs|certified|vibes?|mood)",
    r"^oh (hell|fuck) yes",
    r"^(yesss+|yasss+)",
    r"^this is the (answer|one|way)",
    r"^me too",
    r"^right\??!*$",
    r"^well,?\s*yes",
]

REACTION_PATTERNS: list[Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in _ENDORSEMENT_PATTERNS
    + [
        r"^[^\w]*$",
        r"^(lol|lmao|lmbo|omg|omfg|ha+|😂|🤣|👏|👍|🔥|💯|❤|🎯|🎶|🎵)+$",
    ]
]

# Stricter subset: explicit endorsement only, no laughter or bare punctuation
AGREEMENT_PATTERNS: list[Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in _ENDORSEMENT_PATTERNS + [r"^(👏|👍|💯|🎯|🤝|✅|🙌|🎶|🎵)+$"]
]


@dataclass(frozen=True)
class ReactionRule:
    """A named predicate over trimmed post text. True means reaction."""

    name: str
    predicate: Callable[[str], bool]


def _matches_any(text: str, patterns: Iterable[Pattern[str]]) -> bool:
    text = text.replace(_VARIATION_SELECTOR, "")
    return any(p.search(text) for p in patterns)


def default_reaction_rules(
    max_length: int, short_length: int
) -> list[ReactionRule]:
    """Build the standard rule table for the given length thresholds."""
    return [
        ReactionRule("empty", lambda text: not text),
        ReactionRule(
            "short_reaction_pattern",
            lambda text: len(text) < max_length
            and _matches_any(text, REACTION_PATTERNS),
        ),
        ReactionRule(
            "too_short_for_title",
            lambda text: len(text) <= short_length
            and not CAPITALIZED_WORD_RE.search(text),
        ),
    ]


class ReactionClassifier:
    """
    Decide whether a post's text is a content-free reaction.

    Rules are evaluated in order against the trimmed text; the first rule
    whose predicate holds classifies the text as a reaction. If none holds
    the text is content.
    """

    def __init__(
        self,
        max_length: Optional[int] = None,
        short_length: Optional[int] = None,
        rules: Optional[list[ReactionRule]] = None,
    ):
        self.max_length = max_length or Config.REACTION_MAX_LENGTH
        self.short_length = short_length or Config.REACTION_SHORT_LENGTH
        self.rules: tuple[ReactionRule, ...] = tuple(
            rules
            if rules is not None
            else default_reaction_rules(self.max_length, self.short_length)
        )

    def classify(self, text: Optional[str]) -> Optional[str]:
        """Return the name of the first matching rule, or None for content."""
        trimmed = (text or "").strip()
        for rule in self.rules:
            if rule.predicate(trimmed):
                return rule.name
        return None

    def is_reaction(self, text: Optional[str]) -> bool:
        return self.classify(text) is not None

    def is_agreement(self, text: Optional[str]) -> bool:
        """Strict endorsement check: the reply agrees with its parent."""
        trimmed = (text or "").strip()
        if not trimmed or len(trimmed) >= self.max_length:
            return False
        return _matches_any(trimmed, AGREEMENT_PATTERNS)

    def with_rules(
        self, *extra: ReactionRule, prepend: bool = False
    ) -> "ReactionClassifier":
        """Return a new classifier with extra rules appended (or prepended)."""
        rules = list(extra) + list(self.rules) if prepend else list(self.rules) + list(extra)
        logger.debug("Reaction rules: %s", ", ".join(r.name for r in rules))
        return ReactionClassifier(
            max_length=self.max_length, short_length=self.short_length, rules=rules
        )

    @property
    def rule_names(self) -> list[str]:
        return [rule.name for rule in self.rules]


# ============================================================================
# Unit Tests
# ============================================================================
def _create_module_tests():
    """Create unit tests for reaction_classifier module."""
    from test_framework import TestSuite

    suite = TestSuite("Reaction Classifier Tests")
    classifier = ReactionClassifier(max_length=50, short_length=15)

    def test_empty_is_reaction():
        assert classifier.classify("   ") == "empty"

    def test_pattern_reactions():
        assert classifier.classify("yes!!") == "short_reaction_pattern"
        assert classifier.classify("lol") == "short_reaction_pattern"
        assert classifier.classify("🔥🔥") == "short_reaction_pattern"

    def test_too_short_for_title():
        assert classifier.classify("meh tbh") == "too_short_for_title"

    def test_content():
        assert classifier.classify("The Godfather") is None
        assert classifier.classify("Good One") is None

    suite.add_test("Empty text", test_empty_is_reaction)
    suite.add_test("Pattern reactions", test_pattern_reactions)
    suite.add_test("Too short for title", test_too_short_for_title)
    suite.add_test("Content text", test_content)

    return suite
