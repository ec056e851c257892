"""Self-validation: trust the thread when no external authority exists.

Before resolution the pipeline hands this authority the run's unique
candidates and the root prompt. Candidates are grouped by a loose key
(case, punctuation and a leading article ignored). Each group becomes one
title, spelled the way most of its members spell it.

Dropped before grouping:
- candidates longer than five words
- keys shorter than three characters
- the prompt's own category words ("movie", "movies", "board games")
- keys made only of filler words ("not sure", "my home")
"""

import logging
import re
import threading
from collections import Counter
from typing import Iterable

from entity_constants import FUNCTION_WORDS, PROMPT_ADJECTIVES, is_filler_word
from models import Confidence

from .base import AuthorityVerdict, ValidationAuthority

logger = logging.getLogger(__name__)

MAX_CANDIDATE_WORDS = 5
MIN_KEY_LENGTH = 3
MAX_CATEGORY_WORDS = 3

# "your (adjective)* WORDS", capturing up to five words after the adjectives
PROMPT_PATTERN = re.compile(
    r"\byour\s+(?:(?:home|favorite|fav|go-to|all-time|top|first|best|worst|"
    r"least\s+favorite|most\s+hated|childhood|guilty\s+pleasure)\s+)*"
    r"(\w+(?:\s+\w+){0,4})",
    re.IGNORECASE,
)
LEADING_ARTICLE_RE = re.compile(r"^(the|a|an)\s+", re.IGNORECASE)
NON_WORD_RE = re.compile(r"[^\w\s]")
WHITESPACE_RE = re.compile(r"\s+")


def extract_category_words(root_text: str) -> list[str]:
    """
    Pull the category noun phrase out of a prompt.

    Examples:
        "what is your home river?" -> ["river"]
        "share your favorite board game" -> ["board", "game"]
        "hello world" -> []
    """
    match = PROMPT_PATTERN.search(root_text or "")
    if not match:
        return []

    words = [
        w
        for w in NON_WORD_RE.sub("", match.group(1).lower()).split()
        if w not in PROMPT_ADJECTIVES
    ]
    result: list[str] = []
    for word in words:
        if word in FUNCTION_WORDS:
            break
        result.append(word)
        if len(result) >= MAX_CATEGORY_WORDS:
            break
    return result


def _category_forms(words: Iterable[str]) -> set[str]:
    forms: set[str] = set()
    for w in words:
        forms.update({w, w + "s", w + "es"})
        if w.endswith("y"):
            forms.add(w[:-1] + "ies")
    return forms


def _strip_article(text: str) -> str:
    return LEADING_ARTICLE_RE.sub("", text).strip()


def group_key(text: str) -> str:
    """Loose grouping key: lowercase, leading article and punctuation removed."""
    key = _strip_article(text.lower().strip())
    return WHITESPACE_RE.sub(" ", NON_WORD_RE.sub("", key)).strip()


def _title_case(text: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in text.split())


class SelfValidatedAuthority(ValidationAuthority):
    """Validates candidates against the thread's own answer groups."""

    def __init__(self, confidence: Confidence = Confidence.MEDIUM):
        self.confidence = confidence
        self._titles: dict[str, str] = {}
        self._lock = threading.Lock()
        self._prepared = False

    @property
    def name(self) -> str:
        return "self"

    @property
    def is_configured(self) -> bool:
        return self._prepared

    def prepare(self, candidates: Iterable[str], root_text: str) -> None:
        """Build the group map for one run."""
        category = _category_forms(extract_category_words(root_text))

        groups: dict[str, list[str]] = {}
        for candidate in dict.fromkeys(candidates):
            if len(candidate.split()) > MAX_CANDIDATE_WORDS:
                continue
            key = group_key(candidate)
            if len(key) < MIN_KEY_LENGTH or key in category:
                continue
            if all(is_filler_word(w) or w in category for w in key.split()):
                continue
            groups.setdefault(key, []).append(candidate)

        titles = {key: self._pick_title(members) for key, members in groups.items()}
        with self._lock:
            self._titles = titles
            self._prepared = True
        logger.info(
            "Self-validation: %d answer groups (category words: %s)",
            len(titles),
            ", ".join(sorted(category)) or "none",
        )

    @staticmethod
    def _pick_title(members: list[str]) -> str:
        """Most common surface form; ties go to the shortest, then the first seen."""
        forms = Counter(_title_case(_strip_article(m.lower())) for m in members)
        best = ""
        best_count = 0
        for form, count in forms.items():
            if count > best_count or (count == best_count and len(form) < len(best)):
                best, best_count = form, count
        return best

    def validate(self, text: str) -> AuthorityVerdict:
        with self._lock:
            title = self._titles.get(group_key(text))
        if title is None:
            return AuthorityVerdict.rejected()
        return AuthorityVerdict(True, title, self.confidence)
