"""Media type detection from the thread's root prompt.

Scores the prompt against keyword lists per media type: a strong keyword
is worth 10 points, a weak one 5. At least one strong keyword (10 points)
is needed to pick a type; ties go to the earlier type in MediaType order.
The detected type is what the HTTP authority sends as ``mediaType`` when
none is configured.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

STRONG_POINTS = 10
WEAK_POINTS = 5
MIN_SCORE = 10
HIGH_CONFIDENCE_SCORE = 15


class MediaType(Enum):
    """Kinds of titles a thread can ask about."""

    MOVIE = "MOVIE"
    TV_SHOW = "TV_SHOW"
    MUSIC = "MUSIC"
    BOOK = "BOOK"
    VIDEO_GAME = "VIDEO_GAME"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class KeywordSet:
    strong: tuple[str, ...]
    weak: tuple[str, ...]


KEYWORDS: dict[MediaType, KeywordSet] = {
    MediaType.MOVIE: KeywordSet(
        strong=("movie", "film", "cinema"),
        weak=("watched", "saw", "favorite", "best", "top"),
    ),
    MediaType.TV_SHOW: KeywordSet(
        strong=("show", "series", "episode", "season", "watching", "binge", "binging"),
        weak=("favorite", "best", "tv", "television"),
    ),
    MediaType.MUSIC: KeywordSet(
        strong=("song", "music", "album", "artist", "track"),
        weak=("listening", "heard", "favorite", "best", "top"),
    ),
    MediaType.BOOK: KeywordSet(
        strong=("book", "novel", "author", "reading"),
        weak=("read", "favorite", "best", "library"),
    ),
    MediaType.VIDEO_GAME: KeywordSet(
        strong=("video game", "videogame", "gaming", "console"),
        weak=("game", "played", "playing", "favorite", "best"),
    ),
}


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # Word-start match: "movies" counts for "movie", "already" not for "read"
    return re.compile(rf"\b{re.escape(keyword)}", re.IGNORECASE)


_PATTERNS: dict[MediaType, tuple[list[re.Pattern[str]], list[re.Pattern[str]]]] = {
    media: (
        [_keyword_pattern(k) for k in keywords.strong],
        [_keyword_pattern(k) for k in keywords.weak],
    )
    for media, keywords in KEYWORDS.items()
}


def score_prompt(text: str, media_type: MediaType) -> int:
    """Keyword score of ``text`` for one media type."""
    if media_type not in _PATTERNS or not text:
        return 0
    strong, weak = _PATTERNS[media_type]
    return STRONG_POINTS * sum(1 for p in strong if p.search(text)) + WEAK_POINTS * sum(
        1 for p in weak if p.search(text)
    )


class PromptDetector:
    """Guess what kind of title a thread's root post is asking for."""

    def detect_prompt_type(self, text: str) -> MediaType:
        scores = {media: score_prompt(text, media) for media in KEYWORDS}
        best = max(scores.values(), default=0)
        if best < MIN_SCORE:
            return MediaType.UNKNOWN
        for media in KEYWORDS:
            if scores[media] == best:
                logger.debug("Prompt scored %s for %s", best, media.value)
                return media
        return MediaType.UNKNOWN

    def get_confidence(self, text: str, detected: MediaType) -> str:
        """'high' for multiple strong hits, 'medium' for one, else 'low'."""
        score = score_prompt(text, detected)
        if score >= HIGH_CONFIDENCE_SCORE:
            return "high"
        if score >= MIN_SCORE:
            return "medium"
        return "low"


def detect_media_type(text: str, default: MediaType = MediaType.MOVIE) -> MediaType:
    """Detected media type of a prompt, or ``default`` if unclear."""
    detected = PromptDetector().detect_prompt_type(text)
    return default if detected is MediaType.UNKNOWN else detected


# ============================================================================
# Unit Tests
# ============================================================================
def _create_module_tests():
    """Create unit tests for prompt_detector module."""
    from test_framework import TestSuite

    suite = TestSuite("Prompt Detector Tests")
    detector = PromptDetector()

    def test_movie_prompt():
        text = "What's your favorite movie?"
        assert detector.detect_prompt_type(text) is MediaType.MOVIE
        assert detector.get_confidence(text, MediaType.MOVIE) == "high"

    def test_unknown_prompt():
        assert detector.detect_prompt_type("Good morning everyone") is MediaType.UNKNOWN

    def test_default_fallback():
        assert detect_media_type("hello") is MediaType.MOVIE

    suite.add_test("Movie prompt", test_movie_prompt)
    suite.add_test("Unknown prompt", test_unknown_prompt)
    suite.add_test("Default fallback", test_default_fallback)

    return suite
