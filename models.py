"""Shared data models for Thread Mention Tally.

Models:
- Post: one post of a reply thread (immutable)
- Confidence: ordered confidence scale attached to a validation verdict
- ValidationEntry: a cached verdict for one normalized candidate key
- MentionCount: one ranked aggregate bucket
- PostState: terminal state of a post after a pipeline run

These are passed between the classifier, extractor, validation cache,
inheritance walker and the aggregation layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from error_handling import CacheEntryCorruptError

VALID_SOURCES = ("thread", "quote", "quote-reply")


@dataclass(frozen=True)
class Post:
    """
    A single post in a reply thread.

    Posts reference each other only by ``uri`` through ``parent_uri``;
    nothing holds a pointer to another Post object.
    """

    uri: str
    parent_uri: Optional[str] = None
    text: str = ""
    author_handle: str = ""

    # Engagement counters
    like_count: int = 0
    reply_count: int = 0
    repost_count: int = 0
    quote_count: int = 0

    source: str = "thread"  # thread, quote, quote-reply
    is_root: bool = False

    # Supplemental text channels
    full_text: str = ""  # text plus image alt text
    quoted_text: str = ""
    quoted_uri: str = ""
    quoted_alt_text: str = ""

    @property
    def search_text(self) -> str:
        """Text used for classification and extraction."""
        return self.full_text or self.text

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "uri": self.uri,
            "parent_uri": self.parent_uri,
            "text": self.text,
            "author_handle": self.author_handle,
            "like_count": self.like_count,
            "reply_count": self.reply_count,
            "repost_count": self.repost_count,
            "quote_count": self.quote_count,
            "source": self.source,
            "is_root": self.is_root,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Post":
        """
        Create a Post from a fixture record.

        Accepts the camelCase fixture shape (``parentUri``, ``likeCount``,
        ``author: {handle}``) as well as snake_case keys.
        """
        if not data.get("uri"):
            raise ValueError("Post record has no uri")

        author = data.get("author") or {}
        handle = data.get("author_handle") or (
            author.get("handle", "") if isinstance(author, dict) else ""
        )

        def pick(snake: str, camel: str, default: Any = None) -> Any:
            if snake in data and data[snake] is not None:
                return data[snake]
            if camel in data and data[camel] is not None:
                return data[camel]
            return default

        source = pick("source", "source", "thread")
        if source not in VALID_SOURCES:
            source = "thread"

        return cls(
            uri=data["uri"],
            parent_uri=pick("parent_uri", "parentUri"),
            text=data.get("text") or "",
            author_handle=handle,
            like_count=int(pick("like_count", "likeCount", 0)),
            reply_count=int(pick("reply_count", "replyCount", 0)),
            repost_count=int(pick("repost_count", "repostCount", 0)),
            quote_count=int(pick("quote_count", "quoteCount", 0)),
            source=source,
            is_root=bool(pick("is_root", "isRoot", False)),
            full_text=pick("full_text", "fullText", ""),
            quoted_text=pick("quoted_text", "quotedText", ""),
            quoted_uri=pick("quoted_uri", "quotedUri", ""),
            quoted_alt_text=pick("quoted_alt_text", "quotedAltText", ""),
        )


class Confidence(Enum):
    """Ordered confidence of a validation verdict. Audit only."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3

    def __lt__(self, other: "Confidence") -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other: "Confidence") -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.value <= other.value

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: Any) -> "Confidence":
        """Parse 'high' / 'MEDIUM' / 3 style values; raises ValueError."""
        if isinstance(value, Confidence):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str) and value.strip().upper() in cls.__members__:
            return cls[value.strip().upper()]
        raise ValueError(f"Unknown confidence level: {value!r}")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ValidationEntry:
    """Verdict for one normalized candidate key."""

    key: str
    validated: bool
    canonical_title: Optional[str] = None
    confidence: Confidence = Confidence.LOW
    source: str = ""  # authority that produced the verdict
    resolved_at: str = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if self.validated and not self.canonical_title:
            raise ValueError(f"Validated entry {self.key!r} has no canonical title")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary for the ledger."""
        return {
            "key": self.key,
            "validated": self.validated,
            "canonical_title": self.canonical_title,
            "confidence": self.confidence.label,
            "source": self.source,
            "resolved_at": self.resolved_at,
        }

    @classmethod
    def from_dict(cls, data: Any, key: Optional[str] = None) -> "ValidationEntry":
        """
        Rebuild an entry from a stored record.

        Also accepts the legacy cache shape where the canonical title is
        stored as ``title``.

        Raises:
            CacheEntryCorruptError: If the record fails schema checks.
        """
        if not isinstance(data, dict):
            raise CacheEntryCorruptError(
                f"Entry {key!r} is not an object", key=key
            )

        entry_key = data.get("key") or key
        if not isinstance(entry_key, str) or not entry_key:
            raise CacheEntryCorruptError("Entry has no key", key=key)

        validated = data.get("validated")
        if not isinstance(validated, bool):
            raise CacheEntryCorruptError(
                f"Entry {entry_key!r} has a non-boolean 'validated'", key=entry_key
            )

        title = data.get("canonical_title", data.get("title"))
        if title is not None and not isinstance(title, str):
            raise CacheEntryCorruptError(
                f"Entry {entry_key!r} has a non-string title", key=entry_key
            )

        try:
            confidence = Confidence.parse(data.get("confidence", "low"))
            return cls(
                key=entry_key,
                validated=validated,
                canonical_title=title or None,
                confidence=confidence,
                source=str(data.get("source") or ""),
                resolved_at=str(data.get("resolved_at") or _utc_now()),
            )
        except ValueError as e:
            raise CacheEntryCorruptError(str(e), key=entry_key) from e


@dataclass
class MentionCount:
    """One aggregate bucket: a canonical title and the posts that count toward it."""

    mention: str
    count: int
    posts: list[Post] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mention": self.mention,
            "count": self.count,
            "posts": [p.uri for p in self.posts],
        }


class PostState(Enum):
    """Terminal state of a post after a pipeline run."""

    ROOT = "root"
    VALIDATED = "validated"
    REJECTED = "rejected"
    INHERITED = "inherited"
    NO_PARENT_TITLE = "no_parent_title"


# ============================================================================
# Unit Tests
# ============================================================================
def _create_module_tests():
    """Create unit tests for models module."""
    from test_framework import TestSuite

    suite = TestSuite("Models Tests")

    def test_post_from_fixture_shape():
        post = Post.from_dict(
            {
                "uri": "at://a/1",
                "parentUri": "at://a/0",
                "text": "Heat",
                "author": {"handle": "dad.bsky.social"},
                "likeCount": 4,
            }
        )
        assert post.parent_uri == "at://a/0"
        assert post.author_handle == "dad.bsky.social"
        assert post.like_count == 4
        assert post.source == "thread"

    def test_confidence_ordering():
        assert Confidence.LOW < Confidence.MEDIUM < Confidence.HIGH
        assert Confidence.parse("High") is Confidence.HIGH

    def test_entry_round_trip_legacy_title():
        entry = ValidationEntry.from_dict(
            {"validated": True, "title": "Heat", "confidence": "high"}, key="heat"
        )
        assert entry.canonical_title == "Heat"
        assert entry.confidence is Confidence.HIGH

    def test_entry_rejects_bad_schema():
        try:
            ValidationEntry.from_dict({"validated": "yes"}, key="x")
            raise AssertionError("expected CacheEntryCorruptError")
        except CacheEntryCorruptError as e:
            assert e.key == "x"

    suite.add_test("Post.from_dict fixture shape", test_post_from_fixture_shape)
    suite.add_test("Confidence ordering", test_confidence_ordering)
    suite.add_test("ValidationEntry legacy title", test_entry_round_trip_legacy_title)
    suite.add_test("ValidationEntry bad schema", test_entry_rejects_bad_schema)

    return suite
