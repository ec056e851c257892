"""Immutable post index for one pipeline run.

The corpus maps ``uri -> Post`` and identifies the thread root. It is
built once and never mutated afterwards.
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional

from error_handling import CorpusError, EmptyCorpusError, RootNotFoundError
from models import Post

logger = logging.getLogger(__name__)


class Corpus:
    """Read-only ``uri -> Post`` index plus the identified root."""

    def __init__(self, posts: Iterable[Post]):
        index: dict[str, Post] = {}
        duplicates = 0
        for post in posts:
            if post.uri in index:
                duplicates += 1
                continue
            index[post.uri] = post

        if not index:
            raise EmptyCorpusError()
        if duplicates:
            logger.warning("⚠️ Ignored %d duplicate post uri(s)", duplicates)

        self._index: Mapping[str, Post] = MappingProxyType(index)
        self._order: tuple[str, ...] = tuple(index)
        self._root_uri = self._find_root()

    def _find_root(self) -> str:
        for uri in self._order:
            if self._index[uri].is_root:
                return uri
        for uri in self._order:
            if self._index[uri].parent_uri is None:
                return uri
        # Only orphans left: a reply whose parent was deleted stands in.
        for uri in self._order:
            if self._index[uri].parent_uri not in self._index:
                return uri
        raise RootNotFoundError(
            f"All {len(self._order)} posts have an in-corpus parent"
        )

    @classmethod
    def from_posts(cls, posts: Iterable[Post]) -> "Corpus":
        return cls(posts)

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "Corpus":
        """Build a corpus from raw fixture records."""
        return cls(Post.from_dict(record) for record in records)

    @classmethod
    def load(cls, path: str | Path) -> "Corpus":
        """
        Load a thread fixture from disk.

        Accepts ``{"posts": [...]}`` or a bare list of post records.

        Raises:
            CorpusError: If the file is missing or not a thread fixture.
            EmptyCorpusError: If the fixture holds no posts.
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise CorpusError(f"Fixture not found: {path}") from e
        except OSError as e:
            raise CorpusError(f"Cannot read fixture {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise CorpusError(f"Fixture is not valid JSON: {path}: {e}") from e

        records = data.get("posts") if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise CorpusError(f"Fixture has no post list: {path}")

        try:
            corpus = cls.from_records(records)
        except (ValueError, TypeError, AttributeError) as e:
            raise CorpusError(f"Malformed post record in {path}: {e}") from e

        logger.info("Loaded %d posts from %s", len(corpus), path.name)
        return corpus

    @property
    def index(self) -> Mapping[str, Post]:
        return self._index

    @property
    def root(self) -> Post:
        return self._index[self._root_uri]

    @property
    def root_uri(self) -> str:
        return self._root_uri

    def get(self, uri: Optional[str]) -> Optional[Post]:
        if uri is None:
            return None
        return self._index.get(uri)

    def is_root(self, uri: str) -> bool:
        return uri == self._root_uri

    def non_root_posts(self) -> list[Post]:
        """All posts except the root, in input order."""
        return [self._index[uri] for uri in self._order if uri != self._root_uri]

    def __contains__(self, uri: object) -> bool:
        return uri in self._index

    def __iter__(self) -> Iterator[Post]:
        return (self._index[uri] for uri in self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __repr__(self) -> str:
        return f"Corpus(posts={len(self)}, root={self._root_uri!r})"
