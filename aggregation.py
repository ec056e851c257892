"""Aggregation of per-post labels into ranked mention counts.

``MentionAggregate`` also carries the refinement hooks a reviewing UI
needs: excluding a title bucket and overriding one post's label. Both
only re-aggregate; neither re-runs extraction or validation.
"""

import logging
from typing import Iterable, Mapping, Optional

from corpus import Corpus
from models import MentionCount, Post

logger = logging.getLogger(__name__)


def rank_mentions(
    label_of: Mapping[str, list[str]],
    corpus: Corpus,
    excluded: Iterable[str] = (),
) -> list[MentionCount]:
    """
    Group (post, label) pairs by title and rank them.

    A post counts once toward each distinct title it carries. Ranking is
    count descending, then title ascending; each bucket lists its posts in
    corpus order.
    """
    skip = set(excluded)
    buckets: dict[str, list[Post]] = {}
    for post in corpus:
        if corpus.is_root(post.uri):
            continue
        for title in dict.fromkeys(label_of.get(post.uri, ())):
            if title in skip:
                continue
            buckets.setdefault(title, []).append(post)

    counts = [
        MentionCount(mention=title, count=len(posts), posts=posts)
        for title, posts in buckets.items()
    ]
    counts.sort(key=lambda mc: (-mc.count, mc.mention))
    return counts


class MentionAggregate:
    """Mutable view over a finished run's labels."""

    def __init__(
        self,
        label_of: Mapping[str, list[str]],
        corpus: Corpus,
        excluded: Iterable[str] = (),
    ):
        self.corpus = corpus
        self._base: dict[str, list[str]] = {
            uri: list(labels) for uri, labels in label_of.items()
        }
        self._overrides: dict[str, list[str]] = {}
        self._excluded: set[str] = set(excluded)

    @property
    def excluded(self) -> frozenset[str]:
        return frozenset(self._excluded)

    @property
    def overrides(self) -> dict[str, list[str]]:
        return {uri: list(labels) for uri, labels in self._overrides.items()}

    def exclude(self, title: str) -> None:
        """Drop a title bucket from the counts."""
        self._excluded.add(title)
        logger.info("Excluded %r", title)

    def include(self, title: str) -> None:
        """Undo an earlier exclude."""
        self._excluded.discard(title)

    def assign(self, uri: str, title: str | list[str]) -> None:
        """
        Override one post's labels.

        Raises:
            KeyError: If the post is not in the corpus
            ValueError: If the post is the root
        """
        if uri not in self.corpus:
            raise KeyError(uri)
        if self.corpus.is_root(uri):
            raise ValueError("The root post cannot carry a label")
        titles = [title] if isinstance(title, str) else list(title)
        self._overrides[uri] = list(dict.fromkeys(t for t in titles if t))
        logger.info("Assigned %s -> %s", uri, self._overrides[uri])

    def unassign(self, uri: str) -> None:
        """Drop an override, restoring the pipeline's labels."""
        self._overrides.pop(uri, None)

    def labels_for(self, uri: str) -> list[str]:
        """Effective labels of a post, exclusions applied."""
        labels = self._overrides.get(uri, self._base.get(uri, []))
        return [t for t in labels if t not in self._excluded]

    def label_of(self) -> dict[str, list[str]]:
        return {post.uri: self.labels_for(post.uri) for post in self.corpus}

    @property
    def mention_counts(self) -> list[MentionCount]:
        labels = {uri: self._overrides.get(uri, base) for uri, base in self._base.items()}
        labels.update(self._overrides)
        return rank_mentions(labels, self.corpus, self._excluded)

    @property
    def uncategorized(self) -> list[Post]:
        """Non-root posts that count toward no title."""
        return [
            post
            for post in self.corpus
            if not self.corpus.is_root(post.uri) and not self.labels_for(post.uri)
        ]

    def top(self, n: Optional[int] = None) -> list[MentionCount]:
        counts = self.mention_counts
        return counts if n is None else counts[:n]
