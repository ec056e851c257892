"""Label inheritance along reply chains.

A reaction ("yes!!", "🔥") endorses whatever its parent named. The walk
climbs ``parent_uri`` links until it finds an ancestor with direct labels
and returns those. It stops empty-handed at an unlabeled root, a parent
missing from the corpus, or a revisited post. The walk never runs longer
than the corpus has posts.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from corpus import Corpus
from models import Post

logger = logging.getLogger(__name__)


class InheritanceOutcome(Enum):
    """How an inheritance walk ended."""

    INHERITED = "inherited"
    NO_PARENT_TITLE = "no_parent_title"
    ORPHAN_PARENT = "orphan_parent"
    CYCLE_GUARD = "cycle_guard"


@dataclass(frozen=True)
class InheritanceResult:
    """Labels found by a walk, where they came from, and how it ended."""

    labels: tuple[str, ...]
    outcome: InheritanceOutcome
    source_uri: Optional[str] = None
    depth: int = 0


def resolve_inheritance(
    post: Post, label_of: Mapping[str, list[str]], corpus: Corpus
) -> InheritanceResult:
    """
    Walk from a post's parent towards the root looking for direct labels.

    Args:
        post: The post that needs labels
        label_of: Direct labels per uri (complete for the corpus)
        corpus: The run's post index

    Returns:
        InheritanceResult; ``labels`` is empty unless the outcome is INHERITED.
    """
    if corpus.is_root(post.uri):
        return InheritanceResult((), InheritanceOutcome.NO_PARENT_TITLE)

    bound = len(corpus)
    visited = {post.uri}
    current = post.parent_uri
    depth = 0

    while current is not None:
        if current in visited or depth >= bound:
            logger.warning(
                "⚠️ Inheritance walk from %s stopped at %s (cycle guard)",
                post.uri,
                current,
            )
            return InheritanceResult((), InheritanceOutcome.CYCLE_GUARD, depth=depth)

        ancestor = corpus.get(current)
        if ancestor is None:
            logger.debug("Parent %s of chain from %s is not in corpus", current, post.uri)
            return InheritanceResult((), InheritanceOutcome.ORPHAN_PARENT, depth=depth)

        visited.add(current)
        depth += 1

        labels = label_of.get(current)
        if labels:
            return InheritanceResult(
                tuple(labels), InheritanceOutcome.INHERITED, current, depth
            )
        if corpus.is_root(current):
            break
        current = ancestor.parent_uri

    return InheritanceResult((), InheritanceOutcome.NO_PARENT_TITLE, depth=depth)


def inherit(
    post: Post, label_of: Mapping[str, list[str]], corpus: Corpus
) -> list[str]:
    """Labels of the nearest labeled ancestor, or ``[]``."""
    return list(resolve_inheritance(post, label_of, corpus).labels)


class ThreadInheritance:
    """Inheritance bound to one corpus and one completed direct-label map."""

    def __init__(self, corpus: Corpus, label_of: Mapping[str, list[str]]):
        self.corpus = corpus
        self.label_of = label_of

    def resolve(self, post: Post) -> InheritanceResult:
        return resolve_inheritance(post, self.label_of, self.corpus)

    def inherit(self, post: Post) -> list[str]:
        return inherit(post, self.label_of, self.corpus)
