"""Canonical label construction.

Distinct raw candidates ("Godfather", "the godfather", "The Godfather!")
can all validate to one canonical title. The canonical spelling is always
the authority's string, used verbatim; two different authority strings are
never merged locally.
"""

import logging
from typing import Iterable, Mapping, Optional

from models import ValidationEntry

logger = logging.getLogger(__name__)


class Canonicalizer:
    """Turn validation entries into canonical labels and buckets."""

    @staticmethod
    def canonical_for(entry: Optional[ValidationEntry]) -> Optional[str]:
        """The authority's title for a validated entry, else None."""
        if entry is None or not entry.validated:
            return None
        return entry.canonical_title

    def group(self, entries: Iterable[ValidationEntry]) -> dict[str, list[str]]:
        """
        Group validated entries by identical canonical title.

        Returns:
            ``canonical_title -> [keys]`` in first-seen order.
        """
        groups: dict[str, list[str]] = {}
        for entry in entries:
            title = self.canonical_for(entry)
            if title is None:
                continue
            keys = groups.setdefault(title, [])
            if entry.key not in keys:
                keys.append(entry.key)
        return groups

    def labels_for(
        self,
        candidates: list[str],
        resolved: Mapping[str, ValidationEntry],
    ) -> list[str]:
        """
        Build one post's direct labels from its candidates.

        Longest match wins: candidates are tried longest first, and a
        candidate contained (case-insensitively) in an already accepted
        one is skipped, so "Godfather" inside "The Godfather Part II"
        does not add a second label.

        Args:
            candidates: The post's candidates in extraction order
            resolved: Verdict for each candidate string

        Returns:
            Distinct canonical titles, ordered by candidate position.
        """
        accepted: list[str] = []
        accepted_at: dict[int, str] = {}

        by_length = sorted(
            range(len(candidates)), key=lambda i: len(candidates[i]), reverse=True
        )
        for index in by_length:
            candidate = candidates[index]
            lowered = candidate.lower()
            if any(lowered in longer for longer in accepted):
                continue
            title = self.canonical_for(resolved.get(candidate))
            if title is None:
                continue
            accepted.append(lowered)
            accepted_at[index] = title

        labels: list[str] = []
        for index in sorted(accepted_at):
            title = accepted_at[index]
            if title not in labels:
                labels.append(title)
        return labels
