"""List-backed validation authority.

Validates candidates against a user-provided list of canonical answers,
one per line. Matching ignores case, punctuation and a leading article,
and accepts containment in either direction, so "Godfather" matches
"The Godfather Part II" and "The Godfather" matches "Godfather".

Environment variables:
    VALIDATION_LIST_FILE: Path to the list file
"""

import logging
import re
from pathlib import Path
from typing import Iterable

from error_handling import ConfigurationError
from models import Confidence

from .base import AuthorityVerdict, ValidationAuthority

logger = logging.getLogger(__name__)

_NON_WORD_RE = re.compile(r"[^\w\s]")
_ARTICLE_RE = re.compile(r"^(the|a|an)\s+")

# Shorter normalized candidates only match exactly
MIN_CONTAINMENT_LENGTH = 4


def normalize_list_item(text: str) -> str:
    """Lowercase, drop punctuation and a leading article."""
    cleaned = _NON_WORD_RE.sub("", text.lower()).strip()
    return _ARTICLE_RE.sub("", cleaned).strip()


class ListValidationAuthority(ValidationAuthority):
    """Validation against a fixed answer list."""

    def __init__(self, items: Iterable[str]):
        self._items: list[tuple[str, str]] = []
        for item in items:
            item = item.strip()
            if not item or item.startswith("#"):
                continue
            normalized = normalize_list_item(item)
            if normalized:
                self._items.append((item, normalized))
        logger.debug("List authority loaded %d item(s)", len(self._items))

    @classmethod
    def from_file(cls, path: str | Path) -> "ListValidationAuthority":
        """Load one answer per line; blank lines and ``#`` comments are skipped."""
        path = Path(path)
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read validation list {path}: {e}",
                config_section="VALIDATION_LIST_FILE",
            ) from e
        return cls(lines)

    @property
    def name(self) -> str:
        return "list"

    @property
    def is_configured(self) -> bool:
        return bool(self._items)

    def validate(self, text: str) -> AuthorityVerdict:
        candidate = normalize_list_item(text)
        if not candidate:
            return AuthorityVerdict.rejected()

        for original, normalized in self._items:
            if candidate == normalized:
                return AuthorityVerdict(True, original, Confidence.HIGH)
            if len(candidate) >= MIN_CONTAINMENT_LENGTH and (
                candidate in normalized or normalized in candidate
            ):
                return AuthorityVerdict(True, original, Confidence.HIGH)

        return AuthorityVerdict.rejected()

    def __len__(self) -> int:
        return len(self._items)
