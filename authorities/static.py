"""Dictionary-backed validation authority.

Answers from an in-memory mapping of normalized key to canonical title.
Used for offline runs and as the substitutable stub in tests.
"""

import json
import logging
from pathlib import Path
from typing import Mapping, Optional

from error_handling import ConfigurationError
from models import Confidence
from text_utils import normalize_key

from .base import AuthorityVerdict, ValidationAuthority

logger = logging.getLogger(__name__)


class StaticValidationAuthority(ValidationAuthority):
    """Validation from a fixed ``text -> canonical title`` mapping."""

    def __init__(
        self,
        titles: Optional[Mapping[str, str]] = None,
        confidence: Confidence = Confidence.HIGH,
    ):
        self._titles = {normalize_key(k): v for k, v in (titles or {}).items()}
        self.confidence = confidence
        self.calls: list[str] = []

    @classmethod
    def from_json(cls, path: str | Path) -> "StaticValidationAuthority":
        """Load a ``{"raw text": "Canonical Title"}`` JSON object."""
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read static title map {path}: {e}",
                config_section="VALIDATION_LIST_FILE",
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Static title map {path} must be a JSON object",
                config_section="VALIDATION_LIST_FILE",
            )
        return cls({str(k): str(v) for k, v in data.items()})

    @property
    def name(self) -> str:
        return "static"

    def validate(self, text: str) -> AuthorityVerdict:
        self.calls.append(text)
        title = self._titles.get(normalize_key(text))
        if title is None:
            return AuthorityVerdict.rejected()
        return AuthorityVerdict(True, title, self.confidence)
