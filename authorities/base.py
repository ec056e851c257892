"""Base interface for validation authorities.

An authority answers one question: does this text name a real title, and
if so, what is its canonical spelling? All authorities implement this
interface so the validation cache never cares which backend is in use.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

from models import Confidence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorityVerdict:
    """Answer from a validation authority.

    Attributes:
        validated: Whether the text names a known title
        canonical_title: Authority's spelling of the title (required if validated)
        confidence: How sure the authority is, for auditing
        metadata: Optional provider-specific details (ids, release dates)
    """

    validated: bool
    canonical_title: Optional[str] = None
    confidence: Confidence = Confidence.LOW
    metadata: Optional[dict] = None

    @classmethod
    def rejected(cls) -> "AuthorityVerdict":
        return cls(validated=False, confidence=Confidence.LOW)


class ValidationAuthority(ABC):
    """Abstract base class for validation authorities.

    Implementations are responsible for:
    - Checking their own configuration
    - Answering one ``validate`` call per candidate text
    - Raising ValidationUnavailableError when they cannot answer

    A clean "not a title" answer is a rejected verdict, not an error.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short authority name, stored with every ledger entry."""
        ...

    @property
    def is_configured(self) -> bool:
        """Check if the authority has what it needs to answer."""
        return True

    def prepare(self, candidates: Iterable[str], root_text: str) -> None:
        """Hook called once per run with the unique candidates and root prompt.

        Authorities that answer from the thread itself build their state
        here; the others ignore it.
        """

    @abstractmethod
    def validate(self, text: str) -> AuthorityVerdict:
        """Validate one candidate text.

        Args:
            text: Raw candidate text as extracted

        Returns:
            AuthorityVerdict for the text

        Raises:
            ValidationUnavailableError: If the authority cannot answer
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
