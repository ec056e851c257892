"""Validation cache in front of the external authority.

``resolve(candidate)`` normalizes the candidate to a key and returns the
stored verdict when there is one. Only on a miss is the authority asked;
its answer is stored under the key and upserted to the ledger straight
away, so a run that is cut short still leaves its verdicts behind.

Authority failures degrade to an unvalidated, low-confidence entry. They
are not retried here and not persisted, so the next run asks again.

The cache is an explicit object: create one, ``load()`` it, pass it into
the pipeline, ``save()`` it. There is no process-wide instance.
"""

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Iterable, Iterator, Optional

from authorities.base import AuthorityVerdict, ValidationAuthority
from error_handling import ValidationUnavailableError
from models import Confidence, ValidationEntry
from text_utils import normalize_key
from validation_ledger import ValidationLedger

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Counters for one cache lifetime."""

    hits: int = 0
    fresh_validations: int = 0
    failures: int = 0
    dropped_corrupt: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class ValidationCache:
    """Thread-safe ``key -> ValidationEntry`` map backed by a ledger."""

    def __init__(
        self,
        authority: ValidationAuthority,
        ledger: Optional[ValidationLedger] = None,
        persist_on_resolve: bool = True,
    ):
        self.authority = authority
        self.ledger = ledger
        self.persist_on_resolve = persist_on_resolve
        self.stats = CacheStats()
        self._entries: dict[str, ValidationEntry] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Load every entry from the ledger. Returns the number loaded."""
        if self.ledger is None:
            return 0
        loaded = self.ledger.load_all()
        with self._lock:
            self._entries.update(loaded)
            self.stats.dropped_corrupt += self.ledger.last_dropped
        if self.ledger.last_dropped:
            logger.warning(
                "⚠️ Dropped %d corrupt ledger entries", self.ledger.last_dropped
            )
        logger.info("Loaded %d cached validations", len(loaded))
        return len(loaded)

    def save(self) -> int:
        """Upsert every entry to the ledger. Returns the number written."""
        if self.ledger is None:
            return 0
        with self._lock:
            snapshot = list(self._entries.values())
        written = self.ledger.upsert_many(snapshot)
        logger.debug("Saved %d validations to %r", written, self.ledger)
        return written

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def prepare(self, candidates: Iterable[str], root_text: str) -> None:
        """Pass the run's candidate set to authorities that need it."""
        prepare = getattr(self.authority, "prepare", None)
        if prepare is not None:
            prepare(candidates, root_text)

    def get(self, candidate: str) -> Optional[ValidationEntry]:
        """Return the stored entry for a candidate without asking the authority."""
        with self._lock:
            return self._entries.get(normalize_key(candidate))

    def put(self, entry: ValidationEntry) -> None:
        """Store an entry directly, e.g. a verdict imported from elsewhere."""
        entry.key = normalize_key(entry.key)
        with self._lock:
            self._entries[entry.key] = entry

    def resolve(self, candidate: str) -> ValidationEntry:
        """
        Resolve a candidate to a verdict.

        Returns:
            The cached entry on a hit; otherwise the authority's verdict,
            or an unvalidated LOW entry if the authority failed.
        """
        key = normalize_key(candidate)
        if not key:
            return ValidationEntry(key="", validated=False, source=self.authority.name)

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self.stats.hits += 1
                return cached

        try:
            verdict = self.authority.validate(candidate)
            self._check_verdict(verdict)
        except (ValidationUnavailableError, OSError, ValueError, TypeError) as e:
            with self._lock:
                self.stats.failures += 1
            logger.warning("⚠️ Validation failed for %r: %s", candidate, e)
            return ValidationEntry(
                key=key,
                validated=False,
                confidence=Confidence.LOW,
                source=self.authority.name,
            )

        entry = ValidationEntry(
            key=key,
            validated=verdict.validated,
            canonical_title=verdict.canonical_title if verdict.validated else None,
            confidence=verdict.confidence,
            source=self.authority.name,
        )
        with self._lock:
            # Same-key races are harmless: the verdict is deterministic
            self._entries[key] = entry
            self.stats.fresh_validations += 1

        if self.persist_on_resolve and self.ledger is not None:
            self.ledger.upsert(entry)

        logger.debug(
            "Resolved %r -> %s (%s)",
            candidate,
            entry.canonical_title if entry.validated else "rejected",
            entry.confidence.label,
        )
        return entry

    @staticmethod
    def _check_verdict(verdict: AuthorityVerdict) -> None:
        if not isinstance(verdict, AuthorityVerdict):
            raise TypeError(f"Authority returned {type(verdict).__name__}")
        if verdict.validated and not (verdict.canonical_title or "").strip():
            raise ValueError("Validated verdict has no canonical title")
        if not isinstance(verdict.confidence, Confidence):
            raise TypeError("Verdict confidence is not a Confidence level")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def entries(self) -> list[ValidationEntry]:
        with self._lock:
            return list(self._entries.values())

    def __contains__(self, candidate: object) -> bool:
        if not isinstance(candidate, str):
            return False
        with self._lock:
            return normalize_key(candidate) in self._entries

    def __iter__(self) -> Iterator[ValidationEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
