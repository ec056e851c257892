"""Durable storage for validation verdicts.

The ledger persists ``key -> ValidationEntry`` across runs so repeated
analyses of the same thread never re-query the authority. The cache only
relies on two operations: load everything at start, upsert one entry.

Two backends:
- SQLiteValidationLedger: default, one row per key
- JSONValidationLedger: ``{"meta": {...}, "validations": {key: {...}}}``
  file, compatible with hand-built validation cache files

Corrupt entries are logged and dropped on load; the rest still loads.
An unreadable JSON file is renamed to ``<name>.corrupt-<timestamp>``
before the first rewrite.
"""

import json
import logging
import os
import sqlite3
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator, Iterable, Optional

from config import VALID_LEDGER_FORMATS, Config
from error_handling import CacheEntryCorruptError, ConfigurationError
from models import ValidationEntry
from text_utils import normalize_key

logger = logging.getLogger(__name__)

LEDGER_VERSION = 1


class ValidationLedger(ABC):
    """Append/update-only store of validation entries."""

    def __init__(self) -> None:
        self.last_dropped: int = 0
        self._write_lock = threading.Lock()

    @abstractmethod
    def load_all(self) -> dict[str, ValidationEntry]:
        """Load every valid entry. Sets ``last_dropped`` to the corrupt count."""
        ...

    @abstractmethod
    def upsert(self, entry: ValidationEntry) -> None:
        """Insert or replace one entry."""
        ...

    def upsert_many(self, entries: Iterable[ValidationEntry]) -> int:
        count = 0
        for entry in entries:
            self.upsert(entry)
            count += 1
        return count

    def _parse_records(
        self, records: Iterable[tuple[Optional[str], Any]]
    ) -> dict[str, ValidationEntry]:
        entries: dict[str, ValidationEntry] = {}
        dropped = 0
        for key, record in records:
            try:
                entry = ValidationEntry.from_dict(record, key=key)
            except CacheEntryCorruptError as e:
                dropped += 1
                logger.warning("⚠️ Dropping corrupt ledger entry %r: %s", e.key, e)
                continue
            normalized = normalize_key(entry.key)
            if not normalized:
                dropped += 1
                logger.warning("⚠️ Dropping ledger entry with empty key %r", entry.key)
                continue
            entry.key = normalized
            entries[normalized] = entry
        self.last_dropped = dropped
        return entries

    def stats(self) -> dict[str, Any]:
        """Summarize ledger contents."""
        entries = self.load_all()
        by_confidence: dict[str, int] = {}
        by_source: dict[str, int] = {}
        for entry in entries.values():
            by_confidence[entry.confidence.label] = (
                by_confidence.get(entry.confidence.label, 0) + 1
            )
            source = entry.source or "unknown"
            by_source[source] = by_source.get(source, 0) + 1
        validated = sum(1 for e in entries.values() if e.validated)
        return {
            "total": len(entries),
            "validated": validated,
            "rejected": len(entries) - validated,
            "dropped_corrupt": self.last_dropped,
            "by_confidence": by_confidence,
            "by_source": by_source,
        }


class SQLiteValidationLedger(ValidationLedger):
    """SQLite-backed ledger, one row per normalized key."""

    def __init__(self, db_name: str | Path = "validation_ledger.db"):
        super().__init__()
        self.db_name = str(db_name)
        self._init_db()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_name)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Create the validations table if needed."""
        with self._get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS validations (
                    key TEXT PRIMARY KEY,
                    validated INTEGER NOT NULL,
                    canonical_title TEXT,
                    confidence TEXT NOT NULL,
                    source TEXT,
                    resolved_at TEXT
                )
                """
            )
        logger.debug("Ledger ready at %s", self.db_name)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> dict[str, Any]:
        record = dict(row)
        # Anything other than 0/1 stays as-is and fails schema checks
        if record.get("validated") in (0, 1):
            record["validated"] = bool(record["validated"])
        return record

    def load_all(self) -> dict[str, ValidationEntry]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM validations ORDER BY key").fetchall()
        entries = self._parse_records(
            (row["key"], self._row_to_record(row)) for row in rows
        )
        logger.debug("Loaded %d ledger entries from %s", len(entries), self.db_name)
        return entries

    def upsert(self, entry: ValidationEntry) -> None:
        with self._write_lock, self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO validations
                    (key, validated, canonical_title, confidence, source, resolved_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.key,
                    int(entry.validated),
                    entry.canonical_title,
                    entry.confidence.label,
                    entry.source,
                    entry.resolved_at,
                ),
            )

    def upsert_many(self, entries: Iterable[ValidationEntry]) -> int:
        rows = [
            (
                e.key,
                int(e.validated),
                e.canonical_title,
                e.confidence.label,
                e.source,
                e.resolved_at,
            )
            for e in entries
        ]
        with self._write_lock, self._get_connection() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO validations
                    (key, validated, canonical_title, confidence, source, resolved_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        return len(rows)

    def __repr__(self) -> str:
        return f"SQLiteValidationLedger({self.db_name!r})"


class JSONValidationLedger(ValidationLedger):
    """Single JSON file ledger, rewritten atomically on every upsert."""

    def __init__(self, path: str | Path = "validation_cache.json"):
        super().__init__()
        self.path = Path(path)
        self._records: Optional[dict[str, Any]] = None
        self._meta: dict[str, Any] = {}
        self._unreadable = False

    def _read_file(self) -> dict[str, Any]:
        self._unreadable = False
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("❌ Ledger file %s is not valid JSON: %s", self.path, e)
            self._unreadable = True
            return {}
        if not isinstance(data, dict):
            logger.error("❌ Ledger file %s is not a JSON object", self.path)
            self._unreadable = True
            return {}
        self._meta = data.get("meta") if isinstance(data.get("meta"), dict) else {}
        validations = data.get("validations", {})
        return validations if isinstance(validations, dict) else {}

    def load_all(self) -> dict[str, ValidationEntry]:
        raw = self._read_file()
        entries = self._parse_records(raw.items())
        self._records = {key: entry.to_dict() for key, entry in entries.items()}
        logger.debug("Loaded %d ledger entries from %s", len(entries), self.path)
        return entries

    def upsert(self, entry: ValidationEntry) -> None:
        with self._write_lock:
            if self._records is None:
                self.load_all()
            assert self._records is not None
            self._records[entry.key] = entry.to_dict()
            self._write_file()

    def upsert_many(self, entries: Iterable[ValidationEntry]) -> int:
        with self._write_lock:
            if self._records is None:
                self.load_all()
            assert self._records is not None
            count = 0
            for entry in entries:
                self._records[entry.key] = entry.to_dict()
                count += 1
            self._write_file()
        return count

    def _set_aside_unreadable(self) -> None:
        """Move an unparseable ledger file out of the way before overwriting it."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        if self.path.exists():
            os.replace(self.path, backup)
            logger.warning("⚠️ Kept unreadable ledger file as %s", backup.name)
        self._unreadable = False

    def _write_file(self) -> None:
        assert self._records is not None
        if self._unreadable:
            self._set_aside_unreadable()
        meta = dict(self._meta)
        meta.update(
            {
                "version": LEDGER_VERSION,
                "updated_at": datetime.now(timezone.utc).isoformat(),
                "count": len(self._records),
            }
        )
        payload = {"meta": meta, "validations": self._records}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=self.path.name, suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False, sort_keys=True)
            os.replace(tmp_name, self.path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def __repr__(self) -> str:
        return f"JSONValidationLedger({str(self.path)!r})"


def open_ledger(
    path: Optional[str | Path] = None, ledger_format: Optional[str] = None
) -> ValidationLedger:
    """Open the configured ledger backend.

    Raises:
        ConfigurationError: If the format is unknown
    """
    path = path or Config.LEDGER_PATH
    fmt = (ledger_format or Config.LEDGER_FORMAT).lower()
    if fmt not in VALID_LEDGER_FORMATS:
        raise ConfigurationError(
            f"Unknown ledger format '{fmt}'", config_section="LEDGER_FORMAT"
        )
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    if fmt == "json":
        return JSONValidationLedger(path)
    return SQLiteValidationLedger(path)
