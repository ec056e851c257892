"""Configuration management for Thread Mention Tally."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _get_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _get_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _get_bool(key: str, default: bool) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _get_str(key: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.getenv(key, default)


VALID_AUTHORITIES = ("http", "list", "static", "self")
VALID_LEDGER_FORMATS = ("sqlite", "json")


class Config:
    """Application configuration loaded from environment variables."""

    # --- Validation Authority ---
    VALIDATION_AUTHORITY: str = _get_str("VALIDATION_AUTHORITY", "http")
    VALIDATION_API_URL: str = _get_str("VALIDATION_API_URL")
    VALIDATION_API_TOKEN: str = _get_str("VALIDATION_API_TOKEN")
    # Blank = detect from the root prompt
    VALIDATION_MEDIA_TYPE: str = _get_str("VALIDATION_MEDIA_TYPE")
    VALIDATION_LIST_FILE: str = _get_str("VALIDATION_LIST_FILE")
    VALIDATION_TIMEOUT_SECONDS: int = _get_int("VALIDATION_TIMEOUT_SECONDS", 15)
    VALIDATION_CONCURRENCY: int = _get_int("VALIDATION_CONCURRENCY", 4)
    VALIDATION_RATE_PER_SECOND: float = _get_float("VALIDATION_RATE_PER_SECOND", 10.0)

    # --- Circuit Breaker ---
    CIRCUIT_FAILURE_THRESHOLD: int = _get_int("CIRCUIT_FAILURE_THRESHOLD", 5)
    CIRCUIT_RECOVERY_SECONDS: int = _get_int("CIRCUIT_RECOVERY_SECONDS", 60)

    # --- Validation Ledger ---
    LEDGER_PATH: str = _get_str("LEDGER_PATH", "validation_ledger.db")
    LEDGER_FORMAT: str = _get_str("LEDGER_FORMAT", "sqlite")

    # --- Reaction Classification ---
    REACTION_MAX_LENGTH: int = _get_int("REACTION_MAX_LENGTH", 50)
    REACTION_SHORT_LENGTH: int = _get_int("REACTION_SHORT_LENGTH", 15)
    INHERIT_AGREEMENT_ONLY: bool = _get_bool("INHERIT_AGREEMENT_ONLY", False)

    # --- Candidate Extraction ---
    QUOTED_MAX_LENGTH: int = _get_int("QUOTED_MAX_LENGTH", 60)
    SHORT_TEXT_MAX_LENGTH: int = _get_int("SHORT_TEXT_MAX_LENGTH", 60)
    SHORT_TEXT_MAX_WORDS: int = _get_int("SHORT_TEXT_MAX_WORDS", 5)

    # --- Run Policy ---
    RUN_RETRY_ATTEMPTS: int = _get_int("RUN_RETRY_ATTEMPTS", 1)
    RUN_RETRY_DELAY_SECONDS: float = _get_float("RUN_RETRY_DELAY_SECONDS", 1.0)

    # --- Logging ---
    LOG_LEVEL: str = _get_str("LOG_LEVEL", "INFO")
    LOG_JSON: bool = _get_bool("LOG_JSON", False)
    LOG_FILE: str = _get_str("LOG_FILE")

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate configuration values.
        Returns a list of error messages (empty if valid).
        """
        errors = []

        if cls.VALIDATION_AUTHORITY not in VALID_AUTHORITIES:
            errors.append(
                f"VALIDATION_AUTHORITY must be one of {', '.join(VALID_AUTHORITIES)}"
            )

        if cls.VALIDATION_AUTHORITY == "http" and not cls.VALIDATION_API_URL:
            errors.append("VALIDATION_API_URL is required for the http authority")

        if cls.VALIDATION_AUTHORITY == "list" and not cls.VALIDATION_LIST_FILE:
            errors.append("VALIDATION_LIST_FILE is required for the list authority")

        if cls.LEDGER_FORMAT not in VALID_LEDGER_FORMATS:
            errors.append(
                f"LEDGER_FORMAT must be one of {', '.join(VALID_LEDGER_FORMATS)}"
            )

        if cls.VALIDATION_CONCURRENCY < 1:
            errors.append("VALIDATION_CONCURRENCY must be at least 1")

        if cls.VALIDATION_RATE_PER_SECOND <= 0:
            errors.append("VALIDATION_RATE_PER_SECOND must be positive")

        if cls.REACTION_SHORT_LENGTH >= cls.REACTION_MAX_LENGTH:
            errors.append("REACTION_SHORT_LENGTH must be less than REACTION_MAX_LENGTH")

        if cls.RUN_RETRY_ATTEMPTS < 1:
            errors.append("RUN_RETRY_ATTEMPTS must be at least 1")
        if cls.RUN_RETRY_DELAY_SECONDS < 0:
            errors.append("RUN_RETRY_DELAY_SECONDS cannot be negative")

        return errors

    @classmethod
    def ensure_directories(cls) -> None:
        """Ensure the ledger directory exists."""
        Path(cls.LEDGER_PATH).parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def print_config(cls) -> None:
        """Print current configuration (masking sensitive values)."""
        print("=== Thread Mention Tally Configuration ===")
        print(f"  VALIDATION_AUTHORITY: {cls.VALIDATION_AUTHORITY}")
        print(f"  VALIDATION_API_URL: {cls.VALIDATION_API_URL or 'NOT SET'}")
        print(
            f"  VALIDATION_API_TOKEN: {'*' * 8 if cls.VALIDATION_API_TOKEN else 'NOT SET'}"
        )
        print(f"  VALIDATION_MEDIA_TYPE: {cls.VALIDATION_MEDIA_TYPE or '(auto)'}")
        print(f"  VALIDATION_LIST_FILE: {cls.VALIDATION_LIST_FILE or 'NOT SET'}")
        print(f"  VALIDATION_TIMEOUT_SECONDS: {cls.VALIDATION_TIMEOUT_SECONDS}")
        print(f"  VALIDATION_CONCURRENCY: {cls.VALIDATION_CONCURRENCY}")
        print(f"  VALIDATION_RATE_PER_SECOND: {cls.VALIDATION_RATE_PER_SECOND}")
        print(f"  CIRCUIT_FAILURE_THRESHOLD: {cls.CIRCUIT_FAILURE_THRESHOLD}")
        print(f"  CIRCUIT_RECOVERY_SECONDS: {cls.CIRCUIT_RECOVERY_SECONDS}")
        print(f"  LEDGER_PATH: {cls.LEDGER_PATH}")
        print(f"  LEDGER_FORMAT: {cls.LEDGER_FORMAT}")
        print(f"  REACTION_MAX_LENGTH: {cls.REACTION_MAX_LENGTH}")
        print(f"  REACTION_SHORT_LENGTH: {cls.REACTION_SHORT_LENGTH}")
        print(f"  INHERIT_AGREEMENT_ONLY: {cls.INHERIT_AGREEMENT_ONLY}")
        print(f"  SHORT_TEXT_MAX_LENGTH: {cls.SHORT_TEXT_MAX_LENGTH}")
        print(f"  SHORT_TEXT_MAX_WORDS: {cls.SHORT_TEXT_MAX_WORDS}")
        print(f"  RUN_RETRY_ATTEMPTS: {cls.RUN_RETRY_ATTEMPTS}")
        print(f"  RUN_RETRY_DELAY_SECONDS: {cls.RUN_RETRY_DELAY_SECONDS}")
        print(f"  LOG_LEVEL: {cls.LOG_LEVEL}")
        print("==========================================")


# ============================================================================
# Unit Tests
# ============================================================================
def _create_module_tests():
    """Create unit tests for config module."""
    from test_framework import TestSuite

    suite = TestSuite("Config Tests")

    def test_get_int_fallback():
        os.environ["_TALLY_TEST_INT"] = "not-a-number"
        try:
            assert _get_int("_TALLY_TEST_INT", 7) == 7
        finally:
            del os.environ["_TALLY_TEST_INT"]

    def test_get_bool_values():
        os.environ["_TALLY_TEST_BOOL"] = "yes"
        try:
            assert _get_bool("_TALLY_TEST_BOOL", False) is True
        finally:
            del os.environ["_TALLY_TEST_BOOL"]

    def test_defaults_are_sane():
        assert Config.REACTION_SHORT_LENGTH < Config.REACTION_MAX_LENGTH
        assert Config.VALIDATION_CONCURRENCY >= 1

    def test_validate_rejects_unknown_authority():
        original = Config.VALIDATION_AUTHORITY
        Config.VALIDATION_AUTHORITY = "carrier-pigeon"
        try:
            errors = Config.validate()
            assert any("VALIDATION_AUTHORITY" in e for e in errors)
        finally:
            Config.VALIDATION_AUTHORITY = original

    suite.add_test("_get_int fallback", test_get_int_fallback)
    suite.add_test("_get_bool values", test_get_bool_values)
    suite.add_test("Config defaults", test_defaults_are_sane)
    suite.add_test("Config validate authority", test_validate_rejects_unknown_authority)

    return suite
