"""Authority factory - single entry point for candidate validation.

Reads VALIDATION_AUTHORITY from config and returns the matching authority.
Switch authorities by changing .env - no code changes required.

Environment variables:
    VALIDATION_AUTHORITY: Authority name (http, list, static, self)
    VALIDATION_API_URL: Endpoint for the http authority
    VALIDATION_API_TOKEN: Optional bearer token for the http authority
    VALIDATION_MEDIA_TYPE: Media type for the http authority
    VALIDATION_LIST_FILE: Answer list (list) or JSON title map (static)
    VALIDATION_TIMEOUT_SECONDS: Request timeout (default: 15)
    VALIDATION_RATE_PER_SECOND: Request rate cap (default: 10)
"""

import logging
from typing import Optional

from config import VALID_AUTHORITIES, Config
from error_handling import CircuitBreaker, CircuitBreakerConfig, ConfigurationError
from rate_limiter import AdaptiveRateLimiter

from .base import ValidationAuthority

logger = logging.getLogger(__name__)

# Registry of available authorities
AUTHORITIES = {
    "http": "HttpValidationAuthority",
    "list": "ListValidationAuthority",
    "static": "StaticValidationAuthority",
    "self": "SelfValidatedAuthority",
}


def get_validation_authority(
    authority_name: Optional[str] = None,
    api_url: Optional[str] = None,
    media_type: Optional[str] = None,
    list_file: Optional[str] = None,
    timeout: Optional[int] = None,
) -> ValidationAuthority:
    """Get a validation authority based on configuration.

    Args:
        authority_name: Authority name (overrides VALIDATION_AUTHORITY)
        api_url: Endpoint URL (overrides VALIDATION_API_URL)
        media_type: Media type (overrides VALIDATION_MEDIA_TYPE)
        list_file: List or title-map path (overrides VALIDATION_LIST_FILE)
        timeout: Timeout in seconds (overrides VALIDATION_TIMEOUT_SECONDS)

    Returns:
        Configured ValidationAuthority instance

    Raises:
        ConfigurationError: If the authority is unknown or misconfigured

    Example:
        authority = get_validation_authority()
        verdict = authority.validate("The Godfather")

        authority = get_validation_authority("list", list_file="answers.txt")
    """
    name = (authority_name or Config.VALIDATION_AUTHORITY).lower().strip()
    if name not in AUTHORITIES:
        raise ConfigurationError(
            f"Unknown VALIDATION_AUTHORITY: '{name}'. "
            f"Available authorities: {', '.join(VALID_AUTHORITIES)}",
            config_section="VALIDATION_AUTHORITY",
        )

    list_file = list_file or Config.VALIDATION_LIST_FILE
    logger.debug("Creating %s validation authority", name)

    # Lazy import and instantiate the authority
    if name == "http":
        from .http_api import HttpValidationAuthority

        url = api_url or Config.VALIDATION_API_URL
        if not url:
            raise ConfigurationError(
                "http authority requires VALIDATION_API_URL",
                config_section="VALIDATION_API_URL",
            )
        return HttpValidationAuthority(
            api_url=url,
            media_type=media_type or Config.VALIDATION_MEDIA_TYPE or "MOVIE",
            api_token=Config.VALIDATION_API_TOKEN,
            timeout=timeout or Config.VALIDATION_TIMEOUT_SECONDS,
            rate_limiter=AdaptiveRateLimiter(
                rate_per_second=Config.VALIDATION_RATE_PER_SECOND,
                min_rate=min(0.2, Config.VALIDATION_RATE_PER_SECOND),
            ),
            circuit_breaker=CircuitBreaker(
                name="validation-api",
                config=CircuitBreakerConfig(
                    failure_threshold=Config.CIRCUIT_FAILURE_THRESHOLD,
                    recovery_timeout=Config.CIRCUIT_RECOVERY_SECONDS,
                ),
            ),
        )

    if name == "list":
        from .list_match import ListValidationAuthority

        if not list_file:
            raise ConfigurationError(
                "list authority requires VALIDATION_LIST_FILE",
                config_section="VALIDATION_LIST_FILE",
            )
        authority = ListValidationAuthority.from_file(list_file)
        if not authority.is_configured:
            logger.warning("⚠️ Validation list %s is empty", list_file)
        return authority

    if name == "self":
        from .self_validated import SelfValidatedAuthority

        return SelfValidatedAuthority()

    from .static import StaticValidationAuthority

    if list_file:
        return StaticValidationAuthority.from_json(list_file)
    logger.warning("⚠️ static authority has no title map; every candidate is rejected")
    return StaticValidationAuthority()


def list_available_authorities() -> dict[str, str]:
    """Return authority names mapped to their implementing class names."""
    return dict(AUTHORITIES)
