"""HTTP validation authority.

POSTs ``{"title": ..., "mediaType": ...}`` to a validation endpoint and
reads back ``{"validated", "title", "confidence"}``. Calls are spaced by
the adaptive rate limiter and guarded by a circuit breaker, so a dead
endpoint turns into fast rejections rather than a stalled run.

Environment variables:
    VALIDATION_API_URL: Endpoint URL (required)
    VALIDATION_API_TOKEN: Optional bearer token
    VALIDATION_MEDIA_TYPE: Media type sent with each request
"""

import logging
from typing import Any, Optional

import requests

from error_handling import (
    CircuitBreaker,
    CircuitBreakerConfig,
    ValidationUnavailableError,
)
from models import Confidence
from rate_limiter import AdaptiveRateLimiter, parse_retry_after

from .base import AuthorityVerdict, ValidationAuthority

logger = logging.getLogger(__name__)


class HttpValidationAuthority(ValidationAuthority):
    """Validation via a remote ``/api/validate`` style endpoint."""

    def __init__(
        self,
        api_url: str,
        media_type: str = "MOVIE",
        api_token: str = "",
        timeout: int = 15,
        rate_limiter: Optional[AdaptiveRateLimiter] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialise the HTTP authority.

        Args:
            api_url: Full URL of the validation endpoint
            media_type: MOVIE, TV_SHOW, MUSIC, BOOK or VIDEO_GAME
            api_token: Optional bearer token
            timeout: Request timeout in seconds
            rate_limiter: Shared limiter (one is created if omitted)
            circuit_breaker: Shared breaker (one is created if omitted)
            session: requests session, injectable for tests
        """
        self.api_url = api_url
        self.media_type = media_type
        self.timeout = timeout
        self.rate_limiter = rate_limiter or AdaptiveRateLimiter()
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            name="validation-api", config=CircuitBreakerConfig()
        )
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if api_token:
            self.session.headers.update({"Authorization": f"Bearer {api_token}"})

    @property
    def name(self) -> str:
        return "http"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url)

    def validate(self, text: str) -> AuthorityVerdict:
        """Validate one candidate through the remote endpoint.

        Raises:
            ValidationUnavailableError: On network errors, error statuses,
                malformed bodies or an open circuit
        """
        return self.circuit_breaker.call(self._request, text)

    def _request(self, text: str) -> AuthorityVerdict:
        self.rate_limiter.wait(self.api_url)
        payload = {"title": text, "mediaType": self.media_type}
        logger.debug("Validation request: %s", payload)

        try:
            resp = self.session.post(self.api_url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise ValidationUnavailableError(
                f"Validation request timed out after {self.timeout}s",
                authority=self.name,
            ) from e
        except requests.RequestException as e:
            raise ValidationUnavailableError(
                f"Validation request failed: {e}", authority=self.name
            ) from e

        if resp.status_code == 429:
            retry_after = parse_retry_after(resp.headers.get("Retry-After"))
            self.rate_limiter.on_429_error(self.api_url, retry_after)
            raise ValidationUnavailableError(
                "Validation endpoint rate limited",
                authority=self.name,
                status_code=429,
                retry_after=retry_after,
            )

        if not resp.ok:
            raise ValidationUnavailableError(
                f"Validation endpoint error {resp.status_code}",
                authority=self.name,
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise ValidationUnavailableError(
                "Validation endpoint returned non-JSON body",
                authority=self.name,
                status_code=resp.status_code,
            ) from e

        self.rate_limiter.on_success(self.api_url)
        return self._parse_body(body)

    def _parse_body(self, body: Any) -> AuthorityVerdict:
        if not isinstance(body, dict) or not isinstance(body.get("validated"), bool):
            raise ValidationUnavailableError(
                "Malformed validation response", authority=self.name
            )

        if not body["validated"]:
            # Upstream lookup failures come back as unvalidated with an error
            if body.get("error"):
                raise ValidationUnavailableError(
                    f"Validation endpoint reported: {body['error']}",
                    authority=self.name,
                )
            return AuthorityVerdict.rejected()

        title = body.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValidationUnavailableError(
                "Validated response has no title", authority=self.name
            )

        try:
            confidence = Confidence.parse(body.get("confidence", "low"))
        except ValueError:
            confidence = Confidence.LOW

        return AuthorityVerdict(
            validated=True,
            canonical_title=title.strip(),
            confidence=confidence,
            metadata=body.get("metadata"),
        )
