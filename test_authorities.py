#!/usr/bin/env python3
"""Tests for the validation authorities and the authority factory."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from authorities import (
    HttpValidationAuthority,
    ListValidationAuthority,
    SelfValidatedAuthority,
    StaticValidationAuthority,
    get_validation_authority,
    list_available_authorities,
)
from authorities.self_validated import extract_category_words
from error_handling import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerOpenError,
    ConfigurationError,
    ValidationUnavailableError,
)
from models import Confidence
from rate_limiter import AdaptiveRateLimiter

API_URL = "https://validator.test/api/validate"


def _response(status=200, body=None, headers=None, bad_json=False):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 400
    resp.headers = headers or {}
    if bad_json:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    return resp


def _http_authority(*responses, threshold=5):
    session = MagicMock()
    session.headers = {}
    session.post.side_effect = list(responses)
    authority = HttpValidationAuthority(
        api_url=API_URL,
        media_type="MOVIE",
        rate_limiter=AdaptiveRateLimiter(rate_per_second=1000),
        circuit_breaker=CircuitBreaker(
            "test", CircuitBreakerConfig(failure_threshold=threshold)
        ),
        session=session,
    )
    return authority, session


# ============================================================================
# HTTP authority
# ============================================================================


def test_http_validated_response():
    authority, session = _http_authority(
        _response(body={"validated": True, "title": "The Matrix", "confidence": "high"})
    )
    verdict = authority.validate("the matrix")
    assert verdict.validated is True
    assert verdict.canonical_title == "The Matrix"
    assert verdict.confidence is Confidence.HIGH
    session.post.assert_called_once_with(
        API_URL, json={"title": "the matrix", "mediaType": "MOVIE"}, timeout=15
    )


def test_http_rejected_response():
    authority, _ = _http_authority(_response(body={"validated": False}))
    verdict = authority.validate("good one")
    assert verdict.validated is False
    assert verdict.canonical_title is None


def test_http_unknown_confidence_defaults_low():
    authority, _ = _http_authority(
        _response(body={"validated": True, "title": "Heat", "confidence": "sure"})
    )
    assert authority.validate("heat").confidence is Confidence.LOW


def test_http_error_field_is_a_failure():
    authority, _ = _http_authority(
        _response(body={"validated": False, "error": "upstream timeout"})
    )
    with pytest.raises(ValidationUnavailableError):
        authority.validate("heat")


def test_http_malformed_bodies_are_failures():
    for body in [{"title": "Heat"}, ["validated"], {"validated": True}]:
        authority, _ = _http_authority(_response(body=body))
        with pytest.raises(ValidationUnavailableError):
            authority.validate("heat")

    authority, _ = _http_authority(_response(bad_json=True))
    with pytest.raises(ValidationUnavailableError):
        authority.validate("heat")


def test_http_server_error_status():
    authority, _ = _http_authority(_response(status=503))
    with pytest.raises(ValidationUnavailableError) as exc:
        authority.validate("heat")
    assert exc.value.status_code == 503


def test_http_429_slows_the_limiter():
    authority, _ = _http_authority(_response(status=429, headers={"Retry-After": "0"}))
    before = authority.rate_limiter.current_rate(API_URL)
    with pytest.raises(ValidationUnavailableError) as exc:
        authority.validate("heat")
    assert exc.value.status_code == 429
    assert authority.rate_limiter.current_rate(API_URL) < before


def test_http_network_error():
    authority, _ = _http_authority(requests.ConnectionError("refused"))
    with pytest.raises(ValidationUnavailableError):
        authority.validate("heat")


def test_http_circuit_opens_after_repeated_failures():
    authority, session = _http_authority(
        _response(status=500), _response(status=500), threshold=2
    )
    for _ in range(2):
        with pytest.raises(ValidationUnavailableError):
            authority.validate("heat")
    with pytest.raises(CircuitBreakerOpenError):
        authority.validate("heat")
    assert session.post.call_count == 2


def test_http_token_header():
    session = MagicMock()
    session.headers = {}
    HttpValidationAuthority(API_URL, api_token="secret", session=session)
    assert session.headers["Authorization"] == "Bearer secret"


# ============================================================================
# List and static authorities
# ============================================================================


def test_list_authority_matching():
    authority = ListValidationAuthority(
        ["# favourites", "The Godfather Part II", "", "Up", "Heat"]
    )
    assert len(authority) == 3
    assert authority.validate("the godfather").canonical_title == "The Godfather Part II"
    assert authority.validate("HEAT!").canonical_title == "Heat"
    assert authority.validate("Up").canonical_title == "Up"
    # Short candidates need an exact match
    assert authority.validate("he").validated is False
    assert authority.validate("Casablanca").validated is False


def test_list_authority_from_file(tmp_path):
    path = tmp_path / "answers.txt"
    path.write_text("Alien\nAliens\n", encoding="utf-8")
    authority = ListValidationAuthority.from_file(path)
    assert authority.validate("alien").canonical_title == "Alien"
    with pytest.raises(ConfigurationError):
        ListValidationAuthority.from_file(tmp_path / "missing.txt")


def test_static_authority(tmp_path):
    path = tmp_path / "titles.json"
    path.write_text(json.dumps({"godfather": "The Godfather"}), encoding="utf-8")
    authority = StaticValidationAuthority.from_json(path)
    assert authority.validate("Godfather!").canonical_title == "The Godfather"
    assert authority.validate("Scarface").validated is False
    assert authority.calls == ["Godfather!", "Scarface"]


def test_static_authority_bad_file(tmp_path):
    path = tmp_path / "titles.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        StaticValidationAuthority.from_json(path)


# ============================================================================
# Factory
# ============================================================================


def test_factory_builds_each_authority(tmp_path, monkeypatch):
    from config import Config

    monkeypatch.setattr(Config, "VALIDATION_LIST_FILE", "")
    answers = tmp_path / "answers.txt"
    answers.write_text("Heat\n", encoding="utf-8")

    assert isinstance(
        get_validation_authority("http", api_url=API_URL), HttpValidationAuthority
    )
    assert isinstance(
        get_validation_authority("list", list_file=str(answers)),
        ListValidationAuthority,
    )
    assert isinstance(get_validation_authority("static"), StaticValidationAuthority)
    assert isinstance(get_validation_authority("self"), SelfValidatedAuthority)


def test_factory_errors(monkeypatch):
    from config import Config

    monkeypatch.setattr(Config, "VALIDATION_API_URL", "")
    monkeypatch.setattr(Config, "VALIDATION_LIST_FILE", "")
    with pytest.raises(ConfigurationError):
        get_validation_authority("carrier-pigeon")
    with pytest.raises(ConfigurationError):
        get_validation_authority("http")
    with pytest.raises(ConfigurationError):
        get_validation_authority("list")


def test_available_authorities():
    assert set(list_available_authorities()) == {"http", "list", "static", "self"}


def test_category_words_from_prompt():
    assert extract_category_words("What's your favorite movie?") == ["movie"]
    assert extract_category_words("share your favorite board game") == ["board", "game"]
    assert extract_category_words("your home river, so reskeet this") == ["river"]
    assert extract_category_words("hello world") == []


def test_self_authority_groups_thread_answers():
    authority = SelfValidatedAuthority()
    assert not authority.is_configured
    assert authority.validate("Jaws").validated is False

    authority.prepare(
        ["Jaws", "jaws", "The Jaws", "Movies", "Up", "My Home", "Honestly Though"],
        "What's your favorite movie?",
    )

    assert authority.is_configured
    verdict = authority.validate("THE JAWS")
    assert verdict.validated
    assert verdict.canonical_title == "Jaws"
    assert verdict.confidence is Confidence.MEDIUM
    for dropped in ("Movies", "Up", "My Home", "Honestly Though", "Heat"):
        assert authority.validate(dropped).validated is False


def test_self_authority_skips_long_candidates():
    authority = SelfValidatedAuthority()
    authority.prepare(["Heat and the city of angels in summer"], "Best film?")
    assert authority.validate("Heat and the city of angels in summer").validated is False


def test_self_authority_prefers_common_then_shortest_spelling():
    authority = SelfValidatedAuthority()
    authority.prepare(["Spider-Man", "Spiderman", "spiderman"], "your favorite hero")
    assert authority.validate("Spider-Man").canonical_title == "Spiderman"

    tie = SelfValidatedAuthority()
    tie.prepare(["Spider-Man", "Spiderman"], "your favorite hero")
    assert tie.validate("spiderman").canonical_title == "Spiderman"
