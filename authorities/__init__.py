"""Validation authority package - pluggable backends for candidate validation.

Switch authority via the VALIDATION_AUTHORITY environment variable.
"""

from .base import AuthorityVerdict, ValidationAuthority
from .factory import get_validation_authority, list_available_authorities
from .http_api import HttpValidationAuthority
from .list_match import ListValidationAuthority
from .self_validated import SelfValidatedAuthority
from .static import StaticValidationAuthority

__all__ = [
    "AuthorityVerdict",
    "ValidationAuthority",
    "HttpValidationAuthority",
    "ListValidationAuthority",
    "SelfValidatedAuthority",
    "StaticValidationAuthority",
    "get_validation_authority",
    "list_available_authorities",
]
