"""Shared utilities."""

from .datetime import days_since, ensure_isoformat, iso_to_datetime, utc_now
from .logging import setup_logging
from .text import dedupe_terms, normalize_location, normalize_name, normalize_term
from .url import URLValidationError, is_safe_url, validate_url

__all__ = [
    "setup_logging",
    "utc_now",
    "days_since",
    "ensure_isoformat",
    "iso_to_datetime",
    "dedupe_terms",
    "normalize_name",
    "normalize_location",
    "normalize_term",
    "validate_url",
    "is_safe_url",
    "URLValidationError",
]
