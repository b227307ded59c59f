"""Shared constants."""

DEFAULT_HTTP_TIMEOUT = 15
USER_AGENT = "TalentScout/0.1 (candidate sourcing pipeline)"

# Error strings recorded in SourceOutcome.error
TIMEOUT_ERROR = "timeout"
UNKNOWN_SOURCE_ERROR = "unknown source"
DISABLED_SOURCE_ERROR = "disabled"
SOURCE_LIMIT_ERROR = "source limit exceeded"
NOT_CONFIGURED_ERROR = "not configured"

# Candidate validity screen
ACTIVITY_WINDOW_DAYS = 365
MIN_BIO_LENGTH = 20

DEFAULT_SOURCES = ("github", "stackoverflow", "google", "linkedin")
