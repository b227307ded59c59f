"""URL validation and profile-link parsing."""

import ipaddress
import logging
import re
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# Allowed URL schemes
ALLOWED_SCHEMES = frozenset({"http", "https"})

# First path segments on github.com that are not user handles
_GITHUB_RESERVED = frozenset({
    "about", "apps", "collections", "enterprise", "events", "explore", "features",
    "marketplace", "orgs", "pricing", "search", "settings", "sponsors", "topics", "trending",
})

_GITHUB_LOGIN_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$")


class URLValidationError(ValueError):
    """Raised when URL validation fails."""

    pass


def is_private_host(hostname: str) -> bool:
    """Check if hostname is a literal private/internal address.

    No DNS lookup is made; only IP literals and localhost are rejected.
    """
    if hostname.lower() in {"localhost", "localhost.localdomain"}:
        return True
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
    )


def _matches_domain(hostname: str, domains: frozenset[str]) -> bool:
    hostname = hostname.lower()
    return any(hostname == d or hostname.endswith(f".{d}") for d in domains)


def validate_url(
    url: str,
    *,
    allow_private_ip: bool = False,
) -> str:
    """Validate a URL taken from third-party content.

    Args:
        url: URL to validate.
        allow_private_ip: Whether to allow private/internal hosts.

    Returns:
        The validated URL.

    Raises:
        URLValidationError: If URL is invalid or unsafe.
    """
    if not url:
        raise URLValidationError("Empty URL")

    try:
        parsed = urlparse(url.strip())
    except ValueError as e:
        raise URLValidationError(f"Invalid URL format: {e}") from e

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise URLValidationError(
            f"Invalid URL scheme '{scheme}'. Allowed: {', '.join(sorted(ALLOWED_SCHEMES))}"
        )

    hostname = parsed.hostname
    if not hostname:
        raise URLValidationError("URL missing hostname")

    if not allow_private_ip and is_private_host(hostname):
        raise URLValidationError(f"URL points to private/internal host: {hostname}")

    return url.strip()


def is_safe_url(
    url: str,
    *,
    allow_private_ip: bool = False,
) -> bool:
    """Check if URL passes validate_url."""
    try:
        validate_url(url, allow_private_ip=allow_private_ip)
        return True
    except URLValidationError:
        return False


def github_username_from_url(url: str | None) -> str | None:
    """Extract the user handle from a github.com profile or repo URL."""
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.hostname or not _matches_domain(parsed.hostname, frozenset({"github.com"})):
        return None
    parts = [p for p in parsed.path.split("/") if p]
    if not parts:
        return None
    login = parts[0]
    if login.lower() in _GITHUB_RESERVED or not _GITHUB_LOGIN_RE.match(login):
        return None
    return login


def linkedin_slug_from_url(url: str | None) -> str | None:
    """Extract the public profile slug from a linkedin.com/in/<slug> URL."""
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.hostname or not _matches_domain(parsed.hostname, frozenset({"linkedin.com"})):
        return None
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) >= 2 and parts[0] == "in":
        return parts[1].lower()
    return None


__all__ = [
    "URLValidationError",
    "validate_url",
    "is_safe_url",
    "is_private_host",
    "github_username_from_url",
    "linkedin_slug_from_url",
    "ALLOWED_SCHEMES",
]
