"""Text normalization helpers shared by collectors, dedupe and scoring."""

import re
import unicodedata

_TERM_PUNCT = re.compile(r"[^a-z0-9+#]+")
_WHITESPACE = re.compile(r"\s+")
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Email local parts/domains that are never a real person
EXCLUDED_EMAIL_FRAGMENTS = ("noreply", "no-reply", "example.", "test@", "github.com")


def strip_accents(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def normalize_name(name: str | None) -> str:
    """Lower-case, accent-free, single-spaced name."""
    if not name:
        return ""
    value = strip_accents(name).lower()
    value = re.sub(r"[^a-z0-9\s]", " ", value)
    return _WHITESPACE.sub(" ", value).strip()


def normalize_location(location: str | None) -> str:
    if not location:
        return ""
    value = strip_accents(location).lower()
    value = re.sub(r"[^a-z0-9,\s]", " ", value)
    return _WHITESPACE.sub(" ", value).strip(" ,")


def location_tokens(location: str | None) -> set[str]:
    """Comparable tokens of a location string ("New York, NY" -> {new, york, ny})."""
    return {tok for tok in re.split(r"[\s,]+", normalize_location(location)) if tok}


def normalize_term(term: str | None) -> str:
    """Punctuation-insensitive comparison form ("Node.js" -> "nodejs", "C++" stays "c++")."""
    if not term:
        return ""
    return _TERM_PUNCT.sub("", term.lower())


def contains_term(needle: str | None, haystack: str | None) -> bool:
    """Whole-token containment, so "react" is in "react native" but "java" is not in "javascript"."""
    needle = _TERM_PUNCT.sub(" ", (needle or "").lower()).strip()
    haystack = _TERM_PUNCT.sub(" ", (haystack or "").lower()).strip()
    if not needle or not haystack:
        return False
    return re.search(rf"(?<![a-z0-9+#]){re.escape(needle)}(?![a-z0-9+#])", haystack) is not None


def dedupe_terms(terms) -> list[str]:
    """Case-insensitive de-duplication keeping first-seen casing and order."""
    seen: set[str] = set()
    result: list[str] = []
    for term in terms:
        if not term:
            continue
        key = term.strip().lower()
        if key and key not in seen:
            seen.add(key)
            result.append(term.strip())
    return result


def extract_emails(text: str | None) -> list[str]:
    """Find plausible personal emails in free text."""
    if not text:
        return []
    found = []
    for match in _EMAIL_RE.findall(text):
        lowered = match.lower()
        if any(fragment in lowered for fragment in EXCLUDED_EMAIL_FRAGMENTS):
            continue
        if lowered not in found:
            found.append(lowered)
    return found


__all__ = [
    "normalize_name",
    "normalize_location",
    "location_tokens",
    "normalize_term",
    "contains_term",
    "dedupe_terms",
    "extract_emails",
]
