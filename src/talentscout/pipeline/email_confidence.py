"""Email trustworthiness heuristics."""

import logging
import re

from talentscout.core.models import CanonicalProfile, EmailConfidence
from talentscout.utils.text import normalize_name

logger = logging.getLogger(__name__)

# Matched anywhere in the local part ("newsletter-unsubscribe")
MAILING_LIST_RE = re.compile(
    r"subscribe|no-?reply|do-?not-?reply|mailer-daemon|postmaster|notifications?|(?:^|[._+-])lists?(?:[._+-]|$)",
    re.IGNORECASE,
)

# Shared role inboxes rather than a person
ROLE_INBOX_RE = re.compile(
    r"^(?:info|support|admin|contact|hello|team|sales|jobs|careers|hr|office|help)(?:[._+-].*)?$",
    re.IGNORECASE,
)

PERSONAL_DOMAINS = frozenset({
    "gmail.com",
    "googlemail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "live.com",
    "icloud.com",
    "me.com",
    "protonmail.com",
    "proton.me",
})

# Large companies whose addresses are usually shared or role inboxes
GENERIC_COMPANY_DOMAINS = frozenset({
    "microsoft.com",
    "google.com",
    "amazon.com",
    "meta.com",
    "facebook.com",
    "apple.com",
})

# Leading characters of each name word that must appear in the local part
NAME_PREFIX_LENGTH = 3


def _name_fragments(profile: CanonicalProfile | None) -> list[str]:
    if profile is None:
        return []
    fragments = [word[:NAME_PREFIX_LENGTH] for word in normalize_name(profile.name).split()]
    if profile.github_username:
        fragments.append(profile.github_username.lower())
    return [f for f in fragments if len(f) >= NAME_PREFIX_LENGTH]


def classify_email(
    email: str | None,
    source_platform: str | None = None,
    profile: CanonicalProfile | None = None,
) -> EmailConfidence:
    """Score how likely an address reaches the person directly.

    Args:
        email: Address to classify.
        source_platform: Platform the address was collected from.
        profile: Profile used to match name fragments in the local part.

    Returns:
        EmailConfidence with score 0-100, level and type.
    """
    if not email or "@" not in email:
        return EmailConfidence(score=0, level="low", type="generic")

    local, _, domain = email.strip().lower().rpartition("@")
    if not local or not domain or "." not in domain:
        return EmailConfidence(score=50, level="medium", type="generic")

    if MAILING_LIST_RE.search(local) or "noreply" in domain:
        logger.debug("Mailing-list address from %s: %s", source_platform or "unknown source", email)
        return EmailConfidence(score=20, level="low", type="mailing_list")

    if ROLE_INBOX_RE.match(local):
        return EmailConfidence(score=40, level="low", type="generic")

    if domain in PERSONAL_DOMAINS:
        compact = re.sub(r"[^a-z0-9]", "", local)
        if any(fragment in compact for fragment in _name_fragments(profile)):
            return EmailConfidence(score=95, level="high", type="personal")
        return EmailConfidence(score=75, level="medium", type="personal")

    if domain in GENERIC_COMPANY_DOMAINS:
        return EmailConfidence(score=40, level="low", type="generic")

    return EmailConfidence(score=85, level="high", type="work")


__all__ = ["classify_email", "PERSONAL_DOMAINS", "GENERIC_COMPANY_DOMAINS"]
