"""LinkedIn collector through an Apify people-search actor.

The actor runs asynchronously: start a run, poll its status until it
succeeds, then read the run's dataset. Polling stops at the deadline.

API docs: https://docs.apify.com/api/v2
"""

import logging
import re
from typing import Any

from talentscout.core.exceptions import SourceFetchError
from talentscout.core.models import RawCandidateRecord, SearchCriteria
from talentscout.utils.datetime import iso_to_datetime
from talentscout.utils.text import dedupe_terms
from talentscout.utils.url import linkedin_slug_from_url

from .base import BaseSource, CollectionRun, SourceRegistry
from .skills import extract_skills

logger = logging.getLogger(__name__)

APIFY_API_BASE = "https://api.apify.com/v2"
MAX_EXPERIENCE_YEARS = 20.0
FAILED_STATUSES = {"FAILED", "ABORTED", "TIMED-OUT"}

_YEARS_RE = re.compile(r"(\d+)\s*yrs?\b")
_MONTHS_RE = re.compile(r"(\d+)\s*mos?\b")


def parse_duration_years(duration: str | None) -> float:
    """Years in a LinkedIn duration string such as "2 yrs 6 mos"."""
    if not duration:
        return 0.0
    years = _YEARS_RE.search(duration)
    months = _MONTHS_RE.search(duration)
    total = (int(years.group(1)) if years else 0) + (int(months.group(1)) / 12 if months else 0)
    return min(total, MAX_EXPERIENCE_YEARS)


def total_experience_years(experience: list[dict[str, Any]] | None) -> float | None:
    """Sum of position durations, capped at 20 years; None if nothing parsed."""
    if not experience:
        return None
    total = sum(parse_duration_years(item.get("duration")) for item in experience)
    if total <= 0:
        return None
    return round(min(total, MAX_EXPERIENCE_YEARS), 1)


def build_search_keywords(criteria: SearchCriteria) -> str:
    parts = [*criteria.role_types[:1], *criteria.skills[:3]] or [criteria.query]
    return " ".join(parts)


def parse_profile(item: dict[str, Any], source: str, rank: float) -> RawCandidateRecord | None:
    """Map one actor dataset item onto a record."""
    profile_url = item.get("profileUrl") or item.get("url") or ""
    slug = linkedin_slug_from_url(profile_url)
    name = item.get("fullName") or item.get("name")
    if not slug or not name:
        return None

    headline = item.get("headline") or item.get("title")
    summary = item.get("summary") or item.get("about")
    experience = item.get("experience") or []
    skills = dedupe_terms([*(item.get("skills") or []), *extract_skills(headline, summary)])
    connections = item.get("connectionsCount") or item.get("connections") or 0
    return RawCandidateRecord(
        source=source,
        platform_id=slug,
        name=name,
        title=headline,
        location=item.get("location") or None,
        avatar_url=item.get("photoUrl") or item.get("profilePictureUrl"),
        email=item.get("email"),
        summary=summary or None,
        profile_url=f"https://www.linkedin.com/in/{slug}",
        linkedin_url=f"https://www.linkedin.com/in/{slug}",
        skills=skills,
        experience_years=total_experience_years(experience),
        followers=int(connections),
        last_active=iso_to_datetime(item.get("lastActivity") or item.get("updatedAt")),
        rank_score=rank,
    )


@SourceRegistry.register
class LinkedInSource(BaseSource):
    """Professional-network profiles scraped by an Apify actor."""

    source_name = "linkedin"

    @property
    def config(self):
        return self.settings.sources.linkedin

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def configured(self) -> bool:
        return self.config.configured

    def default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.config.apify_token}",
        }

    def _collect_records(self, criteria: SearchCriteria, run: CollectionRun) -> None:
        actor_url = f"{APIFY_API_BASE}/acts/{self.config.actor}"
        keywords = build_search_keywords(criteria)
        logger.info("[linkedin] Starting Apify run for '%s'", keywords)

        started = run.request_json(
            "POST",
            f"{actor_url}/runs",
            json={
                "searchKeywords": keywords,
                "location": criteria.location or "",
                "maxResults": self.config.max_profiles,
                "includePrivateProfiles": False,
            },
        )
        run.queries_run += 1
        run_id = (started.get("data") or {}).get("id")
        if not run_id:
            raise SourceFetchError(self.name, "Apify run did not return an id")

        while True:
            run.pause(self.config.poll_interval_s)
            run.check_deadline()
            status_data = run.request_json("GET", f"{actor_url}/runs/{run_id}")
            status = (status_data.get("data") or {}).get("status")
            logger.debug("[linkedin] Run %s status: %s", run_id, status)
            if status == "SUCCEEDED":
                break
            if status in FAILED_STATUSES:
                raise SourceFetchError(self.name, f"Apify run {status.lower()}")

        items = run.request_json("GET", f"{actor_url}/runs/{run_id}/dataset/items")
        items = items if isinstance(items, list) else []
        run.total_found += len(items)
        cap = self.settings.collection.max_records_per_source
        for position, item in enumerate(items):
            if len(run.records) >= cap:
                break
            run.add(parse_profile(item, self.name, rank=float(len(items) - position)))


__all__ = ["LinkedInSource", "parse_profile", "parse_duration_years", "total_experience_years"]
