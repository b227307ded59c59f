"""Web search collector via the Google Custom Search JSON API.

Boolean queries target profile pages (LinkedIn, GitHub, portfolios);
candidate fields are parsed out of the result title and snippet.

API docs: https://developers.google.com/custom-search/v1/reference/rest/v1/cse/list
"""

import logging
import re
from typing import Any

import requests

from talentscout.core.models import RawCandidateRecord, SearchCriteria
from talentscout.utils.text import extract_emails
from talentscout.utils.url import (
    URLValidationError,
    github_username_from_url,
    linkedin_slug_from_url,
    validate_url,
)

from .base import BaseSource, CollectionRun, SourceRegistry, default_rate_limit_check
from .skills import extract_skills

logger = logging.getLogger(__name__)

CUSTOM_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
RATE_LIMIT_REASONS = {"rateLimitExceeded", "dailyLimitExceeded", "userRateLimitExceeded"}
# The API serves at most 10 results per call and 100 per query
MAX_RESULTS_PER_PAGE = 10
MAX_RESULT_INDEX = 100

_TITLE_SPLIT = re.compile(r"\s+[-|–]\s+")
_NAME_RE = re.compile(r"^[A-Z][\w'.-]*(?:\s+[A-Z][\w'.-]*){1,3}$")
_LOCATION_RE = re.compile(
    r"(?:Location|Based in|Located in|lives in)[:\s]+([A-Z][A-Za-z .'-]+(?:,\s*[A-Z][A-Za-z .'-]+)?)",
)
_EXPERIENCE_RE = re.compile(r"(\d{1,2})\+?\s*(?:years?|yrs?)\b", re.IGNORECASE)
_JOB_PAGE_RE = re.compile(r"/(?:jobs?|careers?|hiring)(?:/|$)", re.IGNORECASE)

# Trailing site names in result titles
_SITE_SUFFIXES = ("linkedin", "github", "medium", "dev community", "stack overflow")


def build_search_queries(criteria: SearchCriteria, max_queries: int = 3) -> list[str]:
    """Boolean queries targeting profile pages."""
    focus = (criteria.role_types or criteria.skills or [criteria.query])[0]
    location = f' "{criteria.location}"' if criteria.location else ""
    queries = [
        f'site:linkedin.com/in "{focus}"{location}',
        f'site:github.com "{focus}"{location}',
        f'"{focus}" portfolio resume{location} -jobs -hiring',
        f'"{criteria.query}" software engineer profile about{location} -jobs -hiring',
    ]
    return queries[:max_queries]


def parse_result_title(title: str) -> tuple[str | None, str | None]:
    """Split "Jane Doe - Senior Engineer - Acme | LinkedIn" into name and title."""
    parts = [p.strip() for p in _TITLE_SPLIT.split(title or "") if p.strip()]
    parts = [p for p in parts if p.lower() not in _SITE_SUFFIXES]
    if not parts:
        return None, None
    name = parts[0] if _NAME_RE.match(parts[0]) else None
    job_title = parts[1] if name and len(parts) > 1 else None
    return name, job_title


def parse_search_item(item: dict[str, Any], source: str, rank: float) -> RawCandidateRecord | None:
    """Turn one search hit into a record, or None for non-profile pages."""
    link = item.get("link") or ""
    try:
        link = validate_url(link)
    except URLValidationError as e:
        logger.debug("[google] Dropping result link: %s", e)
        return None
    if _JOB_PAGE_RE.search(link):
        return None

    title = item.get("title") or ""
    snippet = " ".join((item.get("snippet") or "").split())
    name, job_title = parse_result_title(title)
    github_username = github_username_from_url(link)
    linkedin_slug = linkedin_slug_from_url(link)
    if not (name or github_username or linkedin_slug):
        return None

    location_match = _LOCATION_RE.search(snippet)
    experience_match = _EXPERIENCE_RE.search(snippet)
    emails = extract_emails(snippet)
    return RawCandidateRecord(
        source=source,
        platform_id=link.rstrip("/").lower(),
        name=name or github_username,
        title=job_title,
        location=location_match.group(1).strip(" .") if location_match else None,
        email=emails[0] if emails else None,
        summary=snippet or None,
        profile_url=link,
        github_username=github_username,
        linkedin_url=f"https://www.linkedin.com/in/{linkedin_slug}" if linkedin_slug else None,
        website_url=None if (github_username or linkedin_slug) else link,
        skills=extract_skills(title, snippet),
        experience_years=float(min(int(experience_match.group(1)), 40)) if experience_match else None,
        rank_score=rank,
    )


@SourceRegistry.register
class GoogleSearchSource(BaseSource):
    """Profile pages discovered through web search."""

    source_name = "google"

    @property
    def config(self):
        return self.settings.sources.google

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def configured(self) -> bool:
        return self.config.configured

    def is_rate_limited(self, response: requests.Response) -> bool:
        if default_rate_limit_check(response):
            return True
        if response.status_code != 403:
            return False
        try:
            errors = response.json().get("error", {}).get("errors", [])
        except ValueError:
            return False
        return any(e.get("reason") in RATE_LIMIT_REASONS for e in errors)

    def _collect_records(self, criteria: SearchCriteria, run: CollectionRun) -> None:
        queries = build_search_queries(criteria, self.config.max_queries)
        logger.info("[google] Running %d profile searches", len(queries))
        cap = self.settings.collection.max_records_per_source

        num = min(self.config.results_per_query, MAX_RESULTS_PER_PAGE)
        slots = num * self.config.max_pages
        for query in queries:
            start = 1
            while start - 1 < slots and start + num - 1 <= MAX_RESULT_INDEX and len(run.records) < cap:
                run.check_deadline()
                data = run.request_json(
                    "GET",
                    CUSTOM_SEARCH_URL,
                    params={
                        "key": self.config.api_key,
                        "cx": self.config.cse_id,
                        "q": query,
                        "num": num,
                        "start": start,
                    },
                )
                run.queries_run += 1
                if start == 1:
                    info = data.get("searchInformation") or {}
                    try:
                        run.total_found += int(info.get("totalResults") or 0)
                    except (TypeError, ValueError):
                        pass

                items = data.get("items") or []
                for position, item in enumerate(items, start=start - 1):
                    if len(run.records) >= cap:
                        break
                    run.add(parse_search_item(item, self.name, rank=float(slots - position)))
                run.pause()

                if len(items) < num or not (data.get("queries") or {}).get("nextPage"):
                    break
                start += num


__all__ = ["GoogleSearchSource", "build_search_queries", "parse_search_item", "parse_result_title"]
