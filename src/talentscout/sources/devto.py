"""dev.to collector via the public Forem API.

Authors of recent top articles for each skill tag become candidates;
their tags and latest publication date stand in for skills and activity.

API docs: https://developers.forem.com/api/v1
"""

import logging
import re
from collections import Counter
from typing import Any

from talentscout.core.exceptions import SourceFetchError
from talentscout.core.models import RawCandidateRecord, SearchCriteria
from talentscout.utils.datetime import iso_to_datetime
from talentscout.utils.text import dedupe_terms

from .base import BaseSource, CollectionRun, SourceRegistry
from .skills import extract_skills

logger = logging.getLogger(__name__)

DEVTO_API_BASE = "https://dev.to/api"
ARTICLES_PER_AUTHOR = 10

_TAG_CLEAN = re.compile(r"[^a-z0-9]")


def skills_to_tags(terms: list[str], limit: int) -> list[str]:
    """dev.to tags are lower-case alphanumerics ("Node.js" -> "nodejs")."""
    tags = [_TAG_CLEAN.sub("", t.lower()) for t in terms]
    return dedupe_terms(t for t in tags if t)[:limit]


def build_record(
    profile: dict[str, Any],
    articles: list[dict[str, Any]],
    source: str,
) -> RawCandidateRecord | None:
    username = profile.get("username")
    if not username:
        return None

    tag_counts = Counter(tag.lower() for a in articles for tag in (a.get("tag_list") or []))
    summary = profile.get("summary") or None
    skills = dedupe_terms([tag for tag, _ in tag_counts.most_common()] + extract_skills(summary))
    published = [iso_to_datetime(a.get("published_at")) for a in articles]
    published = [p for p in published if p is not None]
    reactions = sum(a.get("public_reactions_count") or a.get("positive_reactions_count") or 0 for a in articles)
    return RawCandidateRecord(
        source=source,
        platform_id=username,
        name=profile.get("name") or username,
        location=profile.get("location") or None,
        avatar_url=profile.get("profile_image"),
        summary=summary,
        profile_url=f"https://dev.to/{username}",
        github_username=profile.get("github_username") or None,
        website_url=profile.get("website_url") or None,
        skills=skills[:12],
        stars=reactions,
        last_active=max(published) if published else None,
        rank_score=float(reactions),
    )


@SourceRegistry.register
class DevToSource(BaseSource):
    """Authors of recent popular dev.to articles."""

    source_name = "devto"

    @property
    def config(self):
        return self.settings.sources.devto

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def _collect_records(self, criteria: SearchCriteria, run: CollectionRun) -> None:
        tags = skills_to_tags(criteria.search_terms(), self.config.max_tags) or [None]
        cap = self.settings.collection.max_records_per_source

        for tag in tags:
            logger.info("[devto] Fetching top articles%s", f" tagged '{tag}'" if tag else "")
            for page in range(1, self.config.max_pages + 1):
                if len(run.records) >= cap:
                    break
                run.check_deadline()
                params: dict[str, Any] = {"per_page": self.config.per_page, "page": page, "top": self.config.top_days}
                if tag:
                    params["tag"] = tag
                articles = run.request_json("GET", f"{DEVTO_API_BASE}/articles", params=params)
                run.queries_run += 1
                articles = articles if isinstance(articles, list) else []
                run.total_found += len(articles)

                for article in articles:
                    if len(run.records) >= cap:
                        break
                    self._consider((article.get("user") or {}).get("username"), run)

                if len(articles) < self.config.per_page:
                    break

    def _consider(self, username: str | None, run: CollectionRun) -> None:
        if not username or username in run.seen_ids:
            return
        try:
            record = self._fetch_author(username, run)
        except SourceFetchError as e:
            logger.debug("[devto] Skipping %s: %s", username, e.message)
            run.seen_ids.add(username)
            return
        if record is None:
            run.seen_ids.add(username)
        else:
            run.add(record)
        run.pause()

    def _fetch_author(self, username: str, run: CollectionRun) -> RawCandidateRecord | None:
        profile = run.request_json("GET", f"{DEVTO_API_BASE}/users/by_username", params={"url": username})
        articles = run.request_json(
            "GET",
            f"{DEVTO_API_BASE}/articles",
            params={"username": username, "per_page": ARTICLES_PER_AUTHOR},
        )
        return build_record(profile, articles if isinstance(articles, list) else [], self.name)


__all__ = ["DevToSource", "build_record", "skills_to_tags"]
