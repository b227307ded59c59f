"""GitHub collector via the REST v3 user search API.

Search results only carry logins, so each hit is enriched with the user
record and the user's repositories before it becomes a candidate.

API docs: https://docs.github.com/en/rest/search/search#search-users
"""

import base64
import binascii
import logging
from collections import Counter
from datetime import datetime
from typing import Any

from talentscout.core.exceptions import SourceFetchError
from talentscout.core.models import RawCandidateRecord, SearchCriteria
from talentscout.utils.datetime import days_since, iso_to_datetime, utc_now
from talentscout.utils.text import dedupe_terms, extract_emails
from talentscout.utils.url import is_safe_url

from .base import BaseSource, CollectionRun, SourceRegistry
from .skills import extract_skills, languages_in, matching_stacks

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
MIN_ACCOUNT_AGE_DAYS = 30
MAX_SKILLS = 12


def build_search_queries(criteria: SearchCriteria, max_queries: int = 4) -> list[str]:
    """Build GitHub user-search queries from the criteria.

    Strategies in order: language-based, technology-stack-based,
    role-based, then a catch-all fallback when none of them apply.
    """
    terms = criteria.search_terms()
    location = f'location:"{criteria.location}"' if criteria.location else ""
    queries: list[str] = []

    languages = languages_in(terms)
    others = [t for t in terms if t.lower() not in languages]
    for lang in languages[:2]:
        if location:
            queries.append(f"language:{lang} {location} repos:>=5 followers:>=10")
        if others:
            extra = " ".join(others[:2])
            queries.append(f"language:{lang} {extra} repos:>=3 followers:>=5")
        elif not location:
            queries.append(f"language:{lang} repos:>=5 followers:>=10")

    for stack in matching_stacks(terms)[:1]:
        queries.append(f"{' '.join(stack)} in:bio {location} repos:>=3")

    if criteria.role_types:
        roles = " OR ".join(criteria.role_types[:2])
        queries.append(f"{roles} in:bio {location} repos:>=5 followers:>=10")

    if not queries:
        queries.append(f"{criteria.query or 'developer'} in:bio,name type:user repos:>=2 {location}")

    cleaned = dedupe_terms(" ".join(q.split()) for q in queries)
    return cleaned[:max_queries]


def validate_github_user(user: dict[str, Any], now: datetime | None = None) -> str | None:
    """Return the reason a GitHub account is not a candidate, or None."""
    if user.get("type") != "User":
        return "not a user account"
    if user.get("site_admin"):
        return "site admin"
    repos = user.get("public_repos") or 0
    if repos <= 0:
        return "no public repositories"
    age = days_since(iso_to_datetime(user.get("created_at")), now)
    if age is not None and age < MIN_ACCOUNT_AGE_DAYS:
        return "account too new"
    followers = user.get("followers") or 0
    following = user.get("following") or 0
    if followers > 1000 and repos < 5:
        return "suspicious follower pattern"
    if following > 2000 and followers < 100:
        return "suspicious following pattern"
    return None


def estimate_experience(user: dict[str, Any], repos: list[dict[str, Any]], now: datetime | None = None) -> float:
    """Years of experience from account age, active repositories and stars, within 1-15."""
    now = now or utc_now()
    age_days = days_since(iso_to_datetime(user.get("created_at")), now) or 0
    years = age_days / 365
    active = sum(1 for r in repos if (days_since(iso_to_datetime(r.get("pushed_at")), now) or 9999) <= 365)
    stars = sum(r.get("stargazers_count") or 0 for r in repos)
    if active >= 10:
        years += 1
    if stars >= 100:
        years += 1
    return float(max(1, min(15, round(years, 1))))


def extract_repo_skills(user: dict[str, Any], repos: list[dict[str, Any]]) -> list[str]:
    """Skills from repository languages (most used first), topics and text."""
    languages = Counter(r["language"].lower() for r in repos if r.get("language"))
    topics = [topic for r in repos for topic in (r.get("topics") or [])]
    text_skills = extract_skills(
        user.get("bio"),
        *(f"{r.get('name', '')} {r.get('description') or ''}" for r in repos),
    )
    ordered = [lang for lang, _ in languages.most_common()] + text_skills + topics
    return dedupe_terms(ordered)[:MAX_SKILLS]


@SourceRegistry.register
class GitHubSource(BaseSource):
    """Developers found through GitHub user search."""

    source_name = "github"

    @property
    def config(self):
        return self.settings.sources.github

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def default_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def _collect_records(self, criteria: SearchCriteria, run: CollectionRun) -> None:
        queries = build_search_queries(criteria, self.config.max_queries)
        logger.info("[github] Running %d search strategies", len(queries))
        cap = self.settings.collection.max_records_per_source

        for query in queries:
            logger.debug("[github] Query: %s", query)
            page = 1
            while page <= self.config.max_pages and len(run.records) < cap:
                run.check_deadline()
                data = run.request_json(
                    "GET",
                    f"{GITHUB_API_BASE}/search/users",
                    params={
                        "q": query,
                        "per_page": self.config.per_page,
                        "page": page,
                        "sort": "followers",
                        "order": "desc",
                    },
                )
                run.queries_run += 1
                total = int(data.get("total_count") or 0)
                if page == 1:
                    run.total_found += total

                items = data.get("items") or []
                for item in items:
                    if len(run.records) >= cap:
                        break
                    self._consider(item.get("login"), run)

                if len(items) < self.config.per_page or page * self.config.per_page >= total:
                    break
                page += 1

    def _consider(self, login: str | None, run: CollectionRun) -> None:
        if not login or login in run.seen_ids:
            return
        try:
            record = self._build_record(login, run)
        except SourceFetchError as e:
            logger.debug("[github] Skipping %s: %s", login, e.message)
            run.seen_ids.add(login)
            return
        if record is None:
            run.seen_ids.add(login)
        else:
            run.add(record)
        run.pause()

    def _build_record(self, login: str, run: CollectionRun) -> RawCandidateRecord | None:
        user = run.request_json("GET", f"{GITHUB_API_BASE}/users/{login}")
        reason = validate_github_user(user)
        if reason:
            logger.debug("[github] Rejected %s: %s", login, reason)
            return None

        repos = run.request_json(
            "GET",
            f"{GITHUB_API_BASE}/users/{login}/repos",
            params={"sort": "updated", "per_page": self.config.repos_per_user},
        )
        own_repos = [r for r in repos or [] if not r.get("fork")]

        email = user.get("email") or self._readme_email(login, run)
        stars = sum(r.get("stargazers_count") or 0 for r in own_repos)
        activity = [iso_to_datetime(user.get("updated_at"))]
        activity.extend(iso_to_datetime(r.get("pushed_at")) for r in own_repos)
        known = [a for a in activity if a is not None]

        blog = (user.get("blog") or "").strip()
        if blog and "://" not in blog:
            blog = f"https://{blog}"

        followers = user.get("followers") or 0
        return RawCandidateRecord(
            source=self.name,
            platform_id=login,
            name=user.get("name") or login,
            title=f"Developer at {user['company'].lstrip('@')}" if user.get("company") else None,
            location=user.get("location"),
            avatar_url=user.get("avatar_url"),
            email=email,
            summary=user.get("bio"),
            profile_url=user.get("html_url") or f"https://github.com/{login}",
            github_username=login,
            website_url=blog if is_safe_url(blog) else None,
            skills=extract_repo_skills(user, own_repos),
            experience_years=estimate_experience(user, own_repos),
            followers=followers,
            stars=stars,
            repo_count=user.get("public_repos") or 0,
            last_active=max(known) if known else None,
            rank_score=followers + stars * 0.5 + (user.get("public_repos") or 0),
        )

    def _readme_email(self, login: str, run: CollectionRun) -> str | None:
        """Look for a contact address in the user's profile README."""
        try:
            data = run.request_json("GET", f"{GITHUB_API_BASE}/repos/{login}/{login}/readme")
        except SourceFetchError:
            return None
        content = data.get("content") if isinstance(data, dict) else None
        if not content:
            return None
        try:
            text = base64.b64decode(content).decode("utf-8", errors="ignore")
        except (binascii.Error, ValueError):
            return None
        emails = extract_emails(text)
        return emails[0] if emails else None


__all__ = ["GitHubSource", "build_search_queries", "validate_github_user", "estimate_experience"]
