"""Stack Overflow collector via the Stack Exchange API 2.3.

Candidates are the all-time top answerers of tags mapped from the
requested skills. Text fields come back HTML-escaped.

API docs: https://api.stackexchange.com/docs
"""

import html
import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

import requests

from talentscout.core.exceptions import RateLimitError, SourceFetchError
from talentscout.core.models import RawCandidateRecord, SearchCriteria
from talentscout.utils.datetime import days_since, epoch_to_datetime

from .base import BaseSource, CollectionRun, SourceRegistry, default_rate_limit_check
from .skills import map_skills_to_tags

logger = logging.getLogger(__name__)

STACKEXCHANGE_API_BASE = "https://api.stackexchange.com/2.3"
MIN_REPUTATION = 25
MIN_ACCOUNT_AGE_DAYS = 7
THROTTLE_ERROR_IDS = {502}
VALID_USER_TYPES = {"registered", "moderator"}
# /users/{ids} accepts at most 100 ids
MAX_IDS_PER_REQUEST = 100


def validate_stackoverflow_user(user: dict[str, Any], post_count: int, now: datetime | None = None) -> str | None:
    """Return the reason a Stack Overflow account is not a candidate, or None."""
    if user.get("user_type") not in VALID_USER_TYPES:
        return "unregistered account"
    if (user.get("reputation") or 0) < MIN_REPUTATION:
        return "reputation too low"
    age = days_since(epoch_to_datetime(user.get("creation_date")), now)
    if age is not None and age < MIN_ACCOUNT_AGE_DAYS:
        return "account too new"
    if post_count <= 0:
        return "no answers or questions"
    return None


@SourceRegistry.register
class StackOverflowSource(BaseSource):
    """Top answerers for the tags behind the requested skills."""

    source_name = "stackoverflow"

    @property
    def config(self):
        return self.settings.sources.stackoverflow

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def is_rate_limited(self, response: requests.Response) -> bool:
        if default_rate_limit_check(response):
            return True
        if response.status_code != 400:
            return False
        try:
            body = response.json()
        except ValueError:
            return False
        return body.get("error_id") in THROTTLE_ERROR_IDS or body.get("error_name") == "throttle_violation"

    def _params(self, **extra: Any) -> dict[str, Any]:
        params = {"site": self.config.site, **extra}
        if self.config.key:
            params["key"] = self.config.key
        return params

    def _get(self, run: CollectionRun, path: str, **params: Any) -> dict[str, Any]:
        data = run.request_json("GET", f"{STACKEXCHANGE_API_BASE}{path}", params=self._params(**params))
        if data.get("quota_remaining") == 0:
            raise RateLimitError(self.name, "Daily quota exhausted")
        backoff = data.get("backoff")
        if backoff:
            # The API asks clients to wait before repeating the same method
            logger.info("[stackoverflow] Backing off %ss", backoff)
            run.pause(float(backoff))
        return data

    def _collect_records(self, criteria: SearchCriteria, run: CollectionRun) -> None:
        tags = map_skills_to_tags(criteria.search_terms())[: self.config.max_tags]
        logger.info("[stackoverflow] Searching top answerers for tags: %s", ", ".join(tags))
        cap = self.settings.collection.max_records_per_source

        answerers: dict[int, dict[str, Any]] = {}
        failures: list[SourceFetchError] = []
        for tag in tags:
            try:
                items = self._top_answerers(run, tag)
            except SourceFetchError as e:
                # Unknown tags answer 4xx; other tags may still work
                logger.debug("[stackoverflow] Tag '%s' failed: %s", tag, e.message)
                failures.append(e)
                continue
            run.total_found += len(items)
            for item in items:
                user = item.get("user") or {}
                user_id = user.get("user_id")
                if user_id is None or user_id in answerers:
                    continue
                answerers[user_id] = {"post_count": item.get("post_count") or 0, "score": item.get("score") or 0}
            run.pause()

        if failures and len(failures) == len(tags):
            raise failures[-1]
        if not answerers:
            return

        ids = list(answerers)[: min(MAX_IDS_PER_REQUEST, cap * 2)]
        data = self._get(run, f"/users/{';'.join(str(i) for i in ids)}", pagesize=len(ids), order="desc", sort="reputation")
        for user in data.get("items") or []:
            if len(run.records) >= cap:
                break
            user_id = user.get("user_id")
            stats = answerers.get(user_id, {"post_count": 0, "score": 0})
            reason = validate_stackoverflow_user(user, stats["post_count"])
            if reason:
                logger.debug("[stackoverflow] Rejected %s: %s", user_id, reason)
                run.seen_ids.add(str(user_id))
                continue
            try:
                skills = self._top_tags(run, user_id)
            except SourceFetchError as e:
                logger.debug("[stackoverflow] No top tags for %s: %s", user_id, e.message)
                skills = []
            run.add(self._build_record(user, skills, stats["score"]))
            run.pause()

    def _top_answerers(self, run: CollectionRun, tag: str) -> list[dict[str, Any]]:
        """Page through a tag's top answerers while the API reports more."""
        path = f"/tags/{quote(tag, safe='')}/top-answerers/all_time"
        items: list[dict[str, Any]] = []
        for page in range(1, self.config.max_pages + 1):
            run.check_deadline()
            try:
                data = self._get(run, path, page=page, pagesize=self.config.page_size)
            except SourceFetchError as e:
                if not items:
                    raise
                logger.debug("[stackoverflow] Stopped paging '%s' at page %d: %s", tag, page, e.message)
                break
            finally:
                run.queries_run += 1
            items.extend(data.get("items") or [])
            if not data.get("has_more"):
                break
            run.pause()
        return items

    def _top_tags(self, run: CollectionRun, user_id: int) -> list[str]:
        data = self._get(run, f"/users/{user_id}/top-tags", pagesize=10)
        return [item["tag_name"] for item in data.get("items") or [] if item.get("tag_name")]

    def _build_record(self, user: dict[str, Any], skills: list[str], answer_score: int) -> RawCandidateRecord:
        user_id = str(user["user_id"])
        created = epoch_to_datetime(user.get("creation_date"))
        age_days = days_since(created) or 0
        location = user.get("location")
        reputation = user.get("reputation") or 0
        return RawCandidateRecord(
            source=self.name,
            platform_id=user_id,
            name=html.unescape(user.get("display_name") or "") or None,
            location=html.unescape(location) if location else None,
            avatar_url=user.get("profile_image"),
            profile_url=user.get("link"),
            stackoverflow_id=user_id,
            website_url=user.get("website_url") or None,
            skills=skills,
            experience_years=float(max(1, min(15, round(age_days / 365, 1)))),
            reputation=reputation,
            last_active=epoch_to_datetime(user.get("last_access_date") or user.get("last_modified_date")),
            rank_score=answer_score + reputation / 1000,
        )


__all__ = ["StackOverflowSource", "validate_stackoverflow_user"]
