"""Collector contract, shared HTTP machinery and source registry."""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import requests

from talentscout.config.settings import Settings
from talentscout.core.constants import (
    ACTIVITY_WINDOW_DAYS,
    MIN_BIO_LENGTH,
    NOT_CONFIGURED_ERROR,
    TIMEOUT_ERROR,
    USER_AGENT,
)
from talentscout.core.exceptions import RateLimitError, SourceFetchError, SourceTimeoutError
from talentscout.core.models import RawCandidateRecord, SearchCriteria, SourceOutcome
from talentscout.utils.datetime import days_since

logger = logging.getLogger(__name__)

# Attempts per request: the first call plus one retry
MAX_ATTEMPTS = 2
# requests rejects a zero timeout
MIN_REQUEST_TIMEOUT = 0.1


class Deadline:
    """A point in monotonic time shared by every collector of one run."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.at = clock() + max(0.0, seconds)

    def remaining(self) -> float:
        return max(0.0, self.at - self._clock())

    def expired(self) -> bool:
        return self._clock() >= self.at


def is_viable_record(record: RawCandidateRecord, now: datetime | None = None) -> bool:
    """Screen out records that do not look like an active person.

    A record is viable with a non-trivial bio, at least one skill, or
    activity within the last year.
    """
    if record.summary and len(record.summary.strip()) > MIN_BIO_LENGTH:
        return True
    if record.skills:
        return True
    age = days_since(record.last_active, now)
    return age is not None and age <= ACTIVITY_WINDOW_DAYS


def default_rate_limit_check(response: requests.Response) -> bool:
    """HTTP 429, or 403 with an exhausted X-RateLimit-Remaining header."""
    if response.status_code == 429:
        return True
    if response.status_code == 403:
        return response.headers.get("X-RateLimit-Remaining") == "0"
    return False


@dataclass
class CollectionRun:
    """State owned by a single collector invocation.

    Never shared across sources; cross-source merging happens in dedupe.
    """

    source: str
    deadline: Deadline
    session: requests.Session
    http_timeout: float
    polite_delay: float = 0.0
    rate_limit_check: Callable[[requests.Response], bool] = default_rate_limit_check
    records: list[RawCandidateRecord] = field(default_factory=list)
    seen_ids: set[str] = field(default_factory=set)
    total_found: int = 0
    queries_run: int = 0
    rejected: int = 0

    def add(self, record: RawCandidateRecord | None) -> bool:
        """Keep a record unless already seen on this platform or not viable."""
        if record is None:
            return False
        if record.platform_id in self.seen_ids:
            return False
        self.seen_ids.add(record.platform_id)
        if not is_viable_record(record):
            self.rejected += 1
            logger.debug("[%s] Screened out %s (no bio, skills or recent activity)", self.source, record.platform_id)
            return False
        self.records.append(record)
        return True

    def check_deadline(self) -> None:
        if self.deadline.expired():
            raise SourceTimeoutError(self.source)

    def pause(self, seconds: float | None = None) -> None:
        """Polite delay between requests, never sleeping past the deadline."""
        delay = self.polite_delay if seconds is None else seconds
        delay = min(delay, self.deadline.remaining())
        if delay > 0:
            time.sleep(delay)

    def request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Issue a request bounded by the deadline and decode the JSON body.

        Retries once on network errors, timeouts, 408 and 5xx responses.

        Raises:
            RateLimitError: The platform signalled a rate limit.
            SourceTimeoutError: The deadline passed before a response arrived.
            SourceFetchError: The request failed after the retry.
        """
        last_error = "unknown error"
        for attempt in range(1, MAX_ATTEMPTS + 1):
            self.check_deadline()
            timeout = max(MIN_REQUEST_TIMEOUT, min(self.http_timeout, self.deadline.remaining()))
            try:
                resp = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=headers,
                    timeout=timeout,
                )
            except requests.exceptions.Timeout:
                last_error = f"Request timed out after {timeout:.1f}s"
                logger.debug("[%s] %s (attempt %d): %s", self.source, last_error, attempt, url)
                continue
            except requests.exceptions.RequestException as e:
                last_error = f"Network error: {type(e).__name__}"
                logger.debug("[%s] %s (attempt %d): %s", self.source, last_error, attempt, url)
                continue

            if self.rate_limit_check(resp):
                raise RateLimitError(self.source, f"Rate limited (HTTP {resp.status_code})")

            status = resp.status_code
            if status >= 400:
                last_error = f"HTTP {status} error"
                if status == 408 or status >= 500:
                    logger.debug("[%s] %s (attempt %d): %s", self.source, last_error, attempt, url)
                    continue
                raise SourceFetchError(self.source, last_error)

            try:
                return resp.json()
            except ValueError as e:
                raise SourceFetchError(self.source, "Invalid JSON response") from e

        self.check_deadline()
        raise SourceFetchError(self.source, last_error)


class BaseSource(ABC):
    """One collector per external platform.

    Subclasses set ``source_name`` and implement ``_collect_records``;
    ``collect`` turns whatever happens into a SourceOutcome.
    """

    source_name: str = ""

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.settings = settings
        self._session = session

    @property
    def name(self) -> str:
        return self.source_name

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether the source is switched on in configuration."""

    @property
    def configured(self) -> bool:
        """Whether required credentials are present."""
        return True

    def default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def is_rate_limited(self, response: requests.Response) -> bool:
        return default_rate_limit_check(response)

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({"User-Agent": USER_AGENT})
        session.headers.update(self.default_headers())
        return session

    def collect(self, criteria: SearchCriteria, deadline: Deadline) -> SourceOutcome:
        """Collect candidate records for ``criteria`` before ``deadline``.

        Never raises for source-level failures: rate limits yield a partial
        success, timeouts yield partial data (or the "timeout" error when
        nothing was gathered) and fetch errors are recorded on the outcome.
        """
        start = time.monotonic()
        if not self.configured:
            logger.warning("[%s] Missing credentials; skipping", self.name)
            return SourceOutcome(error=NOT_CONFIGURED_ERROR)

        owns_session = self._session is None
        session = self._session or self._create_session()
        collection = self.settings.collection
        run = CollectionRun(
            source=self.name,
            deadline=deadline,
            session=session,
            http_timeout=collection.http_timeout,
            polite_delay=collection.polite_delay_s,
            rate_limit_check=self.is_rate_limited,
        )
        error: str | None = None
        rate_limited = False

        try:
            self._collect_records(criteria, run)
        except RateLimitError as e:
            rate_limited = True
            logger.warning("%s; keeping %d records", e, len(run.records))
        except SourceTimeoutError:
            if not run.records:
                error = TIMEOUT_ERROR
            logger.warning("[%s] Deadline reached with %d records", self.name, len(run.records))
        except SourceFetchError as e:
            error = e.message
            logger.error("%s", e)
        except Exception as e:
            error = f"Unexpected error: {type(e).__name__}"
            logger.exception("[%s] Collector failed", self.name)
        finally:
            if owns_session:
                session.close()

        ranked = sorted(run.records, key=lambda r: r.rank_score, reverse=True)
        records = ranked[: collection.max_records_per_source]
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "[%s] %d records kept (%d found, %d screened out) in %dms",
            self.name,
            len(records),
            run.total_found,
            run.rejected,
            elapsed_ms,
        )
        return SourceOutcome(
            records=records,
            total_found=max(run.total_found, len(run.records)),
            error=error,
            elapsed_ms=elapsed_ms,
            rate_limited=rate_limited,
            queries_run=run.queries_run,
        )

    @abstractmethod
    def _collect_records(self, criteria: SearchCriteria, run: CollectionRun) -> None:
        """Query the platform and ``run.add`` every extracted record."""


class SourceRegistry:
    """Registry of collector classes keyed by source name."""

    _sources: dict[str, type[BaseSource]] = {}

    @classmethod
    def register(cls, source_cls: type[BaseSource]) -> type[BaseSource]:
        if not source_cls.source_name:
            raise ValueError(f"{source_cls.__name__} must define source_name")
        cls._sources[source_cls.source_name] = source_cls
        return source_cls

    @classmethod
    def get(cls, name: str) -> type[BaseSource] | None:
        return cls._sources.get(name)

    @classmethod
    def all_names(cls) -> list[str]:
        return sorted(cls._sources)

    @classmethod
    def create(
        cls,
        name: str,
        settings: Settings,
        session: requests.Session | None = None,
    ) -> BaseSource | None:
        source_cls = cls.get(name)
        if source_cls is None:
            return None
        return source_cls(settings, session=session)


def get_enabled_sources(settings: Settings) -> list[BaseSource]:
    """Instantiate every registered source that is enabled in settings."""
    sources = []
    for name in SourceRegistry.all_names():
        source = SourceRegistry.create(name, settings)
        if source is not None and source.enabled:
            sources.append(source)
    return sources


__all__ = [
    "BaseSource",
    "CollectionRun",
    "Deadline",
    "SourceRegistry",
    "get_enabled_sources",
    "is_viable_record",
    "default_rate_limit_check",
]
