"""Shared fixtures: settings without delays, fake HTTP sessions, fake collectors."""

import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from talentscout.config.settings import CollectionConfig, Settings
from talentscout.core.models import RawCandidateRecord
from talentscout.sources.base import BaseSource

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code=200, headers=None):
        self._payload = payload
        self.status_code = status_code
        self.headers = headers or {}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Routes requests by method and URL suffix.

    A route value may be a FakeResponse, a list of them (served in order,
    the last one repeating), an exception instance to raise, or a
    callable receiving (params, json) and returning a FakeResponse.
    Unrouted URLs answer 404.
    """

    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.closed = False

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params, "json": json, "timeout": timeout})
        for route_method, suffix, value in self.routes:
            if route_method != method or not url.endswith(suffix):
                continue
            if isinstance(value, list):
                value = value.pop(0) if len(value) > 1 else value[0]
            if isinstance(value, Exception):
                raise value
            if callable(value) and not isinstance(value, FakeResponse):
                return value(params, json)
            return value
        return FakeResponse({"message": "Not Found"}, status_code=404)

    def close(self):
        self.closed = True

    def urls(self):
        return [call["url"] for call in self.calls]


class FakeSource(BaseSource):
    """Collector returning canned records, optionally slow, failing or hung."""

    def __init__(
        self,
        settings,
        name,
        records=(),
        delay=0.0,
        error=None,
        release=None,
        enabled=True,
    ):
        super().__init__(settings)
        self.source_name = name
        self._records = list(records)
        self._delay = delay
        self._error = error
        self._release = release
        self._enabled = enabled

    @property
    def enabled(self):
        return self._enabled

    def _create_session(self):
        return FakeSession([])

    def _collect_records(self, criteria, run):
        if self._release is not None:
            # Ignores the deadline on purpose to model a hung platform
            self._release.wait(timeout=30)
        if self._delay:
            time.sleep(self._delay)
        if self._error is not None:
            raise self._error
        for record in self._records:
            run.add(record)


def make_record(source="github", platform_id="user", **fields) -> RawCandidateRecord:
    fields.setdefault("skills", ["python"])
    fields.setdefault("last_active", NOW - timedelta(days=3))
    return RawCandidateRecord(source=source, platform_id=platform_id, **fields)


@pytest.fixture
def settings():
    return Settings(collection=CollectionConfig(polite_delay_s=0.0, http_timeout=5.0))


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def response():
    return FakeResponse


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def fake_source():
    return FakeSource


@pytest.fixture
def release_event():
    event = threading.Event()
    yield event
    event.set()
