"""Tests for the web search collector."""

import pytest

from talentscout.core.models import SearchCriteria
from talentscout.sources.base import Deadline
from talentscout.sources.google import (
    GoogleSearchSource,
    build_search_queries,
    parse_result_title,
    parse_search_item,
)

LINKEDIN_HIT = {
    "title": "Jane Doe - Senior Engineer - Acme | LinkedIn",
    "link": "https://www.linkedin.com/in/janedoe/",
    "snippet": "Based in Lisbon, Portugal. 8 years building Python and React apps.",
}

GITHUB_HIT = {
    "title": "octocat (The Octocat) · GitHub",
    "link": "https://github.com/octocat",
    "snippet": "Loves docker and go.",
}


def _criteria(**kwargs):
    kwargs.setdefault("sources", ["google"])
    return SearchCriteria(query="backend engineer", **kwargs)


@pytest.fixture
def configured(settings):
    settings.sources.google.api_key = "key"
    settings.sources.google.cse_id = "cx"
    return settings


class TestQueries:
    def test_focus_and_location(self):
        queries = build_search_queries(_criteria(skills=["Rust"], location="Oslo"))
        assert queries == [
            'site:linkedin.com/in "Rust" "Oslo"',
            'site:github.com "Rust" "Oslo"',
            '"Rust" portfolio resume "Oslo" -jobs -hiring',
        ]

    def test_role_takes_precedence(self):
        queries = build_search_queries(_criteria(skills=["Rust"], role_types=["SRE"]), max_queries=1)
        assert queries == ['site:linkedin.com/in "SRE"']


class TestParsing:
    def test_title_split(self):
        assert parse_result_title("Jane Doe - Senior Engineer - Acme | LinkedIn") == ("Jane Doe", "Senior Engineer")
        assert parse_result_title("10 tips for Python") == (None, None)

    def test_linkedin_hit(self):
        record = parse_search_item(LINKEDIN_HIT, "google", rank=3)
        assert record.name == "Jane Doe"
        assert record.title == "Senior Engineer"
        assert record.location == "Lisbon, Portugal"
        assert record.experience_years == 8
        assert record.linkedin_url == "https://www.linkedin.com/in/janedoe"
        assert record.platform_id == "https://www.linkedin.com/in/janedoe"
        assert {"python", "react"} <= set(record.skills)

    def test_github_hit_uses_login(self):
        record = parse_search_item(GITHUB_HIT, "google", rank=1)
        assert record.github_username == "octocat"
        assert record.name == "octocat"
        assert record.website_url is None

    @pytest.mark.parametrize(
        "link",
        [
            "https://acme.com/careers/backend",
            "http://127.0.0.1/profile",
            "ftp://files.example.org/cv",
        ],
    )
    def test_rejected_links(self, link):
        assert parse_search_item({**LINKEDIN_HIT, "link": link}, "google", rank=1) is None

    def test_page_without_identity(self):
        item = {"title": "10 tips for Python", "link": "https://blog.example.com/post", "snippet": ""}
        assert parse_search_item(item, "google", rank=1) is None


class TestGoogleSearchSource:
    def test_requires_credentials(self, settings, fake_session):
        session = fake_session([])
        outcome = GoogleSearchSource(settings, session=session).collect(_criteria(), Deadline(30))
        assert outcome.error == "not configured"
        assert session.calls == []

    def test_collects_profiles(self, configured, fake_session, response):
        page = response({"searchInformation": {"totalResults": "1200"}, "items": [LINKEDIN_HIT, GITHUB_HIT]})
        session = fake_session([("GET", "/customsearch/v1", page)])
        outcome = GoogleSearchSource(configured, session=session).collect(_criteria(skills=["Python"]), Deadline(30))

        assert outcome.error is None
        assert outcome.queries_run == 3
        assert outcome.total_found == 3600
        assert [r.name for r in outcome.records] == ["Jane Doe", "octocat"]
        params = session.calls[0]["params"]
        assert params["key"] == "key"
        assert params["cx"] == "cx"

    def test_daily_limit_is_rate_limit(self, configured, fake_session, response):
        body = {"error": {"code": 403, "errors": [{"reason": "dailyLimitExceeded"}]}}
        session = fake_session([("GET", "/customsearch/v1", response(body, status_code=403))])
        outcome = GoogleSearchSource(configured, session=session).collect(_criteria(), Deadline(30))
        assert outcome.rate_limited
        assert outcome.error is None

    def test_pages_with_start_offset(self, configured, fake_session, response):
        configured.sources.google.results_per_query = 1
        configured.sources.google.max_queries = 1
        pages = {
            1: {"searchInformation": {"totalResults": "40"}, "items": [LINKEDIN_HIT], "queries": {"nextPage": [{}]}},
            2: {"searchInformation": {"totalResults": "40"}, "items": [GITHUB_HIT], "queries": {"nextPage": [{}]}},
        }
        session = fake_session([("GET", "/customsearch/v1", lambda params, json: response(pages[params["start"]]))])
        outcome = GoogleSearchSource(configured, session=session).collect(_criteria(skills=["Python"]), Deadline(30))

        assert [c["params"]["start"] for c in session.calls] == [1, 2]
        assert [r.name for r in outcome.records] == ["Jane Doe", "octocat"]
        assert outcome.queries_run == 2
        assert outcome.total_found == 40

    def test_stops_without_next_page(self, configured, fake_session, response):
        configured.sources.google.results_per_query = 1
        configured.sources.google.max_queries = 1
        page = response({"items": [LINKEDIN_HIT]})
        session = fake_session([("GET", "/customsearch/v1", page)])
        GoogleSearchSource(configured, session=session).collect(_criteria(), Deadline(30))
        assert len(session.calls) == 1
