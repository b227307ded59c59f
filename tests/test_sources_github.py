"""Tests for the GitHub collector."""

import base64

import pytest
import requests

from talentscout.core.models import SearchCriteria
from talentscout.sources.base import Deadline
from talentscout.sources.github import (
    GitHubSource,
    build_search_queries,
    estimate_experience,
    validate_github_user,
)

from conftest import NOW

ALICE = {
    "login": "alice",
    "type": "User",
    "name": "Alice Chen",
    "company": "@acme",
    "location": "Berlin",
    "bio": "Python backend engineer",
    "email": None,
    "blog": "alice.dev",
    "public_repos": 12,
    "followers": 80,
    "following": 10,
    "html_url": "https://github.com/alice",
    "created_at": "2015-01-01T00:00:00Z",
    "updated_at": "2026-09-28T10:00:00Z",
}

ALICE_REPOS = [
    {
        "name": "etl",
        "description": "Data pipelines with pandas",
        "language": "Python",
        "stargazers_count": 40,
        "pushed_at": "2026-09-20T10:00:00Z",
        "fork": False,
        "topics": ["data"],
    },
    {"name": "linux", "language": "C", "stargazers_count": 1000, "fork": True},
]

ACME = {"login": "acme", "type": "Organization", "public_repos": 50}


def _criteria(**kwargs):
    kwargs.setdefault("sources", ["github"])
    return SearchCriteria(query="python developer", **kwargs)


@pytest.fixture
def search_page(response):
    return response({"total_count": 2, "items": [{"login": "alice"}, {"login": "acme"}]})


@pytest.fixture
def happy_routes(response, search_page):
    readme = base64.b64encode(b"# Hi\nReach me at alice@alice.dev").decode()
    return [
        ("GET", "/search/users", search_page),
        ("GET", "/users/alice", response(ALICE)),
        ("GET", "/users/alice/repos", response(ALICE_REPOS)),
        ("GET", "/repos/alice/alice/readme", response({"content": readme})),
        ("GET", "/users/acme", response(ACME)),
    ]


class TestBuildSearchQueries:
    """Search strategies derived from criteria."""

    def test_language_and_stack_with_location(self):
        queries = build_search_queries(_criteria(skills=["Python"], location="Berlin"))
        assert queries == [
            'language:python location:"Berlin" repos:>=5 followers:>=10',
            'django python in:bio location:"Berlin" repos:>=3',
        ]

    def test_language_with_other_terms(self):
        queries = build_search_queries(_criteria(skills=["go", "kubernetes"]))
        assert queries[0] == "language:go kubernetes repos:>=3 followers:>=5"

    def test_roles(self):
        queries = build_search_queries(_criteria(role_types=["SRE", "platform engineer"]))
        assert queries == ["SRE OR platform engineer in:bio repos:>=5 followers:>=10"]

    def test_fallback(self):
        queries = build_search_queries(_criteria(keywords=["compilers"]))
        assert queries == ["python developer in:bio,name type:user repos:>=2"]

    def test_capped(self):
        criteria = _criteria(skills=["python", "java"], location="Paris", role_types=["backend"])
        assert len(build_search_queries(criteria, max_queries=2)) == 2


class TestValidateGithubUser:
    def test_valid(self):
        assert validate_github_user(ALICE, NOW) is None

    def test_organization(self):
        assert validate_github_user(ACME, NOW) == "not a user account"

    def test_no_repos(self):
        assert validate_github_user({**ALICE, "public_repos": 0}, NOW) == "no public repositories"

    def test_new_account(self):
        user = {**ALICE, "created_at": "2026-09-28T00:00:00Z"}
        assert validate_github_user(user, NOW) == "account too new"

    def test_follower_farm(self):
        user = {**ALICE, "followers": 5000, "public_repos": 2}
        assert validate_github_user(user, NOW) == "suspicious follower pattern"


class TestEstimateExperience:
    def test_account_age(self):
        user = {"created_at": "2016-10-01T12:00:00Z"}
        assert estimate_experience(user, [], NOW) == 10.0

    def test_clamped(self):
        assert estimate_experience({"created_at": "1999-01-01T00:00:00Z"}, [], NOW) == 15.0
        assert estimate_experience({}, [], NOW) == 1.0


class TestGitHubSource:
    """Collection against a faked GitHub API."""

    def test_collects_enriched_user(self, settings, fake_session, happy_routes):
        session = fake_session(happy_routes)
        source = GitHubSource(settings, session=session)

        outcome = source.collect(_criteria(skills=["python"], location="Berlin"), Deadline(30))

        assert outcome.error is None
        assert [r.platform_id for r in outcome.records] == ["alice"]
        record = outcome.records[0]
        assert record.name == "Alice Chen"
        assert record.title == "Developer at acme"
        assert record.github_username == "alice"
        assert record.email == "alice@alice.dev"
        assert record.website_url == "https://alice.dev"
        assert record.stars == 40
        assert record.skills[0] == "python"
        assert record.rank_score == 80 + 40 * 0.5 + 12
        assert outcome.queries_run == 2
        assert outcome.total_found == 4
        # Second query finds the same logins; they are not fetched again
        assert session.urls().count("https://api.github.com/users/alice") == 1
        assert not session.closed

    def test_search_params(self, settings, fake_session, happy_routes):
        session = fake_session(happy_routes)
        GitHubSource(settings, session=session).collect(_criteria(skills=["python"]), Deadline(30))
        params = session.calls[0]["params"]
        assert params["sort"] == "followers"
        assert params["per_page"] == settings.sources.github.per_page

    def test_rate_limited(self, settings, fake_session, response):
        limited = response({"message": "API rate limit exceeded"}, 403, {"X-RateLimit-Remaining": "0"})
        session = fake_session([("GET", "/search/users", limited)])
        outcome = GitHubSource(settings, session=session).collect(_criteria(), Deadline(30))
        assert outcome.rate_limited
        assert outcome.error is None
        assert outcome.records == []

    def test_server_error_after_retry(self, settings, fake_session, response):
        session = fake_session([("GET", "/search/users", response(status_code=500))])
        outcome = GitHubSource(settings, session=session).collect(_criteria(), Deadline(30))
        assert outcome.error == "HTTP 500 error"
        assert len(session.calls) == 2

    def test_network_error_retried(self, settings, fake_session, response):
        routes = [("GET", "/search/users", [requests.exceptions.ConnectionError(), response({"items": []})])]
        session = fake_session(routes)
        outcome = GitHubSource(settings, session=session).collect(_criteria(), Deadline(30))
        assert outcome.error is None
        assert outcome.records == []

    def test_expired_deadline(self, settings, fake_session, happy_routes):
        session = fake_session(happy_routes)
        outcome = GitHubSource(settings, session=session).collect(_criteria(), Deadline(0))
        assert outcome.error == "timeout"
        assert session.calls == []

    def test_unreachable_profile_skipped(self, settings, fake_session, response, search_page):
        session = fake_session([
            ("GET", "/search/users", search_page),
            ("GET", "/users/alice", response(status_code=404)),
            ("GET", "/users/acme", response(ACME)),
        ])
        outcome = GitHubSource(settings, session=session).collect(_criteria(), Deadline(30))
        assert outcome.error is None
        assert outcome.records == []

    def test_pages_through_search_results(self, settings, fake_session, response):
        settings.sources.github.per_page = 1
        settings.sources.github.max_queries = 1
        bob = {**ALICE, "login": "bob", "name": "Bob Stone", "html_url": "https://github.com/bob"}

        def search(params, json):
            pages = {1: [{"login": "alice"}], 2: [{"login": "bob"}]}
            return response({"total_count": 5, "items": pages.get(params["page"], [])})

        session = fake_session([
            ("GET", "/search/users", search),
            ("GET", "/users/alice", response(ALICE)),
            ("GET", "/users/alice/repos", response(ALICE_REPOS)),
            ("GET", "/users/bob", response(bob)),
            ("GET", "/users/bob/repos", response(ALICE_REPOS)),
        ])
        outcome = GitHubSource(settings, session=session).collect(_criteria(skills=["python"]), Deadline(30))

        search_calls = [c for c in session.calls if c["url"].endswith("/search/users")]
        assert [c["params"]["page"] for c in search_calls] == [1, 2]
        assert sorted(r.platform_id for r in outcome.records) == ["alice", "bob"]
        assert outcome.queries_run == 2
        assert outcome.total_found == 5

    def test_paging_stops_at_record_cap(self, settings, fake_session, response):
        settings.sources.github.per_page = 1
        settings.sources.github.max_queries = 1
        settings.collection.max_records_per_source = 1
        session = fake_session([
            ("GET", "/search/users", response({"total_count": 5, "items": [{"login": "alice"}]})),
            ("GET", "/users/alice", response(ALICE)),
            ("GET", "/users/alice/repos", response(ALICE_REPOS)),
        ])
        outcome = GitHubSource(settings, session=session).collect(_criteria(skills=["python"]), Deadline(30))
        assert [r.platform_id for r in outcome.records] == ["alice"]
        assert session.urls().count("https://api.github.com/search/users") == 1

    def test_token_header(self, settings):
        settings.sources.github.token = "ghp_test"
        headers = GitHubSource(settings).default_headers()
        assert headers["Authorization"] == "Bearer ghp_test"
