"""Tests for email confidence classification."""

import pytest

from talentscout.core.models import CanonicalProfile
from talentscout.pipeline.email_confidence import classify_email


@pytest.fixture
def jane():
    return CanonicalProfile(id="github:jdoe", name="Jane Doe")


class TestClassifyEmail:
    def test_no_email(self):
        result = classify_email(None)
        assert result.score == 0
        assert result.level == "low"

    def test_no_reply_is_mailing_list(self):
        result = classify_email("no-reply@service.io", "github")
        assert result.level == "low"
        assert result.type == "mailing_list"

    def test_noreply_domain_is_mailing_list(self):
        result = classify_email("123+jdoe@users.noreply.github.com", "github")
        assert result.type == "mailing_list"

    def test_personal_with_first_name_is_high(self, jane):
        result = classify_email("jane.doe84@gmail.com", "github", jane)
        assert result.level == "high"
        assert result.type == "personal"
        assert result.score == 95

    def test_personal_without_name_is_medium(self, jane):
        result = classify_email("coolcoder@gmail.com", "github", jane)
        assert result.level == "medium"
        assert result.type == "personal"

    def test_big_company_domain_is_generic(self, jane):
        result = classify_email("jane@microsoft.com", "linkedin", jane)
        assert result.level == "low"
        assert result.type == "generic"

    def test_other_domain_is_work(self, jane):
        result = classify_email("jane@acme-robotics.io", "google", jane)
        assert result.level == "high"
        assert result.type == "work"

    def test_malformed_domain_falls_back(self):
        result = classify_email("someone@localhost")
        assert result.level == "medium"
        assert result.type == "generic"

    def test_name_prefix_counts_as_match(self):
        profile = CanonicalProfile(id="github:asmith", name="Alexander Smith")
        result = classify_email("alex.s@gmail.com", "github", profile)
        assert result.level == "high"
        assert result.type == "personal"

    def test_short_name_words_ignored(self):
        profile = CanonicalProfile(id="github:x", name="Li Wu")
        assert classify_email("coolcoder@gmail.com", "github", profile).level == "medium"

    @pytest.mark.parametrize(
        "email",
        ["newsletter-unsubscribe@acme.io", "subscribe@lists.acme.io", "team.noreply@acme.io"],
    )
    def test_mailing_list_anywhere_in_local_part(self, email):
        assert classify_email(email, "google").type == "mailing_list"

    @pytest.mark.parametrize("email", ["contact@acme.io", "admin@acme.io", "info.de@acme.io"])
    def test_role_inbox_is_generic(self, email):
        result = classify_email(email, "google")
        assert result.type == "generic"
        assert result.level == "low"
