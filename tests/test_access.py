"""Tests for access control evaluation."""

from datetime import datetime, timedelta, timezone

import pytest

from bouncerlink.access import DenialReason, Verdict, check_availability, evaluate
from bouncerlink.database.models import Link


NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_link(**kwargs) -> Link:
    defaults = {
        "short_code": "abcd2345",
        "original_url": "https://example.com/target",
        "created_at": NOW - timedelta(days=1),
        "owner_id": "user-1",
    }
    defaults.update(kwargs)
    return Link(**defaults)


class TestEvaluate:
    """Test the access decision."""

    def test_unrestricted_link_allows_without_credentials(self):
        assert evaluate(make_link(), None, None, NOW) == Verdict.allow()

    def test_unrestricted_link_ignores_supplied_credentials(self):
        verdict = evaluate(make_link(), "anything", "who@example.com", NOW)
        assert verdict.allowed

    def test_expired_link_denied(self):
        link = make_link(expires_at=NOW - timedelta(seconds=1))
        assert evaluate(link, None, None, NOW) == Verdict.deny(DenialReason.EXPIRED)

    def test_expiry_instant_itself_still_open(self):
        link = make_link(expires_at=NOW)
        assert evaluate(link, None, None, NOW).allowed

    def test_expired_wins_over_valid_credentials(self):
        link = make_link(
            expires_at=NOW - timedelta(hours=1),
            access_code="abc",
            allowed_emails=["a@x.com"],
        )
        verdict = evaluate(link, "abc", "a@x.com", NOW)
        assert verdict.reason is DenialReason.EXPIRED

    def test_quota_exhausted_denied(self):
        link = make_link(click_limit=3, current_clicks=3)
        assert evaluate(link, None, None, NOW).reason is DenialReason.QUOTA_EXCEEDED

    def test_quota_with_remaining_clicks_allows(self):
        link = make_link(click_limit=3, current_clicks=2)
        assert evaluate(link, None, None, NOW).allowed

    def test_expiry_checked_before_quota(self):
        link = make_link(
            expires_at=NOW - timedelta(minutes=1),
            click_limit=1,
            current_clicks=1,
        )
        assert evaluate(link, None, None, NOW).reason is DenialReason.EXPIRED

    @pytest.mark.parametrize("supplied", [None, "", "ABC", "abc ", "wrong"])
    def test_wrong_access_code_denied(self, supplied):
        link = make_link(access_code="abc")
        assert evaluate(link, supplied, None, NOW).reason is DenialReason.INVALID_ACCESS_CODE

    def test_correct_access_code_allows(self):
        link = make_link(access_code="abc")
        assert evaluate(link, "abc", None, NOW).allowed

    @pytest.mark.parametrize("supplied", [None, "", "c@x.com", "A@x.com"])
    def test_email_not_in_allow_list_denied(self, supplied):
        link = make_link(allowed_emails=["a@x.com", "b@x.com"])
        assert evaluate(link, None, supplied, NOW).reason is DenialReason.EMAIL_NOT_AUTHORIZED

    def test_allow_listed_email_allows(self):
        link = make_link(allowed_emails=["a@x.com", "b@x.com"])
        assert evaluate(link, None, "b@x.com", NOW).allowed

    def test_both_gates_must_pass(self):
        link = make_link(access_code="abc", allowed_emails=["a@x.com"])

        assert evaluate(link, "abc", None, NOW).reason is DenialReason.EMAIL_NOT_AUTHORIZED
        assert evaluate(link, "nope", "a@x.com", NOW).reason is DenialReason.INVALID_ACCESS_CODE
        assert evaluate(link, "abc", "a@x.com", NOW).allowed

    def test_quota_checked_before_credentials(self):
        link = make_link(access_code="abc", click_limit=1, current_clicks=1)
        assert evaluate(link, "wrong", None, NOW).reason is DenialReason.QUOTA_EXCEEDED


class TestCheckAvailability:
    """Test the credential-independent checks."""

    def test_available(self):
        assert check_availability(make_link(access_code="abc"), NOW) is None

    def test_expired(self):
        link = make_link(expires_at=NOW - timedelta(days=1))
        assert check_availability(link, NOW) is DenialReason.EXPIRED

    def test_quota(self):
        link = make_link(click_limit=1, current_clicks=1)
        assert check_availability(link, NOW) is DenialReason.QUOTA_EXCEEDED
