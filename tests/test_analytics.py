"""Tests for visit analytics."""

from datetime import datetime, timedelta, timezone

import pytest

from bouncerlink.analytics import NO_LIMIT, BasicSummary, Summary, summarize
from bouncerlink.database.memory import InMemoryLinkStore
from bouncerlink.database.models import Link, VisitLog, VisitorKey
from bouncerlink.resolver import Credentials, RequestMetadata


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


def make_visit(n: int, ip="10.0.0.1", agent="agent", email=None) -> VisitLog:
    return VisitLog(
        id=f"visit-{n}",
        short_code="abcd2345",
        timestamp=NOW + timedelta(minutes=n),
        ip_address=ip,
        user_agent=agent,
        email=email,
    )


def summary_of(link: Link, visits, **kwargs):
    kwargs.setdefault("unique_visitors", 0)
    kwargs.setdefault("unique_email_visitors", 0)
    kwargs.setdefault("accessed_emails", set())
    return summarize(link, visits, **kwargs)


class TestSummarize:
    """Test building the owner summary."""

    def test_no_visits(self):
        summary = summary_of(make_link(), [])

        assert summary.total_visits == 0
        assert summary.unique_visitors == 0
        assert summary.unique_email_visitors == 0
        assert summary.recent_visits == []
        assert summary.email_access == []
        assert summary.last_visited_at is None

    def test_click_limit_absent_reported_as_no_limit(self):
        assert summary_of(make_link(), []).click_limit == NO_LIMIT

    def test_click_limit_reported(self):
        assert summary_of(make_link(click_limit=5), []).click_limit == 5

    def test_totals_come_from_link_counters(self):
        link = make_link(visits=7, current_clicks=7, last_visited_at=NOW)

        summary = summary_of(link, [make_visit(1)])

        assert summary.total_visits == 7
        assert summary.current_clicks == 7
        assert summary.last_visited_at == NOW

    def test_recent_visits_newest_first_and_capped(self):
        visits = [make_visit(n) for n in (3, 1, 4, 2, 5)]

        summary = summary_of(make_link(), visits, recent_limit=3)

        assert [v.id for v in summary.recent_visits] == ["visit-5", "visit-4", "visit-3"]

    def test_email_access_follows_allow_list_order(self):
        link = make_link(allowed_emails=["a@x.com", "b@x.com", "c@x.com"])

        summary = summary_of(link, [], accessed_emails={"c@x.com", "a@x.com"})

        assert [(s.email, s.accessed) for s in summary.email_access] == [
            ("a@x.com", True),
            ("b@x.com", False),
            ("c@x.com", True),
        ]

    def test_to_dict(self):
        link = make_link(click_limit=3, visits=1, current_clicks=1, last_visited_at=NOW)

        data = summary_of(link, [make_visit(1)], unique_visitors=1).to_dict()

        assert data["click_limit"] == 3
        assert data["last_visited_at"] == NOW.isoformat()
        assert data["recent_visits"][0]["id"] == "visit-1"
        assert data["unique_visitors"] == 1
        assert data["email_access"] == []


@pytest.mark.asyncio
class TestUniqueVisitors:
    """Test the two ways of counting visitors over a stored log."""

    async def record(self, store: InMemoryLinkStore, visits):
        await store.create_link(make_link())
        for visit in visits:
            await store.append(
                visit.short_code,
                ip_address=visit.ip_address,
                user_agent=visit.user_agent,
                email=visit.email,
                timestamp=visit.timestamp,
            )

    async def test_device_counts_ip_and_agent_pairs(self, store):
        await self.record(store, [
            make_visit(1, ip="10.0.0.1", agent="firefox"),
            make_visit(2, ip="10.0.0.1", agent="firefox"),
            make_visit(3, ip="10.0.0.1", agent="curl"),
            make_visit(4, ip="10.0.0.2", agent="firefox"),
        ])
        assert await store.count_unique_visitors("abcd2345", VisitorKey.DEVICE) == 3

    async def test_email_ignores_missing_emails(self, store):
        await self.record(store, [
            make_visit(1, email="a@x.com"),
            make_visit(2, email="a@x.com"),
            make_visit(3, email="b@x.com"),
            make_visit(4),
        ])
        assert await store.count_unique_visitors("abcd2345", VisitorKey.EMAIL) == 2

    async def test_accessed_emails_limited_to_candidates(self, store):
        await self.record(store, [make_visit(1, email="a@x.com"), make_visit(2, email="z@x.com")])

        accessed = await store.accessed_emails("abcd2345", ["a@x.com", "b@x.com"])

        assert accessed == {"a@x.com"}

    async def test_unknown_code_counts_nothing(self, store):
        assert await store.count_unique_visitors("missing1", VisitorKey.DEVICE) == 0
        assert await store.accessed_emails("missing1", ["a@x.com"]) == set()


@pytest.mark.asyncio
class TestAnalyticsAccess:
    """Test who sees which summary."""

    async def test_owner_gets_full_summary(self, service):
        link = await service.create_link(
            "https://example.com/a",
            owner_id="user-1",
            allowed_emails=["a@x.com", "b@x.com"],
        )
        await service.resolve(
            link.short_code,
            Credentials(email="a@x.com"),
            RequestMetadata(ip_address="10.0.0.1", user_agent="firefox"),
        )

        summary = await service.get_analytics(link.short_code, requester_id="user-1")

        assert isinstance(summary, Summary)
        assert summary.total_visits == 1
        assert summary.unique_email_visitors == 1
        assert [(s.email, s.accessed) for s in summary.email_access] == [
            ("a@x.com", True),
            ("b@x.com", False),
        ]

    async def test_other_user_gets_total_only(self, service):
        link = await service.create_link("https://example.com/a", owner_id="user-1")
        await service.resolve(link.short_code)

        summary = await service.get_analytics(link.short_code, requester_id="user-2")

        assert summary == BasicSummary(total_visits=1)
        assert summary.to_dict() == {"total_visits": 1}

    async def test_anonymous_requester_gets_total_only(self, service):
        link = await service.create_link("https://example.com/a", owner_id="user-1")

        summary = await service.get_analytics(link.short_code)

        assert isinstance(summary, BasicSummary)

    async def test_anonymous_link_has_no_owner_view(self, service):
        link = await service.create_link("https://example.com/a")

        summary = await service.get_analytics(link.short_code, requester_id="user-1")

        assert isinstance(summary, BasicSummary)

    async def test_unknown_code(self, service):
        assert await service.get_analytics("missing1", requester_id="user-1") is None

    async def test_counts_cover_visits_older_than_recent_list(self, service, clock):
        service.recent_visits_limit = 2
        link = await service.create_link(
            "https://example.com/a",
            owner_id="user-1",
            allowed_emails=["a@x.com", "b@x.com"],
        )
        await service.resolve(
            link.short_code,
            Credentials(email="a@x.com"),
            RequestMetadata(ip_address="10.0.0.1", user_agent="firefox"),
        )
        for n in range(5):
            clock.advance(minutes=1)
            await service.resolve(
                link.short_code,
                Credentials(email="b@x.com"),
                RequestMetadata(ip_address=f"10.0.1.{n}", user_agent="curl"),
            )

        summary = await service.get_analytics(link.short_code, requester_id="user-1")

        assert summary.total_visits == 6
        assert len(summary.recent_visits) == 2
        assert all(v.email == "b@x.com" for v in summary.recent_visits)
        assert summary.unique_visitors == 6
        assert summary.unique_email_visitors == 2
        assert [(s.email, s.accessed) for s in summary.email_access] == [
            ("a@x.com", True),
            ("b@x.com", True),
        ]
