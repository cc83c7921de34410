"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List, Tuple

import pytest
from httpx import ASGITransport, AsyncClient

from bouncerlink.database.memory import InMemoryLinkStore
from bouncerlink.notifier import NotificationDispatcher, NotifierBase
from bouncerlink.service import LinkService
from bouncerlink.shortcode import ShortCodeGenerator
from bouncerlink.common.logging_config import setup_logging
from config import Config
from web_app import create_app


class FakeClock:
    """Controllable replacement for the UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier(NotifierBase):
    """Notifier that remembers what it was asked to send."""

    def __init__(self, fail_for=(), delay: float = 0.0):
        self.sent: List[Tuple[str, str]] = []
        self.fail_for = set(fail_for)
        self.delay = delay

    async def notify(self, recipient_email: str, short_code: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if recipient_email in self.fail_for:
            raise ConnectionError(f"mail server rejected {recipient_email}")
        self.sent.append((recipient_email, short_code))


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(logger):
    return InMemoryLinkStore(logger=logger)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier, logger):
    return NotificationDispatcher(notifier, timeout_seconds=1.0, logger=logger)


@pytest.fixture
def short_code_generator():
    """Create short code generator."""
    return ShortCodeGenerator(default_length=8)


@pytest.fixture
async def service(store, dispatcher, short_code_generator, clock, logger) -> AsyncGenerator[LinkService, None]:
    """Create service instance backed by the in-memory store."""
    svc = LinkService(
        store=store,
        visits=store,
        cache=None,
        dispatcher=dispatcher,
        short_code_generator=short_code_generator,
        logger=logger,
        clock=clock,
    )
    yield svc
    await svc.close()


@pytest.fixture
def config():
    return Config(
        storage_backend="memory",
        base_url="http://testserver",
        _env_file=None,
    )


@pytest.fixture
def app(service, config):
    """Create test FastAPI app."""
    return create_app(service_instance=service, config=config)


@pytest.fixture
async def client(app):
    """Create test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def owner_headers():
    """Identity headers set by the authenticating proxy."""
    return {"X-Forwarded-User": "user-1", "X-Forwarded-Email": "owner@example.com"}


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]
