"""Tests for visit notifications."""

import logging

import pytest

from bouncerlink import notifier as notifier_module
from bouncerlink.notifier import LoggingNotifier, NotificationDispatcher, SMTPNotifier


class FakeSMTP:
    """Records the SMTP conversation instead of opening a socket."""

    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.calls.append(("quit",))
        return False

    def starttls(self):
        self.calls.append(("starttls",))

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def sendmail(self, sender, recipients, message):
        self.calls.append(("sendmail", sender, recipients, message))


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(notifier_module.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


class TestSMTPNotifier:
    """Test the SMTP notifier."""

    def test_build_message(self):
        smtp = SMTPNotifier("smtp.example.com", sender="noreply@example.com")

        msg = smtp.build_message("owner@example.com", "abcd2345")

        assert msg["To"] == "owner@example.com"
        assert msg["From"] == "noreply@example.com"
        assert msg["Subject"] == "Your BouncerLink was accessed"
        parts = msg.get_payload()
        assert [part.get_content_type() for part in parts] == ["text/plain", "text/html"]
        assert "abcd2345" in parts[0].get_payload()

    def test_sender_defaults_to_username(self):
        smtp = SMTPNotifier("smtp.example.com", username="mailer@example.com", password="pw")
        assert smtp.sender == "mailer@example.com"

    @pytest.mark.asyncio
    async def test_notify_sends_over_smtp(self, fake_smtp):
        smtp = SMTPNotifier(
            "smtp.example.com",
            port=2525,
            username="mailer@example.com",
            password="app-password",
            timeout_seconds=5,
        )

        await smtp.notify("owner@example.com", "abcd2345")

        [server] = fake_smtp.instances
        assert (server.host, server.port, server.timeout) == ("smtp.example.com", 2525, 5)
        assert server.calls[0] == ("starttls",)
        assert server.calls[1] == ("login", "mailer@example.com", "app-password")
        _, sender, recipients, message = server.calls[2]
        assert sender == "mailer@example.com"
        assert recipients == ["owner@example.com"]
        assert "abcd2345" in message

    @pytest.mark.asyncio
    async def test_no_tls_no_login(self, fake_smtp):
        smtp = SMTPNotifier("localhost", port=25, sender="noreply@example.com", use_tls=False)

        await smtp.notify("owner@example.com", "abcd2345")

        [server] = fake_smtp.instances
        assert [call[0] for call in server.calls] == ["sendmail", "quit"]


class TestNotificationDispatcher:
    """Test fire-and-forget fan-out."""

    @pytest.mark.asyncio
    async def test_dispatch_one_task_per_recipient(self, notifier, logger):
        recorder = notifier
        dispatcher = NotificationDispatcher(recorder, logger=logger)

        scheduled = dispatcher.dispatch(["a@x.com", "b@x.com"], "abcd2345")
        assert scheduled == 2

        await dispatcher.drain()

        assert sorted(recorder.sent) == [("a@x.com", "abcd2345"), ("b@x.com", "abcd2345")]
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_dispatch_returns_before_delivery(self, notifier, logger):
        recorder = notifier
        recorder.delay = 0.05
        dispatcher = NotificationDispatcher(recorder, logger=logger)

        dispatcher.dispatch(["a@x.com"], "abcd2345")

        assert recorder.sent == []
        assert dispatcher.pending == 1
        await dispatcher.drain()
        assert recorder.sent == [("a@x.com", "abcd2345")]

    @pytest.mark.asyncio
    async def test_failure_is_isolated_and_logged(self, notifier, logger, caplog):
        recorder = notifier
        recorder.fail_for = {"bad@x.com"}
        dispatcher = NotificationDispatcher(recorder, logger=logger)

        with caplog.at_level(logging.WARNING):
            dispatcher.dispatch(["bad@x.com", "good@x.com"], "abcd2345")
            await dispatcher.drain()

        assert recorder.sent == [("good@x.com", "abcd2345")]
        assert any("bad@x.com" in record.getMessage() and "failed" in record.getMessage()
                   for record in caplog.records)

    @pytest.mark.asyncio
    async def test_timeout_is_isolated_and_logged(self, notifier, logger, caplog):
        recorder = notifier
        recorder.delay = 1.0
        dispatcher = NotificationDispatcher(recorder, timeout_seconds=0.01, logger=logger)

        with caplog.at_level(logging.WARNING):
            dispatcher.dispatch(["slow@x.com"], "abcd2345")
            await dispatcher.drain()

        assert recorder.sent == []
        assert any("timed out" in record.getMessage() for record in caplog.records)

    @pytest.mark.asyncio
    async def test_no_recipients(self, notifier, logger):
        dispatcher = NotificationDispatcher(notifier, logger=logger)

        assert dispatcher.dispatch([], "abcd2345") == 0
        await dispatcher.drain()


@pytest.mark.asyncio
async def test_logging_notifier(logger, caplog):
    with caplog.at_level(logging.INFO):
        await LoggingNotifier(logger=logger).notify("owner@example.com", "abcd2345")

    assert any("owner@example.com" in record.getMessage() for record in caplog.records)
