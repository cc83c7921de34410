"""Visit notifications for link owners and allow-listed recipients."""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Iterable, Optional, Set


class NotifierBase(ABC):
    """Delivers a single "your link was accessed" message."""

    @abstractmethod
    async def notify(self, recipient_email: str, short_code: str) -> None:
        """Send one notification.

        Args:
            recipient_email: Address to notify
            short_code: The link that was accessed
        """
        pass


class LoggingNotifier(NotifierBase):
    """Notifier used when no mail server is configured."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    async def notify(self, recipient_email: str, short_code: str) -> None:
        self.logger.info(f"Notification for {recipient_email}: link {short_code} was accessed")


class SMTPNotifier(NotifierBase):
    """Send notifications by email over SMTP."""

    SUBJECT = "Your BouncerLink was accessed"

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        use_tls: bool = True,
        timeout_seconds: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize SMTP notifier.

        Args:
            host: SMTP server host
            port: SMTP server port
            username: Login user (no login when None)
            password: Login password or app password
            sender: From address (defaults to username)
            use_tls: Upgrade the connection with STARTTLS
            timeout_seconds: Socket timeout for the SMTP exchange
            logger: Optional logger instance
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.use_tls = use_tls
        self.timeout_seconds = timeout_seconds
        self.logger = logger or logging.getLogger(__name__)

    def build_message(self, recipient_email: str, short_code: str) -> MIMEMultipart:
        """Build the notification email."""
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = recipient_email
        msg["Subject"] = self.SUBJECT

        msg.attach(MIMEText(f"Your shortened link ({short_code}) was just accessed.", "plain"))
        msg.attach(MIMEText(
            f"<p>Your shortened link (<strong>{short_code}</strong>) was just accessed.</p>",
            "html",
        ))
        return msg

    def _send(self, recipient_email: str, short_code: str) -> None:
        msg = self.build_message(recipient_email, short_code)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(self.sender, [recipient_email], msg.as_string())

    async def notify(self, recipient_email: str, short_code: str) -> None:
        # smtplib blocks, keep it off the event loop
        await asyncio.to_thread(self._send, recipient_email, short_code)
        self.logger.debug(f"Notification email sent to {recipient_email} for {short_code}")


class NotificationDispatcher:
    """Fire-and-forget fan-out of notifications.

    Each recipient gets its own task bounded by ``timeout_seconds``. Failures
    and timeouts are logged and never reach the caller.
    """

    def __init__(
        self,
        notifier: NotifierBase,
        timeout_seconds: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.notifier = notifier
        self.timeout_seconds = timeout_seconds
        self.logger = logger or logging.getLogger(__name__)
        # Strong references so pending tasks are not garbage collected
        self._pending: Set[asyncio.Task] = set()

    def dispatch(self, recipients: Iterable[str], short_code: str) -> int:
        """Schedule one notification per recipient.

        Args:
            recipients: Addresses to notify
            short_code: The link that was accessed

        Returns:
            Number of notifications scheduled
        """
        scheduled = 0
        for recipient in recipients:
            task = asyncio.create_task(self._deliver(recipient, short_code))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            scheduled += 1
        return scheduled

    async def _deliver(self, recipient: str, short_code: str) -> None:
        try:
            await asyncio.wait_for(
                self.notifier.notify(recipient, short_code),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                f"Notification to {recipient} for {short_code} timed out after {self.timeout_seconds}s"
            )
        except Exception as e:
            self.logger.warning(f"Notification to {recipient} for {short_code} failed: {e}")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all scheduled notifications to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
