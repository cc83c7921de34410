"""Short code resolution: lookup, access checks, visit recording.

A resolution walks a fixed sequence and stops at the first terminal state::

    lookup -> NOT_FOUND
           -> expiry check -> EXPIRED
           -> quota check -> QUOTA_EXCEEDED
           -> credentials needed but none sent -> ACCESS_CHALLENGE_REQUIRED
           -> evaluate credentials -> DENIED(reason)
           -> count click, record visit, notify -> RESOLVED(url)

Every RESOLVED outcome is a new billable click; resolving the same link
twice counts two clicks and writes two visit entries.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from .access import DenialReason, check_availability, evaluate
from .database.base import LinkStoreBase, VisitRecorderBase
from .database.cache import RedisCache
from .database.models import Link
from .notifier import NotificationDispatcher


class OutcomeStatus(str, Enum):
    """Terminal states of a resolution."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    QUOTA_EXCEEDED = "quota_exceeded"
    ACCESS_CHALLENGE_REQUIRED = "access_challenge_required"
    DENIED = "denied"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class Outcome:
    """Result of resolving a short code.

    ``url`` is set for RESOLVED, ``reason`` for DENIED, and the two
    ``requires_*`` flags describe the prompt for ACCESS_CHALLENGE_REQUIRED.
    """

    status: OutcomeStatus
    url: Optional[str] = None
    reason: Optional[DenialReason] = None
    requires_access_code: bool = False
    requires_email: bool = False

    @classmethod
    def not_found(cls) -> "Outcome":
        return cls(OutcomeStatus.NOT_FOUND)

    @classmethod
    def expired(cls) -> "Outcome":
        return cls(OutcomeStatus.EXPIRED)

    @classmethod
    def quota_exceeded(cls) -> "Outcome":
        return cls(OutcomeStatus.QUOTA_EXCEEDED)

    @classmethod
    def challenge(cls, link: Link) -> "Outcome":
        return cls(
            OutcomeStatus.ACCESS_CHALLENGE_REQUIRED,
            requires_access_code=link.requires_access_code,
            requires_email=link.requires_email,
        )

    @classmethod
    def denied(cls, reason: DenialReason) -> "Outcome":
        return cls(OutcomeStatus.DENIED, reason=reason)

    @classmethod
    def resolved(cls, url: str) -> "Outcome":
        return cls(OutcomeStatus.RESOLVED, url=url)

    @classmethod
    def from_denial(cls, reason: DenialReason) -> "Outcome":
        """Map an evaluator denial to its outcome."""
        if reason is DenialReason.EXPIRED:
            return cls.expired()
        if reason is DenialReason.QUOTA_EXCEEDED:
            return cls.quota_exceeded()
        return cls.denied(reason)

    @property
    def is_resolved(self) -> bool:
        return self.status is OutcomeStatus.RESOLVED


@dataclass(frozen=True)
class Credentials:
    """Credentials a requester sent along with a resolution."""

    access_code: Optional[str] = None
    email: Optional[str] = None

    def __post_init__(self):
        # Blank form fields mean "not supplied"
        if not self.access_code:
            object.__setattr__(self, "access_code", None)
        if self.email is not None:
            object.__setattr__(self, "email", self.email.strip() or None)

    @property
    def supplied(self) -> bool:
        return self.access_code is not None or self.email is not None


@dataclass(frozen=True)
class RequestMetadata:
    """Requester details recorded with each visit."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResolutionEngine:
    """Resolve short codes to destinations, enforcing access rules."""

    def __init__(
        self,
        store: LinkStoreBase,
        visits: VisitRecorderBase,
        dispatcher: Optional[NotificationDispatcher] = None,
        cache: Optional[RedisCache] = None,
        clock: Callable[[], datetime] = utcnow,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize resolution engine.

        Args:
            store: Link store
            visits: Visit recorder
            dispatcher: Notification dispatcher (notifications off when None)
            cache: Optional read-through cache for link records
            clock: Returns the current UTC time
            logger: Optional logger
        """
        self.store = store
        self.visits = visits
        self.dispatcher = dispatcher
        self.cache = cache
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    async def resolve(
        self,
        short_code: str,
        credentials: Optional[Credentials] = None,
        metadata: Optional[RequestMetadata] = None,
    ) -> Outcome:
        """Resolve a short code.

        Args:
            short_code: The short code to resolve
            credentials: Credentials sent with the request, if any
            metadata: Requester IP and user agent

        Returns:
            Outcome of the resolution

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        credentials = credentials or Credentials()
        metadata = metadata or RequestMetadata()

        link = await self._lookup(short_code)
        if link is None:
            self.logger.info(f"Short code not found: {short_code}")
            return Outcome.not_found()

        # All checks below read this one snapshot
        now = self.clock()

        unavailable = check_availability(link, now)
        if unavailable is not None:
            self.logger.info(f"Link {short_code} unavailable: {unavailable.value}")
            return Outcome.from_denial(unavailable)

        if link.requires_credentials and not credentials.supplied:
            return Outcome.challenge(link)

        verdict = evaluate(link, credentials.access_code, credentials.email, now)
        if not verdict.allowed:
            self.logger.info(f"Access to {short_code} denied: {verdict.reason.value}")
            return Outcome.from_denial(verdict.reason)

        return await self._process_visit(link, credentials, metadata, now)

    async def _lookup(self, short_code: str) -> Optional[Link]:
        if self.cache:
            cached = await self.cache.get_link(short_code)
            if cached is not None:
                self.logger.debug(f"Cache hit for {short_code}")
                return cached

        link = await self.store.get_link(short_code)
        if link is not None and self.cache:
            await self.cache.set_link(link)
        return link

    async def _process_visit(
        self,
        link: Link,
        credentials: Credentials,
        metadata: RequestMetadata,
        now: datetime,
    ) -> Outcome:
        counted = await self.store.increment_if_below(link.short_code, link.click_limit, now)

        if self.cache:
            await self.cache.invalidate(link.short_code)

        if not counted:
            # Lost the last slot to a concurrent resolution, or expired meanwhile
            self.logger.info(f"Click for {link.short_code} rejected by store")
            return Outcome.expired() if link.is_expired(now) else Outcome.quota_exceeded()

        # The increment is the record of the click; later steps do not undo it
        try:
            await self.store.touch(link.short_code, now)
        except Exception:
            self.logger.exception(
                f"Partial failure resolving {link.short_code}: click counted but last-visited not updated"
            )

        email = credentials.email if link.requires_email else None
        try:
            await self.visits.append(
                link.short_code,
                ip_address=metadata.ip_address,
                user_agent=metadata.user_agent,
                email=email,
                timestamp=now,
            )
        except Exception:
            self.logger.exception(
                f"Partial failure resolving {link.short_code}: click counted but visit log not written"
            )

        self._notify(link)

        self.logger.info(f"Resolved {link.short_code} -> {link.original_url}")
        return Outcome.resolved(link.original_url)

    def _notify(self, link: Link) -> None:
        if self.dispatcher is None:
            return
        recipients = notification_recipients(link)
        if recipients:
            self.dispatcher.dispatch(recipients, link.short_code)


def notification_recipients(link: Link) -> List[str]:
    """Addresses to notify about one resolved visit.

    The owner is notified when notifications are enabled. Email-gated links
    also notify every allow-listed address.
    """
    if not link.notifications_enabled or not link.owner_email:
        return []

    recipients = [link.owner_email]
    for email in link.allowed_emails:
        if email not in recipients:
            recipients.append(email)
    return recipients
