"""Access control rules for gated links."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .database.models import Link


class DenialReason(str, Enum):
    """Why a requester may not follow a link."""

    EXPIRED = "expired"
    QUOTA_EXCEEDED = "quota_exceeded"
    INVALID_ACCESS_CODE = "invalid_access_code"
    EMAIL_NOT_AUTHORIZED = "email_not_authorized"


@dataclass(frozen=True)
class Verdict:
    """Allow/deny decision. ``reason`` is set exactly when access is denied."""

    allowed: bool
    reason: Optional[DenialReason] = None

    @classmethod
    def allow(cls) -> "Verdict":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "Verdict":
        return cls(allowed=False, reason=reason)


def check_availability(link: Link, now: datetime) -> Optional[DenialReason]:
    """Check the rules that no credential can satisfy.

    Args:
        link: Link snapshot
        now: Current time

    Returns:
        EXPIRED or QUOTA_EXCEEDED if the link is unusable, None otherwise
    """
    if link.is_expired(now):
        return DenialReason.EXPIRED
    if link.quota_exhausted:
        return DenialReason.QUOTA_EXCEEDED
    return None


def evaluate(
    link: Link,
    access_code: Optional[str],
    email: Optional[str],
    now: datetime,
) -> Verdict:
    """Decide whether the supplied credentials open a link.

    Checks run in order and the first failure wins: expiry, click quota,
    access code, then email allow-list. The access code and email gates are
    independent; a link configured with both requires both.

    Args:
        link: Link snapshot
        access_code: Access code supplied by the requester
        email: Email supplied by the requester
        now: Current time

    Returns:
        Verdict for the request
    """
    unavailable = check_availability(link, now)
    if unavailable is not None:
        return Verdict.deny(unavailable)

    if link.requires_access_code and access_code != link.access_code:
        return Verdict.deny(DenialReason.INVALID_ACCESS_CODE)

    if link.requires_email and (not email or email not in link.allowed_emails):
        return Verdict.deny(DenialReason.EMAIL_NOT_AUTHORIZED)

    return Verdict.allow()
