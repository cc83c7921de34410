"""Data models for BouncerLink."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List


# Largest click limit the INTEGER column holds
MAX_CLICK_LIMIT = 2147483647


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Link:
    """A short code and the rules that gate its redirection."""

    short_code: str
    original_url: str
    created_at: datetime
    owner_id: Optional[str] = None
    owner_email: Optional[str] = None
    expires_at: Optional[datetime] = None
    access_code: Optional[str] = None
    allowed_emails: List[str] = field(default_factory=list)
    click_limit: Optional[int] = None
    current_clicks: int = 0
    visits: int = 0
    last_visited_at: Optional[datetime] = None
    notifications_enabled: bool = False

    @property
    def requires_access_code(self) -> bool:
        return bool(self.access_code)

    @property
    def requires_email(self) -> bool:
        return len(self.allowed_emails) > 0

    @property
    def requires_credentials(self) -> bool:
        """True if the link cannot be followed without credentials."""
        return self.requires_access_code or self.requires_email

    @property
    def quota_exhausted(self) -> bool:
        return self.click_limit is not None and self.current_clicks >= self.click_limit

    def is_expired(self, now: datetime) -> bool:
        """Check whether the link has expired at the given instant."""
        return self.expires_at is not None and now > self.expires_at

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "short_code": self.short_code,
            "original_url": self.original_url,
            "created_at": _format_datetime(self.created_at),
            "owner_id": self.owner_id,
            "owner_email": self.owner_email,
            "expires_at": _format_datetime(self.expires_at),
            "access_code": self.access_code,
            "allowed_emails": list(self.allowed_emails),
            "click_limit": self.click_limit,
            "current_clicks": self.current_clicks,
            "visits": self.visits,
            "last_visited_at": _format_datetime(self.last_visited_at),
            "notifications_enabled": self.notifications_enabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Link":
        """Create from dictionary."""
        return cls(
            short_code=data["short_code"],
            original_url=data["original_url"],
            created_at=_parse_datetime(data["created_at"]),
            owner_id=data.get("owner_id"),
            owner_email=data.get("owner_email"),
            expires_at=_parse_datetime(data.get("expires_at")),
            access_code=data.get("access_code"),
            allowed_emails=list(data.get("allowed_emails") or []),
            click_limit=data.get("click_limit"),
            current_clicks=data.get("current_clicks", 0),
            visits=data.get("visits", 0),
            last_visited_at=_parse_datetime(data.get("last_visited_at")),
            notifications_enabled=bool(data.get("notifications_enabled", False)),
        )


class VisitorKey(str, Enum):
    """How to tell two visitors apart."""

    DEVICE = "device"  # (ip_address, user_agent) pair
    EMAIL = "email"  # distinct non-null email


@dataclass(frozen=True)
class VisitLog:
    """One authorized access to a link. Never modified after it is written."""

    id: str
    short_code: str
    timestamp: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "short_code": self.short_code,
            "timestamp": _format_datetime(self.timestamp),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VisitLog":
        """Create from dictionary."""
        return cls(
            id=str(data["id"]),
            short_code=data["short_code"],
            timestamp=_parse_datetime(data["timestamp"]),
            ip_address=data.get("ip_address"),
            user_agent=data.get("user_agent"),
            email=data.get("email"),
        )
