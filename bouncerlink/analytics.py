"""Read-only visit analytics."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, List, Optional, Sequence, Union

from .database.models import Link, VisitLog


NO_LIMIT = "No limit"


@dataclass(frozen=True)
class EmailAccessStatus:
    email: str
    accessed: bool


@dataclass
class BasicSummary:
    """What anyone but the owner may see."""

    total_visits: int

    def to_dict(self) -> dict:
        return {"total_visits": self.total_visits}


@dataclass
class Summary:
    """Owner-facing analytics for one link."""

    total_visits: int
    current_clicks: int
    unique_visitors: int
    unique_email_visitors: int
    click_limit: Union[int, str]
    last_visited_at: Optional[datetime]
    recent_visits: List[VisitLog] = field(default_factory=list)
    email_access: List[EmailAccessStatus] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total_visits": self.total_visits,
            "current_clicks": self.current_clicks,
            "unique_visitors": self.unique_visitors,
            "unique_email_visitors": self.unique_email_visitors,
            "click_limit": self.click_limit,
            "last_visited_at": self.last_visited_at.isoformat() if self.last_visited_at else None,
            "recent_visits": [visit.to_dict() for visit in self.recent_visits],
            "email_access": [
                {"email": status.email, "accessed": status.accessed}
                for status in self.email_access
            ],
        }


def summarize(
    link: Link,
    recent_visits: Sequence[VisitLog],
    unique_visitors: int,
    unique_email_visitors: int,
    accessed_emails: AbstractSet[str],
    recent_limit: int = 10,
) -> Summary:
    """Build the analytics summary for a link.

    The counts and the accessed emails must come from the link's whole
    visit log; only ``recent_visits`` may be a truncated read.

    Args:
        link: The link being reported on
        recent_visits: Latest visit entries (any order)
        unique_visitors: Distinct (ip, user agent) pairs in the log
        unique_email_visitors: Distinct emails in the log
        accessed_emails: Allow-listed emails with at least one visit entry
        recent_limit: Number of recent visits to include

    Returns:
        Summary; zeros and empty lists when there are no visits
    """
    newest_first = sorted(recent_visits, key=lambda visit: visit.timestamp, reverse=True)

    return Summary(
        total_visits=link.visits,
        current_clicks=link.current_clicks,
        unique_visitors=unique_visitors,
        unique_email_visitors=unique_email_visitors,
        click_limit=link.click_limit if link.click_limit is not None else NO_LIMIT,
        last_visited_at=link.last_visited_at,
        recent_visits=newest_first[:max(recent_limit, 0)],
        email_access=[
            EmailAccessStatus(email=email, accessed=email in accessed_emails)
            for email in link.allowed_emails
        ],
    )
