"""In-process storage for development and tests."""

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Iterable, Set

from .base import LinkStoreBase, VisitRecorderBase
from .models import Link, VisitLog, VisitorKey
from ..errors import CodeConflictError


class InMemoryLinkStore(LinkStoreBase, VisitRecorderBase):
    """Link store and visit recorder backed by dictionaries.

    All mutations run under one asyncio lock, which makes the conditional
    click increment atomic within a single process. Use the PostgreSQL store
    when running more than one worker.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._links: Dict[str, Link] = {}
        self._visits: Dict[str, List[VisitLog]] = {}
        self._lock = asyncio.Lock()

    async def get_link(self, short_code: str) -> Optional[Link]:
        link = self._links.get(short_code)
        # Hand out copies so callers never mutate stored state
        return replace(link, allowed_emails=list(link.allowed_emails)) if link else None

    async def create_link(self, link: Link) -> Link:
        async with self._lock:
            if link.short_code in self._links:
                raise CodeConflictError(link.short_code)
            self._links[link.short_code] = replace(link, allowed_emails=list(link.allowed_emails))
            self._visits[link.short_code] = []
        self.logger.debug(f"Stored link {link.short_code} in memory")
        return link

    async def short_code_exists(self, short_code: str) -> bool:
        return short_code in self._links

    async def increment_if_below(
        self,
        short_code: str,
        limit: Optional[int],
        now: datetime,
    ) -> bool:
        async with self._lock:
            link = self._links.get(short_code)
            if link is None or link.is_expired(now):
                return False
            if limit is not None and link.current_clicks >= limit:
                return False
            link.current_clicks += 1
            link.visits += 1
            return True

    async def touch(self, short_code: str, now: datetime) -> None:
        async with self._lock:
            link = self._links.get(short_code)
            if link is not None:
                link.last_visited_at = now

    async def list_links(
        self,
        owner_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[Link]:
        links = [
            link for link in self._links.values()
            if owner_id is None or link.owner_id == owner_id
        ]
        links.sort(key=lambda link: link.created_at, reverse=True)
        return [replace(link, allowed_emails=list(link.allowed_emails)) for link in links[:limit]]

    async def append(
        self,
        short_code: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        email: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> str:
        visit = VisitLog(
            id=uuid.uuid4().hex,
            short_code=short_code,
            timestamp=timestamp or datetime.now(timezone.utc),
            ip_address=ip_address,
            user_agent=user_agent,
            email=email,
        )
        async with self._lock:
            self._visits.setdefault(short_code, []).append(visit)
        return visit.id

    async def list_visits(
        self,
        short_code: str,
        limit: Optional[int] = None,
    ) -> List[VisitLog]:
        # Latest append wins ties on timestamp
        visits = sorted(
            reversed(self._visits.get(short_code, [])),
            key=lambda visit: visit.timestamp,
            reverse=True,
        )
        return visits if limit is None else visits[:limit]

    async def count_unique_visitors(self, short_code: str, key: VisitorKey) -> int:
        visits = self._visits.get(short_code, [])
        if key is VisitorKey.EMAIL:
            return len({visit.email for visit in visits if visit.email is not None})
        return len({(visit.ip_address, visit.user_agent) for visit in visits})

    async def accessed_emails(self, short_code: str, emails: Iterable[str]) -> Set[str]:
        seen = {visit.email for visit in self._visits.get(short_code, []) if visit.email is not None}
        return seen.intersection(emails)

    async def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_links": len(self._links),
            "total_visits": sum(link.visits for link in self._links.values()),
            "database": "memory",
            "status": "healthy",
        }

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass
