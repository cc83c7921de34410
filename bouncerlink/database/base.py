"""Abstract base classes for BouncerLink storage implementations."""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Iterable, Set
from datetime import datetime

from .models import Link, VisitLog, VisitorKey


class LinkStoreBase(ABC):
    """Abstract base class for link record storage.

    Implementations raise StoreUnavailableError when the backend cannot be
    reached; a missing link is reported as None, never as an error.
    """

    @abstractmethod
    async def get_link(self, short_code: str) -> Optional[Link]:
        """Get the link record for a short code.

        Args:
            short_code: The short code to lookup

        Returns:
            The link if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_link(self, link: Link) -> Link:
        """Persist a new link.

        Args:
            link: The link to create

        Returns:
            The stored link

        Raises:
            CodeConflictError: If the short code is already taken
        """
        pass

    @abstractmethod
    async def short_code_exists(self, short_code: str) -> bool:
        """Check if a short code already exists.

        Args:
            short_code: The short code to check

        Returns:
            True if exists, False otherwise
        """
        pass

    @abstractmethod
    async def increment_if_below(
        self,
        short_code: str,
        limit: Optional[int],
        now: datetime,
    ) -> bool:
        """Atomically count one click.

        Increments both the click counter and the visit counter, but only
        while the click counter is below ``limit`` (no bound when None) and
        the link has not expired at ``now``. The check and the increment
        must be a single atomic step against the store.

        Args:
            short_code: The short code to update
            limit: Click limit, or None for unlimited
            now: Current time, used for the expiry guard

        Returns:
            True if the click was counted, False otherwise
        """
        pass

    @abstractmethod
    async def touch(self, short_code: str, now: datetime) -> None:
        """Set the last-visited timestamp.

        Args:
            short_code: The short code to update
            now: Visit time
        """
        pass

    @abstractmethod
    async def list_links(
        self,
        owner_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[Link]:
        """List links, newest first.

        Args:
            owner_id: Restrict to links owned by this user
            limit: Maximum number of links to return

        Returns:
            List of links
        """
        pass

    @abstractmethod
    async def get_statistics(self) -> Dict[str, Any]:
        """Get database statistics.

        Returns:
            Dictionary with statistics (total_links, total_visits, etc.)
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close database connections."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if database is healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass


class VisitRecorderBase(ABC):
    """Append-only log of visits."""

    @abstractmethod
    async def append(
        self,
        short_code: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        email: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> str:
        """Record one visit.

        Args:
            short_code: The visited link
            ip_address: Requester IP, if known
            user_agent: Requester user agent, if known
            email: Email used to access an email-gated link
            timestamp: Visit time; the recorder's own clock when None

        Returns:
            Identifier of the new visit entry
        """
        pass

    @abstractmethod
    async def list_visits(
        self,
        short_code: str,
        limit: Optional[int] = None,
    ) -> List[VisitLog]:
        """List visits for a link, newest first.

        Args:
            short_code: The link to list visits for
            limit: Maximum number of entries (all when None)

        Returns:
            List of visit entries
        """
        pass

    @abstractmethod
    async def count_unique_visitors(self, short_code: str, key: VisitorKey) -> int:
        """Count distinct visitors over the whole log of a link.

        Args:
            short_code: The link to count visitors for
            key: DEVICE counts (ip, user agent) pairs, EMAIL counts distinct emails

        Returns:
            Number of distinct visitors
        """
        pass

    @abstractmethod
    async def accessed_emails(self, short_code: str, emails: Iterable[str]) -> Set[str]:
        """Find which of the given emails appear anywhere in the log of a link.

        Args:
            short_code: The link to check
            emails: Candidate emails, usually the link's allow-list

        Returns:
            The subset of ``emails`` with at least one visit entry
        """
        pass

    async def close(self) -> None:
        """Release resources held by the recorder."""
