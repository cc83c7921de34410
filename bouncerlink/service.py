"""Business logic service for BouncerLink."""

import logging
from typing import Optional, Dict, Any, List, Iterable, Union
from datetime import datetime, timedelta, timezone

from .shortcode import ShortCodeGenerator
from .access import DenialReason
from .analytics import BasicSummary, Summary, summarize
from .database.base import LinkStoreBase, VisitRecorderBase
from .database.cache import RedisCache
from .database.models import MAX_CLICK_LIMIT, Link, VisitorKey
from .errors import CodeConflictError, InvalidLinkError
from .notifier import NotificationDispatcher
from .resolver import Credentials, Outcome, RequestMetadata, ResolutionEngine, utcnow
from .common.validators import is_valid_url, is_valid_short_code, is_valid_email


class LinkService:
    """Service layer for link creation, resolution and analytics."""

    def __init__(
        self,
        store: LinkStoreBase,
        visits: VisitRecorderBase,
        cache: Optional[RedisCache] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        logger: Optional[logging.Logger] = None,
        enable_custom_codes: bool = True,
        max_collision_retries: int = 5,
        anonymous_link_ttl_hours: int = 24,
        recent_visits_limit: int = 10,
        clock=utcnow,
    ):
        """Initialize link service.

        Args:
            store: Link store
            visits: Visit recorder
            cache: Optional cache instance
            dispatcher: Optional notification dispatcher
            short_code_generator: Optional short code generator
            logger: Optional logger
            enable_custom_codes: Whether to allow custom short codes
            max_collision_retries: Maximum retries on collision
            anonymous_link_ttl_hours: Lifetime of links created without an owner
            recent_visits_limit: Number of recent visits in analytics
            clock: Returns the current UTC time
        """
        self.store = store
        self.visits = visits
        self.cache = cache
        self.dispatcher = dispatcher
        self.generator = short_code_generator or ShortCodeGenerator()
        self.logger = logger or logging.getLogger(__name__)
        self.enable_custom_codes = enable_custom_codes
        self.max_collision_retries = max_collision_retries
        self.anonymous_link_ttl = timedelta(hours=anonymous_link_ttl_hours)
        self.recent_visits_limit = recent_visits_limit
        self.clock = clock

        self.engine = ResolutionEngine(
            store=store,
            visits=visits,
            dispatcher=dispatcher,
            cache=cache,
            clock=clock,
            logger=self.logger,
        )

    async def create_link(
        self,
        original_url: str,
        owner_id: Optional[str] = None,
        owner_email: Optional[str] = None,
        custom_code: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        access_code: Optional[str] = None,
        allowed_emails: Optional[Iterable[str]] = None,
        click_limit: Optional[int] = None,
        notifications_enabled: bool = False,
    ) -> Link:
        """Create a new link.

        Links without an owner are anonymous: they always expire after the
        anonymous TTL and carry no access rules, whatever the caller asked for.

        Args:
            original_url: Destination URL
            owner_id: Creating user, None for anonymous
            owner_email: Creating user's email (notification target)
            custom_code: Optional custom short code
            expires_at: Optional expiry time
            access_code: Optional secret required to follow the link
            allowed_emails: Optional allow-list of emails
            click_limit: Optional maximum number of clicks
            notifications_enabled: Notify on each resolved visit

        Returns:
            The created link

        Raises:
            InvalidLinkError: If validation fails
            CodeConflictError: If the custom code is taken
            StoreUnavailableError: If the store cannot be reached
        """
        is_valid, error = is_valid_url(original_url)
        if not is_valid:
            raise InvalidLinkError(f"Invalid URL: {error}")

        now = self.clock()

        if owner_id is None:
            if any([custom_code, expires_at, access_code, allowed_emails, click_limit, notifications_enabled]):
                self.logger.debug("Ignoring link options on anonymous create")
            link = Link(
                short_code="",
                original_url=original_url,
                created_at=now,
                expires_at=now + self.anonymous_link_ttl,
            )
            custom_code = None
        else:
            link = Link(
                short_code="",
                original_url=original_url,
                created_at=now,
                owner_id=owner_id,
                owner_email=owner_email or None,
                expires_at=self._validate_expiry(expires_at, now),
                access_code=(access_code or "").strip() or None,
                allowed_emails=self._validate_emails(allowed_emails),
                click_limit=self._validate_click_limit(click_limit),
                notifications_enabled=notifications_enabled,
            )

        if custom_code:
            link.short_code = await self.generate_short_code(custom_code)
            await self.store.create_link(link)
        else:
            await self._create_with_generated_code(link)

        if self.cache:
            await self.cache.set_link(link)

        self.logger.info(
            f"Created link: {link.short_code} -> {original_url} "
            f"(owner={owner_id or 'anonymous'})"
        )
        return link

    async def generate_short_code(self, custom_code: Optional[str] = None) -> str:
        """Pick a short code that is not in use.

        Args:
            custom_code: Requested code, validated and checked for collision

        Returns:
            A free short code

        Raises:
            InvalidLinkError: If custom codes are disabled or the code is malformed
            CodeConflictError: If the custom code exists or no free code was found
        """
        if custom_code:
            if not self.enable_custom_codes:
                raise InvalidLinkError("Custom short codes are not enabled")

            is_valid, error = is_valid_short_code(custom_code)
            if not is_valid:
                raise InvalidLinkError(f"Invalid short code: {error}")

            if await self.store.short_code_exists(custom_code):
                raise CodeConflictError(custom_code)

            return custom_code

        for attempt in range(self.max_collision_retries):
            code = self.generator.generate_random()
            if not await self.store.short_code_exists(code):
                if attempt:
                    self.logger.debug(f"Generated code after {attempt + 1} attempts: {code}")
                return code

        # Last resort: use UUID-based code (highly unlikely to collide)
        code = self.generator.generate_from_uuid()
        if not await self.store.short_code_exists(code):
            return code

        raise CodeConflictError(code)

    async def _create_with_generated_code(self, link: Link) -> None:
        # A code can be taken between the existence check and the insert;
        # generate again rather than overwrite.
        for _ in range(self.max_collision_retries + 1):
            link.short_code = await self.generate_short_code()
            try:
                await self.store.create_link(link)
                return
            except CodeConflictError:
                self.logger.warning(f"Generated code {link.short_code} was taken concurrently, retrying")
        raise CodeConflictError(link.short_code)

    def _validate_expiry(self, expires_at: Optional[datetime], now: datetime) -> Optional[datetime]:
        if expires_at is None:
            return None
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= now:
            raise InvalidLinkError("Expiry must be in the future")
        return expires_at

    @staticmethod
    def _validate_click_limit(click_limit: Optional[int]) -> Optional[int]:
        if click_limit is None:
            return None
        if isinstance(click_limit, bool) or not isinstance(click_limit, int) or click_limit < 1:
            raise InvalidLinkError("Click limit must be a positive integer")
        if click_limit > MAX_CLICK_LIMIT:
            raise InvalidLinkError(f"Click limit must be at most {MAX_CLICK_LIMIT}")
        return click_limit

    @staticmethod
    def _validate_emails(emails: Optional[Iterable[str]]) -> List[str]:
        result: List[str] = []
        for email in emails or []:
            email = email.strip()
            if not email:
                continue
            is_valid, error = is_valid_email(email)
            if not is_valid:
                raise InvalidLinkError(error)
            if email not in result:
                result.append(email)
        return result

    async def resolve(
        self,
        short_code: str,
        credentials: Optional[Credentials] = None,
        metadata: Optional[RequestMetadata] = None,
    ) -> Outcome:
        """Resolve a short code. See ResolutionEngine.resolve."""
        return await self.engine.resolve(short_code, credentials, metadata)

    async def get_link(self, short_code: str) -> Optional[Link]:
        return await self.store.get_link(short_code)

    async def get_link_info(self, short_code: str) -> Optional[Dict[str, Any]]:
        """Get public information about a link.

        Secrets (access code, allow-list) are left out; only whether they
        are required is reported.

        Args:
            short_code: The short code to lookup

        Returns:
            Dictionary with link info or None
        """
        link = await self.store.get_link(short_code)
        if link is None:
            return None
        return self.public_info(link)

    @staticmethod
    def public_info(link: Link) -> Dict[str, Any]:
        return {
            "short_code": link.short_code,
            "original_url": link.original_url,
            "created_at": link.created_at,
            "expires_at": link.expires_at,
            "click_limit": link.click_limit,
            "current_clicks": link.current_clicks,
            "visits": link.visits,
            "last_visited_at": link.last_visited_at,
            "requires_access_code": link.requires_access_code,
            "requires_email": link.requires_email,
            "notifications_enabled": link.notifications_enabled,
        }

    async def list_links(self, owner_id: str, limit: int = 100) -> List[Link]:
        """List a user's links, newest first.

        Args:
            owner_id: Owner to list links for
            limit: Maximum number to return

        Returns:
            List of links
        """
        return await self.store.list_links(owner_id=owner_id, limit=limit)

    async def get_analytics(
        self,
        short_code: str,
        requester_id: Optional[str] = None,
    ) -> Optional[Union[Summary, BasicSummary]]:
        """Get analytics for a link.

        Only the owner sees the full summary. Everyone else gets the total
        visit count, and the visit log is not read for them.

        Args:
            short_code: The link to report on
            requester_id: Authenticated user making the request, if any

        Returns:
            Summary for the owner, BasicSummary otherwise, None if not found
        """
        link = await self.store.get_link(short_code)
        if link is None:
            return None

        if requester_id is None or requester_id != link.owner_id:
            return BasicSummary(total_visits=link.visits)

        recent = await self.visits.list_visits(short_code, limit=self.recent_visits_limit)
        return summarize(
            link,
            recent,
            unique_visitors=await self.visits.count_unique_visitors(short_code, VisitorKey.DEVICE),
            unique_email_visitors=await self.visits.count_unique_visitors(short_code, VisitorKey.EMAIL),
            accessed_emails=await self.visits.accessed_emails(short_code, link.allowed_emails),
            recent_limit=self.recent_visits_limit,
        )

    async def get_statistics(self) -> Dict[str, Any]:
        """Get service statistics.

        Returns:
            Dictionary with statistics
        """
        db_stats = await self.store.get_statistics()

        return {
            **db_stats,
            "cache_enabled": self.cache is not None and self.cache.enabled,
            "custom_codes_enabled": self.enable_custom_codes,
            "notifications_enabled": self.dispatcher is not None,
        }

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        db_healthy = await self.store.health_check()
        cache_healthy = await self.cache.ping() if self.cache else True

        return {
            "database": db_healthy,
            "cache": cache_healthy,
            "overall": db_healthy and cache_healthy,
        }

    async def close(self) -> None:
        """Flush pending notifications and close connections."""
        if self.dispatcher:
            await self.dispatcher.drain()
        await self.store.close()
        if self.visits is not self.store:
            await self.visits.close()
        if self.cache:
            await self.cache.close()


def describe_denial(reason: DenialReason) -> str:
    """Human-readable message for a denial reason."""
    return {
        DenialReason.EXPIRED: "This link has expired",
        DenialReason.QUOTA_EXCEEDED: "This link has reached its click limit",
        DenialReason.INVALID_ACCESS_CODE: "Invalid access code",
        DenialReason.EMAIL_NOT_AUTHORIZED: "This email is not authorized to access the link",
    }[reason]
