"""Build a LinkService from configuration."""

import logging
from typing import Optional

from .database.base import LinkStoreBase
from .database.cache import RedisCache
from .database.memory import InMemoryLinkStore
from .database.postgres import LinkStorePostgres
from .notifier import LoggingNotifier, NotificationDispatcher, NotifierBase, SMTPNotifier
from .service import LinkService
from .shortcode import ShortCodeGenerator


def create_store(config, logger: Optional[logging.Logger] = None) -> LinkStoreBase:
    """Create the configured link store (which also records visits)."""
    logger = logger or logging.getLogger(__name__)
    if config.storage_backend == "memory":
        logger.warning("Using in-memory storage; data is lost on restart")
        return InMemoryLinkStore(logger=logger)

    logger.info(f"Using PostgreSQL storage at {config.database_url.rsplit('@', 1)[-1]}")
    return LinkStorePostgres(
        db_config=config.database_url,
        pool_max_size=config.database_pool_max_size,
        create_tables=config.database_create_tables,
        logger=logger,
    )


def create_notifier(config, logger: Optional[logging.Logger] = None) -> NotifierBase:
    """Create the SMTP notifier, or a log-only one when SMTP is not configured."""
    logger = logger or logging.getLogger(__name__)
    if not config.smtp_host:
        logger.info("SMTP not configured, visit notifications will only be logged")
        return LoggingNotifier(logger=logger)

    return SMTPNotifier(
        host=config.smtp_host,
        port=config.smtp_port,
        username=config.smtp_user,
        password=config.smtp_password,
        sender=config.smtp_from,
        use_tls=config.smtp_use_tls,
        timeout_seconds=config.notification_timeout_seconds,
        logger=logger,
    )


async def build_service(config, logger: Optional[logging.Logger] = None) -> LinkService:
    """Create and connect every component of the service.

    Args:
        config: Application configuration
        logger: Optional logger shared by all components

    Returns:
        Ready-to-use service
    """
    logger = logger or logging.getLogger(__name__)
    store = create_store(config, logger)

    cache = None
    if config.redis_url:
        logger.info("Connecting to Redis cache")
        cache = RedisCache(
            redis_url=config.redis_url,
            ttl_seconds=config.cache_ttl_seconds,
            logger=logger,
        )
        await cache.connect()
    else:
        logger.info("Redis caching disabled")

    dispatcher = NotificationDispatcher(
        notifier=create_notifier(config, logger),
        timeout_seconds=config.notification_timeout_seconds,
        logger=logger,
    )

    return LinkService(
        store=store,
        visits=store,
        cache=cache,
        dispatcher=dispatcher,
        short_code_generator=ShortCodeGenerator(default_length=config.short_code_length),
        logger=logger,
        enable_custom_codes=config.enable_custom_codes,
        max_collision_retries=config.max_collision_retries,
        anonymous_link_ttl_hours=config.anonymous_link_ttl_hours,
        recent_visits_limit=config.recent_visits_limit,
    )
