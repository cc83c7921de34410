#!/usr/bin/env python3
"""
Main entry point for the BouncerLink service.

Concurrency: requests are served concurrently on the event loop (FastAPI +
asyncpg connection pool + redis.asyncio). Set WORKERS > 1 for multi-process
scaling; click limits stay exact across workers because the PostgreSQL store
counts clicks with a single conditional UPDATE.

Usage:
    python app.py

Environment variables:
    STORAGE_BACKEND - 'postgres' (default) or 'memory'
    DATABASE_URL - PostgreSQL connection URL
    DATABASE_CREATE_TABLES - Set to 'true' to create tables on startup
    REDIS_URL - Redis connection URL (optional)
    SMTP_HOST / SMTP_USER / SMTP_PASSWORD - Visit notification mail server (optional)
    BASE_URL - Base URL for short links
    PORT - Port to listen on
    WORKERS - Number of uvicorn worker processes (default 1)
    LOG_LEVEL - Logging level
"""

import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import load_config
from bouncerlink.factory import build_service
from bouncerlink.common.logging_config import setup_logging
from web_app import create_app


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting BouncerLink service...")

    app.state.service = await build_service(config, logger)

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down BouncerLink service...")

    if app.state.service:
        await app.state.service.close()

    logger.info("Service stopped")


def main():
    """Main entry point."""
    config = load_config()

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    logger.info("BouncerLink Service")
    logger.info(f"Configuration: {config.safe_dump()}")

    if config.workers > 1 and config.storage_backend == "memory":
        logger.error("The memory backend cannot be shared between workers; use postgres or WORKERS=1")
        sys.exit(1)

    # Service is created in lifespan, inside the server's event loop
    app = create_app(service_instance=None, config=config)
    app.state.logger = logger
    app.router.lifespan_context = lifespan

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        workers=config.workers,
        log_level=config.log_level.lower(),
        access_log=True,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
