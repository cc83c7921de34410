#!/usr/bin/env python3
"""
Command-line interface for the BouncerLink service.

Usage:
    python bouncerlink_cli.py shorten <url> [--owner ID] [--access-code CODE] [--allow-email EMAIL ...]
    python bouncerlink_cli.py resolve <short_code> [--access-code CODE] [--email EMAIL]
    python bouncerlink_cli.py info <short_code>
    python bouncerlink_cli.py analytics <short_code> [--as-user ID]
    python bouncerlink_cli.py list --owner ID [--limit N]
    python bouncerlink_cli.py health
"""

import argparse
import asyncio
import json
import sys
import os
from datetime import datetime, timedelta, timezone
from typing import Optional, List

# Add repository root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from config import load_config
from bouncerlink.errors import BouncerLinkError
from bouncerlink.factory import build_service
from bouncerlink.resolver import Credentials, RequestMetadata
from bouncerlink.common.logging_config import setup_logging


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def _print(payload: dict, error: bool = False) -> None:
    print(json.dumps(payload, indent=2, default=_json_default), file=sys.stderr if error else sys.stdout)


class BouncerLinkCLI:
    """Command-line interface for BouncerLink."""

    def __init__(self, config, verbose: bool = False):
        self.config = config
        self.logger = setup_logging(level="DEBUG" if verbose else "WARNING")
        self.service = None

    async def initialize(self):
        """Initialize storage and service."""
        self.service = await build_service(self.config, self.logger)

    async def cleanup(self):
        """Cleanup resources."""
        if self.service:
            await self.service.close()

    async def shorten(
        self,
        url: str,
        owner: Optional[str] = None,
        owner_email: Optional[str] = None,
        custom_code: Optional[str] = None,
        access_code: Optional[str] = None,
        allowed_emails: Optional[List[str]] = None,
        click_limit: Optional[int] = None,
        expires_in_hours: Optional[float] = None,
        notify: bool = False,
    ):
        """Create a link."""
        expires_at = None
        if expires_in_hours is not None:
            expires_at = datetime.now(timezone.utc) + timedelta(hours=expires_in_hours)

        try:
            link = await self.service.create_link(
                url,
                owner_id=owner,
                owner_email=owner_email,
                custom_code=custom_code,
                expires_at=expires_at,
                access_code=access_code,
                allowed_emails=allowed_emails,
                click_limit=click_limit,
                notifications_enabled=notify,
            )
        except BouncerLinkError as e:
            _print({"success": False, "error": str(e)}, error=True)
            return 1

        _print({
            "success": True,
            "short_code": link.short_code,
            "original_url": link.original_url,
            "created_at": link.created_at,
            "expires_at": link.expires_at,
            "message": f"Successfully shortened URL to: {link.short_code}",
        })
        return 0

    async def resolve(self, short_code: str, access_code: Optional[str] = None, email: Optional[str] = None):
        """Resolve a short code. This counts as a click."""
        outcome = await self.service.resolve(
            short_code,
            Credentials(access_code=access_code, email=email),
            RequestMetadata(user_agent="bouncerlink-cli"),
        )

        payload = {
            "success": outcome.is_resolved,
            "short_code": short_code,
            "outcome": outcome.status.value,
        }
        if outcome.url:
            payload["url"] = outcome.url
        if outcome.reason:
            payload["reason"] = outcome.reason.value
        if outcome.requires_access_code or outcome.requires_email:
            payload["requires_access_code"] = outcome.requires_access_code
            payload["requires_email"] = outcome.requires_email

        _print(payload, error=not outcome.is_resolved)
        return 0 if outcome.is_resolved else 1

    async def info(self, short_code: str):
        """Show public information about a link."""
        info = await self.service.get_link_info(short_code)

        if not info:
            _print({"success": False, "error": f"Short code '{short_code}' not found"}, error=True)
            return 1

        _print({"success": True, **info})
        return 0

    async def analytics(self, short_code: str, as_user: Optional[str] = None):
        """Show analytics, full detail only when acting as the owner."""
        summary = await self.service.get_analytics(short_code, requester_id=as_user)

        if summary is None:
            _print({"success": False, "error": f"Short code '{short_code}' not found"}, error=True)
            return 1

        _print({"success": True, "short_code": short_code, **summary.to_dict()})
        return 0

    async def list_links(self, owner: str, limit: int = 100):
        """List a user's links."""
        links = await self.service.list_links(owner_id=owner, limit=limit)

        _print({
            "success": True,
            "count": len(links),
            "links": [self.service.public_info(link) for link in links],
        })
        return 0

    async def health(self):
        """Check service health."""
        health_status = await self.service.health_check()
        stats = await self.service.get_statistics()

        _print({
            "success": True,
            "health": health_status,
            "statistics": stats,
        })

        return 0 if health_status["overall"] else 1


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="BouncerLink CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Anonymous link (expires in 24 hours)
  %(prog)s shorten https://example.com/long/url

  # Gated link owned by a user
  %(prog)s shorten https://example.com/report --owner u1 --owner-email me@example.com \\
      --access-code xyz --allow-email a@example.com --click-limit 5 --notify

  # Resolve (counts a click)
  %(prog)s resolve mylink --access-code xyz --email a@example.com

  # Owner analytics
  %(prog)s analytics mylink --as-user u1

  # List a user's links
  %(prog)s list --owner u1 --limit 10
        """
    )

    parser.add_argument(
        "--db-url",
        default=None,
        help="PostgreSQL connection URL (default: DATABASE_URL from environment/config)"
    )

    parser.add_argument(
        "--redis-url",
        default=None,
        help="Redis connection URL (optional, default: REDIS_URL from environment/config)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    shorten_parser = subparsers.add_parser("shorten", help="Create a link")
    shorten_parser.add_argument("url", help="URL to shorten")
    shorten_parser.add_argument("--owner", help="Owner user id (omit for an anonymous link)")
    shorten_parser.add_argument("--owner-email", help="Owner email for notifications")
    shorten_parser.add_argument("--custom-code", help="Custom short code")
    shorten_parser.add_argument("--access-code", help="Access code required to follow the link")
    shorten_parser.add_argument("--allow-email", action="append", dest="allowed_emails", help="Allowed email (repeatable)")
    shorten_parser.add_argument("--click-limit", type=int, help="Maximum number of clicks")
    shorten_parser.add_argument("--expires-in-hours", type=float, help="Expire after this many hours")
    shorten_parser.add_argument("--notify", action="store_true", help="Notify on each visit")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a short code (counts a click)")
    resolve_parser.add_argument("short_code", help="Short code to resolve")
    resolve_parser.add_argument("--access-code", help="Access code")
    resolve_parser.add_argument("--email", help="Email")

    info_parser = subparsers.add_parser("info", help="Show link information")
    info_parser.add_argument("short_code", help="Short code to lookup")

    analytics_parser = subparsers.add_parser("analytics", help="Show link analytics")
    analytics_parser.add_argument("short_code", help="Short code to report on")
    analytics_parser.add_argument("--as-user", help="Act as this user id (owner sees full analytics)")

    list_parser = subparsers.add_parser("list", help="List a user's links")
    list_parser.add_argument("--owner", required=True, help="Owner user id")
    list_parser.add_argument("--limit", type=int, default=100, help="Maximum number to return")

    subparsers.add_parser("health", help="Check service health")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    overrides = {}
    if args.db_url:
        overrides["database_url"] = args.db_url
    if args.redis_url:
        overrides["redis_url"] = args.redis_url
    config = load_config().model_copy(update=overrides)

    cli = BouncerLinkCLI(config=config, verbose=args.verbose)

    try:
        await cli.initialize()

        if args.command == "shorten":
            return await cli.shorten(
                args.url,
                owner=args.owner,
                owner_email=args.owner_email,
                custom_code=args.custom_code,
                access_code=args.access_code,
                allowed_emails=args.allowed_emails,
                click_limit=args.click_limit,
                expires_in_hours=args.expires_in_hours,
                notify=args.notify,
            )
        elif args.command == "resolve":
            return await cli.resolve(args.short_code, args.access_code, args.email)
        elif args.command == "info":
            return await cli.info(args.short_code)
        elif args.command == "analytics":
            return await cli.analytics(args.short_code, args.as_user)
        elif args.command == "list":
            return await cli.list_links(args.owner, args.limit)
        elif args.command == "health":
            return await cli.health()
        else:
            parser.print_help()
            return 1

    except BouncerLinkError as e:
        _print({"success": False, "error": str(e)}, error=True)
        return 1

    finally:
        await cli.cleanup()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
