"""URL building utilities for BouncerLink."""

from typing import Dict, Optional

from .headers import build_base_url, get_forwarded_path_prefix


def build_short_url(short_code: str, base_url: str, path_prefix: str = "") -> str:
    """Join base URL, optional prefix and short code."""
    base = base_url.rstrip("/")
    prefix = path_prefix.strip("/")

    if prefix:
        return f"{base}/{prefix}/{short_code}"
    return f"{base}/{short_code}"


def resolve_path_prefix(headers: Dict[str, str], configured_prefix: str = "") -> str:
    """Path prefix for public links.

    X-Forwarded-Prefix from the proxy wins over the configured prefix.
    Result is normalized to a leading slash and no trailing slash, or ''.
    """
    prefix = get_forwarded_path_prefix(headers)
    if prefix:
        return prefix
    p = (configured_prefix or "").strip().strip("/")
    return "/" + p if p else ""


def short_url_for_request(
    short_code: str,
    headers: Dict[str, str],
    fallback_base_url: str,
    configured_prefix: str = "",
    request_scheme: Optional[str] = None,
    request_host: Optional[str] = None,
) -> str:
    """Public short URL as seen by the client that made this request.

    Args:
        short_code: The short code
        headers: Request headers
        fallback_base_url: Base URL from configuration
        configured_prefix: Path prefix from configuration
        request_scheme: Request scheme (http/https)
        request_host: Request Host header

    Returns:
        Complete short URL
    """
    base_url = build_base_url(
        headers=headers,
        fallback_base_url=fallback_base_url,
        request_scheme=request_scheme,
        request_host=request_host,
    )
    return build_short_url(short_code, base_url, resolve_path_prefix(headers, configured_prefix))
