"""Forwarded headers middleware."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable

from bouncerlink.common.headers import extract_forwarded_headers, get_client_ip


class ForwardedHeadersMiddleware(BaseHTTPMiddleware):
    """Expose proxy-supplied headers on ``request.state``.

    Identity comes from the authenticating proxy in front of the service:
    ``X-Forwarded-User`` (user id) and ``X-Forwarded-Email``. Requests
    without them are anonymous.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        headers = dict(request.headers)
        forwarded = extract_forwarded_headers(headers)

        request.state.forwarded_proto = forwarded["forwarded_proto"]
        request.state.forwarded_host = forwarded["forwarded_host"]
        request.state.forwarded_for = forwarded["forwarded_for"]
        request.state.user_id = (forwarded["forwarded_user"] or "").strip() or None
        request.state.user_email = (forwarded["forwarded_email"] or "").strip() or None
        request.state.client_ip = get_client_ip(
            headers,
            peer_host=request.client.host if request.client else None,
        )

        return await call_next(request)
