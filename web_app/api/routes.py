"""API routes implementation."""

from typing import Optional

from fastapi import APIRouter, Request, HTTPException, Query, status
from fastapi.responses import JSONResponse
from datetime import datetime, timezone

from .schemas import (
    ShortenRequest,
    ShortenResponse,
    ResolveRequest,
    ResolveResponse,
    LinkInfoResponse,
    LinkListItem,
    HealthResponse,
    ErrorResponse,
    StatisticsResponse,
)
from ..outcomes import outcome_error
from bouncerlink.analytics import Summary
from bouncerlink.common.url_builder import short_url_for_request
from bouncerlink.errors import CodeConflictError, InvalidLinkError
from bouncerlink.resolver import Credentials, RequestMetadata

router = APIRouter()


def _short_url(request: Request, short_code: str) -> str:
    config = request.app.state.config
    return short_url_for_request(
        short_code=short_code,
        headers=dict(request.headers),
        fallback_base_url=config.base_url,
        configured_prefix=config.path_prefix,
        request_scheme=request.url.scheme,
        request_host=request.headers.get("host"),
    )


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        409: {"model": ErrorResponse, "description": "Short code already exists"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Create short URL",
    description=(
        "Create a shortened URL. Signed-in users may set a custom code, expiry, "
        "access code, allowed emails, click limit and notifications. Anonymous "
        "links expire after 24 hours and carry no access rules."
    ),
)
async def shorten_url(request: Request, body: ShortenRequest):
    """Create a shortened URL."""
    service = request.app.state.service

    try:
        link = await service.create_link(
            original_url=body.url,
            owner_id=request.state.user_id,
            owner_email=request.state.user_email,
            custom_code=body.custom_code,
            expires_at=body.expires_at,
            access_code=body.access_code,
            allowed_emails=body.allowed_emails,
            click_limit=body.click_limit,
            notifications_enabled=body.notifications_enabled,
        )
    except CodeConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except InvalidLinkError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ShortenResponse(
        short_code=link.short_code,
        short_url=_short_url(request, link.short_code),
        original_url=link.original_url,
        created_at=link.created_at,
        expires_at=link.expires_at,
    )


@router.post(
    "/resolve/{short_code}",
    response_model=ResolveResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Credentials required"},
        403: {"model": ErrorResponse, "description": "Credentials rejected"},
        404: {"model": ErrorResponse, "description": "Short code not found"},
        410: {"model": ErrorResponse, "description": "Link expired or click limit reached"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Resolve a short code",
    description="Submit credentials for a link and get its destination. Each success counts as a click.",
)
async def resolve_link(request: Request, short_code: str, body: Optional[ResolveRequest] = None):
    """Resolve a short code with optional credentials."""
    service = request.app.state.service
    body = body or ResolveRequest()

    outcome = await service.resolve(
        short_code,
        Credentials(access_code=body.access_code, email=body.email),
        RequestMetadata(
            ip_address=request.state.client_ip,
            user_agent=request.headers.get("user-agent"),
        ),
    )

    if outcome.is_resolved:
        return ResolveResponse(url=outcome.url)

    status_code, error = outcome_error(outcome)
    return JSONResponse(status_code=status_code, content=error)


@router.get(
    "/urls/{short_code}",
    response_model=LinkInfoResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Short code not found"},
    },
    summary="Get URL information",
    description="Get public information about a link. Secrets are never returned.",
)
async def get_url_info(request: Request, short_code: str):
    """Get information about a shortened URL."""
    service = request.app.state.service

    info = await service.get_link_info(short_code)

    if not info:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Short code '{short_code}' not found",
        )

    return LinkInfoResponse(**info)


@router.get(
    "/links",
    response_model=list[LinkListItem],
    responses={
        401: {"model": ErrorResponse, "description": "Sign-in required"},
    },
    summary="List my links",
    description="List the signed-in user's links, newest first.",
)
async def list_links(request: Request, limit: int = Query(100, ge=1, le=1000)):
    """List links owned by the caller."""
    service = request.app.state.service
    user_id = request.state.user_id

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in to list your links",
        )

    links = await service.list_links(owner_id=user_id, limit=limit)
    return [
        LinkListItem(
            short_code=link.short_code,
            short_url=_short_url(request, link.short_code),
            original_url=link.original_url,
            visits=link.visits,
            created_at=link.created_at,
            last_visited_at=link.last_visited_at,
            expires_at=link.expires_at,
        )
        for link in links
    ]


@router.get(
    "/analytics/{short_code}",
    responses={
        404: {"model": ErrorResponse, "description": "Short code not found"},
    },
    summary="Get link analytics",
    description="Full analytics for the link owner; total visits only for everyone else.",
)
async def get_analytics(request: Request, short_code: str):
    """Get analytics for a link."""
    service = request.app.state.service
    user_id = request.state.user_id

    summary = await service.get_analytics(short_code, requester_id=user_id)

    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Short code '{short_code}' not found",
        )

    return {
        **summary.to_dict(),
        "is_owner": isinstance(summary, Summary),
        "is_authenticated": user_id is not None,
    }


@router.get(
    "/stats",
    response_model=StatisticsResponse,
    summary="Get statistics",
    description="Get service-wide statistics.",
)
async def get_statistics(request: Request):
    """Get service statistics."""
    service = request.app.state.service

    stats = await service.get_statistics()

    return StatisticsResponse(**stats)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the service is healthy.",
)
async def health_check(request: Request):
    """Health check endpoint for load balancers and monitoring."""
    service = request.app.state.service

    health = await service.health_check()

    return HealthResponse(
        status="healthy" if health["overall"] else "unhealthy",
        database="healthy" if health["database"] else "unhealthy",
        cache="healthy" if health["cache"] else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )
