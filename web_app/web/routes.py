"""Browser-facing routes: redirects and the credential prompt."""

import os
from typing import Optional

from fastapi import APIRouter, Request, Form, HTTPException, status
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from ..outcomes import outcome_error
from bouncerlink.resolver import Credentials, Outcome, OutcomeStatus, RequestMetadata

router = APIRouter()

template_dir = os.path.join(os.path.dirname(__file__), "..", "templates")
templates = Jinja2Templates(directory=template_dir)


def _metadata(request: Request) -> RequestMetadata:
    return RequestMetadata(
        ip_address=request.state.client_ip,
        user_agent=request.headers.get("user-agent"),
    )


def _render_access_form(
    request: Request,
    short_code: str,
    outcome: Outcome,
    error: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
):
    return templates.TemplateResponse(
        request,
        "access.html",
        {
            "short_code": short_code,
            "requires_access_code": outcome.requires_access_code,
            "requires_email": outcome.requires_email,
            "error": error,
        },
        status_code=status_code,
    )


def _render_error(request: Request, outcome: Outcome):
    status_code, error = outcome_error(outcome)
    return templates.TemplateResponse(
        request,
        "error.html",
        {"error_message": error["detail"]},
        status_code=status_code,
    )


@router.get("/health", include_in_schema=False)
async def health_check_web(request: Request):
    """Health check endpoint (simple version for load balancers)."""
    service = request.app.state.service

    health = await service.health_check()

    if health["overall"]:
        return {"status": "healthy"}
    else:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy",
        )


@router.get("/{short_code}", include_in_schema=False)
async def redirect_to_url(request: Request, short_code: str):
    """Redirect to the destination, or ask for credentials if the link is gated."""
    service = request.app.state.service

    outcome = await service.resolve(short_code, Credentials(), _metadata(request))

    if outcome.is_resolved:
        # 302 so every visit comes back through here and is counted
        return RedirectResponse(url=outcome.url, status_code=status.HTTP_302_FOUND)

    if outcome.status is OutcomeStatus.ACCESS_CHALLENGE_REQUIRED:
        return _render_access_form(request, short_code, outcome)

    return _render_error(request, outcome)


@router.post("/{short_code}", include_in_schema=False)
async def submit_credentials(
    request: Request,
    short_code: str,
    access_code: str = Form(None),
    email: str = Form(None),
):
    """Handle the credential form."""
    service = request.app.state.service

    outcome = await service.resolve(
        short_code,
        Credentials(access_code=access_code, email=email),
        _metadata(request),
    )

    if outcome.is_resolved:
        return RedirectResponse(url=outcome.url, status_code=status.HTTP_303_SEE_OTHER)

    if outcome.status in (OutcomeStatus.ACCESS_CHALLENGE_REQUIRED, OutcomeStatus.DENIED):
        # Show the form again; a fresh lookup tells us which fields to ask for
        link = await service.get_link(short_code)
        prompt = Outcome.challenge(link) if link else outcome
        error = None
        status_code = status.HTTP_200_OK
        if outcome.status is OutcomeStatus.DENIED:
            status_code, body = outcome_error(outcome)
            error = body["detail"]
        return _render_access_form(request, short_code, prompt, error=error, status_code=status_code)

    return _render_error(request, outcome)
