"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime

from bouncerlink.database.models import MAX_CLICK_LIMIT


class ShortenRequest(BaseModel):
    """Request to shorten a URL.

    Everything but ``url`` is ignored for anonymous callers.
    """

    url: str = Field(..., description="The URL to shorten", min_length=1, max_length=2048)
    custom_code: Optional[str] = Field(None, description="Optional custom short code", min_length=4, max_length=20)
    expires_at: Optional[datetime] = Field(None, description="Expiry time (UTC if no offset given)")
    access_code: Optional[str] = Field(None, description="Secret required to follow the link", max_length=128)
    allowed_emails: List[str] = Field(default_factory=list, description="Emails allowed to follow the link")
    click_limit: Optional[int] = Field(None, description="Maximum number of clicks", ge=1, le=MAX_CLICK_LIMIT)
    notifications_enabled: bool = Field(False, description="Email the owner on each visit")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "url": "https://example.com/very/long/path/to/resource",
                },
                {
                    "url": "https://example.com/quarterly-report.pdf",
                    "custom_code": "q3report",
                    "access_code": "xyz",
                    "allowed_emails": ["a@example.com", "b@example.com"],
                    "click_limit": 10,
                    "notifications_enabled": True,
                }
            ]
        }
    }


class ShortenResponse(BaseModel):
    """Response after shortening a URL."""

    short_code: str = Field(..., description="The generated short code")
    short_url: str = Field(..., description="The complete short URL")
    original_url: str = Field(..., description="The original long URL")
    created_at: datetime = Field(..., description="Creation timestamp")
    expires_at: Optional[datetime] = Field(None, description="Expiry timestamp")


class ResolveRequest(BaseModel):
    """Credentials submitted to open a gated link."""

    model_config = ConfigDict(populate_by_name=True)

    access_code: Optional[str] = Field(None, alias="accessCode", max_length=128)
    email: Optional[str] = Field(None, max_length=254)


class ResolveResponse(BaseModel):
    url: str


class LinkInfoResponse(BaseModel):
    """Public information about a link."""

    short_code: str
    original_url: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    click_limit: Optional[int] = None
    current_clicks: int
    visits: int
    last_visited_at: Optional[datetime] = None
    requires_access_code: bool
    requires_email: bool
    notifications_enabled: bool


class LinkListItem(BaseModel):
    short_code: str
    short_url: str
    original_url: str
    visits: int
    created_at: datetime
    last_visited_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    database: str = Field(..., description="Database status")
    cache: str = Field(..., description="Cache status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error code")
    detail: Optional[str] = Field(None, description="Detailed error information")
    reason: Optional[str] = Field(None, description="Denial reason")
    requires_access_code: Optional[bool] = None
    requires_email: Optional[bool] = None


class StatisticsResponse(BaseModel):
    """Statistics response."""

    total_links: int
    total_visits: int
    database: str
    cache_enabled: bool
    custom_codes_enabled: bool
    notifications_enabled: bool
