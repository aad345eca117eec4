"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Design Principles:
- Request models accept loosely typed values: URL and alias rules are
  enforced by the service layer after rate limiting, so a malformed value
  still counts against the caller's quota and gets the service's error message
- JSON field names follow the public API (customAlias, userId, shortUrl)
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShortenRequest(BaseModel):
    """Request model for URL shortening endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    url: Any = Field(default=None, description="The long URL to shorten")
    custom_alias: Any = Field(
        default=None,
        alias="customAlias",
        description="Optional custom short code ([A-Za-z0-9_-], 6-32 characters)"
    )
    user_id: Optional[str] = Field(
        default=None,
        alias="userId",
        description="External identity of the submitter, if signed in"
    )


class ShortenResponse(BaseModel):
    """Response model for URL shortening endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., description="The allocated short code")
    short_url: str = Field(..., alias="shortUrl", description="The complete short URL")


class ShortLinkResponse(BaseModel):
    """A stored link as shown to its owner."""
    id: str
    original_url: str
    short_code: str
    custom_alias: Optional[str] = None
    click_count: int
    last_accessed: Optional[datetime] = None
    created_at: datetime
    short_url: str


class ErrorResponse(BaseModel):
    """Body of every error response."""
    error: str
