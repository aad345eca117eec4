"""
Database Models for URL Shortener Service

This module defines the SQLModel database schema for:
- ShortLink: Stores the mapping between short codes and original URLs,
  together with click analytics and the (optional) owner identity

Design Decisions:
- Unique index on short_code: the storage layer is the authority on code
  uniqueness (inserts that collide raise IntegrityError)
- custom_alias stored redundantly next to short_code; lookups check both
- owner_id is an opaque reference to an external identity provider
- click_count denormalized in the row for quick stats without joins
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlmodel import Column, Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShortLink(SQLModel, table=True):
    """
    Main table storing URL shortening mappings.

    Fields:
    - id: Opaque UUID primary key
    - original_url: The long URL that was shortened
    - short_code: Unique lookup key (generated or equal to custom_alias)
    - custom_alias: User-chosen alias, if any
    - owner_id: External user identity, null for anonymous submissions
    - click_count: Number of redirects served
    - last_accessed: Time of the most recent redirect
    - created_at: Timestamp when URL was shortened

    Indexes:
    - short_code: Unique index for fast lookups (most critical path)
    - custom_alias: Alternate lookup key
    - owner_id: Listing a user's links
    """
    __tablename__ = "urls"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        sa_column=Column(String(36), primary_key=True)
    )
    original_url: str = Field(sa_column=Column(Text, nullable=False))
    short_code: str = Field(
        sa_column=Column(String(32), nullable=False, unique=True, index=True),
        max_length=32
    )
    custom_alias: Optional[str] = Field(
        default=None,
        sa_column=Column(String(32), nullable=True, index=True)
    )
    owner_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True, index=True)
    )
    click_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    last_accessed: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
