"""
Redirect Service

This service handles URL redirection logic:
- Resolving a path segment to a stored link (short_code or custom_alias)
- Recording click analytics (click_count, last_accessed) before redirecting

Design Decisions:
- The click increment is a single UPDATE evaluated by the database
  (click_count = click_count + 1), so concurrent visits are never lost
- Analytics are best-effort by default: a failed update is logged and the
  redirect is still served. REDIRECT_REQUIRES_ANALYTICS turns a failed update
  into a StorageError instead.
"""

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.core.exceptions import NotFoundError, StorageError
from shortlinks.core.setting import settings
from shortlinks.core.validators import sanitize_short_code
from shortlinks.db.models import ShortLink, utcnow
from shortlinks.services.url_service import URLShorteningService

logger = logging.getLogger(__name__)


class RedirectService:
    """
    Service for handling URL redirections.
    """

    def __init__(
        self,
        session: AsyncSession,
        require_analytics: Optional[bool] = None,
    ):
        """
        Initialize the redirect service with a database session.

        Args:
            session: Async database session for database operations
            require_analytics: Refuse to redirect when the click update fails
                (defaults to REDIRECT_REQUIRES_ANALYTICS)
        """
        self.session = session
        self.url_service = URLShorteningService(session)
        if require_analytics is None:
            require_analytics = settings.REDIRECT_REQUIRES_ANALYTICS
        self.require_analytics = require_analytics

    async def resolve(self, code: str) -> str:
        """
        Resolve a short code to its destination and record the click.

        Args:
            code: Path segment from the redirect URL

        Returns:
            The original URL to redirect to

        Raises:
            NotFoundError: If no link matches code
            StorageError: If the click update fails and analytics are required
        """
        sanitized_code = sanitize_short_code(code, max_length=settings.ALIAS_MAX_LENGTH)
        if not sanitized_code:
            raise NotFoundError(code)

        try:
            short_link = await self.url_service.get_by_code(sanitized_code)
        except SQLAlchemyError as e:
            logger.error(f"Lookup failed for {sanitized_code}: {e}", exc_info=True)
            raise StorageError("Failed to look up URL", original_error=e)

        if short_link is None or not short_link.original_url:
            raise NotFoundError(sanitized_code)

        # Read before the update: a rollback expires loaded instances
        original_url = short_link.original_url
        link_id = short_link.id

        try:
            await self.record_click(link_id)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Failed to record click for {sanitized_code}: {e}",
                exc_info=True
            )
            if self.require_analytics:
                raise StorageError("Failed to record click", original_error=e)

        return original_url

    async def record_click(self, link_id: str) -> None:
        """
        Increment click_count and stamp last_accessed atomically.

        Args:
            link_id: The link's id
        """
        statement = (
            update(ShortLink)
            .where(ShortLink.id == link_id)
            .values(
                click_count=ShortLink.click_count + 1,
                last_accessed=utcnow()
            )
        )
        await self.session.execute(statement)
        await self.session.commit()
