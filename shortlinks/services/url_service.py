"""
URL Shortening Service

This service handles the core business logic for URL shortening:
- Enforcing the submission rate limit
- Validating URLs and custom aliases
- Allocating unique short codes (random or alias)
- Listing and deleting an owner's links

Design Decisions:
- Uniqueness is enforced by the UNIQUE constraint on urls.short_code, not by
  a check-then-insert sequence. A constraint violation on insert is the
  collision signal: random codes are regenerated, aliases are reported taken.
- Rate limiting runs first, so a request rejected for bad input still
  consumes one unit of quota.
"""

import logging
from typing import Any, Optional, TYPE_CHECKING

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.core.exceptions import (
    AliasTakenError,
    InvalidAliasFormatError,
    InvalidAliasLengthError,
    InvalidInputError,
    NotFoundError,
    RateLimitExceededError,
    StorageError,
)
from shortlinks.core.setting import settings
from shortlinks.core.validators import is_valid_alias_format, is_valid_url
from shortlinks.db.models import ShortLink
from shortlinks.services.code_generator import generate_short_code

if TYPE_CHECKING:
    from shortlinks.core.rate_limit import RateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

# Path segments served by routes other than the redirect; a link stored under
# one of these codes could never be reached.
RESERVED_CODES = frozenset({"health", "shorten"})


class URLShorteningService:
    """
    Core business logic for URL shortening.

    Handles rate limiting, validation, code allocation and database operations.
    Separated from API layer for testability and maintainability.
    """

    def __init__(
        self,
        session: AsyncSession,
        rate_limiter: Optional['RateLimiter'] = None,
        code_length: int = settings.SHORT_CODE_LENGTH,
        alias_min_length: int = settings.ALIAS_MIN_LENGTH,
        alias_max_length: int = settings.ALIAS_MAX_LENGTH,
    ):
        """
        Initialize the URL shortening service.

        Args:
            session: Database session
            rate_limiter: Submission rate limiter (None disables limiting)
            code_length: Length of generated short codes
            alias_min_length: Shortest accepted custom alias
            alias_max_length: Longest accepted custom alias
        """
        self.session = session
        self.rate_limiter = rate_limiter
        self.code_length = code_length
        self.alias_min_length = alias_min_length
        self.alias_max_length = alias_max_length
        self.last_rate_limit: Optional['RateLimitResult'] = None

    async def get_by_code(self, code: str) -> Optional[ShortLink]:
        """
        Find the link whose short_code or custom_alias equals code.

        Args:
            code: The short code or alias to look up

        Returns:
            ShortLink object if found, None otherwise
        """
        statement = (
            select(ShortLink)
            .where(or_(ShortLink.short_code == code, ShortLink.custom_alias == code))
            .limit(1)
        )
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def create_short_url(
        self,
        original_url: Any,
        custom_alias: Any = None,
        user_id: Optional[str] = None,
        client_ip: str = "unknown",
    ) -> ShortLink:
        """
        Create a new short URL.

        Args:
            original_url: The long URL to shorten
            custom_alias: Optional user-chosen code
            user_id: External identity of the submitter, if signed in
            client_ip: Client address used for rate limiting

        Returns:
            The stored ShortLink

        Raises:
            RateLimitExceededError: If the caller is over quota
            InvalidInputError: If the URL is missing or malformed
            InvalidAliasFormatError: If the alias has disallowed characters
            InvalidAliasLengthError: If the alias is too short or too long
            AliasTakenError: If the alias is already in use
            StorageError: If the record cannot be saved
        """
        if self.rate_limiter is not None:
            rate = await self.rate_limiter.hit(client_ip, user_id)
            self.last_rate_limit = rate
            if not rate.allowed:
                raise RateLimitExceededError(rate.retry_after())

        if not is_valid_url(original_url, max_length=settings.MAX_URL_LENGTH):
            raise InvalidInputError()

        if custom_alias:
            alias = self.validate_alias(custom_alias)
            if alias in RESERVED_CODES or await self._code_exists(alias):
                raise AliasTakenError(alias)

            try:
                return await self._insert(original_url, alias, alias, user_id)
            except IntegrityError:
                # Claimed by a concurrent request after the check above
                raise AliasTakenError(alias)

        while True:
            candidate = generate_short_code(self.code_length)
            if candidate in RESERVED_CODES:
                continue

            try:
                return await self._insert(original_url, candidate, None, user_id)
            except IntegrityError as e:
                if not await self._code_exists(candidate):
                    # Constraint failure unrelated to the code itself
                    logger.error(f"Insert failed for {candidate}: {e}", exc_info=True)
                    raise StorageError(original_error=e)
                logger.warning(f"Short code collision on {candidate}, regenerating")

    async def _code_exists(self, code: str) -> bool:
        try:
            return await self.get_by_code(code) is not None
        except SQLAlchemyError as e:
            logger.error(f"Lookup failed for {code}: {e}", exc_info=True)
            raise StorageError(original_error=e)

    def validate_alias(self, custom_alias: Any) -> str:
        """
        Check a custom alias against the format and length rules.

        Format is checked first, so an alias with bad characters is reported
        as a format error whatever its length.
        """
        if not is_valid_alias_format(custom_alias):
            raise InvalidAliasFormatError()

        if not self.alias_min_length <= len(custom_alias) <= self.alias_max_length:
            raise InvalidAliasLengthError(
                self.alias_min_length, self.alias_max_length, len(custom_alias)
            )

        return custom_alias

    async def _insert(
        self,
        original_url: str,
        short_code: str,
        custom_alias: Optional[str],
        owner_id: Optional[str],
    ) -> ShortLink:
        """
        Persist a new link.

        IntegrityError propagates (after rollback) so callers can treat it as
        a code collision; every other failure becomes StorageError.
        """
        short_link = ShortLink(
            original_url=original_url,
            short_code=short_code,
            custom_alias=custom_alias,
            owner_id=owner_id or None,
            click_count=0,
        )

        try:
            self.session.add(short_link)
            await self.session.flush()
            await self.session.commit()
            await self.session.refresh(short_link)
        except IntegrityError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to save short URL {short_code}: {e}", exc_info=True)
            raise StorageError(original_error=e)

        logger.info(
            f"Short URL created: code={short_code}, "
            f"alias={'yes' if custom_alias else 'no'}, owner={owner_id or 'anonymous'}"
        )
        return short_link

    async def list_urls(self, owner_id: str) -> list[ShortLink]:
        """
        List an owner's links, newest first.

        Args:
            owner_id: External identity of the owner

        Returns:
            List of ShortLink objects (empty if the owner has none)
        """
        statement = (
            select(ShortLink)
            .where(ShortLink.owner_id == owner_id)
            .order_by(ShortLink.created_at.desc())
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch URLs for {owner_id}: {e}", exc_info=True)
            raise StorageError("Failed to fetch URLs", original_error=e)
        return list(result.scalars().all())

    async def delete_url(self, link_id: str, owner_id: str) -> None:
        """
        Delete one of an owner's links.

        Args:
            link_id: The link's id
            owner_id: External identity of the caller

        Raises:
            NotFoundError: If no link with this id belongs to owner_id
            StorageError: If the delete fails
        """
        statement = select(ShortLink).where(
            ShortLink.id == link_id,
            ShortLink.owner_id == owner_id,
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            logger.error(f"Lookup failed for link {link_id}: {e}", exc_info=True)
            raise StorageError("Failed to delete URL", original_error=e)
        short_link = result.scalars().first()

        if short_link is None:
            raise NotFoundError()

        try:
            await self.session.delete(short_link)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to delete short URL {link_id}: {e}", exc_info=True)
            raise StorageError("Failed to delete URL", original_error=e)

        logger.info(f"Short URL deleted: id={link_id}, owner={owner_id}")
