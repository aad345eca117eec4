"""
FastAPI Endpoints for URL Shortener Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Request parsing (Pydantic models)
- Wiring services to their collaborators (session, counter store)
- Building HTTP responses

All business logic is in services. Errors raised by services are
URLShortenerException subclasses and are turned into JSON responses by the
exception handler registered in main.py.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.api.schemas import ErrorResponse, ShortenRequest, ShortenResponse, ShortLinkResponse
from shortlinks.core.exceptions import InvalidInputError
from shortlinks.core.rate_limit import RATE_LIMITS, RateLimiter, get_client_ip, limiter
from shortlinks.core.setting import settings
from shortlinks.db.models import ShortLink
from shortlinks.db.redis_client import get_redis
from shortlinks.db.session import get_session
from shortlinks.services.redirect_service import RedirectService
from shortlinks.services.url_service import URLShorteningService


router = APIRouter()


def get_rate_limiter(store: Redis = Depends(get_redis)) -> RateLimiter:
    return RateLimiter(store)


def build_short_url(code: str) -> str:
    return f"{settings.BASE_URL.rstrip('/')}/{code}"


def to_response(short_link: ShortLink) -> ShortLinkResponse:
    return ShortLinkResponse(
        id=short_link.id,
        original_url=short_link.original_url,
        short_code=short_link.short_code,
        custom_alias=short_link.custom_alias,
        click_count=short_link.click_count,
        last_accessed=short_link.last_accessed,
        created_at=short_link.created_at,
        short_url=build_short_url(short_link.short_code),
    )


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_200_OK,
    summary="Create a short URL",
    description="Takes a long URL (and optional custom alias) and returns a short code",
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def create_short_url(
    request: Request,
    response: Response,
    body: ShortenRequest,
    session: AsyncSession = Depends(get_session),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
) -> ShortenResponse:
    """
    Create a new short URL from a long URL.

    Returns:
        ShortenResponse with the short code and complete short URL
    """
    url_service = URLShorteningService(session, rate_limiter=rate_limiter)

    short_link = await url_service.create_short_url(
        body.url,
        custom_alias=body.custom_alias,
        user_id=body.user_id,
        client_ip=get_client_ip(request),
    )

    rate = url_service.last_rate_limit
    if rate is not None:
        response.headers["X-RateLimit-Limit"] = str(rate.limit)
        response.headers["X-RateLimit-Remaining"] = str(rate.remaining)
        response.headers["X-RateLimit-Reset"] = str(rate.reset)

    return ShortenResponse(
        code=short_link.short_code,
        short_url=build_short_url(short_link.short_code),
    )


@router.get(
    "/api/urls",
    response_model=list[ShortLinkResponse],
    summary="List a user's short URLs",
    description="Returns the caller's short URLs, newest first",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def list_urls(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    session: AsyncSession = Depends(get_session),
) -> list[ShortLinkResponse]:
    if not user_id:
        raise InvalidInputError("userId is required")

    url_service = URLShorteningService(session)
    short_links = await url_service.list_urls(user_id)
    return [to_response(short_link) for short_link in short_links]


@router.delete(
    "/api/urls/{link_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a short URL",
    description="Deletes one of the caller's short URLs",
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def delete_url(
    link_id: str,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    session: AsyncSession = Depends(get_session),
) -> Response:
    if not user_id:
        raise InvalidInputError("userId is required")

    url_service = URLShorteningService(session)
    await url_service.delete_url(link_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{code}",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    summary="Redirect to original URL",
    description="Takes a short code or alias and redirects to the original long URL",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMITS["redirect"])
async def redirect_to_url(
    code: str,
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    Args:
        code: The short code or alias to look up
        request: FastAPI Request object (for rate limiting)

    Returns:
        RedirectResponse (HTTP 302) to original URL

    Raises:
        NotFoundError: If code is not found (HTTP 404)
    """
    redirect_service = RedirectService(session)
    original_url = await redirect_service.resolve(code)

    return RedirectResponse(
        url=original_url,
        status_code=status.HTTP_302_FOUND
    )
