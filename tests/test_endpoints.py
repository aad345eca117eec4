"""
HTTP tests for the FastAPI application.

Requests go through the real app (middleware, exception handlers, routing)
with the database session and the counter store overridden in conftest.py.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from shortlinks.core.exceptions import StorageError
from shortlinks.core.rate_limit import RATE_LIMITS
from shortlinks.core.setting import settings
from shortlinks.db.models import ShortLink
from shortlinks.services.code_generator import ALPHABET
from shortlinks.services.redirect_service import RedirectService
from shortlinks.services.url_service import URLShorteningService


async def fetch_link(session_maker, code: str) -> ShortLink:
    async with session_maker() as session:
        result = await session.execute(select(ShortLink).where(ShortLink.short_code == code))
        return result.scalars().one()


class TestShorten:

    @pytest.mark.asyncio
    async def test_shorten_returns_code(self, client):
        response = await client.post("/shorten", json={"url": "https://example.com"})

        assert response.status_code == 200
        body = response.json()
        assert len(body["code"]) == 6
        assert all(char in ALPHABET for char in body["code"])
        assert body["shortUrl"] == f"{settings.BASE_URL}/{body['code']}"

    @pytest.mark.asyncio
    async def test_rate_limit_headers(self, client):
        response = await client.post("/shorten", json={"url": "https://example.com"})

        assert response.headers["X-RateLimit-Limit"] == str(settings.RATE_LIMIT_ANONYMOUS)
        assert response.headers["X-RateLimit-Remaining"] == str(settings.RATE_LIMIT_ANONYMOUS - 1)
        assert int(response.headers["X-RateLimit-Reset"]) > 0

    @pytest.mark.asyncio
    async def test_repeated_submissions_get_distinct_codes(self, client):
        codes = set()
        for i in range(settings.RATE_LIMIT_AUTHENTICATED):
            response = await client.post("/shorten", json={"url": "https://example.com", "userId": "user-1"})
            assert response.status_code == 200
            codes.add(response.json()["code"])
        assert len(codes) == settings.RATE_LIMIT_AUTHENTICATED

    @pytest.mark.asyncio
    async def test_custom_alias(self, client, session_maker):
        response = await client.post(
            "/shorten",
            json={"url": "https://example.com", "customAlias": "my-link_01", "userId": "user-1"},
        )

        assert response.status_code == 200
        assert response.json()["code"] == "my-link_01"

        short_link = await fetch_link(session_maker, "my-link_01")
        assert short_link.custom_alias == "my-link_01"
        assert short_link.owner_id == "user-1"

    @pytest.mark.asyncio
    async def test_alias_taken(self, client):
        payload = {"url": "https://example.com", "customAlias": "popular"}
        assert (await client.post("/shorten", json=payload)).status_code == 200

        response = await client.post("/shorten", json=payload)

        assert response.status_code == 409
        assert response.json() == {"error": "Alias is already taken"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("alias", ["has space", "semi;colon", "x" * 50 + "?"])
    async def test_invalid_alias_format(self, client, alias):
        response = await client.post("/shorten", json={"url": "https://example.com", "customAlias": alias})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid alias format.")

    @pytest.mark.asyncio
    async def test_alias_too_short(self, client):
        response = await client.post("/shorten", json={"url": "https://example.com", "customAlias": "short"})

        assert response.status_code == 400
        assert response.json() == {"error": "Alias must be at least 6 characters"}

    @pytest.mark.asyncio
    async def test_alias_too_long(self, client):
        response = await client.post("/shorten", json={"url": "https://example.com", "customAlias": "a" * 33})

        assert response.status_code == 400
        assert response.json() == {"error": "Alias must be at most 32 characters"}

    @pytest.mark.asyncio
    async def test_alias_longer_than_sixteen_accepted(self, client):
        alias = "seventeen-chars-x"
        response = await client.post("/shorten", json={"url": "https://example.com", "customAlias": alias})

        assert response.status_code == 200
        assert response.json()["code"] == alias

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {}, {"url": ""}, {"url": 42}, {"url": "example.com"},
        {"url": "javascript:alert(1)"}, {"url": "https://example.com/" + "a" * 2048},
    ])
    async def test_invalid_url(self, client, payload):
        response = await client.post("/shorten", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid URL"}

    @pytest.mark.asyncio
    async def test_malformed_body(self, client):
        response = await client.post(
            "/shorten", content=b"not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body"}

    @pytest.mark.asyncio
    async def test_storage_failure(self, client, monkeypatch):
        async def failing_insert(self, *args, **kwargs):
            raise StorageError()

        monkeypatch.setattr(URLShorteningService, "_insert", failing_insert)

        response = await client.post("/shorten", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save URL"}


class TestRateLimiting:

    @pytest.mark.asyncio
    async def test_excess_requests_rejected_then_window_resets(self, client, counter_store):
        for _ in range(settings.RATE_LIMIT_ANONYMOUS):
            response = await client.post("/shorten", json={"url": "https://example.com"})
            assert response.status_code == 200

        response = await client.post("/shorten", json={"url": "https://example.com"})
        assert response.status_code == 429
        error = response.json()["error"]
        assert error.startswith("Rate limit exceeded. Try again in ")
        assert error.endswith("s.")
        assert 0 < int(response.headers["Retry-After"]) <= settings.RATE_LIMIT_WINDOW_SECONDS

        counter_store.advance(settings.RATE_LIMIT_WINDOW_SECONDS)

        response = await client.post("/shorten", json={"url": "https://example.com"})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_invalid_requests_count_against_quota(self, client):
        for _ in range(settings.RATE_LIMIT_ANONYMOUS):
            response = await client.post("/shorten", json={"url": ""})
            assert response.status_code == 400

        response = await client.post("/shorten", json={"url": "https://example.com"})
        assert response.status_code == 429

    @pytest.mark.asyncio
    async def test_clients_counted_separately(self, client):
        for _ in range(settings.RATE_LIMIT_ANONYMOUS):
            await client.post("/shorten", json={"url": "https://example.com"},
                              headers={"X-Forwarded-For": "203.0.113.1"})

        blocked = await client.post("/shorten", json={"url": "https://example.com"},
                                    headers={"X-Forwarded-For": "203.0.113.1"})
        other = await client.post("/shorten", json={"url": "https://example.com"},
                                  headers={"X-Forwarded-For": "203.0.113.2"})

        assert blocked.status_code == 429
        assert other.status_code == 200

    @pytest.mark.asyncio
    async def test_authenticated_callers_get_higher_quota(self, client):
        for _ in range(settings.RATE_LIMIT_ANONYMOUS + 1):
            response = await client.post("/shorten", json={"url": "https://example.com", "userId": "user-1"})
            assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == str(settings.RATE_LIMIT_AUTHENTICATED)

    @pytest.mark.asyncio
    async def test_counter_store_down(self, client, counter_store):
        counter_store.available = False

        response = await client.post("/shorten", json={"url": "https://example.com"})

        assert response.status_code == 503
        assert response.json() == {"error": "Service 'rate limiter' is unavailable"}


class TestRedirect:

    @pytest.mark.asyncio
    async def test_redirects_and_counts(self, client, session_maker):
        code = (await client.post("/shorten", json={"url": "https://example.com"})).json()["code"]

        response = await client.get(f"/{code}")

        assert response.status_code == 302
        assert response.headers["location"] == "https://example.com"
        short_link = await fetch_link(session_maker, code)
        assert short_link.click_count == 1
        assert short_link.last_accessed is not None

    @pytest.mark.asyncio
    async def test_two_visits_count_two(self, client, session_maker):
        code = (await client.post("/shorten", json={"url": "https://example.com"})).json()["code"]

        await client.get(f"/{code}")
        await client.get(f"/{code}")

        assert (await fetch_link(session_maker, code)).click_count == 2

    @pytest.mark.asyncio
    async def test_redirect_by_alias(self, client):
        await client.post("/shorten", json={"url": "https://example.org/docs", "customAlias": "docs-link"})

        response = await client.get("/docs-link")

        assert response.status_code == 302
        assert response.headers["location"] == "https://example.org/docs"

    @pytest.mark.asyncio
    async def test_unknown_code(self, client):
        response = await client.get("/zzzzzz")

        assert response.status_code == 404
        assert response.json() == {"error": "Short URL not found"}

    @pytest.mark.asyncio
    async def test_invalid_segment(self, client):
        response = await client.get("/favicon.ico")

        assert response.status_code == 404
        assert response.json() == {"error": "Short URL not found"}

    @pytest.mark.asyncio
    async def test_redirect_survives_failed_click_update(self, client, session_maker, monkeypatch):
        code = (await client.post("/shorten", json={"url": "https://example.com"})).json()["code"]
        monkeypatch.setattr(
            RedirectService, "record_click",
            AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("database is locked")))
        )

        response = await client.get(f"/{code}")

        assert response.status_code == 302
        assert response.headers["location"] == "https://example.com"
        assert (await fetch_link(session_maker, code)).click_count == 0

    @pytest.mark.asyncio
    async def test_redirect_throttled_per_ip(self, client, counter_store):
        """The redirect route uses the in-process limiter, not the counter store."""
        allowed = int(RATE_LIMITS["redirect"].split("/")[0])
        headers = {"X-Forwarded-For": "198.51.100.9"}

        for _ in range(allowed):
            response = await client.get("/zzzzzz", headers=headers)
            assert response.status_code == 404

        response = await client.get("/zzzzzz", headers=headers)

        assert response.status_code == 429
        assert "error" in response.json()
        assert (await client.get("/zzzzzz", headers={"X-Forwarded-For": "198.51.100.10"})).status_code == 404
        assert counter_store.values == {}


class TestOwnerEndpoints:

    @pytest.mark.asyncio
    async def test_list_urls(self, client):
        first = (await client.post("/shorten", json={"url": "https://example.com/1", "userId": "owner"})).json()
        second = (await client.post("/shorten", json={"url": "https://example.com/2", "userId": "owner"})).json()
        await client.post("/shorten", json={"url": "https://example.com/3", "userId": "other"})

        response = await client.get("/api/urls", params={"userId": "owner"})

        assert response.status_code == 200
        links = response.json()
        assert [link["short_code"] for link in links] == [second["code"], first["code"]]
        assert links[0]["original_url"] == "https://example.com/2"
        assert links[0]["click_count"] == 0
        assert links[0]["short_url"] == second["shortUrl"]

    @pytest.mark.asyncio
    async def test_list_urls_requires_user(self, client):
        response = await client.get("/api/urls")

        assert response.status_code == 400
        assert response.json() == {"error": "userId is required"}

    @pytest.mark.asyncio
    async def test_delete_url(self, client):
        code = (await client.post("/shorten", json={"url": "https://example.com", "userId": "owner"})).json()["code"]
        link_id = (await client.get("/api/urls", params={"userId": "owner"})).json()[0]["id"]

        response = await client.delete(f"/api/urls/{link_id}", params={"userId": "owner"})

        assert response.status_code == 204
        assert (await client.get(f"/{code}")).status_code == 404
        assert (await client.get("/api/urls", params={"userId": "owner"})).json() == []

    @pytest.mark.asyncio
    async def test_delete_someone_elses_url(self, client):
        await client.post("/shorten", json={"url": "https://example.com", "userId": "owner"})
        link_id = (await client.get("/api/urls", params={"userId": "owner"})).json()[0]["id"]

        response = await client.delete(f"/api/urls/{link_id}", params={"userId": "intruder"})

        assert response.status_code == 404
        assert response.json() == {"error": "Short URL not found"}


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
        assert "X-Process-Time" in response.headers

    @pytest.mark.asyncio
    async def test_unknown_route_is_json(self, client):
        response = await client.get("/a/b")

        assert response.status_code == 404
        assert "error" in response.json()
