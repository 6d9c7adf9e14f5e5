"""
Tests for the async API client: error mapping, query cache and change submission.
"""

import json
import time
import pytest
import httpx
from decimal import Decimal

from homesapp.client import ApiClient, ApiError, error_message


class Recorder:
    """Mock transport handler that records requests and answers from a route table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes[(request.method, request.url.path)](request)


def make_client(routes, **kwargs):
    recorder = Recorder(routes)
    client = ApiClient("http://api.test", transport=httpx.MockTransport(recorder), **kwargs)
    return client, recorder


class TestErrorMessage:

    def test_message_priority(self):
        request = httpx.Request("GET", "http://api.test/x")
        assert error_message(httpx.Response(400, json={"message": "m", "detail": "d"}, request=request))[0] == "m"
        assert error_message(httpx.Response(400, json={"detail": "d"}, request=request))[0] == "d"

        envelope = {"error": {"code": "NOT_FOUND", "message": "Property not found"}}
        message, data = error_message(httpx.Response(404, json=envelope, request=request))
        assert message == "Property not found"
        assert data == envelope

    def test_falls_back_to_status_and_text(self):
        request = httpx.Request("GET", "http://api.test/x")
        message, data = error_message(httpx.Response(502, text="Bad Gateway", request=request))
        assert message == "502: Bad Gateway"
        assert data is None


class TestApiClient:

    @pytest.mark.asyncio
    async def test_bearer_token_and_error(self):
        client, recorder = make_client(
            {("GET", "/api/properties/1"): lambda r: httpx.Response(404, json={"detail": "Not here"})},
            token="abc",
        )
        async with client:
            with pytest.raises(ApiError) as exc_info:
                await client.query("/api/properties/1")

        assert exc_info.value.status == 404
        assert exc_info.value.message == "Not here"
        assert recorder.requests[0].headers["Authorization"] == "Bearer abc"

    @pytest.mark.asyncio
    async def test_query_cache_and_invalidation(self):
        client, recorder = make_client(
            {("GET", "/api/properties"): lambda r: httpx.Response(200, json={"total": len(recorder.requests)})}
        )
        async with client:
            first = await client.query("/api/properties")
            second = await client.query("/api/properties")
            assert first == second == {"total": 1}
            assert len(recorder.requests) == 1

            assert client.invalidate("/api/properties") == 1
            third = await client.query("/api/properties")
            assert third == {"total": 2}

    @pytest.mark.asyncio
    async def test_stale_entries_are_refetched(self):
        client, recorder = make_client(
            {("GET", "/api/me"): lambda r: httpx.Response(200, json={"n": len(recorder.requests)})},
            stale_time=0,
        )
        async with client:
            await client.query("/api/me")
            await client.query("/api/me")
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_expired_entries_are_evicted(self):
        client, recorder = make_client(
            {
                ("GET", "/api/me"): lambda r: httpx.Response(200, json={"n": len(recorder.requests)}),
                ("GET", "/api/gone"): lambda r: httpx.Response(404, json={"detail": "Not here"}),
            },
            stale_time=60,
        )
        long_ago = time.monotonic() - 120
        async with client:
            client._cache["/api/old-listing"] = (long_ago, {"id": 1})
            client._cache["/api/gone"] = (long_ago, {"id": 2})

            with pytest.raises(ApiError):
                await client.query("/api/gone")
            assert "/api/gone" not in client._cache

            await client.query("/api/me")
            assert list(client._cache) == ["/api/me"]

    @pytest.mark.asyncio
    async def test_unauthorized_may_return_none(self):
        client, recorder = make_client(
            {("GET", "/api/auth/me"): lambda r: httpx.Response(401, json={"error": {"message": "Not authenticated"}})}
        )
        async with client:
            assert await client.query("/api/auth/me", on_401="return_null") is None
            with pytest.raises(ApiError):
                await client.query("/api/auth/me")
            with pytest.raises(ValueError):
                await client.query("/api/auth/me", on_401="ignore")

    @pytest.mark.asyncio
    async def test_mutate_sends_json_and_invalidates(self):
        client, recorder = make_client({
            ("GET", "/api/properties"): lambda r: httpx.Response(200, json=[]),
            ("POST", "/api/properties"): lambda r: httpx.Response(201, json={"id": "p1"}),
        })
        async with client:
            await client.query("/api/properties")
            created = await client.mutate(
                "POST", "/api/properties", {"price": Decimal("25000.50")}, invalidate=["/api/properties"]
            )
            await client.query("/api/properties")

        assert created == {"id": "p1"}
        post = recorder.requests[1]
        assert json.loads(post.content) == {"price": "25000.50"}
        assert post.headers["Content-Type"] == "application/json"
        assert [r.method for r in recorder.requests] == ["GET", "POST", "GET"]

    @pytest.mark.asyncio
    async def test_failed_mutation_keeps_cache(self):
        client, recorder = make_client({
            ("GET", "/api/leads"): lambda r: httpx.Response(200, json=[]),
            ("POST", "/api/leads"): lambda r: httpx.Response(409, json={"error": {"message": "Duplicate"}}),
        })
        async with client:
            await client.query("/api/leads")
            with pytest.raises(ApiError) as exc_info:
                await client.mutate("POST", "/api/leads", {"first_name": "Ana"}, invalidate=["/api/leads"])
            await client.query("/api/leads")

        assert exc_info.value.status == 409
        assert [r.method for r in recorder.requests] == ["GET", "POST"]

    @pytest.mark.asyncio
    async def test_submit_changes_patches_only_differences(self):
        client, recorder = make_client(
            {("PATCH", "/api/properties/p1"): lambda r: httpx.Response(200, json=json.loads(r.content))}
        )
        original = {"title": "Casa", "price": Decimal("1000.00"), "zone": None}
        async with client:
            unchanged = await client.submit_changes("/api/properties/p1", original, {"title": "Casa", "zone": ""})
            answer = await client.submit_changes("/api/properties/p1", original, {"title": "Casa", "price": "1200"})

        assert unchanged is None
        assert len(recorder.requests) == 1
        assert answer == {"price": "1200"}

    @pytest.mark.asyncio
    async def test_set_token(self):
        client, recorder = make_client({("GET", "/api/auth/me"): lambda r: httpx.Response(200, json={})})
        async with client:
            client.set_token("xyz")
            await client.query("/api/auth/me")
            client.set_token(None)
            client.invalidate("/api/auth/me")
            await client.query("/api/auth/me")

        assert recorder.requests[0].headers["Authorization"] == "Bearer xyz"
        assert "Authorization" not in recorder.requests[1].headers
