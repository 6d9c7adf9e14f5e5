"""
Async HTTP client for the HomesApp API.

Wraps an ``httpx.AsyncClient`` with a uniform request helper that raises ``ApiError`` on
non-2xx answers, a small read cache for queries and mutations that invalidate cached
keys on success. Requests are never retried.
"""

import json
import logging
import time
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import httpx

from homesapp.utils.changes import compute_changes

logger = logging.getLogger(__name__)

DEFAULT_STALE_TIME = 5 * 60


class ApiError(Exception):
    """Non-2xx answer from the API."""

    def __init__(self, status: int, message: str, data: Any = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.data = data

    def __repr__(self) -> str:
        return f"<ApiError(status={self.status}, message={self.message!r})>"


def _json_default(value: Any) -> str:
    # Decimals, dates and UUIDs travel as strings
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def error_message(response: httpx.Response) -> Tuple[str, Any]:
    """
    Message and parsed body of an error response.

    The message comes from ``message``, ``detail`` or ``error.message`` in a JSON body,
    falling back to ``"{status}: {text}"``.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        for candidate in (
            data.get("message"),
            data.get("detail"),
            error.get("message") if isinstance(error, dict) else None,
        ):
            if isinstance(candidate, str) and candidate:
                return candidate, data

    text = response.text or response.reason_phrase
    return f"{response.status_code}: {text}", data


class ApiClient:
    """
    Client bound to one API base URL. Cookies set by the server (the session cookie from
    login) are kept by the underlying httpx client and sent on later requests.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        stale_time: float = DEFAULT_STALE_TIME,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.http = httpx.AsyncClient(base_url=base_url, headers=headers, transport=transport, timeout=timeout)
        self.stale_time = stale_time
        self._cache: Dict[str, Tuple[float, Any]] = {}

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.aclose()

    def set_token(self, token: Optional[str]) -> None:
        if token:
            self.http.headers["Authorization"] = f"Bearer {token}"
        else:
            self.http.headers.pop("Authorization", None)

    async def request(self, method: str, url: str, data: Any = None) -> httpx.Response:
        """
        Send a request, with a JSON body when ``data`` is given.

        Raises:
            ApiError: If the response status is not 2xx
        """
        kwargs: Dict[str, Any] = {}
        if data is not None:
            kwargs["content"] = json.dumps(data, default=_json_default)
            kwargs["headers"] = {"Content-Type": "application/json"}

        response = await self.http.request(method, url, **kwargs)
        if not response.is_success:
            message, body = error_message(response)
            logger.debug(f"{method} {url} failed: {message}")
            raise ApiError(response.status_code, message, body)
        return response

    async def query(self, url: str, on_401: str = "throw") -> Any:
        """
        GET a JSON resource through the cache.

        Args:
            on_401: "throw" raises on 401; "return_null" answers None instead
        """
        if on_401 not in ("throw", "return_null"):
            raise ValueError("on_401 must be 'throw' or 'return_null'")

        cached = self._cache.get(url)
        if cached:
            if time.monotonic() - cached[0] < self.stale_time:
                return cached[1]
            del self._cache[url]

        try:
            response = await self.request("GET", url)
        except ApiError as e:
            if e.status == 401 and on_401 == "return_null":
                return None
            raise

        data = response.json() if response.content else None
        self._prune()
        self._cache[url] = (time.monotonic(), data)
        return data

    def _prune(self) -> None:
        """Drop entries that are past the stale time."""
        now = time.monotonic()
        expired = [key for key, (stored_at, _) in self._cache.items() if now - stored_at >= self.stale_time]
        for key in expired:
            del self._cache[key]

    def invalidate(self, fragment: str) -> int:
        """Drop every cached key containing ``fragment``; returns how many were dropped."""
        stale = [key for key in self._cache if fragment in key]
        for key in stale:
            del self._cache[key]
        return len(stale)

    async def mutate(self, method: str, url: str, data: Any = None, invalidate: Iterable[str] = ()) -> Any:
        """Send a write request and, once it succeeds, invalidate the given cache keys."""
        response = await self.request(method, url, data)
        for fragment in invalidate:
            self.invalidate(fragment)
        return response.json() if response.content else None

    async def submit_changes(
        self,
        url: str,
        original: Mapping[str, Any],
        edited: Mapping[str, Any],
        fields: Optional[Iterable[str]] = None,
        invalidate: Iterable[str] = ()
    ) -> Any:
        """
        PATCH only the fields that differ between ``original`` and ``edited``.

        Returns:
            The API answer, or None when nothing changed and no request was sent
        """
        changes = compute_changes(original, edited, fields)
        if not changes:
            logger.debug(f"No changes to submit to {url}")
            return None
        return await self.mutate("PATCH", url, changes, invalidate=invalidate)
