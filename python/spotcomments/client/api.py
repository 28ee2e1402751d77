"""Async HTTP client for the comments API.

- One shared httpx.AsyncClient, bounded timeout, no retries
- Authorization: Bearer <session token> injected from the SessionStore
- Non-2xx responses raise ApiClientError carrying the server error code, and so
  does a success response whose body is not JSON
- Timeouts raise ApiTimeoutError; other transport failures raise ApiClientError

Per-track counts are best-effort: they are memoized for a short TTL
and degrade to "no counts" on any failure.
"""

import time
from collections.abc import Callable, Iterable
from typing import Any

import httpx

from spotcomments.client.config import ClientConfig
from spotcomments.client.session_store import ClientSession, SessionStore
from spotcomments.logging import get_logger

logger = get_logger(__name__)


class ApiClientError(Exception):
    """A request to the comments API failed.

    Attributes:
        status_code: HTTP status, or None for transport failures.
        code: Server error code (E_...), when the body carried one.
        message: Human-readable message.
    """

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


class ApiTimeoutError(ApiClientError):
    """The request did not complete within the configured timeout."""

    def __init__(self, message: str = "Request timed out"):
        super().__init__(message)


class TimedMemo:
    """Key/value memo whose entries expire after a fixed TTL."""

    def __init__(self, ttl_s: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_s = ttl_s
        self._clock = clock
        self._entries: dict[Any, tuple[float, Any]] = {}

    def get(self, key: Any) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_s:
            del self._entries[key]
            return None
        return value

    def set(self, key: Any, value: Any) -> None:
        now = self._clock()
        self._entries = {
            k: entry for k, entry in self._entries.items() if now - entry[0] < self.ttl_s
        }
        self._entries[key] = (now, value)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


def _error_from_response(response: httpx.Response) -> ApiClientError:
    code = None
    message = f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code")
        message = body["error"].get("message") or message
    return ApiClientError(message, status_code=response.status_code, code=code)


class CommentsApiClient:
    """Typed-ish wrapper over the comments API endpoints."""

    def __init__(
        self,
        session_store: SessionStore,
        config: ClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or ClientConfig()
        self.session_store = session_store
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout_s),
        )
        self._count_memo = TimedMemo(self.config.count_memo_ttl_s, clock=clock)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _auth_headers(self) -> dict[str, str]:
        session = self.session_store.get()
        if session is None:
            return {}
        return {"Authorization": f"Bearer {session.token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("api_request_timeout", method=method, path=path)
            raise ApiTimeoutError() from e
        except httpx.HTTPError as e:
            logger.warning("api_request_failed", method=method, path=path, error=str(e))
            raise ApiClientError(f"Network error: {e}") from e

        if response.is_error:
            error = _error_from_response(response)
            logger.warning(
                "api_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                code=error.code,
            )
            raise error

        try:
            return response.json()
        except ValueError as e:
            logger.warning(
                "api_response_undecodable",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise ApiClientError(
                "Invalid response body", status_code=response.status_code
            ) from e

    # =========================================================================
    # Comments
    # =========================================================================

    async def get_comments(
        self,
        playlist_id: str,
        track_uri: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict]:
        params: dict[str, Any] = {"playlist_id": playlist_id}
        if track_uri:
            params["track_uri"] = track_uri
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset

        comments = await self._request("GET", "/comments", params=params)
        if not isinstance(comments, list):
            raise ApiClientError("Invalid response format: expected array of comments")
        return comments

    async def post_comment(
        self, playlist_id: str, text: str, track_uri: str | None = None
    ) -> dict:
        payload: dict[str, Any] = {"playlist_id": playlist_id, "text": text.strip()}
        if track_uri:
            payload["track_uri"] = track_uri
        comment = await self._request("POST", "/comments", json=payload)
        self._count_memo.clear()
        return comment

    async def delete_comment(self, comment_id: int | str) -> dict:
        result = await self._request("DELETE", f"/comments/{comment_id}")
        self._count_memo.clear()
        return result

    async def get_track_counts(self, playlist_id: str, track_uris: Iterable[str]) -> dict[str, int]:
        """Per-track counts for visible rows. Tracks without comments are absent.

        Fresh memo entries are reused and only the remaining URIs are sent in
        one bulk request. Best-effort: any failure returns {} and caches nothing.
        """
        uris = list(dict.fromkeys(track_uris))
        if not playlist_id or not uris:
            return {}

        counts: dict[str, int] = {}
        missing: list[str] = []
        for uri in uris:
            cached = self._count_memo.get((playlist_id, uri))
            if cached is None:
                missing.append(uri)
            else:
                counts[uri] = cached

        if missing:
            try:
                fetched = await self._request(
                    "POST",
                    "/comments/counts",
                    json={"playlist_id": playlist_id, "track_uris": missing},
                )
            except ApiClientError as e:
                logger.info("track_counts_unavailable", error=e.message)
                return {}
            if not isinstance(fetched, dict):
                logger.info("track_counts_unavailable", error="Invalid response format")
                return {}

            for uri in missing:
                value = fetched.get(uri, 0)
                count = value if isinstance(value, int) else 0
                self._count_memo.set((playlist_id, uri), count)
                counts[uri] = count

        return {uri: count for uri, count in counts.items() if count > 0}

    async def get_track_count(self, playlist_id: str, track_uri: str) -> int:
        """Count for a single row. Failure → 0."""
        counts = await self.get_track_counts(playlist_id, [track_uri])
        return counts.get(track_uri, 0)
    async def get_stats(self, playlist_id: str) -> dict:
        return await self._request("GET", f"/comments/stats/{playlist_id}")

    async def check_health(self) -> dict:
        """Never raises; reports {online, status?, error?}."""
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError as e:
            return {"online": False, "error": str(e) or type(e).__name__}
        return {"online": response.is_success, "status": response.status_code}

    # =========================================================================
    # Auth
    # =========================================================================

    async def exchange_token(self, privy_token: str) -> ClientSession:
        """Exchange an identity token and store the resulting session."""
        body = await self._request("POST", "/auth/exchange", json={"privyToken": privy_token})
        session = ClientSession(token=body["token"], privy_user_id=body["privyUserId"])
        self.session_store.set(session)
        return session

    async def dev_login(self, email: str) -> ClientSession:
        """Dev-mode sign-in: mint a dev identity token, then exchange it."""
        body = await self._request("POST", "/auth/dev-login", json={"email": email})
        return await self.exchange_token(body["privyToken"])

    async def get_profile(self) -> dict:
        return await self._request("GET", "/auth/me")

    def logout(self) -> None:
        self.session_store.clear()
