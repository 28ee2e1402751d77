"""Pure ASGI CORS middleware for the extension and configured web origins.

Allowed origins:
- any chrome-extension://<id> origin (the content script's fetches)
- every origin listed in CORS_ORIGINS

Requests without an Origin header (curl, server-to-server, tests) pass
through untouched. Disallowed origins are not rejected here; the response
simply carries no CORS headers and the browser blocks it. Preflights from
allowed origins are answered immediately, before auth runs.
"""

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

EXTENSION_ORIGIN_PREFIX = "chrome-extension://"

ALLOW_METHODS = "GET, POST, DELETE, OPTIONS"
ALLOW_HEADERS = "Authorization, Content-Type, X-Request-ID"
EXPOSE_HEADERS = "X-Request-ID"
PREFLIGHT_MAX_AGE = "600"


class CORSMiddleware:
    """Origin-checked CORS header injection without response buffering."""

    def __init__(self, app: ASGIApp, allowed_origins: list[str]):
        self.app = app
        self.allowed_origins = set(allowed_origins)

    def is_allowed_origin(self, origin: str) -> bool:
        if origin.startswith(EXTENSION_ORIGIN_PREFIX) and len(origin) > len(
            EXTENSION_ORIGIN_PREFIX
        ):
            return True
        return origin in self.allowed_origins

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")
        if origin is None or not self.is_allowed_origin(origin):
            await self.app(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            response = Response(
                status_code=204,
                headers={
                    "access-control-allow-origin": origin,
                    "access-control-allow-methods": ALLOW_METHODS,
                    "access-control-allow-headers": ALLOW_HEADERS,
                    "access-control-max-age": PREFLIGHT_MAX_AGE,
                    "vary": "Origin",
                },
            )
            await response(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                resp_headers = MutableHeaders(scope=message)
                resp_headers["access-control-allow-origin"] = origin
                resp_headers["access-control-expose-headers"] = EXPOSE_HEADERS
                resp_headers.add_vary_header("Origin")
            await send(message)

        await self.app(scope, receive, send_with_cors)
