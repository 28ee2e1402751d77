"""X-Request-ID middleware for request correlation and access logging.

This middleware:
- Accepts a well-formed incoming X-Request-ID or generates a new one
- Attaches the ID to request state and the logging context
- Echoes the ID in response headers
- Emits one "request_completed" log entry per request

Ordering: added last so it runs first and wraps auth and CORS, which means
auth failures and preflight responses still carry X-Request-ID.
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from spotcomments.logging import bind_request, bind_user, clear_request_context, get_logger

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

# Alphanumeric plus dots, hyphens, underscores; UUIDs match this too
VALID_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

logger = get_logger(__name__)


def resolve_request_id(incoming: str | None) -> str:
    """Return the normalized incoming ID, or a fresh UUID4 if it is unusable.

    UUIDs are lowercased; other valid IDs are preserved as-is.
    """
    if (
        incoming
        and len(incoming.encode("utf-8")) <= MAX_REQUEST_ID_LENGTH
        and VALID_REQUEST_ID_PATTERN.match(incoming)
    ):
        return incoming.lower() if UUID_PATTERN.match(incoming) else incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Request ID handling and access logging.

    Args:
        app: The ASGI application.
        log_requests: If True, log one access entry per request.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.monotonic()

        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        bind_request(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)

            viewer = getattr(request.state, "viewer", None)
            if viewer is not None:
                bind_user(str(viewer.user_id))

            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests:
                duration_ms = (time.monotonic() - start_time) * 1000
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 2),
                )

            return response

        except Exception:
            # unhandled_exception_handler produces the response
            logger.exception("request_failed")
            raise

        finally:
            clear_request_context()
