"""ASGI middleware for the GitHub App access service.

Two middlewares registered in order (outermost → innermost):
  1. RequestIdMiddleware    injects / forwards X-Request-ID; stores in ContextVar
  2. CorsHeadersMiddleware  permissive CORS headers; answers OPTIONS directly

The ContextVar `_request_id_var` is the single source of truth for the
current request ID. The structlog processor in `core/logging.py` reads it
to tag events with the request that caused them.
"""

import uuid
from contextvars import ContextVar
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

# ---------------------------------------------------------------------------
# ContextVar: shared across middleware and route handlers within one request
# ---------------------------------------------------------------------------

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Return the current request's ID, or an empty string outside a request."""
    return _request_id_var.get()


# ---------------------------------------------------------------------------
# RequestIdMiddleware
# ---------------------------------------------------------------------------


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Read or generate X-Request-ID and make it available for the request lifetime.

    - If the client sends X-Request-ID, that value is reused so the dashboard
      can correlate its own logs with ours.
    - If absent, a fresh UUID4 is generated.
    - The ID is always echoed back in the response header.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        token = _request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _request_id_var.reset(token)

        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# CorsHeadersMiddleware
# ---------------------------------------------------------------------------

CORS_ALLOW_HEADERS = (
    "authorization, x-client-info, apikey, content-type, x-request-id, "
    "x-github-event, x-github-delivery, x-hub-signature-256"
)


def cors_headers(allow_origin: str) -> dict[str, str]:
    """CORS headers for a response, also used by the unhandled-error handler."""
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    }


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """Attach permissive CORS headers to every outgoing response.

    Unlike Starlette's CORSMiddleware the headers are sent whether or not the
    request carries an Origin header, and every OPTIONS request is answered
    with an empty 200 without reaching the router. The dashboard calls this
    service from the browser and from server-side functions alike, and both
    expect the same headers.
    """

    def __init__(self, app: ASGIApp, allow_origin: str = "*") -> None:
        super().__init__(app)
        self.allow_origin = allow_origin

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)
        response.headers.update(cors_headers(self.allow_origin))
        return response
