"""X-Request-ID middleware: request correlation and access logging.

Incoming IDs are kept when valid (UUIDs lowercased) and replaced with a fresh
UUID4 otherwise. The ID is bound to the logging context, echoed in the
response header and included in error envelopes.

The access entry names the matched route template (e.g. /pages/{page_id}) so
page traffic can be grouped without parsing paths. Server errors log at
error level, client errors at warning.

Accept-flow pipelines started by a request are detached tasks. They copy the
logging context when created, so their entries keep this request's ID after
the response is sent and the context here is cleared.

Middleware Ordering:
- Must be added LAST to run FIRST (FastAPI middleware runs in reverse order)
- CORS responses (including preflight) then also carry X-Request-ID
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from valentine.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

VALID_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

logger = get_logger(__name__)


def is_valid_request_id(value: str) -> bool:
    """At most 128 bytes of letters, digits, dots, hyphens and underscores.

    UUID strings satisfy the pattern too.
    """
    return (
        0 < len(value.encode("utf-8")) <= MAX_REQUEST_ID_LENGTH
        and VALID_REQUEST_ID_PATTERN.match(value) is not None
    )


def normalize_request_id(value: str) -> str:
    return value.lower() if UUID_PATTERN.match(value) else value


def resolve_request_id(incoming: str | None) -> str:
    if incoming and is_valid_request_id(incoming):
        return normalize_request_id(incoming)
    return str(uuid.uuid4())


def _route_template(request: Request) -> str | None:
    route = request.scope.get("route")
    return getattr(route, "path", None)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign X-Request-ID and emit one access entry per request.

    Args:
        app: The ASGI application.
        log_requests: If True, log access entries for each request.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)
        except Exception:
            # unhandled_exception_handler renders the 500
            logger.exception("request_failed", route=_route_template(request))
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            if self.log_requests:
                self._log_access(request, response.status_code, start)
            return response
        finally:
            clear_request_context()

    def _log_access(self, request: Request, status_code: int, start: float) -> None:
        if status_code >= 500:
            log = logger.error
        elif status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "request_completed",
            route=_route_template(request),
            status_code=status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
