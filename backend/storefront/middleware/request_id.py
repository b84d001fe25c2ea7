"""
Storefront Backend — Request ID Middleware
============================================

What:  Tags every request with a short correlation id, echoed back in the
       X-Request-ID response header and stamped on every log line.
How:   The id lives in a ContextVar, so concurrent requests on the same event
       loop each see their own value; RequestIDLogFilter copies it onto each
       log record for the `%(request_id)s` format field.

The admin dashboard may send its own X-Request-ID; it is reused (truncated
to 64 chars) so a support report can be matched to server logs.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_CLIENT_ID_LENGTH = 64

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDLogFilter(logging.Filter):
    """Adds `request_id` to every record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Reuse the client's X-Request-ID if present, else a new 8-char id
        2. Store it in the ContextVar and on request.state
        3. Echo it in the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        client_id = request.headers.get(REQUEST_ID_HEADER, "").strip()
        rid = client_id[:MAX_CLIENT_ID_LENGTH] or uuid.uuid4().hex[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
