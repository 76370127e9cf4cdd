"""
Sleeping Backend: Request ID Middleware
========================================

What:  Tags every HTTP request with a short correlation ID.
How:   Reuses the client's X-Request-ID header when present, otherwise
       generates one; stores it in a ContextVar (read by loggers and the
       exception handlers) and echoes it in the response header.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_CLIENT_ID_LENGTH = 64

# Coroutine-local: concurrent requests on one thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER, "")[:_MAX_CLIENT_ID_LENGTH] or new_request_id()

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
