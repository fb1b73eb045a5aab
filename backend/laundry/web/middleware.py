"""Request-id middleware.

Binds the caller's ``X-Request-ID`` (or a fresh uuid4) as the logging
request id for the duration of the request and echoes it back.
"""

from __future__ import annotations

from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from laundry.utils.logging import set_request_id

log = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER, "")[:MAX_REQUEST_ID_LENGTH]
        if not request_id:
            request_id = str(uuid4())
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            set_request_id("")
        response.headers[REQUEST_ID_HEADER] = request_id
        log.debug(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response
