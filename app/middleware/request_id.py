"""Request ID middleware.

Binds a request ID to the logging context for the duration of a request
and echoes it in the ``X-Request-ID`` response header. A well-formed ID sent
by the client is reused so calls can be traced across services.
"""

import re

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.core.logging import clear_request_id, clear_viewer_context, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"

REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        if incoming and not REQUEST_ID_PATTERN.match(incoming):
            incoming = None

        request_id = set_request_id(incoming)
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
            clear_viewer_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
