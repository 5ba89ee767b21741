import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from recurspace.core.logging import (
    LOGGER_NAME,
    bind_request_context,
    latency_bucket_ms,
    reset_request_context,
)

USER_HEADER = "x-user-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Bind request_id and the calling user to the request context.

    Every log line emitted while the request runs carries both; the
    response echoes the request_id header.
    """

    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid4())
        user_id = request.headers.get(USER_HEADER) or None
        request.state.request_id = rid
        request.state.user_id = user_id

        tokens = bind_request_context(rid, user_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            reset_request_context(tokens)

        response.headers[self.header_name] = rid
        logging.getLogger(LOGGER_NAME).info(
            "request.complete",
            extra={
                "request_id": rid,
                "user_id": user_id,
                "path": request.url.path,
                "method": request.method,
                "status": response.status_code,
                "latency_bucket": latency_bucket_ms((time.perf_counter() - started) * 1000),
            },
        )
        return response
