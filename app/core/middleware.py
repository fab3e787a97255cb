from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable
import time
import structlog
import uuid


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each API request and tag its log lines with a request id"""

    def __init__(self, app):
        super().__init__(app)
        self.logger = structlog.get_logger("requests")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        # Provider and resolver logs emitted while serving this request carry the id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        self.logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "Request failed",
                error=str(e),
                process_time=round(time.perf_counter() - start_time, 4),
                exc_info=True,
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        self.logger.info(
            "Request completed",
            request_id=request_id,
            status_code=response.status_code,
            process_time=round(time.perf_counter() - start_time, 4),
        )
        response.headers["X-Request-ID"] = request_id
        return response
