"""Request middleware for correlation, logging and the last-resort error fallback.

Order in ``create_app``: RequestIdMiddleware is outermost so that even the
fallback error response carries an X-Request-ID header.
"""

import time
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from app.core.exceptions import unhandled_exception_response
from app.core.logging import bind_log_context, get_logger, request_id_ctx

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CRITICAL_ERROR_TEXT = "A critical server error occurred. Please contact support."


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log its start and end."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request with correlation ID.

        A client-supplied X-Request-ID is reused; otherwise a UUID4 is made.
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        start_time = time.perf_counter()

        try:
            with bind_log_context(method=request.method, path=request.url.path):
                logger.info("http.request_started", query=request.url.query or None)
                response = await call_next(request)
                logger.info(
                    "http.request_completed",
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class GlobalExceptionMiddleware(BaseHTTPMiddleware):
    """Catch anything the route handlers and exception handlers let through.

    The client always gets a structured problem response. If even building
    that response fails, a minimal plain-text 500 is returned instead.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Run the request, converting unexpected exceptions to responses.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler in chain.

        Returns:
            Handler response, or an error response on failure.
        """
        try:
            return await call_next(request)
        except Exception as exc:
            try:
                return unhandled_exception_response(str(request.url.path), exc)
            except Exception as inner_exc:
                logger.critical(
                    "app.error_fallback_failed",
                    error=str(inner_exc),
                    error_type=type(inner_exc).__name__,
                    original_error_type=type(exc).__name__,
                    exc_info=inner_exc,
                )
                return PlainTextResponse(CRITICAL_ERROR_TEXT, status_code=500)
