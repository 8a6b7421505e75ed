"""Request tracing middleware"""
import uuid
import time
import logging
from starlette.requests import Request

from campus_booking.utils.my_logging import correlation_id_var

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


async def correlation_id_middleware(request: Request, call_next):
    """
    Bind a correlation id for the request so every log line written while
    serving it (routers, services, notification fan-out) carries the id.
    """
    correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
    request.state.correlation_id = correlation_id
    token = correlation_id_var.set(correlation_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)

    response.headers[CORRELATION_HEADER] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """One line per request with caller address, status and latency"""
    start_time = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start_time) * 1000, 2)

    level = logging.WARNING if response.status_code >= 500 else logging.INFO
    logger.log(
        level,
        f"{request.method} {request.url.path} -> {response.status_code} in {duration_ms}ms "
        f"(client {request.client.host if request.client else 'unknown'})",
    )
    return response
