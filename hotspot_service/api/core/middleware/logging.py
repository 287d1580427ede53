import time
import uuid

import structlog
from fastapi import Request

from hotspot_service.utils.logger import client_ip, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def logging_middleware(request: Request, call_next):
    """Bind request context for every log line and emit one ``request`` event.

    Health probes are passed through untouched.
    """
    if request.url.path.startswith("/health"):
        return await call_next(request)

    started = time.perf_counter()
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        ip_address=client_ip(request),
        method=request.method,
        path=request.url.path,
        user_id=request.headers.get("X-User-Id"),
    )

    try:
        response = await call_next(request)
    except Exception:
        logger.exception("request_failed", duration_ms=_elapsed_ms(started))
        raise

    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "request",
        status_code=response.status_code,
        duration_ms=_elapsed_ms(started),
    )
    return response
