import logging
import time

from fastapi import Request

logger = logging.getLogger("cardsmith.requests")


async def log_requests(request: Request, call_next):
    """HTTP middleware: one line per request with status and latency."""
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        log_error(repr(e), request.method, request.url.path)
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
    return response


def log_error(error: str, method: str, path: str) -> None:
    logger.error(f"Error in {method} {path}: {error}")
