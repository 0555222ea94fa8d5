import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def set_log_level(level: str) -> None:
    logging.getLogger().setLevel(LEVELS.get(level, logging.INFO))


class LoggingMiddleware(BaseHTTPMiddleware):
    # path only: query strings may carry student names from the search box
    async def dispatch(self, request: Request, call_next):
        start = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("%s %s -> unhandled error", request.method, request.url.path)
            raise

        duration = time.monotonic() - start
        logger.info(
            "%s %s -> %s (%.2fs)",
            request.method,
            request.url.path,
            response.status_code,
            duration,
        )

        return response
