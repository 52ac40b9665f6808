import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("crm.request")

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        method = request.method
        path = request.url.path

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.error("%s %s failed after %sms", method, path, duration_ms, exc_info=True)
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info("%s %s %s %sms", method, path, response.status_code, duration_ms)
        return response
