import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ipgeo import state


def client_ip(request: Request) -> str:
    """Caller address, preferring the first hop of X-Forwarded-For."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "-"


class HTTPLogMiddleware(BaseHTTPMiddleware):
    """Debug logging of each request with the number of lookups in flight."""

    def __init__(self, app, logger_name: str = "ipgeo.http"):
        super().__init__(app)
        self._logger = logging.getLogger(logger_name)

    @staticmethod
    def _in_flight() -> int:
        return len(state.coordinator.in_flight) if state.coordinator else 0

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        method, path = request.method, request.url.path
        self._logger.debug(
            "http.request start method=%s path=%s client=%s in_flight=%d",
            method, path, client_ip(request), self._in_flight(),
        )
        try:
            response: Response = await call_next(request)
        except Exception as e:
            dur_ms = int((time.perf_counter() - start) * 1000)
            self._logger.warning("http.request error method=%s path=%s dur_ms=%s err=%r", method, path, dur_ms, e)
            raise
        dur_ms = int((time.perf_counter() - start) * 1000)
        self._logger.debug(
            "http.request end method=%s path=%s status=%s dur_ms=%s in_flight=%d",
            method, path, response.status_code, dur_ms, self._in_flight(),
        )
        return response
