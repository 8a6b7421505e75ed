# ===== campus_booking/api/middleware/rate_limit_middleware.py =====
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from typing import Callable, Dict, List, Optional
import time

from campus_booking.core.exceptions import AuthenticationError
from campus_booking.services.identity.identity_service import IdentityService

WINDOW_SECONDS = 1.0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-caller sliding-window rate limit on the v1 API.

    Callers are keyed by the verified token subject, falling back to the
    client address for anonymous or invalid tokens. The clock is injected so
    the window can be driven in tests.
    """

    def __init__(
            self,
            app,
            requests_per_second: int = 10,
            clock: Optional[Callable[[], float]] = None
    ):
        super().__init__(app)
        self.requests_per_second = requests_per_second
        self.clock = clock or time.monotonic
        self.request_times: Dict[str, List[float]] = {}
        self.last_sweep = self.clock()

    @staticmethod
    def caller_key(request: Request) -> str:
        authorization = request.headers.get("Authorization", "")
        if authorization.startswith("Bearer "):
            try:
                claims = IdentityService.verify_token(authorization[7:])
                return f"uid:{claims['sub']}"
            except AuthenticationError:
                pass
        return f"ip:{request.client.host if request.client else 'unknown'}"

    def allow(self, key: str, current_time: float) -> bool:
        """Record one request for ``key``; False when its window is already full"""
        if current_time - self.last_sweep >= WINDOW_SECONDS:
            self._sweep(current_time)

        # Keep timestamps from the last second only
        window = [t for t in self.request_times.get(key, []) if current_time - t < WINDOW_SECONDS]

        if len(window) >= self.requests_per_second:
            self.request_times[key] = window
            return False

        window.append(current_time)
        self.request_times[key] = window
        return True

    def _sweep(self, current_time: float) -> None:
        """Forget callers with nothing left in their window"""
        idle = [
            key for key, times in self.request_times.items()
            if not times or current_time - times[-1] >= WINDOW_SECONDS
        ]
        for key in idle:
            del self.request_times[key]
        self.last_sweep = current_time

    async def dispatch(self, request: Request, call_next):
        # Only apply to API routes
        if not request.url.path.startswith("/api/v1/"):
            return await call_next(request)

        if not self.allow(self.caller_key(request), self.clock()):
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Rate limit exceeded. Too many requests per second.",
                    "retry_after": 1
                },
                headers={"Retry-After": "1"}
            )

        return await call_next(request)
