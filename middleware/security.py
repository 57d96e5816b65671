"""
Security middleware: per-IP rate limiting, response headers, CORS and trusted hosts.
"""
import time
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional

from fastapi import Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.logger import logger


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window rate limiting per client IP."""

    def __init__(self, app, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        """
        Args:
            app: FastAPI application
            requests_per_minute: Max requests per minute per IP
            requests_per_hour: Max requests per hour per IP
        """
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.requests: Dict[str, Deque[float]] = defaultdict(deque)
        self.cleanup_interval = 300  # seconds
        self.last_cleanup = time.time()

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"

        current_time = time.time()
        if current_time - self.last_cleanup > self.cleanup_interval:
            self._cleanup_old_entries(current_time)
            self.last_cleanup = current_time

        if not self._check_rate_limit(client_ip, current_time):
            logger.warning(f"Rate limit exceeded for IP: {client_ip}")
            # Exceptions raised in BaseHTTPMiddleware bypass the exception handlers
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded. Please try again later."},
            )

        return await call_next(request)

    def _check_rate_limit(self, client_ip: str, current_time: float) -> bool:
        """Record the request if it is within both limits."""
        window = self.requests[client_ip]
        while window and current_time - window[0] >= 3600:
            window.popleft()

        last_minute = sum(1 for t in window if current_time - t < 60)
        if last_minute >= self.requests_per_minute:
            return False
        if len(window) >= self.requests_per_hour:
            return False

        window.append(current_time)
        return True

    def _cleanup_old_entries(self, current_time: float):
        for ip in list(self.requests.keys()):
            window = self.requests[ip]
            while window and current_time - window[0] >= 3600:
                window.popleft()
            if not window:
                del self.requests[ip]


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"  # responses carry personal data
        return response


def setup_cors(app, allowed_origins: List[str], allow_credentials: bool = True,
               allowed_methods: Optional[List[str]] = None):
    """
    Setup CORS middleware.

    Credentials are never combined with a wildcard origin.
    """
    if allowed_methods is None:
        allowed_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allow_credentials and "*" not in allowed_origins,
        allow_methods=allowed_methods,
        allow_headers=["*"],
    )


def setup_trusted_hosts(app, allowed_hosts: List[str]):
    """Setup trusted hosts middleware (skipped when every host is allowed)."""
    if not allowed_hosts or "*" in allowed_hosts:
        return
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)
