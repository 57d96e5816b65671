"""
Request logging for unauthenticated calls to protected routes.

Token validation itself is done by the FastAPI dependencies so errors keep
their proper status codes; this middleware only records anonymous traffic.
"""
from typing import List, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from core.logger import logger

# Exact paths that never need a token
PUBLIC_ROUTES: List[str] = [
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/api/auth/login",
    "/api/auth/register",
]

# Swagger UI assets (e.g. /docs/oauth2-redirect)
PUBLIC_PREFIXES: List[str] = ["/docs/"]


class AuthRequiredMiddleware(BaseHTTPMiddleware):
    """Logs requests that reach a protected route without credentials."""

    def __init__(self, app, public_routes: Optional[List[str]] = None):
        super().__init__(app)
        self.public_routes = set(public_routes or PUBLIC_ROUTES)

    def is_public(self, path: str) -> bool:
        return path in self.public_routes or any(path.startswith(p) for p in PUBLIC_PREFIXES)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if request.method != "OPTIONS" and not self.is_public(path):
            if not request.headers.get("authorization"):
                client = request.client.host if request.client else "unknown"
                logger.warning(f"Request without authentication headers: {request.method} {path} from {client}")

        return await call_next(request)
