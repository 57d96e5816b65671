"""
Campus Incident Reporting API.
"""
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

import config
from core.context import AppContext
from core.logger import logger
from middleware.security import (
    RateLimitMiddleware, SecurityHeadersMiddleware,
    setup_cors, setup_trusted_hosts
)
from middleware.auth_middleware import AuthRequiredMiddleware
from routers.auth import router as auth_router
from routers.users import router as users_router
from routers.profile import router as profile_router
from routers.reports import router as reports_router
from routers.notifications import router as notifications_router
from routers.websocket import router as websocket_router


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reshape request validation errors into the API's [{field, message}] list."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        if error.get("type") == "extra_forbidden":
            message = "This field cannot be changed"
        else:
            message = error.get("msg", "Invalid value")
        errors.append({"field": field, "message": message})
    return JSONResponse(status_code=422, content={"detail": errors})


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application.

    Args:
        context: Pre-built runtime context (tests pass one backed by an
            in-memory database). When omitted, the lifespan builds it from config.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info(f"Starting {config.APP_NAME} v{config.APP_VERSION}...")
        logger.info("=" * 60)

        owns_context = context is None
        if owns_context:
            try:
                ctx = AppContext.from_config()
                ctx.db.create_tables()
                logger.info("Database initialized successfully")
            except Exception as e:
                logger.error(f"Failed to initialize database: {e}", exc_info=True)
                raise
            app.state.ctx = ctx

        logger.info(f"Environment: {config.ENVIRONMENT}")
        logger.info("API Docs: http://localhost:8000/docs")

        yield

        logger.info("Shutting down...")
        if owns_context:
            app.state.ctx.db.dispose()
            logger.info("Database connections closed")

    app = FastAPI(
        title=config.APP_NAME,
        description="Campus incident reporting with live report views for students and administrators",
        version=config.APP_VERSION,
        lifespan=lifespan
    )
    if context is not None:
        app.state.ctx = context

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Setup security middleware
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=config.RATE_LIMIT_PER_MINUTE,
        requests_per_hour=config.RATE_LIMIT_PER_HOUR
    )
    app.add_middleware(AuthRequiredMiddleware)
    setup_cors(app, config.CORS_ORIGINS, allow_credentials=config.CORS_ALLOW_CREDENTIALS)
    if config.ENVIRONMENT == "production":
        setup_trusted_hosts(app, config.TRUSTED_HOSTS)

    # Include routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(profile_router)
    app.include_router(reports_router)
    app.include_router(notifications_router)
    app.include_router(websocket_router)

    @app.get("/")
    async def root():
        """Root endpoint with API information. Public endpoint."""
        return {
            "message": config.APP_NAME,
            "version": config.APP_VERSION,
            "environment": config.ENVIRONMENT,
            "endpoints": {
                "submit_report": "POST /api/reports",
                "my_reports": "GET /api/reports/mine",
                "all_reports": "GET /api/reports",
                "report": "GET /api/reports/{id}",
                "live": "WS /ws/reports/mine | /ws/reports/all | /ws/reports/{id}",
            },
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint for monitoring. Public endpoint."""
        health_status = {
            "status": "healthy",
            "timestamp": time.time(),
            "checks": {}
        }

        ctx: Optional[AppContext] = getattr(request.app.state, "ctx", None)
        try:
            if ctx is None:
                health_status["checks"]["database"] = {"status": "error", "error": "not initialized"}
                health_status["status"] = "degraded"
            else:
                ctx.db.ping()
                health_status["checks"]["database"] = {"status": "ok"}
        except Exception as e:
            health_status["checks"]["database"] = {"status": "error", "error": str(e)}
            health_status["status"] = "degraded"

        health_status["checks"]["live_updates"] = {
            "subscriptions": ctx.live.subscriber_count() if ctx else 0
        }
        return health_status

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
