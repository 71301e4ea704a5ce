import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.config import settings
from app.database import AsyncSessionLocal
from app.exception_handlers import register_exception_handlers
from app.middleware.logging import StructuredLoggingMiddleware, configure_logging
from app.middleware.rate_limit import configure_rate_limiting
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.middleware.tenant import TenantMiddleware
from app.routes import api_keys, auth, billing, features, galleries, orders, products, public_galleries, team, webhooks
from app.services.email_service import notifier
from app.services.rate_limit_service import RateLimiter, rate_limiter as default_rate_limiter

logger = logging.getLogger(__name__)


def create_app(session_factory=None, rate_limiter: RateLimiter | None = None) -> FastAPI:
    """Create the FastAPI application."""
    configure_logging("DEBUG" if settings.debug else "INFO", json_format=settings.log_json)

    app = FastAPI(
        title=settings.app_name,
        description="Client galleries, print orders and payments for photography studios",
        debug=settings.debug,
        version=settings.app_version,
    )
    app.state.rate_limiter = rate_limiter or default_rate_limiter

    # Starlette runs the last added middleware first
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(TenantMiddleware, session_factory=session_factory)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    configure_rate_limiting(app)
    app.add_middleware(StructuredLoggingMiddleware)
    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
    app.include_router(galleries.router, prefix="/api/v1/dashboard", tags=["Galleries"])
    app.include_router(products.router, prefix="/api/v1/dashboard", tags=["Products"])
    app.include_router(orders.router, prefix="/api/v1/dashboard", tags=["Orders"])
    app.include_router(features.router, prefix="/api/v1/dashboard", tags=["Features"])
    app.include_router(team.router, prefix="/api/v1/dashboard", tags=["Team"])
    app.include_router(api_keys.router, prefix="/api/v1/dashboard", tags=["API Keys"])
    app.include_router(billing.router, prefix="/api/v1/dashboard", tags=["Billing"])
    app.include_router(public_galleries.router, prefix="/api/v1", tags=["Public Galleries"])
    app.include_router(orders.public_router, prefix="/api/v1", tags=["Public Orders"])
    app.include_router(api_keys.public_router, prefix="/api/v1", tags=["API"])
    app.include_router(webhooks.router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health():
        database = "ok"
        try:
            async with (session_factory or AsyncSessionLocal)() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Health check database query failed: %s", e)
            database = "unavailable"
        return {"status": "ok" if database == "ok" else "degraded", "database": database, "version": settings.app_version}

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down the application...")
        await notifier.drain()

    if settings.debug:
        logger.info("Running in %s mode", settings.environment)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
    )
