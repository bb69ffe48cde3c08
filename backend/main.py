"""
FastAPI application entry point for AI Forge Studio.

Tenant isolation is enforced per route by the dependency pipeline in
aiforge.platform.tenant_context. Every response uses the success/error
envelope from aiforge.platform.errors.
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aiforge.api.routes import ALL_ROUTERS
from aiforge.platform.errors import register_error_handlers

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _create_tables() -> None:
    from aiforge.database.session import get_engine
    from aiforge.db_base import Base
    import aiforge.models  # noqa: F401  registers every table on Base.metadata

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables ensured")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting AI Forge API")

    # Missing JWT_SECRET does not block startup; protected routes return 500
    app.state.auth_configured = bool(os.getenv("JWT_SECRET"))
    if not app.state.auth_configured:
        logger.error("JWT_SECRET is not set. Protected endpoints will return SERVER_ERROR.")

    database_url = os.getenv("DATABASE_URL")
    app.state.database_configured = bool(database_url)
    if not database_url:
        logger.error("DATABASE_URL is not set. Database-backed endpoints will return 503.")
    else:
        # Mask credentials for safe logging
        masked = database_url.split("@")[-1] if "@" in database_url else database_url.split("://")[0]
        logger.info("DATABASE_URL configured", extra={"host_db": masked})
        if os.getenv("DB_AUTO_CREATE", "false").lower() == "true":
            _create_tables()

    app.state.ai_configured = bool(os.getenv("OPENAI_API_KEY"))
    if not app.state.ai_configured:
        logger.warning("OPENAI_API_KEY is not set. Analysis and code generation will return AI_SERVICE_ERROR.")

    yield

    logger.info("Shutting down AI Forge API")


def create_app() -> FastAPI:
    app = FastAPI(
        title="AI Forge API",
        description="Multi-tenant requirement analysis and code generation with strict tenant isolation",
        version="1.0.0",
        lifespan=lifespan,
    )

    cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    for router in ALL_ROUTERS:
        app.include_router(router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
