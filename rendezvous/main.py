"""
FastAPI application entry point.

This module initializes the FastAPI application, configures middleware,
and registers the API routers.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rendezvous.api.routers import imports, integrations, mapping
from rendezvous.core.config import settings
from rendezvous.core.logging_config import configure_logging

# Ensure logging is configured before the application starts serving requests.
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the database tables on startup."""
    if os.getenv("SKIP_DB_INIT") == "1":
        logger.info("SKIP_DB_INIT=1 detected; skipping database bootstrap during startup")
        yield
        return

    from rendezvous.db.session import init_db

    try:
        init_db()
        logger.info("Database tables ready")
    except Exception:
        logger.exception("Failed to initialize database tables")
        raise

    yield

    from rendezvous.integrations.api_integrations import get_api_integrations

    get_api_integrations().close()


app = FastAPI(
    title="Rendez-vous Import API",
    version=API_VERSION,
    description="Spreadsheet import of clients, services and appointments, with cached third-party integrations",
    lifespan=lifespan,
)

allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
allowed_origins = [origin.strip() for origin in allowed_origins]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(mapping.router)
app.include_router(imports.router)
app.include_router(integrations.router)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "message": "Rendez-vous Import API",
        "version": API_VERSION,
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": "rendezvous-import",
    }
