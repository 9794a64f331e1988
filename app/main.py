# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Bowl Tracker API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings, settings
from app.dependencies import build_container
from app.exceptions import (
    BowlTrackerException,
    bowl_tracker_exception_handler,
    validation_exception_handler,
)
from app.routers import health, bowls, images
from app.auth import routes as auth_routes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup and shutdown:
    - Startup: Build the service container, optionally create the bucket
    - Shutdown: Log
    """
    logger.info(f"Starting Bowl Tracker API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    # Tests install their own container before the app starts
    if getattr(app.state, "services", None) is None:
        app.state.services = build_container(get_settings())

    services = app.state.services
    logger.info(
        f"Image pipeline ready: bucket={services.settings.STORAGE_BUCKET}, "
        f"concurrency={services.pipeline.concurrency}"
    )

    if services.settings.STORAGE_CREATE_BUCKET_ON_STARTUP:
        services.storage.ensure_bucket()

    yield

    logger.info("Shutting down Bowl Tracker API")


# Create FastAPI application
app = FastAPI(
    title="Bowl Tracker API",
    description="""
## Wooden Bowl Catalog API

Record turned bowls with their wood, finishes and photos, and browse the gallery.

### Image Pipeline

Every photo goes through four stages:

| Stage | Role |
|-------|------|
| **Validator** | Checks type and size before any work is done |
| **Resizer** | Produces thumbnail (150), medium (400), full (800) and original (1200) JPEGs |
| **Uploader** | Stores all four variants, removing partial uploads on failure |
| **Linker** | Records the image row with its display order |

Photos succeed or fail independently; a bowl is saved even if some photos fail.

### Quick Start

```bash
# 1. Record a bowl with a photo
curl -X POST http://localhost:8000/api/v1/bowls \\
  -H "Authorization: Bearer $TOKEN" \\
  -F wood_type=Maple -F wood_source="Backyard" -F date_made=2024-05-01 \\
  -F finishes="Tung oil" -F files=@bowl.jpg

# 2. Browse the gallery
curl http://localhost:8000/api/v1/bowls?search=maple
```
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Auth",
            "description": "Authentication endpoints for verifying JWT tokens",
        },
        {
            "name": "Bowls",
            "description": "Record, browse, edit and delete bowls",
        },
        {
            "name": "Images",
            "description": "Add, delete and reorder a bowl's photos",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(BowlTrackerException)
async def handle_bowl_tracker_exception(request: Request, exc: BowlTrackerException):
    """Handle custom Bowl Tracker exceptions."""
    return await bowl_tracker_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_exception(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    return await validation_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

# Authentication endpoints
app.include_router(
    auth_routes.router,
    prefix="/api/v1/auth",
    tags=["Auth"]
)

# Health check endpoints
app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

# Bowl endpoints
app.include_router(
    bowls.router,
    prefix="/api/v1/bowls",
    tags=["Bowls"]
)

# Bowl image endpoints
app.include_router(
    images.router,
    prefix="/api/v1/bowls",
    tags=["Images"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Bowl Tracker API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
