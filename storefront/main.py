"""
FastAPI Application Entry Point

Storefront Admin Backend - read-only HTTP surface over the document store.
Also runs the backend order watcher, which logs orders as they arrive.

Endpoints:
    - GET /api/status: Liveness message
    - GET /api/orders: All orders as {id, ...fields}
    - GET /api/dashboard-data: Aggregated dashboard statistics
    - GET /health: Document store health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query as QueryParam, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.core.config import get_settings, setup_logging
from storefront.models import Collection
from storefront.schemas import DashboardStats, ErrorResponse, HealthResponse, StatusResponse
from storefront.services.feeds import watch_new_orders
from storefront.services.orders import load_dashboard_stats, parse_status
from storefront.services.store import BaseDocumentStore, StoreError, get_document_store

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


def get_store() -> BaseDocumentStore:
    """Dependency injection for routes."""
    return get_document_store()


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info("=" * 60)

    store = get_document_store()
    logger.info(f"✅ Document Store: {store.provider_name}")

    watcher = None
    try:
        watcher = await watch_new_orders(store)
    except StoreError as e:
        logger.error(f"Order watcher not started: {e}")

    logger.info(f"✅ Admin Backend running on http://{settings.api_host}:{settings.api_port}")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    if watcher is not None:
        watcher.unsubscribe()
    await store.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Read-only admin API over the storefront document store.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "store": settings.store_name,
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "status": "/api/status",
        "health": "/health",
    }


@app.get("/api/status", response_model=StatusResponse, tags=["Health"])
async def api_status() -> StatusResponse:
    return StatusResponse(status="Admin Backend is running")


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(store: BaseDocumentStore = Depends(get_store)) -> HealthResponse:
    """Verify the document store is reachable."""
    healthy = await store.health_check()
    return HealthResponse(
        status="operational" if healthy else "degraded",
        store="healthy" if healthy else "unhealthy",
        provider=store.provider_name,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.get(
    "/api/orders",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    status: Optional[str] = QueryParam(None),
    store: BaseDocumentStore = Depends(get_store),
) -> Any:
    """Every order document, flattened to ``{id, ...fields}``."""
    where = None
    if status:
        try:
            where = [("status", "==", parse_status(status).value)]
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    try:
        documents = await store.query(Collection.ORDERS.value, where=where)
    except StoreError as e:
        logger.error(f"Error listing orders: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    return [doc.to_dict() for doc in documents]


@app.get(
    "/api/dashboard-data",
    response_model=DashboardStats,
    tags=["Dashboard"],
)
async def dashboard_data(store: BaseDocumentStore = Depends(get_store)) -> DashboardStats:
    """Get aggregated dashboard statistics."""
    return await load_dashboard_stats(store)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


def run() -> None:
    """Console entry point: serve the admin API until the process exits."""
    uvicorn.run(
        "storefront.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run()
