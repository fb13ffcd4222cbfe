"""
Shopify Inventory Sync - Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import structlog
from datetime import datetime

from config import settings

# Configure structured logging
logging.basicConfig(format="%(message)s", level=getattr(logging, settings.log_level))

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Report whether Shopify credentials are present
    Shutdown: Log only; runs hold no resources between requests
    """
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug
    )

    if settings.shopify_configured:
        logger.info(
            "shopify_configured",
            shop=settings.shopify_shop_name,
            api_version=settings.shopify_api_version
        )
    else:
        logger.warning("shopify_not_configured")

    yield

    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Shopify Inventory Sync",
    description="Reconcile spreadsheet inventory counts with Shopify stock levels",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Basic health status and whether Shopify is configured
    """
    return {
        "status": "healthy" if settings.shopify_configured else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "shopify_configured": settings.shopify_configured
    }


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns:
        API information and available endpoints
    """
    return {
        "name": "Shopify Inventory Sync API",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "inventory_upload": "/api/inventory/upload"
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and returns standard error format.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.utcnow().isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.inventory import router as inventory_router

app.include_router(inventory_router, prefix="/api/inventory", tags=["Inventory"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
