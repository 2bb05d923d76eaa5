"""
FastAPI application for the property recommendation engine.

Mounts the recommendation and health routers under ``/api/ai-recommendations``
and owns the lifecycle of the data layer.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from infrastructure.data import get_repository_factory, close_repository_factory, DataConfig
from .routers import health_router, recommendation_router

API_PREFIX = "/api/ai-recommendations"

load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("Starting property recommendation API...")

    try:
        # Initialize data layer
        config = DataConfig()
        repository_factory = await get_repository_factory(config)

        health_status = await repository_factory.health_check()
        if not health_status.get("database"):
            logger.error("Database health check failed during startup")
            raise RuntimeError("System health check failed")

        logger.info("Data layer initialized successfully")

        # Store in app state for access in routes
        app.state.repository_factory = repository_factory
        app.state.config = config

        yield

    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise
    finally:
        logger.info("Shutting down property recommendation API...")
        await close_repository_factory()
        logger.info("Shutdown complete")


app = FastAPI(
    title="Property Recommendation API",
    description="Explainable, cached property recommendations built from browsing behavior.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Add middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with their duration"""
    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"{request.method} {request.url.path} - ERROR: {str(e)} - {duration:.3f}s"
        )
        raise

    duration = time.time() - start_time
    response.headers["X-Process-Time"] = str(duration)
    logger.info(
        f"{request.method} {request.url.path} - {response.status_code} - {duration:.3f}s"
    )
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTP errors in the ``{success, message}`` envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "status_code": exc.status_code,
            "path": request.url.path
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request validation failures in the error envelope"""
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path"))
        messages.append(f"{field}: {error['msg']}" if field else error["msg"])

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "; ".join(messages) or "Invalid request",
            "status_code": 422,
            "path": request.url.path
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Server error",
            "status_code": 500,
            "path": request.url.path
        }
    )


# Include routers
app.include_router(
    health_router.router,
    prefix=API_PREFIX,
    tags=["Health Check"]
)

app.include_router(
    recommendation_router.router,
    prefix=API_PREFIX,
    tags=["Recommendations"]
)


@app.get("/", response_model=Dict[str, Any])
async def root():
    """Root endpoint with API information"""
    return {
        "name": "Property Recommendation API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "health_check": f"{API_PREFIX}/health",
        "endpoints": {
            "recommendations": f"{API_PREFIX}/",
            "stats": f"{API_PREFIX}/stats"
        },
        "status": "active"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "application.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower()
    )
