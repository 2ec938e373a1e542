"""
TerraMag Survey - FastAPI Application

Main entry point for the REST API server.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from loguru import logger
import time

from ..core.config import settings
from ..core.errors import ExportError, ExportErrorKind
from ..core.logging_config import configure_logging
from ..storage.database import init_db, dispose_engine
from .routes import projects, export


# HTTP status per labeled export failure
ERROR_STATUS = {
    ExportErrorKind.EMPTY_INPUT: status.HTTP_409_CONFLICT,
    ExportErrorKind.MISSING_BACKING_STORE: status.HTTP_404_NOT_FOUND,
    ExportErrorKind.WRITE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ExportErrorKind.UNSUPPORTED_ENVIRONMENT: status.HTTP_501_NOT_IMPLEMENTED,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs startup and shutdown logic.
    """
    configure_logging()
    logger.info("Starting TerraMag Survey API...")
    init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down TerraMag Survey API...")
    dispose_engine()


# Create FastAPI application
app = FastAPI(
    title="TerraMag Survey API",
    description="""
    RESTful API for magnetometer field surveys.

    ## Features

    * **Projects** - Store survey projects, magnetometer readings and field notes
    * **Grid** - Plan regular survey grids, walking order and coverage
    * **Analysis** - Field statistics and anomaly detection
    * **Export** - CSV, GeoJSON, KML, WKT-CSV and raw SQLite snapshots
    """,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add X-Process-Time header to all responses"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed messages"""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": errors
        }
    )


@app.exception_handler(ExportError)
async def export_exception_handler(request: Request, exc: ExportError):
    """Report labeled export failures"""
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        content={
            "detail": {
                "kind": exc.kind.value,
                "message": exc.message
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.debug else "An unexpected error occurred"
        }
    )


# Include routers
app.include_router(
    projects.router,
    prefix="/api/projects",
    tags=["Projects"]
)

app.include_router(
    export.router,
    prefix="/api/export",
    tags=["Export"]
)


# Root endpoints
@app.get("/", tags=["Root"])
async def root():
    """API root endpoint"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", tags=["Root"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.app_version
    }


@app.get("/api", tags=["Root"])
async def api_info():
    """API information endpoint"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "endpoints": {
            "projects": "/api/projects",
            "export": "/api/export"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "terramag.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload
    )
