from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import time
from contextlib import asynccontextmanager

# Import configuration and database
from . import __version__, dependencies
from .config import settings
from .database import init_db, SessionLocal
from .models.schemas import HealthCheck

# Import routers
from .routers import auth, billing, cases, dashboard, documents, tasks

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting CaseDesk application...")

    try:
        init_db()
        logger.info("Database initialized")

        dependencies.init_services()
        logger.info("All services initialized successfully")

    except Exception as e:
        logger.error(f"Failed to initialize application: {str(e)}")
        raise

    yield

    logger.info("Shutting down CaseDesk application...")


# Create FastAPI application
app = FastAPI(
    title="CaseDesk",
    description="Case-management API for legal practices: cases, clients, tasks, billing and documents",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers."""
    start_time = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = str(time.time() - start_time)
    return response


# Error handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "status_code": exc.status_code,
            "timestamp": time.time()
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "status_code": 500,
            "timestamp": time.time()
        }
    )


# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(cases.router, prefix="/api/v1")
app.include_router(billing.router, prefix="/api/v1")
app.include_router(tasks.router, prefix="/api/v1")
app.include_router(tasks.types_router, prefix="/api/v1")
app.include_router(documents.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")

# Local blob storage is served directly
if settings.storage_backend == "local":
    app.mount(settings.blob_public_url, StaticFiles(directory=settings.blob_storage_path), name="blobs")


# Health check endpoint
@app.get("/health", response_model=HealthCheck)
async def health_check():
    """Health check endpoint."""
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        db_status = "healthy"
    except Exception as e:
        logger.warning(f"Database health check failed: {str(e)}")
        db_status = "unhealthy"

    storage_status = "healthy" if dependencies.blob_storage else "not_initialized"
    summarizer_status = "healthy" if dependencies.summarizer else "not_configured"

    overall_status = "healthy" if db_status == "healthy" and storage_status == "healthy" else "degraded"

    return {
        "status": overall_status,
        "timestamp": time.time(),
        "version": __version__,
        "services": {
            "database": db_status,
            "storage": storage_status,
            "summarizer": summarizer_status
        }
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "CaseDesk API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# API Info endpoint
@app.get("/api/v1/info")
async def api_info():
    """Get API information."""
    return {
        "name": "CaseDesk API",
        "version": __version__,
        "features": [
            "Case management with billing totals",
            "Derived client directory",
            "Tasks, task types and calendar view",
            "Billable rates catalogue",
            "Document storage",
            "AI document summaries",
            "Dashboard summary"
        ],
        "storage_backend": settings.storage_backend,
        "max_upload_size_mb": settings.max_upload_size_mb,
        "allowed_document_types": settings.allowed_document_types
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "casedesk.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
