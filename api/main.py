import logging
import traceback
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from routes.export_routes import router as export_router
from routes.validation_routes import router as validation_router
from services.export_errors import ExportError, ExportErrorKind, RenderTimeoutError

# Configure logging based on settings
Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(settings.log_file),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# HTTP status per export error kind
ERROR_STATUS = {
    ExportErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ExportErrorKind.MALFORMED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ExportErrorKind.ENRICHMENT_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ExportErrorKind.RENDER_TIMEOUT: status.HTTP_408_REQUEST_TIMEOUT,
    ExportErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

TIMEOUT_SUGGESTION = (
    "PDF generation timed out. Try again with richMap set to false, "
    "which draws maps locally instead of fetching them."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown events."""
    # Startup
    logger.info(f"Starting {settings.app_name}...")
    data_dir = Path(settings.data_dir)
    if not data_dir.is_dir():
        logger.warning(f"Data directory {data_dir.resolve()} does not exist")
    else:
        logger.info(f"Serving location data from {data_dir.resolve()}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")


# OpenAPI tags for better documentation organization
tags_metadata = [
    {
        "name": "health",
        "description": "Health check endpoints for monitoring API status",
    },
    {
        "name": "exports",
        "description": "PDF and CSV exports of the mailbox location directory",
    },
    {
        "name": "validation",
        "description": "Data-quality checks over the location source files",
    },
]

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="""
    ## Overview
    Directory of mailbox service locations in US states and international
    countries, exported as printable PDF documents or CSV.

    ## Features
    - **PDF export**: one country or state, or every international country,
      with per-location maps and plan details
    - **Price redaction**: optional replacement of prices with "Available"
    - **CSV export**: one row per international location
    - **Overview maps**: US location map and world density map
    - **Validation**: blank-value checks over the source corpus
    """,
    version=settings.app_version,
    lifespan=lifespan,
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    debug=settings.debug
)

# Configure CORS for the map UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


# Health check endpoint
@app.get("/health",
         tags=["health"],
         summary="Health Check",
         description="Check the health status of the API and the location data directory",
         response_description="Health status information")
async def health_check():
    """Check API health status.

    Returns:
        dict: Health status with API status, data directory status, and version
    """
    data_status = "available" if Path(settings.data_dir).is_dir() else "missing"
    return {
        "status": "healthy",
        "data": data_status,
        "version": settings.app_version
    }


# Root endpoint
@app.get("/",
         summary="API Information",
         description="Get basic information about the API",
         response_description="API metadata")
async def root():
    """Get basic API information.

    Returns:
        dict: API name, version, and documentation URL
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "documentation": "/docs"
    }


app.include_router(export_router)
app.include_router(validation_router)


# Error handlers
@app.exception_handler(ExportError)
async def export_error_handler(request: Request, exc: ExportError):
    """Shape export pipeline errors into JSON bodies.

    Args:
        request: The incoming request
        exc: The export error that was raised
    """
    status_code = ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    body = exc.to_dict()

    if isinstance(exc, RenderTimeoutError):
        body["suggestion"] = TIMEOUT_SUGGESTION
    elif status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"Export failed for {request.url.path}: {exc.message}")
        if settings.debug:
            body["traceback"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )

    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Handle 500 Internal Server errors.

    Args:
        request: The incoming request
        exc: The exception that was raised
    """
    logger.error(f"Internal server error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "kind": ExportErrorKind.UNKNOWN.value}
    )
