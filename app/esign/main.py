"""
FastAPI application for the document signing service.

Provides endpoints for:
- Uploading PDFs and managing recipients
- Collecting owner and recipient signatures
- Generating signed PDFs with the signatures burned in
- Downloading the signed result
"""

import logging

from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

# Handle both package imports (when running as module) and standalone imports (uvicorn main:app)
try:
    from .config import APP_VERSION, get_settings
    from .database import init_db
    from .models import HealthResponse
    from .routers import documents, signatures
    from .services.exceptions import DocumentFetchError, PDFDecodeError, PublishError
    from .services.geometry import DISPLAY_SPACE_VERSION, REFERENCE_WIDTH
    from .services.pdf_service import get_pdf_service
    from .services.storage import LocalStorageBackend, get_storage
except ImportError:
    import sys
    from pathlib import Path
    # Add parent directory to path for standalone imports
    backend_dir = Path(__file__).parent
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))
    from config import APP_VERSION, get_settings
    from database import init_db
    from models import HealthResponse
    from routers import documents, signatures
    from services.exceptions import DocumentFetchError, PDFDecodeError, PublishError
    from services.geometry import DISPLAY_SPACE_VERSION, REFERENCE_WIDTH
    from services.pdf_service import get_pdf_service
    from services.storage import LocalStorageBackend, get_storage

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Signing Service...")
    init_db()
    get_pdf_service()
    get_storage()
    logger.info("Services initialized successfully")
    yield
    logger.info("Shutting down Signing Service...")


# Create FastAPI application
app = FastAPI(
    title="Document Signing API",
    description="Upload PDFs, collect signatures and render signed documents",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


def _health(message: str) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        message=message,
        version=APP_VERSION,
        reference_width=REFERENCE_WIDTH,
        display_space_version=DISPLAY_SPACE_VERSION,
    )


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return _health("Signing API is running")


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return _health("Service is healthy")


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(documents.router)
app.include_router(signatures.router)

# Serve locally stored blobs so that local original_url values resolve
_storage = get_storage()
if isinstance(_storage, LocalStorageBackend):
    app.mount("/files", StaticFiles(directory=_storage.base_path), name="files")


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(PDFDecodeError)
async def pdf_decode_error_handler(request, exc: PDFDecodeError):
    """Handle unreadable PDFs."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


@app.exception_handler(DocumentFetchError)
@app.exception_handler(PublishError)
async def storage_error_handler(request, exc: Exception):
    """Handle failures talking to blob storage."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc)},
    )
