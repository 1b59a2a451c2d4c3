"""
FastAPI application for the medical document extraction service.

Provides endpoints for:
- Uploading a photo of a medical document for field extraction
- Rendering extracted fields for display
- Generating a care plan prompt from extracted fields

Run with: uvicorn app.backend.main:app
"""

import logging

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .models import ErrorResponse, HealthResponse
from .routers import extraction, results
from .services.ai import AIServiceError, get_ai_service
from .services.document_service import DocumentError, get_document_service

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting MediScript Extraction Service...")
    get_document_service()
    ai_service = get_ai_service()
    logger.info(
        "Services initialized successfully (provider=%s, model=%s, mock=%s)",
        ai_service.provider,
        ai_service.model,
        ai_service.use_mock,
    )
    yield
    logger.info("Shutting down MediScript Extraction Service...")


# Create FastAPI application
app = FastAPI(
    title="MediScript Extraction API",
    description="Medical document field extraction and care plan prompt generation",
    version=__version__,
    debug=settings.debug,
    lifespan=lifespan,
)

# Configure CORS for the browser front end
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


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(
        status="healthy",
        message="MediScript Extraction API is running",
        version=__version__,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="Service is healthy", version=__version__)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(extraction.router)
app.include_router(results.router)


# =============================================================================
# Exception Handlers
# =============================================================================


def _error_response(status_code: int, message: str, exc: Exception) -> JSONResponse:
    body = ErrorResponse(detail=message, error_type=type(exc).__name__)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(DocumentError)
async def document_error_handler(request: Request, exc: DocumentError):
    """Handle rejected uploads."""
    logger.warning("Rejected document on %s: %s", request.url.path, exc)
    return _error_response(exc.status_code, exc.user_message, exc)


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request: Request, exc: AIServiceError):
    """Handle AI service errors with their user-facing message."""
    logger.error("Extraction failed on %s (%s): %s", request.url.path, type(exc).__name__, exc)
    return _error_response(exc.status_code, exc.user_message, exc)
