"""
FastAPI application for the Project Brief Agent backend.

Provides endpoints for:
- Uploading PDF briefs (multipart, by URL, raw bytes)
- Buying analysis credits through PayPal
- Spending credits on structured brief analysis
- Looking up account balances
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings, warn_missing_settings
from .dependencies import get_blob_store, get_document_store, get_ledger, get_payment_gateway
from .exceptions import BriefAgentError, DownloadError, GatewayError, InsufficientCredits
from .models import ErrorResponse, HealthResponse
from .routers import analysis, checkout, upload
from .services.ai import get_ai_service
from .services.pdf_service import get_pdf_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Project Brief Agent Backend...")
    warn_missing_settings(get_settings())
    # Initialize services on startup
    get_pdf_service()
    get_ai_service()
    get_ledger()
    get_document_store()
    get_blob_store()
    get_payment_gateway()
    logger.info("Services initialized successfully")
    yield
    logger.info("Shutting down Project Brief Agent Backend...")


# Create FastAPI application
app = FastAPI(
    title="Project Brief Agent API",
    description="PDF brief ingestion, PayPal credit purchases and AI brief analysis",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for the embedding site (restrict origins in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Filename", "X-UserId"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(
        status="healthy",
        message="Project Brief Agent Backend is running",
        version=__version__,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="Service is healthy", version=__version__)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(upload.router)
app.include_router(checkout.router)
app.include_router(analysis.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(BriefAgentError)
async def brief_agent_error_handler(request: Request, exc: BriefAgentError):
    """Map service errors to their HTTP status with a JSON body."""
    content = ErrorResponse(detail=exc.message, error=exc.code).model_dump(by_alias=True)

    if isinstance(exc, GatewayError) and exc.upstream_status is not None:
        content["upstreamStatus"] = exc.upstream_status
    elif isinstance(exc, DownloadError) and exc.body_snippet is not None:
        content["bodySnippet"] = exc.body_snippet
    elif isinstance(exc, InsufficientCredits):
        content["credits"] = exc.balance

    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)

    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Last resort: log the traceback and return a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(detail="Internal server error", error="internal_error").model_dump(
            by_alias=True
        ),
    )
