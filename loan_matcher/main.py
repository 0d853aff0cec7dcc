"""
FastAPI Application - Main Entry Point

REST API for the batch loan matching engine.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from loan_matcher.config import get_settings
from loan_matcher.core.matching_engine import LoanMatchingEngine
from loan_matcher.services.batch_service import BatchService
from loan_matcher.utils.exceptions import (
    ArithmeticOverflowException,
    InvalidInputException
)

# Import routers
from loan_matcher.api.routes import batches
from loan_matcher.api.models import HealthResponse, ErrorResponse

API_VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Global instances
matching_engine: LoanMatchingEngine = None
batch_service: BatchService = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Initializes the matching engine and batch service on startup.
    """
    # Startup
    logger.info("=" * 80)
    logger.info("Starting Loan Matching Engine API")
    logger.info("=" * 80)

    global matching_engine, batch_service

    logger.info("Initializing matching engine...")
    matching_engine = LoanMatchingEngine(settings)

    logger.info("Initializing services...")
    batch_service = BatchService(matching_engine, settings)

    # Set service instances in routers
    batches.set_batch_service(batch_service)

    logger.info(
        f"API startup complete! max_batch_size={settings.max_batch_size}, "
        f"max_workers={settings.max_workers}"
    )
    logger.info(f"Swagger UI available at: http://{settings.api_host}:{settings.api_port}/docs")
    logger.info("=" * 80)

    yield

    # Shutdown
    logger.info("=" * 80)
    logger.info("Shutting down API...")
    batches.set_batch_service(None)
    logger.info("API shutdown complete!")
    logger.info("=" * 80)


# Create FastAPI application
app = FastAPI(
    title="Loan Matching Engine API",
    description="""
    Batch matcher for two-sided fixed-rate lending.

    ## Features
    * **Exhaustive search**: every partition of a batch is evaluated
    * **Deterministic**: matched volume, then efficiency, then lower rate
    * **Exact arithmetic**: integer amounts up to uint256, no floating point

    ## Endpoints
    * **POST /api/v1/batches/match**: Match a closed batch
    * **GET /api/v1/batches/limits**: Get search limits
    """,
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request for tracking."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


# Logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests and responses."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.info(
        f"Request [{request_id}]: {request.method} {request.url.path} "
        f"from {request.client.host if request.client else 'unknown'}"
    )

    response = await call_next(request)

    logger.info(f"Response [{request_id}]: {response.status_code}")

    return response


def _error_response(status_code: int, error: str, message: str, detail: str = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            message=message,
            detail=detail,
            timestamp=datetime.now(timezone.utc)
        ).model_dump(mode='json')
    )


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(f"Validation error [{request_id}]: {exc.errors()}")

    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        str(exc.errors()),
    )


@app.exception_handler(InvalidInputException)
async def invalid_input_exception_handler(request: Request, exc: InvalidInputException):
    """Handle rejected orders and batches."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(f"Invalid input [{request_id}]: {exc.message}")

    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        type(exc).__name__,
        exc.message,
        str(exc.details) if exc.details else None,
    )


@app.exception_handler(ArithmeticOverflowException)
async def overflow_exception_handler(request: Request, exc: ArithmeticOverflowException):
    """Handle values outside the settlement range."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(f"Arithmetic overflow [{request_id}]: {exc.message}")

    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ArithmeticOverflowException",
        exc.message,
        str(exc.details) if exc.details else None,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(f"Unhandled exception [{request_id}]: {str(exc)}", exc_info=True)

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An internal error occurred",
        "Contact support with request ID: " + request_id,
    )


# Health check endpoint
@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Check API and matching engine health status"
)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns service status and the matching engine's search limits.
    """
    limits = batch_service.get_limits() if batch_service else {}

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=API_VERSION,
        matching_engine=limits
    )


# Include routers
app.include_router(batches.router)


# Root endpoint
@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Loan Matching Engine API",
        "version": API_VERSION,
        "status": "operational",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "loan_matcher.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower()
    )
