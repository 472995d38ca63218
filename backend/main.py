"""
PRD Wizard - FastAPI Application Entry Point

Serves the adaptive questioning engine:
- Question rounds driven by local completeness scoring
- Final requirement extraction
- Local completeness reports
- Audit logging
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
from datetime import datetime

from config import get_settings
from routers import questioning
from services.audit_logger import get_audit_logger
from services.llm_service import get_llm_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"LLM Provider: {settings.llm_provider}")
    logger.info(f"LLM mode: {settings.llm_mode}, model: {settings.llm_model}")

    yield

    # Shutdown
    await get_audit_logger().close()
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## PRD Wizard API

    Turn a one-paragraph product idea into a structured requirement record
    through short, adaptive question rounds.

    ### Flow
    1. **Batch questioning** - one round: score, decide, ask the next questions
    2. **Process result** - extract the final RequirementRecord
    3. **Completeness** - score any record locally

    ### Key Features
    - Local scoring decides when to stop; the model only advises
    - Deterministic fallback questions when the model is unavailable
    - Hard stop after 15 answered questions
    - Full audit logging
    """,
    lifespan=lifespan,
)

# CORS middleware (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Request Timing Middleware
# ============================================================================

@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    """Log every request with its status and duration."""
    start_time = datetime.utcnow()

    # Log request
    logger.info(f"Request: {request.method} {request.url.path}")

    response = await call_next(request)

    # Log response
    duration_ms = (datetime.utcnow() - start_time).total_seconds() * 1000
    logger.info(f"Response: {response.status_code} ({duration_ms:.0f}ms)")

    return response


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle validation errors."""
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation Error", "detail": str(exc)}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal Server Error", "detail": "An unexpected error occurred"}
    )


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(questioning.router, prefix="/api", tags=["Questioning"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "llm_provider": settings.llm_provider,
        "llm_mode": settings.llm_mode,
        "llm_tokens": get_llm_service().get_token_stats(),
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )



