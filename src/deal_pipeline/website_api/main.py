"""FastAPI application factory for the deal pipeline API."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.errors import ValidationError, InvariantViolation, OpportunityNotFound, PersistenceError
from .config import settings
from .routes.health import router as health_router
from .routes.opportunities import router as opportunities_router, summary_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Deal Pipeline API")
    yield
    logger.info("Deal Pipeline API shutting down")


def _error(status_code: int, error: str, detail: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "detail": detail, **extra},
    )


async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(422, "validation_error", str(exc), fields=exc.to_dict()["fields"])


async def invariant_violation_handler(request: Request, exc: InvariantViolation):
    return _error(409, "invariant_violation", exc.message)


async def not_found_handler(request: Request, exc: OpportunityNotFound):
    return _error(404, "not_found", exc.message, retryable=False)


async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error(f"Store failure on {request.url.path}: {exc.message}")
    return _error(503, "persistence_error", exc.message, retryable=exc.retryable)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Deal Pipeline API",
        description="Offers, CPCV, Escritura and commission tracking for seller listings",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(InvariantViolation, invariant_violation_handler)
    app.add_exception_handler(OpportunityNotFound, not_found_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)

    # Routes
    app.include_router(health_router)
    app.include_router(opportunities_router)
    app.include_router(summary_router)

    return app


# Module-level app instance for uvicorn
app = create_app()
