"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from ledger_engine.api.dependencies import get_request_id
from ledger_engine.api.middleware import MetricsMiddleware, RequestIDMiddleware
from ledger_engine.api.v1 import accounts, entries, transfers
from ledger_engine.config import settings
from ledger_engine.domain.exceptions import (
    AmountMismatch,
    DomainException,
    InstallmentNotAllowed,
    InvalidTransfer,
    NotAuthenticated,
    NotFound,
    PartialWriteFailure,
    StorageError,
    ValidationError,
)
from ledger_engine.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)

# Most specific first; the first matching class decides the status code
STATUS_CODES = [
    (ValidationError, 422),
    (InstallmentNotAllowed, 409),
    (InvalidTransfer, 409),
    (AmountMismatch, 409),
    (NotFound, 404),
    (NotAuthenticated, 401),
    (StorageError, 503),
]


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Translate engine exceptions into HTTP responses in one place"""
    status_code = next((code for cls, code in STATUS_CODES if isinstance(exc, cls)), 500)
    request_id = get_request_id(request)
    body = {"detail": str(exc)}

    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
    elif isinstance(exc, AmountMismatch):
        body["expected"] = str(exc.expected)
        body["actual"] = str(exc.actual)
    elif isinstance(exc, PartialWriteFailure):
        body["written"] = exc.written
        body["intended"] = exc.intended
        body["orphaned"] = exc.orphaned

    if status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
    else:
        logger.warning(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
    return JSONResponse(status_code=status_code, content=body)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Ledger Engine",
        description="Personal ledger with card installments, invoices and transfers",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(entries.router, prefix="/v1", tags=["entries"])
    app.include_router(accounts.router, prefix="/v1", tags=["accounts"])
    app.include_router(transfers.router, prefix="/v1", tags=["transfers"])

    return app


app = create_app()
