"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from agency_billing.api.dependencies import get_request_id
from agency_billing.api.middleware import RequestIDMiddleware, MetricsMiddleware
from agency_billing.api.v1 import accounting, payments, schedules, transactions
from agency_billing.domain.exceptions import (
    DomainException,
    DuplicateObligationError,
    InvalidStateTransitionError,
    NotFoundError,
    TransactionFailureError,
    ValidationError,
)
from agency_billing.infrastructure.observability.logging import setup_logging
from agency_billing.config import settings

# Setup structured logging
setup_logging(settings.log_level)

_STATUS_BY_ERROR = [
    (NotFoundError, 404),
    (DuplicateObligationError, 409),
    (InvalidStateTransitionError, 409),
    (ValidationError, 422),
    (TransactionFailureError, 503),
]


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Translate domain errors into HTTP responses"""
    status_code = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 400)
    level = logging.ERROR if status_code >= 500 else logging.WARNING
    logging.log(level, f"{type(exc).__name__}: {exc}", extra={"request_id": get_request_id(request)})
    body = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, TransactionFailureError):
        body["retryable"] = True
    return JSONResponse(status_code=status_code, content=body)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Agency Billing",
        description="Recurring payment scheduling and financial ledger service",
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
    app.include_router(schedules.router, prefix="/v1", tags=["schedules"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(accounting.router, prefix="/v1", tags=["accounting"])

    return app


app = create_app()
