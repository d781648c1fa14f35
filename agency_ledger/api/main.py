"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from agency_ledger.api.dependencies import get_request_id
from agency_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from agency_ledger.api.v1 import cheques, customers, finance, policies, pricing, reports
from agency_ledger.domain.exceptions import ConflictError, InternalError, NotFoundError, ValidationError
from agency_ledger.infrastructure.observability.logging import setup_logging
from agency_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors onto HTTP status codes"""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logging.warning(f"Validation failed: {exc}", extra={"request_id": get_request_id(request), "field": exc.field})
        return JSONResponse(status_code=400, content={"detail": str(exc), "field": exc.field})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc), "resource": exc.resource})

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        logging.warning(f"Conflict: {exc}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(InternalError)
    async def internal_error_handler(request: Request, exc: InternalError):
        logging.error(f"Internal error: {exc}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Agency Ledger",
        description="Insurance agency back office: policies, payments, cheques and reports",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(customers.router, prefix="/v1", tags=["customers"])
    app.include_router(policies.router, prefix="/v1", tags=["policies"])
    app.include_router(cheques.router, prefix="/v1", tags=["cheques"])
    app.include_router(reports.router, prefix="/v1", tags=["reports"])
    app.include_router(finance.router, prefix="/v1", tags=["finance"])
    app.include_router(pricing.router, prefix="/v1", tags=["pricing"])

    return app


app = create_app()
