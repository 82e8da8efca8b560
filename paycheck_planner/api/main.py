"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from paycheck_planner.api.dependencies import get_request_id
from paycheck_planner.api.middleware import MetricsMiddleware, RequestIDMiddleware
from paycheck_planner.api.v1 import breakdowns, occurrences, periods
from paycheck_planner.config import settings
from paycheck_planner.domain.exceptions import DomainException
from paycheck_planner.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Invalid definitions are the caller's problem: 422 with the offending item"""
    logging.warning(
        f"Rejected input: {exc.message}",
        extra={"request_id": get_request_id(request), "item_id": exc.item_id},
    )
    return JSONResponse(status_code=422, content={"detail": exc.message, "item_id": exc.item_id})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Paycheck Planner",
        description="Paycheck-by-paycheck budgeting: obligations, allocations and carryover",
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
    app.include_router(occurrences.router, prefix="/v1", tags=["occurrences"])
    app.include_router(periods.router, prefix="/v1", tags=["periods"])
    app.include_router(breakdowns.router, prefix="/v1", tags=["breakdowns"])

    return app


app = create_app()
