"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from ledgerdesk.api.middleware import RequestIDMiddleware, MetricsMiddleware
from ledgerdesk.api.v1 import overview, records
from ledgerdesk.infrastructure.database.session import dispose_engine
from ledgerdesk.infrastructure.observability.logging import setup_logging
from ledgerdesk.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    dispose_engine()


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Ledgerdesk",
        description="Installment loan and reserve deduction schedules",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Overview routes first: /v1/{collection} would otherwise claim /v1/overview
    app.include_router(overview.router, prefix="/v1", tags=["overview"])
    app.include_router(records.router, prefix="/v1", tags=["records"])

    return app


app = create_app()
