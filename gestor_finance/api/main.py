"""FastAPI application factory"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from gestor_finance.api.middleware import RequestIDMiddleware, MetricsMiddleware
from gestor_finance.api.v1 import backup, cashflow, financial, installments, stock
from gestor_finance.infrastructure.database.session import init_db
from gestor_finance.infrastructure.observability.logging import setup_logging
from gestor_finance.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables before serving requests"""
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        lifespan=lifespan,
        title="Gestor Finance",
        description="Installment plans, financial summaries, cash flow forecasts and stock audit",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
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

    # Register API routers
    app.include_router(installments.router, prefix="/v1", tags=["installments"])
    app.include_router(financial.router, prefix="/v1", tags=["financial"])
    app.include_router(cashflow.router, prefix="/v1", tags=["cashflow"])
    app.include_router(stock.router, prefix="/v1", tags=["stock"])
    app.include_router(backup.router, prefix="/v1", tags=["backup"])

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn"""
    uvicorn.run("gestor_finance.api.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
