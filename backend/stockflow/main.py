"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

import stockflow.models  # noqa: F401  registers all tables on Base.metadata
from stockflow.api.routes import api_router
from stockflow.core.alerting import alert_manager
from stockflow.core.config import settings
from stockflow.core.exceptions import NotFoundError, StockflowError
from stockflow.core.observability import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    configure_logging,
)
from stockflow.core.rate_limit import limiter
from stockflow.db.base import Base
from stockflow.db.session import SessionLocal, engine

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting stockflow inventory service")

    # SQLite dev databases are created in place; PostgreSQL uses Alembic migrations
    if settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    yield

    logger.info("Shutting down stockflow inventory service")


app = FastAPI(
    title="Stockflow",
    description="Recipe-based inventory deduction and reconciliation for multi-store POS",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StockflowError)
async def stockflow_error_handler(request: Request, exc: StockflowError):
    status_code = 404 if isinstance(exc, NotFoundError) else 400
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Request logging runs inside the correlation ID middleware so its lines carry the ID
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

# CORS middleware - added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Correlation-ID",
        "X-Store-Id",
    ],
    expose_headers=["X-Correlation-ID"],
    max_age=600,
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/health/ready")
def readiness_check():
    """Readiness probe: database reachable and no unacknowledged critical alerts."""
    checks = {"database": "unknown"}

    db = None
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"
    finally:
        if db:
            db.close()

    critical = alert_manager.count("critical")
    checks["reconciliation"] = "healthy" if critical == 0 else f"{critical} critical alerts"

    all_healthy = all(c == "healthy" for c in checks.values())
    return {
        "status": "ready" if all_healthy else "degraded",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


@app.get(f"{settings.api_v1_prefix}/alerts")
def get_alerts(level: Optional[str] = None, source: Optional[str] = None, limit: int = 20):
    """Recent reconciliation alerts, newest first."""
    return {"alerts": alert_manager.get_recent(limit=limit, level=level, source=source)}
