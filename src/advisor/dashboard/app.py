"""FastAPI operator application factory."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from advisor import __version__
from advisor.dashboard.routes import actions, api
from advisor.exceptions import (
    AdvisorError,
    ExchangeRejected,
    ExchangeUnavailable,
    InsufficientHistory,
    OracleUnavailable,
    SubscriptionNotFound,
)
from advisor.logging import get_logger

logger = get_logger(__name__)

# Taxonomy label -> HTTP status for interactive callers
_STATUS_CODES: dict[type[AdvisorError], int] = {
    SubscriptionNotFound: 404,
    InsufficientHistory: 422,
    OracleUnavailable: 503,
    ExchangeRejected: 502,
    ExchangeUnavailable: 502,
}


def _status_for(exc: AdvisorError) -> int:
    for exc_type, status in _STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return status
    return 500


async def _advisor_error_handler(request: Request, exc: AdvisorError) -> JSONResponse:
    status = _status_for(exc)
    logger.info(
        "interactive_request_failed",
        path=request.url.path,
        label=exc.label,
        error=str(exc),
        status=status,
    )
    return JSONResponse(status_code=status, content={"error": exc.label, "message": str(exc)})


async def _value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": "InvalidRequest", "message": str(exc)})


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the operator API.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to start and stop the scheduler.

    Returns:
        FastAPI app with ``/api`` (read) and ``/actions`` (control) routers.
        Route handlers expect ``app.state.scheduler`` to be set.
    """
    app = FastAPI(
        title="Crypto Signal Advisor",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_exception_handler(AdvisorError, _advisor_error_handler)
    app.add_exception_handler(ValueError, _value_error_handler)

    app.include_router(api.router, prefix="/api")
    app.include_router(actions.router, prefix="/actions")

    return app
