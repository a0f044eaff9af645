"""Control endpoints: start/stop monitoring, manual checks and triggers, one-off analysis.

Taxonomy errors raised by the scheduler are rendered by the app-level
exception handlers as ``{"error": <label>, "message": <cause>}``.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from advisor.dashboard.routes.api import subscription_to_dict, verdict_to_dict
from advisor.logging import get_logger
from advisor.models import Mode

log = get_logger(__name__)

router = APIRouter()


class AnalyzeBody(BaseModel):
    instrument: str = Field(min_length=1)
    exchange: str | None = None
    timeframe: str | None = None
    mode: Mode = Mode.SWING
    high_accuracy: bool = True
    oracle_api_key: str | None = None


class SubscribeBody(AnalyzeBody):
    interval_seconds: int | None = Field(default=None, gt=0)


@router.post("/subscriptions")
async def start_monitoring(body: SubscribeBody, request: Request) -> JSONResponse:
    """Subscribe and start the monitor loop; the first check runs immediately."""
    scheduler = request.app.state.scheduler
    sub = await scheduler.subscribe(
        instrument=body.instrument,
        exchange=body.exchange,
        timeframe=body.timeframe,
        mode=body.mode,
        interval_seconds=body.interval_seconds,
        high_accuracy=body.high_accuracy,
        oracle_credential=body.oracle_api_key,
    )
    log.info("monitoring_started_via_api", subscription_id=sub.id)
    return JSONResponse(status_code=201, content=subscription_to_dict(sub))


@router.delete("/subscriptions/{sub_id}")
async def stop_monitoring(sub_id: str, request: Request) -> JSONResponse:
    scheduler = request.app.state.scheduler
    sub = await scheduler.unsubscribe(sub_id)
    log.info("monitoring_stopped_via_api", subscription_id=sub_id)
    return JSONResponse(content=subscription_to_dict(sub))


@router.post("/subscriptions/{sub_id}/trigger")
async def trigger_subscription(sub_id: str, request: Request) -> JSONResponse:
    """Wake the monitor loop for an immediate silent cycle; alerts go out as usual."""
    scheduler = request.app.state.scheduler
    scheduler.trigger(sub_id)
    log.info("manual_trigger_via_api", subscription_id=sub_id)
    return JSONResponse(status_code=202, content={"id": sub_id, "triggered": True})


@router.post("/subscriptions/{sub_id}/check")
async def check_subscription(sub_id: str, request: Request) -> JSONResponse:
    """Interactive check: returns the verdict or the failure label and cause."""
    scheduler = request.app.state.scheduler
    verdict = await scheduler.check_now(sub_id)
    return JSONResponse(content=verdict_to_dict(verdict))


@router.post("/analyze")
async def analyze(body: AnalyzeBody, request: Request) -> JSONResponse:
    """One-off evaluation without a subscription."""
    scheduler = request.app.state.scheduler
    verdict = await scheduler.analyze(
        instrument=body.instrument,
        exchange=body.exchange,
        timeframe=body.timeframe,
        mode=body.mode,
        high_accuracy=body.high_accuracy,
        oracle_credential=body.oracle_api_key,
    )
    return JSONResponse(content=verdict_to_dict(verdict))
