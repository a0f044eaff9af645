"""JSON read endpoints: subscriptions, their last verdicts, health."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from advisor import __version__
from advisor.models import MonitorSubscription, NewsAnalysis, Verdict

router = APIRouter()


def news_to_dict(news: NewsAnalysis | None) -> dict[str, Any] | None:
    if news is None:
        return None
    return {
        "symbol": news.symbol,
        "sentiment": news.sentiment.value,
        "summary": news.summary,
        "reasoning": news.reasoning,
        "articles": [
            {"title": a.title, "url": a.url, "source": a.source} for a in news.articles
        ],
    }


def verdict_to_dict(verdict: Verdict | None) -> dict[str, Any] | None:
    if verdict is None:
        return None
    return {
        "instrument": verdict.instrument,
        "exchange": verdict.exchange,
        "timeframe": verdict.timeframe,
        "mode": verdict.mode.value,
        "direction": verdict.direction.value,
        "overall_confidence": verdict.overall_confidence,
        "price": verdict.price,
        "entry": verdict.entry,
        "stop_loss": verdict.stop_loss,
        "take_profit": verdict.take_profit,
        "signals": [
            {
                "indicator": s.indicator,
                "direction": s.direction.value,
                "confidence": round(s.confidence, 2),
                "reasoning": s.reasoning,
            }
            for s in verdict.signals
        ],
        "market_overview": verdict.market_overview,
        "indicator_explanations": verdict.indicator_explanations,
        "risk_management_advice": verdict.risk_management_advice,
        "news": news_to_dict(verdict.news),
        "created_at": verdict.created_at,
    }


def subscription_to_dict(sub: MonitorSubscription) -> dict[str, Any]:
    """Serialize a subscription. The oracle credential is never exposed."""
    return {
        "id": sub.id,
        "instrument": sub.instrument,
        "exchange": sub.exchange,
        "timeframe": sub.timeframe,
        "mode": sub.mode.value,
        "interval_seconds": sub.interval_seconds,
        "high_accuracy": sub.high_accuracy,
        "state": sub.state.value,
        "last_verdict_direction": (
            sub.last_verdict_direction.value if sub.last_verdict_direction else None
        ),
        "last_evaluated_at": sub.last_evaluated_at,
        "last_error": sub.last_error,
        "notifications_sent": sub.notifications_sent,
        "created_at": sub.created_at,
        "last_verdict": verdict_to_dict(sub.last_verdict),
    }


@router.get("/subscriptions")
async def list_subscriptions(request: Request) -> JSONResponse:
    scheduler = request.app.state.scheduler
    return JSONResponse(
        content=[subscription_to_dict(sub) for sub in scheduler.subscriptions()]
    )


@router.get("/subscriptions/{sub_id}")
async def get_subscription(sub_id: str, request: Request) -> JSONResponse:
    """One subscription with its last verdict. 404 when unknown."""
    scheduler = request.app.state.scheduler
    return JSONResponse(content=subscription_to_dict(scheduler.get(sub_id)))


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    scheduler = request.app.state.scheduler
    return JSONResponse(
        content={
            "status": "ok",
            "version": __version__,
            "exchanges": scheduler.exchanges,
            **scheduler.get_status(),
        }
    )
