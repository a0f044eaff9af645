"""Prompt payloads sent to the oracle.

The oracle receives the deterministic signal set and raw indicator values as
JSON and must answer with JSON only. Wording is intentionally minimal; the
response shape is what the client validates.
"""

import json
from dataclasses import dataclass

from advisor.models import IndicatorSnapshot, Mode, NewsArticle, Signal, VerdictDirection


@dataclass
class AnalysisRequest:
    """Everything the oracle is told about one evaluation cycle."""

    instrument: str
    exchange: str
    timeframe: str
    mode: Mode
    snapshot: IndicatorSnapshot
    signals: list[Signal]
    direction: VerdictDirection
    confidence: float
    higher_timeframe: str | None = None
    higher_snapshot: IndicatorSnapshot | None = None


_ANALYSIS_SHAPE = {
    "marketOverview": "string",
    "indicatorExplanations": "string",
    "buySellSignal": "BUY | SELL | HOLD",
    "overallConfidence": "number 0-100",
    "entry": "number (price)",
    "stopLoss": "number (price)",
    "takeProfit": "number (price)",
    "riskManagementAdvice": "string",
    "signals": [{"indicator": "string", "signal": "Buy | Sell | Neutral", "reasoning": "string"}],
}

_SENTIMENT_SHAPE = {
    "sentiment": "Positive | Negative | Neutral",
    "summary": "string, 2-3 sentences",
    "reasoning": "string, 1-2 sentences",
}


def _snapshot_payload(snapshot: IndicatorSnapshot) -> dict:
    return {
        "price": snapshot.price,
        "high": snapshot.high,
        "low": snapshot.low,
        "volume": snapshot.volume,
        "rsi": snapshot.rsi,
        "macd": (
            {"line": snapshot.macd.line, "signal": snapshot.macd.signal}
            if snapshot.macd is not None
            else None
        ),
        "ema": {"ema9": snapshot.ema9, "ema21": snapshot.ema21},
    }


def build_analysis_prompt(request: AnalysisRequest) -> str:
    """Build the analysis prompt: role, JSON input, required JSON output shape."""
    payload = {
        "pair": request.instrument,
        "exchange": request.exchange,
        "timeframe": request.timeframe,
        "mode": request.mode.value,
        "indicators": _snapshot_payload(request.snapshot),
        "signals": [
            {
                "indicator": s.indicator,
                "signal": s.direction.value,
                "confidence": round(s.confidence, 1),
                "reasoning": s.reasoning,
            }
            for s in request.signals
        ],
        "verdict": {
            "direction": request.direction.value.upper(),
            "confidence": round(request.confidence, 1),
        },
    }
    if request.higher_snapshot is not None:
        payload["higherTimeframe"] = {
            "timeframe": request.higher_timeframe,
            "indicators": _snapshot_payload(request.higher_snapshot),
        }

    style = (
        "short-term scalping: tight stop loss, quick take profit"
        if request.mode is Mode.SCALPING
        else "swing trading: wider stop loss, multi-day take profit"
    )
    return (
        "You are an expert cryptocurrency technical analyst.\n"
        f"Trading style: {style}.\n"
        "Explain the signals below, keep the given verdict direction, and propose "
        "concrete entry, stop-loss and take-profit PRICES near the current price.\n"
        f"Input:\n{json.dumps(payload, indent=2)}\n"
        "Respond with a single JSON object of this shape and nothing else:\n"
        f"{json.dumps(_ANALYSIS_SHAPE, indent=2)}"
    )


def build_sentiment_prompt(symbol: str, articles: list[NewsArticle]) -> str:
    """Build the news sentiment prompt for ``symbol``."""
    items = [
        {"title": a.title, "source": a.source, "snippet": a.snippet} for a in articles
    ]
    return (
        "You are a financial analyst specialising in crypto markets.\n"
        f"Classify the overall market sentiment for {symbol} from these articles.\n"
        f"Articles:\n{json.dumps(items, indent=2, ensure_ascii=False)}\n"
        "Respond with a single JSON object of this shape and nothing else:\n"
        f"{json.dumps(_SENTIMENT_SHAPE, indent=2)}"
    )
