"""Per-indicator signal rules.

Each rule maps one indicator reading to a ``Signal`` with a 0-100 confidence,
or returns None when the reading is unavailable. Rules are pure functions of
the snapshot and ``SignalSettings``.
"""

from advisor.config import SignalSettings
from advisor.models import (
    IndicatorSnapshot,
    NewsAnalysis,
    SentimentLabel,
    Signal,
    SignalDirection,
)

RSI = "RSI"
MACD = "MACD"
EMA_CROSS = "EMA Cross"
VOLUME = "Volume"
HIGHER_TIMEFRAME = "Higher Timeframe"
NEWS = "News Sentiment"

# Indicators that vote in the aggregate; the rest only adjust confidence
VOTING_INDICATORS = frozenset({RSI, MACD, EMA_CROSS, VOLUME})

BUY = SignalDirection.BUY
SELL = SignalDirection.SELL
NEUTRAL = SignalDirection.NEUTRAL


def _spread_confidence(
    spread: float, price: float, base: float, weight: float, cap: float
) -> float:
    """Confidence growing with a spread measured in basis points of price."""
    bps = abs(spread) / price * 10_000 if price > 0 else 0.0
    return min(cap, base + bps * weight)


def rsi_signal(rsi: float | None, settings: SignalSettings) -> Signal | None:
    """<oversold Buy, >overbought Sell, else Neutral; confidence = |rsi-50|*2."""
    if rsi is None:
        return None
    confidence = min(100.0, abs(rsi - 50.0) * 2)
    if rsi < settings.rsi_oversold:
        reason = f"RSI {rsi:.1f} is oversold (< {settings.rsi_oversold:g})"
        return Signal(RSI, BUY, confidence, reason)
    if rsi > settings.rsi_overbought:
        reason = f"RSI {rsi:.1f} is overbought (> {settings.rsi_overbought:g})"
        return Signal(RSI, SELL, confidence, reason)
    return Signal(RSI, NEUTRAL, confidence, f"RSI {rsi:.1f} is in the neutral band")


def macd_signal(snapshot: IndicatorSnapshot, settings: SignalSettings) -> Signal | None:
    macd = snapshot.macd
    if macd is None:
        return None
    if macd.line == macd.signal:
        return Signal(MACD, NEUTRAL, 0.0, "MACD line equals its signal line")

    confidence = _spread_confidence(
        macd.histogram,
        snapshot.price,
        settings.macd_base_confidence,
        settings.macd_bps_weight,
        settings.max_indicator_confidence,
    )
    if macd.line > macd.signal:
        reason = f"MACD line {macd.line:.4g} above signal {macd.signal:.4g}"
        return Signal(MACD, BUY, confidence, reason)
    reason = f"MACD line {macd.line:.4g} below signal {macd.signal:.4g}"
    return Signal(MACD, SELL, confidence, reason)


def ema_cross_signal(snapshot: IndicatorSnapshot, settings: SignalSettings) -> Signal | None:
    fast, slow = snapshot.ema9, snapshot.ema21
    if fast is None or slow is None:
        return None
    if fast == slow:
        return Signal(EMA_CROSS, NEUTRAL, 0.0, "EMA9 equals EMA21")

    confidence = _spread_confidence(
        fast - slow,
        snapshot.price,
        settings.ema_base_confidence,
        settings.ema_bps_weight,
        settings.max_indicator_confidence,
    )
    if fast > slow:
        reason = f"EMA9 {fast:.4g} above EMA21 {slow:.4g} (uptrend)"
        return Signal(EMA_CROSS, BUY, confidence, reason)
    reason = f"EMA9 {fast:.4g} below EMA21 {slow:.4g} (downtrend)"
    return Signal(EMA_CROSS, SELL, confidence, reason)


def volume_signal(snapshot: IndicatorSnapshot, settings: SignalSettings) -> Signal | None:
    """A volume spike confirms the direction of the last candle's body.

    Returns None when volume or its average is unavailable.
    """
    volume, average = snapshot.volume, snapshot.volume_average
    if volume is None or average is None or average <= 0:
        return None

    ratio = volume / average
    if ratio < settings.volume_spike_ratio:
        return Signal(VOLUME, NEUTRAL, 0.0, f"volume {ratio:.2f}x average, no spike")

    confidence = min(
        settings.max_indicator_confidence,
        50.0 * ratio / settings.volume_spike_ratio,
    )
    if snapshot.price > snapshot.open:
        reason = f"volume spike {ratio:.2f}x average on a bullish candle"
        return Signal(VOLUME, BUY, confidence, reason)
    if snapshot.price < snapshot.open:
        reason = f"volume spike {ratio:.2f}x average on a bearish candle"
        return Signal(VOLUME, SELL, confidence, reason)
    return Signal(VOLUME, NEUTRAL, 0.0, f"volume spike {ratio:.2f}x average on a flat candle")


def higher_timeframe_signal(
    snapshot: IndicatorSnapshot | None,
    timeframe: str | None,
    settings: SignalSettings,
) -> Signal | None:
    """Trend of the higher timeframe from its EMA cross, reinforced by MACD."""
    if snapshot is None or snapshot.ema9 is None or snapshot.ema21 is None:
        return None

    label = f"{timeframe} trend" if timeframe else "higher timeframe trend"
    ema = ema_cross_signal(snapshot, settings)
    if ema.direction is NEUTRAL:
        return Signal(HIGHER_TIMEFRAME, NEUTRAL, 0.0, f"{label} is flat")

    confidence = ema.confidence
    macd = macd_signal(snapshot, settings)
    if macd is not None and macd.direction is ema.direction:
        confidence = min(settings.max_indicator_confidence, confidence + 10.0)
        detail = "EMA and MACD agree"
    else:
        detail = "EMA cross only"

    word = "up" if ema.direction is BUY else "down"
    return Signal(HIGHER_TIMEFRAME, ema.direction, confidence, f"{label} is {word} ({detail})")


def news_signal(analysis: NewsAnalysis | None) -> Signal | None:
    if analysis is None:
        return None
    direction = {
        SentimentLabel.POSITIVE: BUY,
        SentimentLabel.NEGATIVE: SELL,
    }.get(analysis.sentiment, NEUTRAL)
    confidence = 0.0 if direction is NEUTRAL else 50.0
    reasoning = (
        analysis.reasoning
        or analysis.summary
        or f"news sentiment is {analysis.sentiment.value}"
    )
    return Signal(NEWS, direction, confidence, reasoning)
