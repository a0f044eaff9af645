"""Aggregate verdict from per-indicator signals.

Direction is a confidence-weighted majority over the voting indicators (RSI,
MACD, EMA cross, volume). The higher-timeframe trend and news sentiment never
vote: they only scale or nudge the winning side's confidence and can never
flip the direction.
"""

from dataclasses import dataclass, replace

from advisor.config import SignalSettings
from advisor.models import Signal, SignalDirection, VerdictDirection
from advisor.signals.rules import VOTING_INDICATORS

_TO_VERDICT = {
    SignalDirection.BUY: VerdictDirection.BUY,
    SignalDirection.SELL: VerdictDirection.SELL,
}


@dataclass(frozen=True)
class Aggregate:
    """Direction and confidence before the oracle is consulted."""

    direction: VerdictDirection
    confidence: float
    buy_weight: float = 0.0
    sell_weight: float = 0.0


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def aggregate_signals(signals: list[Signal], settings: SignalSettings) -> Aggregate:
    """Confidence-weighted majority of the voting signals.

    The winning side's confidence is its average signal confidence scaled by
    its share of the total weight. A tie (including no votes at all) is a
    Hold capped at ``settings.hold_confidence_cap``.
    """
    votes = [
        s for s in signals
        if s.indicator in VOTING_INDICATORS and s.direction is not SignalDirection.NEUTRAL
    ]
    buys = [s.confidence for s in votes if s.direction is SignalDirection.BUY]
    sells = [s.confidence for s in votes if s.direction is SignalDirection.SELL]
    buy_weight, sell_weight = sum(buys), sum(sells)

    if buy_weight == sell_weight:
        if votes:
            confidence = sum(s.confidence for s in votes) / len(votes)
        else:
            confidence = settings.hold_confidence_cap
        return Aggregate(
            VerdictDirection.HOLD,
            min(settings.hold_confidence_cap, confidence),
            buy_weight,
            sell_weight,
        )

    if buy_weight > sell_weight:
        winner, win_weight, winning = SignalDirection.BUY, buy_weight, buys
    else:
        winner, win_weight, winning = SignalDirection.SELL, sell_weight, sells

    average = win_weight / len(winning)
    confidence = average * win_weight / (buy_weight + sell_weight)
    return Aggregate(_TO_VERDICT[winner], _clamp(confidence), buy_weight, sell_weight)


def _opposes(direction: VerdictDirection, signal: Signal) -> bool:
    return (direction is VerdictDirection.BUY and signal.direction is SignalDirection.SELL) or (
        direction is VerdictDirection.SELL and signal.direction is SignalDirection.BUY
    )


def _agrees(direction: VerdictDirection, signal: Signal) -> bool:
    return _TO_VERDICT.get(signal.direction) is direction


def apply_higher_timeframe(
    aggregate: Aggregate, signal: Signal | None, settings: SignalSettings
) -> Aggregate:
    """Penalize a verdict that fights the higher-timeframe trend, reward one that follows it."""
    if signal is None or not aggregate.direction.actionable:
        return aggregate
    if _opposes(aggregate.direction, signal):
        confidence = aggregate.confidence * settings.htf_conflict_penalty
        return replace(aggregate, confidence=_clamp(confidence))
    if _agrees(aggregate.direction, signal):
        confidence = aggregate.confidence + settings.htf_agreement_bonus
        return replace(aggregate, confidence=_clamp(confidence))
    return aggregate


def apply_news(aggregate: Aggregate, signal: Signal | None, settings: SignalSettings) -> Aggregate:
    """Nudge confidence toward or away from aligned news. Neutral news is inert."""
    if signal is None or not aggregate.direction.actionable:
        return aggregate
    if _agrees(aggregate.direction, signal):
        return replace(aggregate, confidence=_clamp(aggregate.confidence + settings.news_nudge))
    if _opposes(aggregate.direction, signal):
        return replace(aggregate, confidence=_clamp(aggregate.confidence - settings.news_nudge))
    return aggregate
