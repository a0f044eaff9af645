"""Signal synthesizer: indicator snapshots in, verdict out.

The deterministic part (per-indicator rules, weighted aggregate, higher
timeframe filter, news nudge) decides direction and confidence. The oracle
is asked only for entry, stop loss, take profit and prose; its own
direction call is logged when it diverges but never overrides the rules.
The synthesizer never invents price levels: without a valid oracle answer
there is no verdict.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from advisor.config import SignalSettings
from advisor.exceptions import InsufficientHistory, OracleUnavailable
from advisor.logging import get_logger
from advisor.models import IndicatorSnapshot, Mode, NewsAnalysis, Signal, Verdict, VerdictDirection
from advisor.oracle.prompts import AnalysisRequest
from advisor.signals.aggregate import (
    Aggregate,
    aggregate_signals,
    apply_higher_timeframe,
    apply_news,
)
from advisor.signals.rules import (
    ema_cross_signal,
    higher_timeframe_signal,
    macd_signal,
    news_signal,
    rsi_signal,
    volume_signal,
)

if TYPE_CHECKING:
    from advisor.oracle.client import OracleClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class SynthesisContext:
    """Identity of the evaluation the verdict belongs to."""

    instrument: str
    exchange: str
    timeframe: str
    mode: Mode = Mode.SWING
    higher_timeframe: str | None = None


class SignalSynthesizer:
    """Builds verdicts from indicator snapshots plus one oracle call."""

    def __init__(
        self,
        settings: SignalSettings | None = None,
        oracle_timeout: float = 30.0,
    ) -> None:
        self._settings = settings or SignalSettings()
        self._oracle_timeout = oracle_timeout

    def evaluate(
        self,
        primary: IndicatorSnapshot,
        higher: IndicatorSnapshot | None = None,
        news: NewsAnalysis | None = None,
        higher_timeframe: str | None = None,
    ) -> tuple[list[Signal], Aggregate]:
        """Deterministic signals and aggregate for one cycle.

        Returns:
            (signals, aggregate). The signal list contains one entry per
            available indicator, including the higher-timeframe and news
            entries when those inputs are present.
        """
        s = self._settings
        voting = [
            rsi_signal(primary.rsi, s),
            macd_signal(primary, s),
            ema_cross_signal(primary, s),
            volume_signal(primary, s),
        ]
        signals = [sig for sig in voting if sig is not None]
        aggregate = aggregate_signals(signals, s)

        htf = higher_timeframe_signal(higher, higher_timeframe, s)
        if htf is not None:
            signals.append(htf)
            aggregate = apply_higher_timeframe(aggregate, htf, s)

        sentiment = news_signal(news)
        if sentiment is not None:
            signals.append(sentiment)
            aggregate = apply_news(aggregate, sentiment, s)

        return signals, aggregate

    async def synthesize(
        self,
        primary: IndicatorSnapshot,
        higher: IndicatorSnapshot | None,
        news: NewsAnalysis | None,
        context: SynthesisContext,
        oracle: OracleClient,
    ) -> Verdict:
        """Produce the verdict for one evaluation cycle.

        Raises:
            InsufficientHistory: A primary indicator is undefined.
            OracleUnavailable: The oracle timed out, failed or returned
                invalid output. No partial verdict is produced.
        """
        if not primary.ok:
            raise InsufficientHistory(
                f"indicators unavailable on {context.timeframe}: {', '.join(primary.missing)}"
            )

        signals, aggregate = self.evaluate(primary, higher, news, context.higher_timeframe)

        request = AnalysisRequest(
            instrument=context.instrument,
            exchange=context.exchange,
            timeframe=context.timeframe,
            mode=context.mode,
            snapshot=primary,
            signals=signals,
            direction=aggregate.direction,
            confidence=aggregate.confidence,
            higher_timeframe=context.higher_timeframe,
            higher_snapshot=higher,
        )
        try:
            analysis = await asyncio.wait_for(oracle.analyze(request), timeout=self._oracle_timeout)
        except asyncio.TimeoutError as e:
            raise OracleUnavailable(
                f"oracle did not answer within {self._oracle_timeout:g}s"
            ) from e

        if analysis.buy_sell_signal != aggregate.direction.value.upper():
            logger.info(
                "oracle_direction_diverged",
                instrument=context.instrument,
                rules=aggregate.direction.value,
                oracle=analysis.buy_sell_signal,
                oracle_confidence=analysis.overall_confidence,
            )
        _check_levels(aggregate.direction, analysis.entry, analysis.stop_loss, analysis.take_profit)

        return Verdict(
            instrument=context.instrument,
            exchange=context.exchange,
            timeframe=context.timeframe,
            mode=context.mode,
            direction=aggregate.direction,
            overall_confidence=round(aggregate.confidence, 2),
            price=primary.price,
            entry=analysis.entry,
            stop_loss=analysis.stop_loss,
            take_profit=analysis.take_profit,
            signals=signals,
            market_overview=analysis.market_overview,
            indicator_explanations=analysis.indicator_explanations,
            risk_management_advice=analysis.risk_management_advice,
            news=news,
        )


def _check_levels(direction: VerdictDirection, entry: float, stop: float, target: float) -> None:
    """Warn when oracle levels are on the wrong side of entry for the direction."""
    if direction is VerdictDirection.BUY and not stop < entry < target:
        logger.warning(
            "oracle_levels_inconsistent", direction="Buy", entry=entry, stop_loss=stop,
            take_profit=target,
        )
    elif direction is VerdictDirection.SELL and not target < entry < stop:
        logger.warning(
            "oracle_levels_inconsistent", direction="Sell", entry=entry, stop_loss=stop,
            take_profit=target,
        )
