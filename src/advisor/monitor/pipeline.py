"""One evaluation cycle: candles in, verdict out.

Each cycle:
  1. OPEN: Create an oracle client for this cycle only (explicit credential)
  2. READ: Primary series, higher-timeframe series and news sentiment
     concurrently
  3. COMPUTE: Indicator snapshots for the series that arrived
  4. SYNTHESIZE: Deterministic signals + oracle price levels -> Verdict

A failed primary read aborts the cycle. A failed higher-timeframe or news
read is logged and the verdict is built without that input.
"""

from __future__ import annotations

import asyncio
import functools
import time
from collections.abc import Callable

import structlog

from advisor.config import OracleSettings
from advisor.indicators.engine import IndicatorEngine
from advisor.logging import get_logger
from advisor.market_data.candle_service import CandleService
from advisor.market_data.timeframes import canonical_code, higher_timeframe
from advisor.models import CandleSeries, Mode, NewsAnalysis, Verdict, base_symbol
from advisor.news.sentiment import NewsSentimentService
from advisor.oracle.client import OracleClient, new_oracle_client
from advisor.signals.synthesizer import SignalSynthesizer, SynthesisContext

logger = get_logger(__name__)

OracleFactory = Callable[[str | None], OracleClient]


async def _nothing() -> None:
    return None


class AnalysisPipeline:
    """Runs full evaluation cycles for the scheduler and one-off requests.

    Args:
        candle_service: Normalized candle source shared by all subscriptions.
        engine: Indicator engine.
        synthesizer: Signal synthesizer.
        oracle_settings: Used by the default oracle factory.
        news_service: Optional news sentiment source; None disables news.
        oracle_factory: Callable ``(credential) -> OracleClient``; defaults
            to ``new_oracle_client`` bound to ``oracle_settings``.
    """

    def __init__(
        self,
        candle_service: CandleService,
        engine: IndicatorEngine,
        synthesizer: SignalSynthesizer,
        oracle_settings: OracleSettings | None = None,
        news_service: NewsSentimentService | None = None,
        oracle_factory: OracleFactory | None = None,
    ) -> None:
        self._candles = candle_service
        self._engine = engine
        self._synthesizer = synthesizer
        self._news = news_service
        self._oracle_factory = oracle_factory or functools.partial(
            new_oracle_client, settings=oracle_settings or OracleSettings()
        )

    @property
    def candle_service(self) -> CandleService:
        return self._candles

    async def evaluate(
        self,
        instrument: str,
        exchange: str,
        timeframe: str,
        mode: Mode = Mode.SWING,
        high_accuracy: bool = True,
        oracle_credential: str | None = None,
    ) -> Verdict:
        """Run one evaluation cycle.

        Raises:
            ValueError: Unknown exchange or timeframe, empty instrument.
            ExchangeUnavailable / ExchangeRejected / MalformedResponse:
                Primary series could not be fetched.
            InsufficientHistory: Primary series too short.
            OracleUnavailable: No credential, timeout or invalid oracle output.
        """
        timeframe = canonical_code(timeframe)
        htf = higher_timeframe(timeframe) if high_accuracy else None
        started = time.monotonic()

        with structlog.contextvars.bound_contextvars(
            instrument=instrument, exchange=exchange, timeframe=timeframe
        ):
            async with self._oracle_factory(oracle_credential) as oracle:
                primary, higher, news = await self._read_inputs(
                    instrument, exchange, timeframe, htf, oracle
                )

                primary_snapshot = self._engine.compute(primary)
                higher_snapshot = self._engine.compute(higher) if higher is not None else None

                context = SynthesisContext(
                    instrument=instrument,
                    exchange=exchange.lower(),
                    timeframe=timeframe,
                    mode=mode,
                    higher_timeframe=htf if higher_snapshot is not None else None,
                )
                verdict = await self._synthesizer.synthesize(
                    primary_snapshot, higher_snapshot, news, context, oracle
                )

            logger.info(
                "evaluation_complete",
                direction=verdict.direction.value,
                confidence=verdict.overall_confidence,
                price=verdict.price,
                higher_timeframe=context.higher_timeframe,
                news=news.sentiment.value if news is not None else None,
                duration_ms=round((time.monotonic() - started) * 1000),
            )
            return verdict

    async def _read_inputs(
        self,
        instrument: str,
        exchange: str,
        timeframe: str,
        htf: str | None,
        oracle: OracleClient,
    ) -> tuple[CandleSeries, CandleSeries | None, NewsAnalysis | None]:
        """Fetch primary, higher-timeframe and news inputs concurrently."""
        primary_read = self._candles.fetch_series(exchange, instrument, timeframe)
        higher_read = (
            self._candles.fetch_series(exchange, instrument, htf) if htf else _nothing()
        )
        news_read = (
            self._news.get_sentiment(base_symbol(instrument), oracle)
            if self._news is not None and self._news.enabled
            else _nothing()
        )

        primary, higher, news = await asyncio.gather(
            primary_read, higher_read, news_read, return_exceptions=True
        )

        if isinstance(primary, BaseException):
            raise primary
        if isinstance(higher, BaseException):
            logger.warning(
                "higher_timeframe_unavailable",
                higher_timeframe=htf,
                error=str(higher),
                error_type=type(higher).__name__,
            )
            higher = None
        if isinstance(news, BaseException):
            logger.warning(
                "news_unavailable", error=str(news), error_type=type(news).__name__
            )
            news = None
        return primary, higher, news
