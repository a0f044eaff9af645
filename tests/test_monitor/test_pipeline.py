"""Tests for AnalysisPipeline: concurrent reads, degradation, oracle lifecycle."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from advisor.config import IndicatorSettings
from advisor.exceptions import ExchangeUnavailable, InsufficientHistory, OracleUnavailable
from advisor.indicators.engine import IndicatorEngine
from advisor.models import Mode, NewsAnalysis, SentimentLabel
from advisor.monitor.pipeline import AnalysisPipeline
from advisor.oracle.schemas import OracleAnalysis
from advisor.signals.rules import HIGHER_TIMEFRAME, NEWS
from advisor.signals.synthesizer import SignalSynthesizer

ORACLE_OUTPUT = {
    "marketOverview": "Up.",
    "indicatorExplanations": "Bullish.",
    "buySellSignal": "HOLD",
    "overallConfidence": 55,
    "entry": 100.0,
    "stopLoss": 95.0,
    "takeProfit": 110.0,
    "riskManagementAdvice": "Small size.",
}


class FakeOracle:
    def __init__(self) -> None:
        self.analyze = AsyncMock(return_value=OracleAnalysis.model_validate(ORACLE_OUTPUT))
        self.closed = False

    async def __aenter__(self) -> "FakeOracle":
        return self

    async def __aexit__(self, *exc) -> None:
        self.closed = True


def candle_service(primary, higher=None, higher_error: Exception | None = None) -> MagicMock:
    """CandleService double: the first timeframe requested is primary."""

    async def fetch_series(exchange, instrument, timeframe, limit=None):
        if timeframe == "15m":
            if isinstance(primary, Exception):
                raise primary
            return primary
        if higher_error is not None:
            raise higher_error
        return higher

    service = MagicMock()
    service.fetch_series = AsyncMock(side_effect=fetch_series)
    return service


def make_pipeline(service, oracle: FakeOracle, news_service=None, factory_calls=None):
    def factory(credential):
        if factory_calls is not None:
            factory_calls.append(credential)
        return oracle

    return AnalysisPipeline(
        service,
        IndicatorEngine(IndicatorSettings()),
        SignalSynthesizer(oracle_timeout=1.0),
        news_service=news_service,
        oracle_factory=factory,
    )


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_full_cycle(self, rising_series) -> None:
        oracle = FakeOracle()
        service = candle_service(rising_series, higher=rising_series)
        pipeline = make_pipeline(service, oracle)

        verdict = await pipeline.evaluate("BTCUSDT", "bybit", "15", Mode.SWING)

        requested = sorted(call.args[2] for call in service.fetch_series.await_args_list)
        assert requested == ["15m", "1h"]
        assert verdict.timeframe == "15m"
        assert verdict.entry == 100.0
        assert verdict.signal_for(HIGHER_TIMEFRAME) is not None
        assert oracle.closed

    @pytest.mark.asyncio
    async def test_higher_timeframe_failure_degrades(self, rising_series) -> None:
        oracle = FakeOracle()
        service = candle_service(rising_series, higher_error=ExchangeUnavailable("timeout"))
        pipeline = make_pipeline(service, oracle)

        verdict = await pipeline.evaluate("BTCUSDT", "bybit", "15m")

        assert verdict.signal_for(HIGHER_TIMEFRAME) is None
        assert verdict.signals

    @pytest.mark.asyncio
    async def test_higher_timeframe_short_history_degrades(self, rising_series) -> None:
        service = candle_service(
            rising_series, higher_error=InsufficientHistory("new listing", 12, 50)
        )
        verdict = await make_pipeline(service, FakeOracle()).evaluate("BTCUSDT", "bybit", "15m")
        assert verdict.signal_for(HIGHER_TIMEFRAME) is None

    @pytest.mark.asyncio
    async def test_primary_failure_raises(self) -> None:
        oracle = FakeOracle()
        service = candle_service(ExchangeUnavailable("down"), higher=None)
        pipeline = make_pipeline(service, oracle)

        with pytest.raises(ExchangeUnavailable):
            await pipeline.evaluate("BTCUSDT", "bybit", "15m")
        oracle.analyze.assert_not_awaited()
        assert oracle.closed

    @pytest.mark.asyncio
    async def test_high_accuracy_off_skips_higher_fetch(self, rising_series) -> None:
        service = candle_service(rising_series)
        pipeline = make_pipeline(service, FakeOracle())

        verdict = await pipeline.evaluate("BTCUSDT", "bybit", "15m", high_accuracy=False)

        assert service.fetch_series.await_count == 1
        assert verdict.signal_for(HIGHER_TIMEFRAME) is None

    @pytest.mark.asyncio
    async def test_credential_passed_to_factory(self, rising_series) -> None:
        calls: list = []
        pipeline = make_pipeline(candle_service(rising_series, rising_series), FakeOracle(),
                                 factory_calls=calls)
        await pipeline.evaluate("BTCUSDT", "bybit", "15m", oracle_credential="sub-key")
        assert calls == ["sub-key"]

    @pytest.mark.asyncio
    async def test_missing_credential_fails_before_fetch(self, rising_series) -> None:
        service = candle_service(rising_series)

        def factory(credential):
            raise OracleUnavailable("no oracle API key configured")

        pipeline = AnalysisPipeline(
            service,
            IndicatorEngine(),
            SignalSynthesizer(),
            oracle_factory=factory,
        )
        with pytest.raises(OracleUnavailable):
            await pipeline.evaluate("BTCUSDT", "bybit", "15m")
        service.fetch_series.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_timeframe_raises(self, rising_series) -> None:
        pipeline = make_pipeline(candle_service(rising_series), FakeOracle())
        with pytest.raises(ValueError):
            await pipeline.evaluate("BTCUSDT", "bybit", "7m")


class TestNews:
    @pytest.mark.asyncio
    async def test_news_uses_base_symbol(self, rising_series) -> None:
        oracle = FakeOracle()
        news_service = MagicMock()
        news_service.enabled = True
        news_service.get_sentiment = AsyncMock(
            return_value=NewsAnalysis("BTC", SentimentLabel.NEGATIVE, reasoning="Hack reported")
        )
        pipeline = make_pipeline(candle_service(rising_series, rising_series), oracle, news_service)

        verdict = await pipeline.evaluate("BTCUSDT", "bybit", "15m")

        news_service.get_sentiment.assert_awaited_once_with("BTC", oracle)
        assert verdict.signal_for(NEWS) is not None
        assert verdict.news.sentiment is SentimentLabel.NEGATIVE

    @pytest.mark.asyncio
    async def test_news_failure_degrades(self, rising_series) -> None:
        news_service = MagicMock()
        news_service.enabled = True
        news_service.get_sentiment = AsyncMock(side_effect=OracleUnavailable("quota"))
        pipeline = make_pipeline(
            candle_service(rising_series, rising_series), FakeOracle(), news_service
        )

        verdict = await pipeline.evaluate("BTCUSDT", "bybit", "15m")

        assert verdict.news is None
        assert verdict.signal_for(NEWS) is None

    @pytest.mark.asyncio
    async def test_disabled_news_not_called(self, rising_series) -> None:
        news_service = MagicMock()
        news_service.enabled = False
        news_service.get_sentiment = AsyncMock()
        pipeline = make_pipeline(
            candle_service(rising_series, rising_series), FakeOracle(), news_service
        )
        await pipeline.evaluate("BTCUSDT", "bybit", "15m")
        news_service.get_sentiment.assert_not_awaited()
