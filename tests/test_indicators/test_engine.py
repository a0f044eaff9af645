"""Tests for IndicatorEngine snapshots and indicator availability thresholds."""

import pytest

from advisor.config import IndicatorSettings
from advisor.indicators.engine import IndicatorEngine
from advisor.models import CandleSeries


@pytest.fixture
def engine() -> IndicatorEngine:
    return IndicatorEngine(IndicatorSettings())


def closes(n: int) -> list[float]:
    return [100.0 + (i % 6) - (i % 4) * 0.5 for i in range(n)]


class TestAvailability:
    def test_14_closes_no_rsi(self, engine, series_factory) -> None:
        snap = engine.compute(series_factory(closes(14)))
        assert snap.rsi is None
        assert "rsi" in snap.missing
        assert not snap.ok

    def test_15_closes_rsi_defined(self, engine, series_factory) -> None:
        snap = engine.compute(series_factory(closes(15)))
        assert snap.rsi is not None
        assert snap.macd is None

    def test_34_closes_no_macd(self, engine, series_factory) -> None:
        snap = engine.compute(series_factory(closes(34)))
        assert snap.macd is None
        assert snap.missing == ["macd"]

    def test_35_closes_everything_defined(self, engine, series_factory) -> None:
        snap = engine.compute(series_factory(closes(35)))
        assert snap.macd is not None
        assert snap.ema9 is not None
        assert snap.ema21 is not None
        assert snap.ok

    def test_undefined_is_none_not_zero(self, engine, series_factory) -> None:
        snap = engine.compute(series_factory(closes(20)))
        assert snap.macd is None
        assert snap.ema21 is None
        assert snap.ema9 is not None

    def test_empty_series_raises(self, engine) -> None:
        with pytest.raises(ValueError):
            engine.compute(CandleSeries("bybit", "BTCUSDT", "15m", ()))


class TestSnapshot:
    def test_uses_last_candle(self, engine, rising_series) -> None:
        snap = engine.compute(rising_series)
        last = rising_series.last
        assert snap.price == last.close
        assert snap.open == last.open
        assert snap.open_time == last.open_time
        assert snap.high == last.high
        assert snap.low == last.low

    def test_rising_series(self, engine, rising_series) -> None:
        snap = engine.compute(rising_series)
        assert snap.macd.line > snap.macd.signal
        assert snap.ema9 > snap.ema21
        assert snap.rsi == 100.0

    def test_falling_series(self, engine, falling_series) -> None:
        snap = engine.compute(falling_series)
        assert snap.macd.line < snap.macd.signal
        assert snap.ema9 < snap.ema21
        assert snap.rsi == pytest.approx(0.0)

    def test_volume_average(self, engine, series_factory) -> None:
        volumes = [10.0] * 59 + [40.0]
        snap = engine.compute(series_factory(closes(60), volumes=volumes))
        assert snap.volume == 40.0
        assert snap.volume_average == pytest.approx((19 * 10.0 + 40.0) / 20)

    def test_zero_volume_is_missing(self, engine, series_factory) -> None:
        volumes = [10.0] * 59 + [0.0]
        snap = engine.compute(series_factory(closes(60), volumes=volumes))
        assert snap.volume is None
        assert snap.volume_average is None

    def test_custom_periods(self, series_factory) -> None:
        engine = IndicatorEngine(IndicatorSettings(rsi_period=5))
        snap = engine.compute(series_factory(closes(6)))
        assert snap.rsi is not None
