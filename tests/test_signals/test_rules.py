"""Tests for per-indicator signal rules."""

from dataclasses import replace

import pytest

from advisor.models import (
    MACDValue,
    NewsAnalysis,
    SentimentLabel,
    SignalDirection,
)
from advisor.signals.rules import (
    HIGHER_TIMEFRAME,
    NEWS,
    ema_cross_signal,
    higher_timeframe_signal,
    macd_signal,
    news_signal,
    rsi_signal,
    volume_signal,
)


class TestRsiSignal:
    def test_oversold_is_buy(self, signal_settings) -> None:
        sig = rsi_signal(25.0, signal_settings)
        assert sig.direction is SignalDirection.BUY
        assert sig.confidence == pytest.approx(50.0)

    def test_overbought_is_sell(self, signal_settings) -> None:
        sig = rsi_signal(80.0, signal_settings)
        assert sig.direction is SignalDirection.SELL
        assert sig.confidence == pytest.approx(60.0)

    def test_neutral_band(self, signal_settings) -> None:
        assert rsi_signal(50.0, signal_settings).direction is SignalDirection.NEUTRAL
        assert rsi_signal(30.0, signal_settings).direction is SignalDirection.NEUTRAL
        assert rsi_signal(70.0, signal_settings).direction is SignalDirection.NEUTRAL

    def test_extreme_confidence_capped(self, signal_settings) -> None:
        assert rsi_signal(0.0, signal_settings).confidence == 100.0

    def test_missing(self, signal_settings) -> None:
        assert rsi_signal(None, signal_settings) is None


class TestMacdSignal:
    def test_line_above_signal_is_buy(self, bullish_snapshot, signal_settings) -> None:
        sig = macd_signal(bullish_snapshot, signal_settings)
        assert sig.direction is SignalDirection.BUY
        # 0.2 on a 100 price = 20 bps -> 40 + 20*4 = 120, capped at 95
        assert sig.confidence == pytest.approx(95.0)

    def test_confidence_grows_with_spread(self, bullish_snapshot, signal_settings) -> None:
        narrow = replace(bullish_snapshot, price=10_000.0, macd=MACDValue(1.0, 0.0))
        wide = replace(bullish_snapshot, price=10_000.0, macd=MACDValue(5.0, 0.0))
        narrow_sig = macd_signal(narrow, signal_settings)
        wide_sig = macd_signal(wide, signal_settings)
        assert narrow_sig.confidence == pytest.approx(44.0)
        assert wide_sig.confidence == pytest.approx(60.0)

    def test_line_below_signal_is_sell(self, bearish_snapshot, signal_settings) -> None:
        assert macd_signal(bearish_snapshot, signal_settings).direction is SignalDirection.SELL

    def test_equal_is_neutral(self, bullish_snapshot, signal_settings) -> None:
        snap = replace(bullish_snapshot, macd=MACDValue(0.1, 0.1))
        assert macd_signal(snap, signal_settings).direction is SignalDirection.NEUTRAL

    def test_missing(self, bullish_snapshot, signal_settings) -> None:
        assert macd_signal(replace(bullish_snapshot, macd=None), signal_settings) is None


class TestEmaCrossSignal:
    def test_fast_above_slow_is_buy(self, bullish_snapshot, signal_settings) -> None:
        sig = ema_cross_signal(bullish_snapshot, signal_settings)
        assert sig.direction is SignalDirection.BUY
        # spread 1.0 on 100 = 100 bps -> capped
        assert sig.confidence == pytest.approx(95.0)

    def test_small_spread(self, bullish_snapshot, signal_settings) -> None:
        snap = replace(bullish_snapshot, price=10_000.0, ema9=10_005.0, ema21=10_000.0)
        assert ema_cross_signal(snap, signal_settings).confidence == pytest.approx(50.0)

    def test_fast_below_slow_is_sell(self, bearish_snapshot, signal_settings) -> None:
        assert ema_cross_signal(bearish_snapshot, signal_settings).direction is SignalDirection.SELL

    def test_missing(self, bullish_snapshot, signal_settings) -> None:
        assert ema_cross_signal(replace(bullish_snapshot, ema21=None), signal_settings) is None


class TestVolumeSignal:
    def test_spike_on_bullish_candle(self, bullish_snapshot, signal_settings) -> None:
        snap = replace(bullish_snapshot, volume=300.0, volume_average=100.0)
        sig = volume_signal(snap, signal_settings)
        assert sig.direction is SignalDirection.BUY
        assert sig.confidence == pytest.approx(95.0)

    def test_spike_on_bearish_candle(self, bearish_snapshot, signal_settings) -> None:
        snap = replace(bearish_snapshot, volume=150.0, volume_average=100.0)
        sig = volume_signal(snap, signal_settings)
        assert sig.direction is SignalDirection.SELL
        assert sig.confidence == pytest.approx(50.0)

    def test_no_spike_is_neutral(self, bullish_snapshot, signal_settings) -> None:
        sig = volume_signal(bullish_snapshot, signal_settings)
        assert sig.direction is SignalDirection.NEUTRAL

    def test_absent_volume_gives_no_signal(self, bullish_snapshot, signal_settings) -> None:
        assert volume_signal(replace(bullish_snapshot, volume=None), signal_settings) is None
        snap = replace(bullish_snapshot, volume_average=None)
        assert volume_signal(snap, signal_settings) is None


class TestHigherTimeframeSignal:
    def test_uptrend_with_macd_agreement(self, bullish_snapshot, signal_settings) -> None:
        snap = replace(bullish_snapshot, price=10_000.0, ema9=10_005.0, ema21=10_000.0,
                       macd=MACDValue(2.0, 1.0))
        sig = higher_timeframe_signal(snap, "1h", signal_settings)
        assert sig.indicator == HIGHER_TIMEFRAME
        assert sig.direction is SignalDirection.BUY
        assert sig.confidence == pytest.approx(60.0)
        assert "1h" in sig.reasoning

    def test_downtrend(self, bearish_snapshot, signal_settings) -> None:
        sig = higher_timeframe_signal(bearish_snapshot, "4h", signal_settings)
        assert sig.direction is SignalDirection.SELL

    def test_absent(self, signal_settings) -> None:
        assert higher_timeframe_signal(None, "1h", signal_settings) is None


class TestNewsSignal:
    @pytest.mark.parametrize(
        "label, direction",
        [
            (SentimentLabel.POSITIVE, SignalDirection.BUY),
            (SentimentLabel.NEGATIVE, SignalDirection.SELL),
            (SentimentLabel.NEUTRAL, SignalDirection.NEUTRAL),
        ],
    )
    def test_mapping(self, label, direction) -> None:
        sig = news_signal(NewsAnalysis("BTC", label, reasoning="ETF inflows"))
        assert sig.indicator == NEWS
        assert sig.direction is direction

    def test_absent(self) -> None:
        assert news_signal(None) is None
