"""Shared test fixtures for the signal advisor."""

import pytest

from advisor.config import NotificationSettings, SignalSettings
from advisor.models import Candle, CandleSeries, IndicatorSnapshot, MACDValue

# 2023-11-14 22:15 UTC, aligned to a 15m bucket
START_MS = 1_700_000_100_000
FIFTEEN_MIN_MS = 15 * 60 * 1000


def make_series(
    closes: list[float],
    exchange: str = "bybit",
    instrument: str = "BTCUSDT",
    timeframe: str = "15m",
    volumes: list[float] | None = None,
    step_ms: int = FIFTEEN_MIN_MS,
) -> CandleSeries:
    """Build a clean series where each candle opens at the previous close."""
    candles = []
    previous = closes[0]
    for i, close in enumerate(closes):
        volume = volumes[i] if volumes is not None else 100.0
        candles.append(
            Candle(
                open_time=START_MS + i * step_ms,
                open=previous,
                high=max(previous, close) * 1.001,
                low=min(previous, close) * 0.999,
                close=close,
                volume=volume,
            )
        )
        previous = close
    return CandleSeries(exchange, instrument, timeframe, tuple(candles))


def geometric(count: int, start: float = 100.0, ratio: float = 1.02) -> list[float]:
    return [start * ratio**i for i in range(count)]


@pytest.fixture
def series_factory():
    """Factory building CandleSeries from close prices."""
    return make_series


@pytest.fixture
def rising_series() -> CandleSeries:
    """100 candles rising 2% per candle (accelerating trend)."""
    return make_series(geometric(100, ratio=1.02))


@pytest.fixture
def falling_series() -> CandleSeries:
    """100 candles falling by an increasing amount each candle."""
    return make_series([2000.0 - 0.1 * i**2 for i in range(100)])


@pytest.fixture
def bullish_snapshot() -> IndicatorSnapshot:
    """Snapshot where RSI, MACD and EMA all point up (RSI oversold)."""
    return IndicatorSnapshot(
        price=100.0,
        open=99.0,
        open_time=START_MS,
        rsi=25.0,
        macd=MACDValue(line=0.5, signal=0.3),
        ema9=100.5,
        ema21=99.5,
        volume=100.0,
        volume_average=100.0,
        high=101.0,
        low=98.5,
    )


@pytest.fixture
def bearish_snapshot() -> IndicatorSnapshot:
    """Snapshot where RSI, MACD and EMA all point down (RSI overbought)."""
    return IndicatorSnapshot(
        price=100.0,
        open=101.0,
        open_time=START_MS,
        rsi=78.0,
        macd=MACDValue(line=-0.5, signal=-0.2),
        ema9=99.0,
        ema21=100.2,
        volume=100.0,
        volume_average=100.0,
        high=101.5,
        low=99.5,
    )


@pytest.fixture
def signal_settings() -> SignalSettings:
    return SignalSettings()


@pytest.fixture
def notify_settings() -> NotificationSettings:
    return NotificationSettings(
        discord_webhook_url="https://discord.test/api/webhooks/1/abc",  # type: ignore[arg-type]
    )

