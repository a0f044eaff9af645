"""Technical indicators: SMA/EMA, RSI (Wilder), MACD and the snapshot engine."""

from advisor.indicators.engine import IndicatorEngine
from advisor.indicators.macd import compute_macd
from advisor.indicators.moving_average import compute_ema, compute_sma
from advisor.indicators.rsi import compute_rsi

__all__ = [
    "IndicatorEngine",
    "compute_ema",
    "compute_macd",
    "compute_rsi",
    "compute_sma",
]
