"""Market data layer -- timeframe translation, candle repair and fetch service."""

from advisor.market_data.normalizer import (
    MIN_CANDLES,
    normalize,
    repair_candles,
    resample,
)
from advisor.market_data.timeframes import (
    TimeframeSpec,
    canonical_code,
    higher_timeframe,
    resolve_timeframe,
)

__all__ = [
    "MIN_CANDLES",
    "TimeframeSpec",
    "canonical_code",
    "higher_timeframe",
    "normalize",
    "repair_candles",
    "resample",
    "resolve_timeframe",
]
