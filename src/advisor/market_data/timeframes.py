"""Timeframe vocabulary and per-exchange translation table.

Logical codes (``15m``, ``1h``, ``4h``, ``1D`` ...) are translated to each
exchange's native interval code. When an exchange has no exact equivalent,
the longest native interval that evenly divides the requested one is fetched
instead, with the lookback scaled to cover the same wall-clock window. The
candle service then resamples those candles back into the requested buckets.
The fallback is logged.
"""

from dataclasses import dataclass

from advisor.logging import get_logger

logger = get_logger(__name__)

BYBIT = "bybit"
NAMI = "nami"
ONUS = "onus"

EXCHANGES = (BYBIT, NAMI, ONUS)

#: Logical timeframe code -> duration in seconds.
TIMEFRAME_SECONDS: dict[str, int] = {
    "1m": 60,
    "3m": 3 * 60,
    "5m": 5 * 60,
    "15m": 15 * 60,
    "30m": 30 * 60,
    "1h": 60 * 60,
    "2h": 2 * 60 * 60,
    "4h": 4 * 60 * 60,
    "6h": 6 * 60 * 60,
    "12h": 12 * 60 * 60,
    "1D": 24 * 60 * 60,
    "1W": 7 * 24 * 60 * 60,
}

#: Accepted spellings, including Bybit-style minute counts used by operators.
_ALIASES: dict[str, str] = {
    "1": "1m",
    "3": "3m",
    "5": "5m",
    "15": "15m",
    "30": "30m",
    "60": "1h",
    "120": "2h",
    "240": "4h",
    "360": "6h",
    "720": "12h",
    "D": "1D",
    "1d": "1D",
    "W": "1W",
    "1w": "1W",
}

#: Logical code -> exchange-native interval code.
NATIVE_CODES: dict[str, dict[str, str]] = {
    BYBIT: {
        "1m": "1",
        "3m": "3",
        "5m": "5",
        "15m": "15",
        "30m": "30",
        "1h": "60",
        "2h": "120",
        "4h": "240",
        "6h": "360",
        "12h": "720",
        "1D": "D",
        "1W": "W",
    },
    NAMI: {
        "1m": "1",
        "5m": "5",
        "15m": "15",
        "30m": "30",
        "1h": "60",
        "4h": "240",
        "1D": "1D",
        "1W": "1W",
    },
    ONUS: {
        "1m": "1m",
        "5m": "5m",
        "15m": "15m",
        "30m": "30m",
        "1h": "1h",
        "4h": "4h",
        "1D": "1d",
        "1W": "1w",
    },
}

#: Maximum candles per request.
MAX_LIMITS: dict[str, int] = {
    BYBIT: 1000,
    NAMI: 1500,
    ONUS: 500,
}

#: Confirmation timeframe used in high-accuracy mode.
HIGHER_TIMEFRAMES: dict[str, str | None] = {
    "1m": "15m",
    "3m": "15m",
    "5m": "1h",
    "15m": "1h",
    "30m": "4h",
    "1h": "4h",
    "2h": "1D",
    "4h": "1D",
    "6h": "1D",
    "12h": "1W",
    "1D": "1W",
    "1W": None,
}


@dataclass(frozen=True)
class TimeframeSpec:
    """A logical timeframe resolved against one exchange."""

    code: str
    seconds: int
    exchange: str
    native_code: str
    native_seconds: int
    exact: bool
    max_limit: int
    lookback_candles: int
    series_code: str = ""

    @property
    def candle_code(self) -> str:
        """Logical code of the candles actually fetched (differs from ``code`` on fallback)."""
        return self.series_code or self.code


def canonical_code(code: str) -> str:
    """Return the logical code for any accepted spelling.

    Raises:
        ValueError: If the code is not a known timeframe.
    """
    raw = code.strip()
    if raw in TIMEFRAME_SECONDS:
        return raw
    if raw in _ALIASES:
        return _ALIASES[raw]
    lowered = raw.lower()
    if lowered in TIMEFRAME_SECONDS:
        return lowered
    if lowered in _ALIASES:
        return _ALIASES[lowered]
    raise ValueError(f"Unknown timeframe: {code!r}")


def resolve_timeframe(code: str, exchange: str, candles: int = 200) -> TimeframeSpec:
    """Translate a logical timeframe into the exchange's native interval.

    Args:
        code: Logical timeframe code or alias (e.g. "15m", "60", "1d").
        exchange: Exchange name (bybit, nami, onus).
        candles: Desired number of candles at the logical timeframe.

    Returns:
        TimeframeSpec with native code and lookback, clamped to the exchange max.

    Raises:
        ValueError: Unknown timeframe or exchange.
    """
    exchange = exchange.lower()
    if exchange not in NATIVE_CODES:
        raise ValueError(f"Unsupported exchange: {exchange}")

    logical = canonical_code(code)
    seconds = TIMEFRAME_SECONDS[logical]
    table = NATIVE_CODES[exchange]
    max_limit = MAX_LIMITS[exchange]

    if logical in table:
        return TimeframeSpec(
            code=logical,
            seconds=seconds,
            exchange=exchange,
            native_code=table[logical],
            native_seconds=seconds,
            exact=True,
            max_limit=max_limit,
            lookback_candles=max(1, min(candles, max_limit)),
            series_code=logical,
        )

    # Only intervals that tile the requested one can be resampled into it
    divisors = [
        c for c in table
        if TIMEFRAME_SECONDS[c] < seconds and seconds % TIMEFRAME_SECONDS[c] == 0
    ]
    fallback = max(divisors, key=lambda c: TIMEFRAME_SECONDS[c])
    native_seconds = TIMEFRAME_SECONDS[fallback]
    # Same wall-clock window at the finer resolution
    scaled = candles * seconds // native_seconds
    lookback = max(1, min(scaled, max_limit))

    logger.warning(
        "timeframe_fallback",
        exchange=exchange,
        requested=logical,
        native=table[fallback],
        lookback_candles=lookback,
    )
    return TimeframeSpec(
        code=logical,
        seconds=seconds,
        exchange=exchange,
        native_code=table[fallback],
        native_seconds=native_seconds,
        exact=False,
        max_limit=max_limit,
        lookback_candles=lookback,
        series_code=fallback,
    )


def higher_timeframe(code: str) -> str | None:
    """Return the confirmation timeframe for ``code``, or None for the top of the ladder."""
    return HIGHER_TIMEFRAMES[canonical_code(code)]
