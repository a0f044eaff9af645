"""Canonical candle construction shared by every exchange decoder.

Each adapter decodes its own envelope shape and hands the raw fields to
``make_candle``. Unparseable numeric fields become NaN so the normalizer can
drop that one candle instead of failing the whole series.
"""

import math

from advisor.models import Candle

#: Timestamps below this are treated as Unix seconds rather than milliseconds.
_SECONDS_CUTOFF = 100_000_000_000


def to_float(value: object) -> float:
    """Convert a numeric or numeric-string field to float; NaN when impossible."""
    if value is None or isinstance(value, bool):
        return math.nan
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return math.nan


def to_millis(value: object) -> int | None:
    """Convert a second- or millisecond-resolution timestamp to Unix milliseconds."""
    ts = to_float(value)
    if not math.isfinite(ts) or ts < 0:
        return None
    if ts < _SECONDS_CUTOFF:
        ts *= 1000
    return int(ts)


def make_candle(
    open_time: object,
    open_: object,
    high: object,
    low: object,
    close: object,
    volume: object = 0.0,
) -> Candle | None:
    """Build a canonical Candle from raw exchange fields.

    Returns None when the timestamp itself is unusable; other bad fields
    come through as NaN and are filtered by the normalizer.
    """
    ts = to_millis(open_time)
    if ts is None:
        return None
    vol = to_float(volume) if volume is not None else 0.0
    return Candle(
        open_time=ts,
        open=to_float(open_),
        high=to_float(high),
        low=to_float(low),
        close=to_float(close),
        volume=vol,
    )
