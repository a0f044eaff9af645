"""Candle series repair and analysis gate.

Adapters already decode each exchange's envelope into canonical candles and
order them oldest-first. This pass makes the series safe to compute on:

- drops malformed individual candles (non-finite, non-positive close,
  negative fields, high below low) instead of failing the whole series
- collapses equal consecutive timestamps, keeping the later-arriving candle
- drops candles whose timestamp regresses, logging each one
- raises InsufficientHistory when too few valid candles remain

Running it on an already clean series returns an identical series.

``resample`` rebuilds a series at a coarser timeframe when the exchange only
serves a finer native interval.
"""

import math

from advisor.exceptions import InsufficientHistory
from advisor.logging import get_logger
from advisor.market_data.timeframes import TIMEFRAME_SECONDS, canonical_code
from advisor.models import Candle, CandleSeries

logger = get_logger(__name__)

#: Minimum candles before a series is treated as analyzable.
MIN_CANDLES = 50


def is_valid_candle(candle: Candle) -> bool:
    """Check a single candle for values the indicator engine cannot use.

    Zero open/high/low/volume are allowed (treated downstream as missing);
    the close must be a positive finite number.
    """
    values = (candle.open, candle.high, candle.low, candle.close, candle.volume)
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
        return False
    if candle.close <= 0:
        return False
    if any(v < 0 for v in values):
        return False
    if candle.high > 0 and candle.low > 0 and candle.high < candle.low:
        return False
    return True


def repair_candles(series: CandleSeries) -> CandleSeries:
    """Filter malformed candles and fix duplicate/regressing timestamps.

    Returns a new series; the input is never modified.
    """
    repaired: list[Candle] = []
    dropped_invalid = 0
    dropped_regressed = 0
    replaced_duplicates = 0

    for candle in series.candles:
        if not is_valid_candle(candle):
            dropped_invalid += 1
            continue

        if repaired:
            previous = repaired[-1]
            if candle.open_time == previous.open_time:
                repaired[-1] = candle
                replaced_duplicates += 1
                continue
            if candle.open_time < previous.open_time:
                dropped_regressed += 1
                logger.warning(
                    "candle_timestamp_regressed",
                    exchange=series.exchange,
                    instrument=series.instrument,
                    timeframe=series.timeframe,
                    open_time=candle.open_time,
                    previous_open_time=previous.open_time,
                )
                continue

        repaired.append(candle)

    if dropped_invalid or dropped_regressed or replaced_duplicates:
        logger.info(
            "candle_series_repaired",
            exchange=series.exchange,
            instrument=series.instrument,
            timeframe=series.timeframe,
            dropped_invalid=dropped_invalid,
            dropped_regressed=dropped_regressed,
            replaced_duplicates=replaced_duplicates,
            remaining=len(repaired),
        )

    return series.replace_candles(repaired)


def normalize(series: CandleSeries, min_candles: int = MIN_CANDLES) -> CandleSeries:
    """Repair a raw series and enforce the minimum analyzable history.

    Args:
        series: Series decoded by an exchange adapter (oldest first).
        min_candles: Required number of valid candles after repair.

    Returns:
        A new, repaired CandleSeries.

    Raises:
        InsufficientHistory: Fewer than ``min_candles`` valid candles remain.
    """
    repaired = repair_candles(series)
    if len(repaired) < min_candles:
        raise InsufficientHistory(
            f"{series.instrument} on {series.exchange} ({series.timeframe}) has "
            f"{len(repaired)} valid candles, {min_candles} required",
            available=len(repaired),
            required=min_candles,
        )
    return repaired


def resample(series: CandleSeries, timeframe: str) -> CandleSeries:
    """Aggregate a finer series into ``timeframe`` buckets aligned to the Unix epoch.

    Used when the exchange lacks the requested interval and a shorter native
    one was fetched. Each bucket becomes one candle: first open, highest
    high, lowest non-zero low, last close, summed volume. A leading bucket
    that is missing its first native candle is dropped because its open is
    unknown; gaps inside a bucket are tolerated. Expects a repaired series.

    Raises:
        ValueError: Unknown timeframe code.
    """
    code = canonical_code(timeframe)
    bucket_ms = TIMEFRAME_SECONDS[code] * 1000

    groups: list[tuple[int, list[Candle]]] = []
    for candle in series.candles:
        start = candle.open_time - candle.open_time % bucket_ms
        if groups and groups[-1][0] == start:
            groups[-1][1].append(candle)
        else:
            groups.append((start, [candle]))

    if groups and groups[0][1][0].open_time != groups[0][0]:
        groups = groups[1:]

    candles = []
    for start, group in groups:
        lows = [c.low for c in group if c.low > 0]
        candles.append(
            Candle(
                open_time=start,
                open=group[0].open,
                high=max(c.high for c in group),
                low=min(lows) if lows else 0.0,
                close=group[-1].close,
                volume=sum(c.volume for c in group),
            )
        )

    logger.debug(
        "candle_series_resampled",
        exchange=series.exchange,
        instrument=series.instrument,
        source=series.timeframe,
        target=code,
        source_candles=len(series),
        candles=len(candles),
    )
    return CandleSeries(series.exchange, series.instrument, code, tuple(candles))
