"""MACD line and signal line."""

from advisor.indicators.moving_average import compute_ema
from advisor.models import MACDValue


def compute_macd(
    closes: list[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> list[MACDValue]:
    """Compute MACD(fast, slow, signal) over closing prices.

    MACD line = EMA(fast) - EMA(slow); signal line = EMA(signal) of the line.
    No value is reported until BOTH are defined, and the engine requires
    ``slow + signal`` closes before the first point (slow EMA settled plus a
    full signal window).

    Returns:
        MACDValue list aligned to the end of ``closes``, or [] when there
        are fewer than ``slow + signal`` closes.
    """
    if fast >= slow:
        raise ValueError("fast period must be shorter than slow period")
    if len(closes) < slow + signal:
        return []

    fast_ema = compute_ema(closes, fast)
    slow_ema = compute_ema(closes, slow)
    # Align fast EMA to the slow EMA's first index
    offset = slow - fast
    line = [f - s for f, s in zip(fast_ema[offset:], slow_ema)]

    signal_line = compute_ema(line, signal)
    # Drop line values that have no signal yet
    line_tail = line[len(line) - len(signal_line):]
    points = [
        MACDValue(line=value, signal=smoothed)
        for value, smoothed in zip(line_tail, signal_line)
    ]

    # Only report points once slow + signal closes have been consumed
    available = len(closes) - (slow + signal) + 1
    return points[-available:]
