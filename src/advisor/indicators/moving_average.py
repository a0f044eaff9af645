"""Simple and exponential moving averages over float series.

Outputs are aligned to the END of the input: the last element of the result
always corresponds to the last input value. Series shorter than the period
produce an empty list rather than padded zeros.
"""


def compute_sma(values: list[float], period: int) -> list[float]:
    """Compute a simple moving average.

    Returns:
        ``len(values) - period + 1`` averages, or [] when there is not
        enough data.
    """
    if period <= 0:
        raise ValueError("period must be positive")
    if len(values) < period:
        return []

    window = sum(values[:period])
    result = [window / period]
    for i in range(period, len(values)):
        window += values[i] - values[i - period]
        result.append(window / period)
    return result


def compute_ema(values: list[float], period: int) -> list[float]:
    """Compute an Exponential Moving Average seeded by a simple average.

    Uses the standard recursive formula:
        k = 2 / (period + 1)
        EMA_t = value_t * k + EMA_{t-1} * (1 - k)

    The first EMA value is the SMA of the first ``period`` values.

    Args:
        values: Ordered list of values (oldest first).
        period: EMA period.

    Returns:
        ``len(values) - period + 1`` EMA values, or [] when there is not
        enough data.
    """
    if period <= 0:
        raise ValueError("period must be positive")
    if len(values) < period:
        return []

    k = 2.0 / (period + 1)
    ema = [sum(values[:period]) / period]
    for value in values[period:]:
        ema.append(value * k + ema[-1] * (1 - k))
    return ema
