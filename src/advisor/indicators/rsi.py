"""Relative Strength Index with Wilder smoothing."""


def compute_rsi(closes: list[float], period: int = 14) -> list[float]:
    """Compute RSI over closing prices.

    The first average gain/loss is the simple mean of the first ``period``
    close-to-close deltas; later values use Wilder smoothing:
        avg_t = (avg_{t-1} * (period - 1) + x_t) / period

    A window with no losses yields 100; no movement at all yields 50.

    Returns:
        ``len(closes) - period`` RSI values. Needs at least ``period + 1``
        closes, otherwise [].
    """
    if period <= 0:
        raise ValueError("period must be positive")
    if len(closes) < period + 1:
        return []

    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [max(-d, 0.0) for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    result = [_rsi(avg_gain, avg_loss)]

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result.append(_rsi(avg_gain, avg_loss))

    return result


def _rsi(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 50.0 if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)
