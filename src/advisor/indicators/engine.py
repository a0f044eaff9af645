"""Indicator engine producing the latest-value snapshot of a candle series.

Computes RSI, MACD and the fast/slow EMAs once over the full close series and
keeps only the last element of each. An indicator whose minimum period is
not met is reported as None (the snapshot lists it in ``missing``); it is
never filled with zero.
"""

from advisor.config import IndicatorSettings
from advisor.indicators.macd import compute_macd
from advisor.indicators.moving_average import compute_ema, compute_sma
from advisor.indicators.rsi import compute_rsi
from advisor.models import CandleSeries, IndicatorSnapshot


def _last(values: list):
    return values[-1] if values else None


def _present(value: float) -> float | None:
    """Zero or negative high/low/volume means the exchange did not supply it."""
    return value if value > 0 else None


class IndicatorEngine:
    """Computes indicator snapshots with configurable periods."""

    def __init__(self, settings: IndicatorSettings | None = None) -> None:
        self._settings = settings or IndicatorSettings()

    @property
    def settings(self) -> IndicatorSettings:
        return self._settings

    def compute(self, series: CandleSeries) -> IndicatorSnapshot:
        """Compute the snapshot for the most recent candle of ``series``.

        Raises:
            ValueError: The series is empty.
        """
        last = series.last
        if last is None:
            raise ValueError("cannot compute indicators on an empty series")

        s = self._settings
        closes = series.closes

        volumes = [v for v in series.volumes if v > 0]
        volume_average = None
        if len(volumes) == len(series) and _present(last.volume) is not None:
            volume_average = _last(compute_sma(volumes, s.volume_average_period))

        return IndicatorSnapshot(
            price=last.close,
            open=last.open,
            open_time=last.open_time,
            rsi=_last(compute_rsi(closes, s.rsi_period)),
            macd=_last(compute_macd(closes, s.macd_fast, s.macd_slow, s.macd_signal)),
            ema9=_last(compute_ema(closes, s.ema_fast)),
            ema21=_last(compute_ema(closes, s.ema_slow)),
            volume=_present(last.volume),
            volume_average=volume_average,
            high=_present(last.high),
            low=_present(last.low),
        )
