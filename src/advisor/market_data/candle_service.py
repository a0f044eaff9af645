"""Candle fetch service shared by every monitor subscription.

Resolves the timeframe for the target exchange, bounds concurrent requests
per exchange with a semaphore so many subscriptions cannot fan out past the
exchange's rate budget, and runs the normalizer over what the adapter
returns. When the exchange served a finer native interval, the candles are
resampled into the requested timeframe first.
"""

import asyncio

from advisor.config import IndicatorSettings
from advisor.exchange.client import ExchangeAdapter
from advisor.logging import get_logger
from advisor.market_data.normalizer import normalize, repair_candles, resample
from advisor.market_data.timeframes import resolve_timeframe
from advisor.models import CandleSeries

logger = get_logger(__name__)


class CandleService:
    """Fetches normalized candle series through per-exchange concurrency caps.

    Args:
        adapters: Exchange adapters keyed by exchange name.
        settings: Indicator settings (default candle count, minimum history).
        concurrency: Max in-flight requests per exchange name. Missing
            entries default to 2.
    """

    def __init__(
        self,
        adapters: dict[str, ExchangeAdapter],
        settings: IndicatorSettings,
        concurrency: dict[str, int] | None = None,
    ) -> None:
        self._adapters = adapters
        self._settings = settings
        concurrency = concurrency or {}
        self._semaphores: dict[str, asyncio.Semaphore] = {
            name: asyncio.Semaphore(max(1, concurrency.get(name, 2)))
            for name in adapters
        }

    @property
    def exchanges(self) -> list[str]:
        return sorted(self._adapters)

    def adapter(self, exchange: str) -> ExchangeAdapter:
        try:
            return self._adapters[exchange.lower()]
        except KeyError:
            raise ValueError(f"Unsupported exchange: {exchange}") from None

    async def fetch_series(
        self,
        exchange: str,
        instrument: str,
        timeframe: str,
        limit: int | None = None,
    ) -> CandleSeries:
        """Fetch and normalize candles for one (exchange, instrument, timeframe).

        Raises:
            ValueError: Unknown exchange/timeframe or empty instrument.
            ExchangeUnavailable / ExchangeRejected / MalformedResponse: From the adapter.
            InsufficientHistory: Fewer than ``min_candles`` valid candles.
        """
        adapter = self.adapter(exchange)
        spec = resolve_timeframe(
            timeframe, adapter.name, candles=limit or self._settings.default_limit
        )

        async with self._semaphores[adapter.name]:
            raw = await adapter.fetch_candles(instrument, spec, spec.lookback_candles)

        if not spec.exact:
            raw = resample(repair_candles(raw), spec.code)
        return normalize(raw, min_candles=self._settings.min_candles)

    async def close(self) -> None:
        """Close every adapter, logging (not raising) individual failures."""
        for name, adapter in self._adapters.items():
            try:
                await adapter.close()
            except Exception as e:
                logger.warning("adapter_close_failed", exchange=name, error=str(e))
