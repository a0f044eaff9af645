"""Bybit kline adapter via ccxt async.

Wraps ccxt.async_support.bybit and calls the raw v5 ``market/kline`` endpoint
so the status-coded envelope reaches our own decoder untouched.

BYBIT CONVENTION: ``result.list`` holds string tuples
``[startMs, open, high, low, close, volume, turnover]`` ordered NEWEST FIRST.
The decoder reverses them to chronological order.
"""

import ccxt.async_support as ccxt_async

from advisor.config import BybitSettings
from advisor.exceptions import ExchangeRejected, ExchangeUnavailable, MalformedResponse
from advisor.exchange.client import ExchangeAdapter
from advisor.exchange.types import make_candle
from advisor.logging import get_logger
from advisor.market_data.timeframes import BYBIT, TimeframeSpec
from advisor.models import Candle

logger = get_logger(__name__)


class BybitClient(ExchangeAdapter):
    """Concrete Bybit candle adapter using ccxt async."""

    name = BYBIT

    def __init__(self, settings: BybitSettings) -> None:
        self._settings = settings

        config: dict = {
            "apiKey": settings.api_key.get_secret_value(),
            "secret": settings.api_secret.get_secret_value(),
            "enableRateLimit": True,
            "timeout": settings.request_timeout_ms,
        }
        self._exchange = ccxt_async.bybit(config)

    @property
    def exchange(self) -> ccxt_async.bybit:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def _request(self, symbol: str, timeframe: TimeframeSpec, limit: int) -> object:
        params = {
            "category": self._settings.category,
            "symbol": symbol,
            "interval": timeframe.native_code,
            "limit": limit,
        }
        try:
            return await self._exchange.public_get_v5_market_kline(params)
        except ccxt_async.NetworkError as e:
            raise ExchangeUnavailable(f"bybit: network error: {e}") from e
        except ccxt_async.ExchangeError as e:
            # ccxt raises on retCode != 0 before we see the envelope
            raise ExchangeRejected(f"bybit: {e}") from e
        except ccxt_async.BaseError as e:
            raise ExchangeUnavailable(f"bybit: {e}") from e

    def decode(self, payload: object) -> list[Candle]:
        """Decode the ``{retCode, retMsg, result: {list}}`` envelope."""
        if not isinstance(payload, dict):
            raise MalformedResponse(
                f"bybit: expected object envelope, got {type(payload).__name__}",
                payload=payload,
            )

        ret_code = payload.get("retCode")
        if ret_code is None:
            raise MalformedResponse("bybit: envelope has no retCode", payload=payload)
        if str(ret_code) != "0":
            raise ExchangeRejected(
                f"bybit: retCode={ret_code}: {payload.get('retMsg') or 'unknown error'}"
            )

        result = payload.get("result")
        rows = result.get("list") if isinstance(result, dict) else None
        if not isinstance(rows, list):
            raise MalformedResponse("bybit: result.list is not an array", payload=payload)

        candles: list[Candle] = []
        skipped = 0
        for row in reversed(rows):
            if not isinstance(row, (list, tuple)) or len(row) < 5:
                skipped += 1
                continue
            volume = row[5] if len(row) > 5 else 0
            candle = make_candle(row[0], row[1], row[2], row[3], row[4], volume)
            if candle is None:
                skipped += 1
                continue
            candles.append(candle)

        if skipped:
            logger.warning("bybit_rows_skipped", skipped=skipped, total=len(rows))
        return candles

    async def close(self) -> None:
        """Clean up ccxt async resources. Must be called to avoid resource leaks."""
        logger.info("closing_bybit_connection")
        await self._exchange.close()
