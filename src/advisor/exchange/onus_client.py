"""ONUS spot candle adapter.

``GET /candles?symbol_name&interval&limit`` answers with a bare array of
objects whose numeric fields are strings, ordered oldest first. Both the
short (``t o h l c v``) and long (``time open high low close volume``) key
sets are accepted. Symbols use the ``BASE_QUOTE`` form.
"""

import aiohttp

from advisor.config import OnusSettings
from advisor.exceptions import ExchangeRejected, MalformedResponse
from advisor.exchange.client import HttpExchangeAdapter
from advisor.exchange.types import make_candle
from advisor.logging import get_logger
from advisor.market_data.timeframes import ONUS, TimeframeSpec
from advisor.models import Candle, base_symbol

logger = get_logger(__name__)

_CANDLES_PATH = "/candles"


def _field(row: dict, short: str, long: str) -> object:
    return row[short] if short in row else row.get(long)


class OnusClient(HttpExchangeAdapter):
    """ONUS candle adapter (arrays of string-typed objects)."""

    name = ONUS

    def __init__(
        self, settings: OnusSettings, session: aiohttp.ClientSession | None = None
    ) -> None:
        super().__init__(settings.base_url, settings.request_timeout, session)

    def native_symbol(self, instrument: str) -> str:
        compact = super().native_symbol(instrument)
        base = base_symbol(compact)
        quote = compact[len(base):]
        return f"{base}_{quote}" if quote else base

    async def _request(self, symbol: str, timeframe: TimeframeSpec, limit: int) -> object:
        params = {
            "symbol_name": symbol,
            "interval": timeframe.native_code,
            "limit": limit,
        }
        return await self._get_json(_CANDLES_PATH, params)

    def decode(self, payload: object) -> list[Candle]:
        if isinstance(payload, dict):
            if "message" in payload or "error" in payload:
                raise ExchangeRejected(
                    f"onus: {payload.get('message') or payload.get('error')}"
                )
            raise MalformedResponse("onus: expected array, got object", payload=payload)
        if not isinstance(payload, list):
            raise MalformedResponse(
                f"onus: expected array, got {type(payload).__name__}", payload=payload
            )

        candles: list[Candle] = []
        skipped = 0
        for row in payload:
            if not isinstance(row, dict):
                skipped += 1
                continue
            candle = make_candle(
                _field(row, "t", "time"),
                _field(row, "o", "open"),
                _field(row, "h", "high"),
                _field(row, "l", "low"),
                _field(row, "c", "close"),
                _field(row, "v", "volume"),
            )
            if candle is None:
                skipped += 1
                continue
            candles.append(candle)

        if skipped:
            logger.warning("onus_rows_skipped", skipped=skipped, total=len(payload))
        return candles
