"""Nami exchange chart-history adapter.

``GET /api/v1/chart/history?symbol&resolution&from&to`` answers with a bare
array of numeric tuples ``[time, open, high, low, close, volume]`` ordered
oldest first, or with an error object ``{"status": ..., "message": ...}``.
Time is requested as a ``from``/``to`` window in Unix seconds, so the candle
limit is turned into a window of ``limit`` native candles ending now.
"""

import time

import aiohttp

from advisor.config import NamiSettings
from advisor.exceptions import ExchangeRejected, MalformedResponse
from advisor.exchange.client import HttpExchangeAdapter
from advisor.exchange.types import make_candle
from advisor.logging import get_logger
from advisor.market_data.timeframes import NAMI, TimeframeSpec
from advisor.models import Candle

logger = get_logger(__name__)

_HISTORY_PATH = "/api/v1/chart/history"


class NamiClient(HttpExchangeAdapter):
    """Nami candle adapter (bare numeric-tuple arrays)."""

    name = NAMI

    def __init__(
        self, settings: NamiSettings, session: aiohttp.ClientSession | None = None
    ) -> None:
        super().__init__(settings.base_url, settings.request_timeout, session)

    async def _request(self, symbol: str, timeframe: TimeframeSpec, limit: int) -> object:
        now = int(time.time())
        params = {
            "symbol": symbol,
            "resolution": timeframe.native_code,
            "from": now - limit * timeframe.native_seconds,
            "to": now,
        }
        return await self._get_json(_HISTORY_PATH, params)

    def decode(self, payload: object) -> list[Candle]:
        if isinstance(payload, dict):
            if "status" in payload or "message" in payload:
                raise ExchangeRejected(
                    f"nami: status={payload.get('status')}: "
                    f"{payload.get('message') or 'unknown error'}"
                )
            raise MalformedResponse("nami: expected array, got object", payload=payload)
        if not isinstance(payload, list):
            raise MalformedResponse(
                f"nami: expected array, got {type(payload).__name__}", payload=payload
            )

        candles: list[Candle] = []
        skipped = 0
        for row in payload:
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
            logger.warning("nami_rows_skipped", skipped=skipped, total=len(payload))
        return candles
