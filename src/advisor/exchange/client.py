"""Abstract exchange adapter interface.

Defines the contract every exchange implementation fulfils. The candle
pipeline depends only on this interface; exchange-specific envelope shapes,
symbol formats and transport details stay in the concrete adapters.

Each adapter owns exactly one decoder (``decode``) for its envelope shape
and feeds the canonical ``make_candle`` constructor. Adapters never retry
and never cache: retry is a scheduler concern, caching lives above them.
"""

import asyncio
import json
from abc import ABC, abstractmethod

import aiohttp

from advisor.exceptions import ExchangeRejected, ExchangeUnavailable, MalformedResponse
from advisor.logging import get_logger
from advisor.market_data.timeframes import TimeframeSpec
from advisor.models import Candle, CandleSeries

logger = get_logger(__name__)

_DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "Mozilla/5.0 (compatible; crypto-signal-advisor/0.1)",
}


class ExchangeAdapter(ABC):
    """Abstract base class for exchange candle adapters."""

    name: str = ""

    async def fetch_candles(
        self, instrument: str, timeframe: TimeframeSpec, limit: int
    ) -> CandleSeries:
        """Fetch up to ``limit`` candles, oldest first.

        Args:
            instrument: Symbol such as "BTCUSDT" (converted to the native form).
            timeframe: Timeframe resolved for this exchange.
            limit: Requested candle count, clamped to the exchange maximum.

        Returns:
            CandleSeries ordered oldest to newest. May hold fewer than
            ``limit`` candles when the exchange has no more history.

        Raises:
            ValueError: Empty instrument.
            ExchangeUnavailable: Transport or HTTP failure.
            ExchangeRejected: Error status in the exchange's envelope.
            MalformedResponse: Unexpected response shape.
        """
        if not instrument or not instrument.strip():
            raise ValueError("instrument must be a non-empty symbol")

        limit = max(1, min(limit, timeframe.max_limit))
        symbol = self.native_symbol(instrument)

        payload = await self._request(symbol, timeframe, limit)
        candles = self.decode(payload)
        if len(candles) > limit:
            candles = candles[-limit:]

        logger.debug(
            "candles_fetched",
            exchange=self.name,
            instrument=instrument,
            native_symbol=symbol,
            interval=timeframe.native_code,
            requested=limit,
            received=len(candles),
        )
        return CandleSeries(
            exchange=self.name,
            instrument=instrument,
            timeframe=timeframe.candle_code,
            candles=tuple(candles),
        )

    def native_symbol(self, instrument: str) -> str:
        """Convert an operator symbol (BTCUSDT, BTC/USDT) to the exchange form."""
        return instrument.replace("/", "").replace("_", "").replace("-", "").upper()

    @abstractmethod
    async def _request(self, symbol: str, timeframe: TimeframeSpec, limit: int) -> object:
        """Perform the HTTP call and return the decoded JSON payload."""
        ...

    @abstractmethod
    def decode(self, payload: object) -> list[Candle]:
        """Decode this exchange's envelope into candles ordered oldest first."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources."""
        ...


class HttpExchangeAdapter(ExchangeAdapter):
    """Adapter base for exchanges reached with plain aiohttp GET requests."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=_DEFAULT_HEADERS)
            self._owns_session = True
        return self._session

    async def _get_json(self, path: str, params: dict) -> object:
        """GET ``path`` and return parsed JSON, mapping failures to the taxonomy."""
        url = f"{self._base_url}{path}"
        session = self._get_session()
        try:
            async with session.get(url, params=params, timeout=self._timeout) as resp:
                text = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ExchangeUnavailable(f"{self.name}: request to {url} failed: {e}") from e

        if status == 429 or status >= 500:
            raise ExchangeUnavailable(f"{self.name}: HTTP {status} from {url}")

        try:
            payload = json.loads(text)
        except ValueError as e:
            if status >= 400:
                raise ExchangeRejected(f"{self.name}: HTTP {status}: {text[:200]}") from e
            logger.warning(
                "exchange_response_not_json",
                exchange=self.name,
                status=status,
                body=text[:500],
            )
            raise MalformedResponse(
                f"{self.name}: response is not JSON (HTTP {status})", payload=text
            ) from e

        if status >= 400:
            message = payload.get("message") if isinstance(payload, dict) else None
            raise ExchangeRejected(f"{self.name}: HTTP {status}: {message or text[:200]}")

        return payload

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
