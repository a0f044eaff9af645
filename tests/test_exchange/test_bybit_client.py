"""Tests for BybitClient and exchange types.

All tests use mocked ccxt exchange objects to avoid real API calls.
"""

import math
from unittest.mock import AsyncMock

import ccxt.async_support as ccxt_async
import pytest

from advisor.config import BybitSettings
from advisor.exceptions import ExchangeRejected, ExchangeUnavailable, MalformedResponse
from advisor.exchange.bybit_client import BybitClient
from advisor.exchange.types import make_candle, to_float, to_millis
from advisor.market_data.timeframes import resolve_timeframe


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

# Newest first, as Bybit returns them
MOCK_KLINE = {
    "retCode": 0,
    "retMsg": "OK",
    "result": {
        "category": "linear",
        "symbol": "BTCUSDT",
        "list": [
            ["1700001900000", "103.0", "104.0", "102.5", "103.5", "12.5", "1290.0"],
            ["1700001000000", "102.0", "103.2", "101.8", "103.0", "10.0", "1025.0"],
            ["1700000100000", "101.0", "102.4", "100.9", "102.0", "8.0", "812.0"],
        ],
    },
    "time": 1700002000000,
}


@pytest.fixture
def client() -> BybitClient:
    c = BybitClient(BybitSettings())
    c._exchange.public_get_v5_market_kline = AsyncMock(return_value=MOCK_KLINE)
    return c


@pytest.fixture
def spec_15m():
    return resolve_timeframe("15m", "bybit")


# ---------------------------------------------------------------------------
# fetch_candles
# ---------------------------------------------------------------------------


class TestFetchCandles:
    @pytest.mark.asyncio
    async def test_reverses_to_oldest_first(self, client, spec_15m) -> None:
        series = await client.fetch_candles("BTCUSDT", spec_15m, 200)

        times = [c.open_time for c in series.candles]
        assert times == [1700000100000, 1700001000000, 1700001900000]
        assert series.candles[-1].close == 103.5
        assert series.candles[-1].volume == 12.5
        assert series.exchange == "bybit"
        assert series.timeframe == "15m"

    @pytest.mark.asyncio
    async def test_request_params(self, client, spec_15m) -> None:
        await client.fetch_candles("btc/usdt", spec_15m, 200)

        params = client._exchange.public_get_v5_market_kline.call_args[0][0]
        assert params == {
            "category": "linear",
            "symbol": "BTCUSDT",
            "interval": "15",
            "limit": 200,
        }

    @pytest.mark.asyncio
    async def test_limit_clamped_to_exchange_max(self, client, spec_15m) -> None:
        await client.fetch_candles("BTCUSDT", spec_15m, 5000)
        params = client._exchange.public_get_v5_market_kline.call_args[0][0]
        assert params["limit"] == 1000

    @pytest.mark.asyncio
    async def test_limit_at_least_one(self, client, spec_15m) -> None:
        await client.fetch_candles("BTCUSDT", spec_15m, 0)
        params = client._exchange.public_get_v5_market_kline.call_args[0][0]
        assert params["limit"] == 1

    @pytest.mark.asyncio
    async def test_fewer_candles_than_limit_is_not_an_error(self, client, spec_15m) -> None:
        series = await client.fetch_candles("BTCUSDT", spec_15m, 500)
        assert len(series) == 3

    @pytest.mark.asyncio
    async def test_trims_to_limit_keeping_newest(self, client, spec_15m) -> None:
        series = await client.fetch_candles("BTCUSDT", spec_15m, 2)
        assert [c.open_time for c in series.candles] == [1700001000000, 1700001900000]

    @pytest.mark.asyncio
    async def test_empty_instrument_raises_value_error(self, client, spec_15m) -> None:
        with pytest.raises(ValueError):
            await client.fetch_candles("  ", spec_15m, 10)
        client._exchange.public_get_v5_market_kline.assert_not_awaited()


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestErrors:
    @pytest.mark.asyncio
    async def test_ret_code_error_is_rejected(self, client, spec_15m) -> None:
        client._exchange.public_get_v5_market_kline.return_value = {
            "retCode": 10001,
            "retMsg": "params error: symbol invalid",
            "result": {},
        }
        with pytest.raises(ExchangeRejected, match="10001"):
            await client.fetch_candles("NOPEUSDT", spec_15m, 10)

    @pytest.mark.asyncio
    async def test_missing_list_is_malformed(self, client, spec_15m) -> None:
        client._exchange.public_get_v5_market_kline.return_value = {
            "retCode": 0,
            "result": {"list": None},
        }
        with pytest.raises(MalformedResponse) as exc_info:
            await client.fetch_candles("BTCUSDT", spec_15m, 10)
        assert exc_info.value.payload == {"retCode": 0, "result": {"list": None}}

    @pytest.mark.asyncio
    async def test_non_object_envelope_is_malformed(self, client, spec_15m) -> None:
        client._exchange.public_get_v5_market_kline.return_value = ["unexpected"]
        with pytest.raises(MalformedResponse):
            await client.fetch_candles("BTCUSDT", spec_15m, 10)

    def test_malformed_is_retry_equivalent(self) -> None:
        assert issubclass(MalformedResponse, ExchangeUnavailable)

    @pytest.mark.asyncio
    async def test_network_error_is_unavailable(self, client, spec_15m) -> None:
        client._exchange.public_get_v5_market_kline.side_effect = ccxt_async.NetworkError(
            "connection reset"
        )
        with pytest.raises(ExchangeUnavailable):
            await client.fetch_candles("BTCUSDT", spec_15m, 10)

    @pytest.mark.asyncio
    async def test_ccxt_exchange_error_is_rejected(self, client, spec_15m) -> None:
        client._exchange.public_get_v5_market_kline.side_effect = ccxt_async.BadSymbol(
            "bybit Invalid symbol"
        )
        with pytest.raises(ExchangeRejected):
            await client.fetch_candles("BTCUSDT", spec_15m, 10)

    @pytest.mark.asyncio
    async def test_bad_rows_are_skipped(self, client, spec_15m) -> None:
        payload = {
            "retCode": 0,
            "result": {
                "list": [
                    ["1700001000000", "102", "103", "101", "102.5", "1"],
                    ["garbage"],
                    ["not-a-time", "1", "1", "1", "1", "1"],
                    ["1700000100000", "101", "102", "100", "101.5", "1"],
                ]
            },
        }
        client._exchange.public_get_v5_market_kline.return_value = payload
        series = await client.fetch_candles("BTCUSDT", spec_15m, 10)
        assert [c.open_time for c in series.candles] == [1700000100000, 1700001000000]


class TestClose:
    @pytest.mark.asyncio
    async def test_close_releases_ccxt_session(self, client) -> None:
        client._exchange.close = AsyncMock()
        await client.close()
        client._exchange.close.assert_awaited_once()


# ---------------------------------------------------------------------------
# Exchange types
# ---------------------------------------------------------------------------


class TestTypes:
    def test_to_float_handles_strings_and_garbage(self) -> None:
        assert to_float("1.5") == 1.5
        assert math.isnan(to_float("abc"))
        assert math.isnan(to_float(None))
        assert math.isnan(to_float(True))

    def test_to_millis_converts_seconds(self) -> None:
        assert to_millis(1_700_000_000) == 1_700_000_000_000
        assert to_millis("1700000000000") == 1_700_000_000_000
        assert to_millis(-5) is None
        assert to_millis("x") is None

    def test_make_candle_bad_timestamp_returns_none(self) -> None:
        assert make_candle(None, 1, 1, 1, 1) is None

    def test_make_candle_bad_price_becomes_nan(self) -> None:
        candle = make_candle(1_700_000_000, "1", "2", "0.5", "oops", None)
        assert candle is not None
        assert math.isnan(candle.close)
        assert candle.volume == 0.0
