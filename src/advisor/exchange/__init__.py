"""Exchange adapter layer: Bybit (ccxt), Nami and ONUS (aiohttp)."""

from advisor.config import AppSettings
from advisor.exchange.bybit_client import BybitClient
from advisor.exchange.client import ExchangeAdapter, HttpExchangeAdapter
from advisor.exchange.nami_client import NamiClient
from advisor.exchange.onus_client import OnusClient
from advisor.exchange.types import make_candle


def build_adapters(settings: AppSettings) -> dict[str, ExchangeAdapter]:
    """Create one adapter per supported exchange, keyed by exchange name."""
    adapters: list[ExchangeAdapter] = [
        BybitClient(settings.bybit),
        NamiClient(settings.nami),
        OnusClient(settings.onus),
    ]
    return {adapter.name: adapter for adapter in adapters}


__all__ = [
    "BybitClient",
    "ExchangeAdapter",
    "HttpExchangeAdapter",
    "NamiClient",
    "OnusClient",
    "build_adapters",
    "make_candle",
]
