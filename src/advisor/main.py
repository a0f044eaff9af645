"""Entry point for the crypto signal advisor.

Wires all components together and serves the operator API. The monitor
scheduler and the API share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown: every subscription loop is
cancelled, then exchange, news and notification transports are closed.

Component wiring order (in _build_components):
1. Exchange adapters (Bybit via ccxt, Nami and ONUS via aiohttp)
2. CandleService (per-exchange concurrency caps + normalizer)
3. IndicatorEngine
4. SignalSynthesizer (oracle timeout from OracleSettings)
5. NewsSentimentService (optional)
6. AnalysisPipeline (oracle client created per cycle)
7. DiscordDispatcher
8. MonitorScheduler
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from advisor.config import AppSettings
from advisor.exchange import build_adapters
from advisor.indicators.engine import IndicatorEngine
from advisor.logging import get_logger, setup_logging
from advisor.market_data.candle_service import CandleService
from advisor.monitor.pipeline import AnalysisPipeline
from advisor.monitor.scheduler import MonitorScheduler
from advisor.news.sentiment import NewsSentimentService
from advisor.notify.dispatcher import DiscordDispatcher
from advisor.signals.synthesizer import SignalSynthesizer


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all advisor components from settings.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    logger = get_logger("advisor.main")

    # 1. Exchange adapters
    adapters = build_adapters(settings)

    # 2. Candle service with per-exchange request caps
    candle_service = CandleService(
        adapters,
        settings.indicators,
        concurrency={
            "bybit": settings.bybit.max_concurrency,
            "nami": settings.nami.max_concurrency,
            "onus": settings.onus.max_concurrency,
        },
    )

    # 3-4. Indicators and synthesis
    engine = IndicatorEngine(settings.indicators)
    synthesizer = SignalSynthesizer(
        settings.signal, oracle_timeout=settings.oracle.timeout_seconds
    )

    if not settings.oracle.api_key.get_secret_value():
        logger.warning(
            "no_oracle_api_key_configured",
            note="Subscriptions must supply their own oracle key or every cycle fails.",
        )

    # 5. News sentiment
    news_service = NewsSentimentService(settings.news) if settings.news.enabled else None

    # 6. Pipeline
    pipeline = AnalysisPipeline(
        candle_service,
        engine,
        synthesizer,
        oracle_settings=settings.oracle,
        news_service=news_service,
    )

    # 7. Notifications
    dispatcher = DiscordDispatcher(settings.notify)
    if not dispatcher.configured:
        logger.warning(
            "no_discord_webhook_configured",
            note="Signal changes will be logged but not delivered.",
        )

    # 8. Scheduler
    scheduler = MonitorScheduler(pipeline, dispatcher, settings.monitor)

    return {
        "candle_service": candle_service,
        "news_service": news_service,
        "dispatcher": dispatcher,
        "pipeline": pipeline,
        "scheduler": scheduler,
    }


async def _subscribe_configured(scheduler: MonitorScheduler, settings: AppSettings) -> None:
    """Subscribe every instrument listed in MONITOR_INSTRUMENTS."""
    logger = get_logger("advisor.main")
    for instrument in settings.monitor.instruments:
        try:
            await scheduler.subscribe(instrument)
        except ValueError as e:
            logger.error("configured_subscription_invalid", instrument=instrument, error=str(e))


async def _shutdown(components: dict[str, Any]) -> None:
    """Stop all subscriptions, then close every transport."""
    await components["scheduler"].stop_all()
    await components["candle_service"].close()
    if components["news_service"] is not None:
        await components["news_service"].close()
    await components["dispatcher"].close()


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """Register SIGINT/SIGTERM to set ``stop_event``.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("advisor.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: exposes the scheduler on app.state for route handlers.
    On shutdown: stops every subscription and closes transports.
    """
    logger = get_logger("advisor.main")
    components = app.state.components
    app.state.scheduler = components["scheduler"]
    await _subscribe_configured(components["scheduler"], app.state.settings)

    logger.info("lifespan_started", exchanges=components["candle_service"].exchanges)

    yield

    await _shutdown(components)
    logger.info("signal_advisor_stopped")


async def run() -> None:
    """Run the signal advisor.

    When the API is enabled (DASHBOARD_ENABLED=true, the default) the
    scheduler runs inside uvicorn and subscriptions are managed over HTTP.
    Without the API only the MONITOR_INSTRUMENTS subscriptions run, until a
    shutdown signal arrives.
    """
    settings = AppSettings()
    setup_logging(settings.log_level)
    logger = get_logger("advisor.main")

    components = _build_components(settings)

    if settings.dashboard.enabled:
        from advisor.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_api",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        stop_event = asyncio.Event()
        _setup_signal_handlers(stop_event)
        logger.info("starting_without_api", instruments=settings.monitor.instruments)
        try:
            await _subscribe_configured(components["scheduler"], settings)
            await stop_event.wait()
        finally:
            await _shutdown(components)
            logger.info("signal_advisor_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
