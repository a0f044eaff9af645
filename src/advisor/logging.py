"""Structured logging for the advisor: structlog over stdlib, per-cycle context.

Every log line emitted inside a monitor cycle carries the subscription id,
instrument, exchange and timeframe (see ``subscription_context``). Oracle
keys and webhook URLs are masked before rendering, since subscriptions carry
their own credentials.
"""

import logging
import os
from collections.abc import MutableMapping
from contextlib import AbstractContextManager
from typing import Any

import structlog

#: Event keys whose values are masked before rendering.
SECRET_KEYS = frozenset(
    {
        "api_key",
        "credential",
        "oracle_api_key",
        "oracle_credential",
        "webhook_url",
        "discord_webhook_url",
    }
)

_MASK = "***"


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential values in an event dict. Empty values are left as-is."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = _MASK
    return event_dict


def subscription_context(
    subscription_id: str, instrument: str, exchange: str, timeframe: str
) -> AbstractContextManager[Any]:
    """Bind one subscription's identity for the duration of a cycle.

    Bound through contextvars, so concurrent cycles of different
    subscriptions never see each other's values.
    """
    return structlog.contextvars.bound_contextvars(
        subscription_id=subscription_id,
        instrument=instrument,
        exchange=exchange,
        timeframe=timeframe,
    )


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog with JSON or console rendering.

    Rendering format is controlled by the LOG_FORMAT environment variable:
    - "json" for production (machine-readable)
    - "console" for development (human-readable, default)
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # aiohttp and ccxt are chatty at DEBUG
    logging.getLogger("ccxt").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
