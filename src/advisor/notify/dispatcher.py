"""Notification dispatch.

The scheduler depends only on the ``NotificationDispatcher`` interface. The
concrete sink posts to a Discord webhook. ``send`` never raises: delivery
failures are logged as ``dispatch_failed`` and reported through the boolean
result so a failed alert cannot abort an evaluation cycle.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import aiohttp

from advisor.config import NotificationSettings
from advisor.exceptions import DispatchFailed
from advisor.logging import get_logger
from advisor.models import Verdict

logger = get_logger(__name__)

# Discord rejects message content longer than this
_DISCORD_MAX_CONTENT = 2000


def _price(value: float) -> str:
    return f"{value:,.2f}" if value >= 1 else f"{value:.6g}"


def format_alert(verdict: Verdict) -> str:
    """Render the alert text for an actionable verdict."""
    when = datetime.fromtimestamp(verdict.created_at, tz=timezone.utc)
    lines = [
        f"**New signal: {verdict.direction.value.upper()} {verdict.instrument} "
        f"({verdict.exchange.upper()})**",
        f"Mode: {verdict.mode.value.capitalize()} | Timeframe: {verdict.timeframe}",
        f"Confidence: {verdict.overall_confidence:.0f}%",
        f"Price: {_price(verdict.price)}",
        f"Entry: {_price(verdict.entry)}",
        f"Stop loss: {_price(verdict.stop_loss)}",
        f"Take profit: {_price(verdict.take_profit)}",
    ]
    if verdict.risk_management_advice:
        lines.append(f"Risk: {verdict.risk_management_advice}")
    lines.append(f"_{when:%Y-%m-%d %H:%M} UTC_")
    return "\n".join(lines)


class NotificationDispatcher(ABC):
    """Abstract notification sink."""

    @abstractmethod
    async def send(self, message: str) -> bool:
        """Deliver ``message``.

        Returns:
            True when the sink accepted the message, False otherwise. Never
            raises for delivery failures.
        """
        ...

    async def close(self) -> None:
        """Release transport resources."""


class DiscordDispatcher(NotificationDispatcher):
    """Posts alerts to a Discord webhook as ``{"content", "username"}``."""

    def __init__(
        self,
        settings: NotificationSettings,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._settings = settings
        self._session = session
        self._owns_session = session is None

    @property
    def configured(self) -> bool:
        return bool(self._settings.discord_webhook_url.get_secret_value())

    async def send(self, message: str) -> bool:
        if not self.configured:
            logger.debug("dispatch_skipped", reason="no webhook configured")
            return False
        try:
            await self._post(message)
        except DispatchFailed as e:
            logger.warning("dispatch_failed", sink="discord", error=str(e))
            return False
        logger.info("dispatch_sent", sink="discord", length=len(message))
        return True

    async def _post(self, message: str) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

        payload = {
            "content": message[:_DISCORD_MAX_CONTENT],
            "username": self._settings.username,
        }
        url = self._settings.discord_webhook_url.get_secret_value()
        timeout = aiohttp.ClientTimeout(total=self._settings.timeout_seconds)
        try:
            async with self._session.post(url, json=payload, timeout=timeout) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    raise DispatchFailed(f"webhook returned HTTP {resp.status}: {body[:200]}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DispatchFailed(f"webhook request failed: {e}") from e

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
