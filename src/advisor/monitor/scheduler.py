"""Monitor scheduler: one polling loop per subscription.

State machine per subscription::

    IDLE -> EVALUATING -> NOTIFYING -> IDLE
                       -> IDLE            (Hold, same direction, or error)
    any  -> STOPPED                       (unsubscribe / shutdown, terminal)

Stopping cancels the loop task and any in-flight ``check_now`` cycles; a
verdict that still arrives after the stop is discarded without an alert.

The first cycle runs immediately after subscribing, then every
``interval_seconds`` or earlier when triggered manually. Evaluation has two
call sites sharing one state machine: the silent loop logs failures, while
``check_now`` raises them to the caller. A per-subscription lock serializes
the two so a subscription never runs overlapping cycles.

An alert goes out only when the verdict is Buy or Sell and differs from the
last notified direction. The direction is recorded as soon as the decision
to notify is made, even when delivery fails, so a failed webhook is never
retried into a duplicate. Failed cycles never touch it.
"""

from __future__ import annotations

import asyncio
import time

from advisor.config import MonitorSettings
from advisor.exceptions import AdvisorError, SubscriptionNotFound
from advisor.logging import get_logger, subscription_context
from advisor.market_data.timeframes import EXCHANGES, canonical_code
from advisor.models import (
    Mode,
    MonitorSubscription,
    SubscriptionState,
    Verdict,
    VerdictDirection,
)
from advisor.monitor.pipeline import AnalysisPipeline
from advisor.notify.dispatcher import NotificationDispatcher, format_alert

logger = get_logger(__name__)


def should_notify(last: VerdictDirection | None, current: VerdictDirection) -> bool:
    """Alert on a Buy/Sell that differs from the last alerted direction."""
    return current.actionable and current is not last


class MonitorScheduler:
    """Owns live subscriptions and their background tasks.

    Args:
        pipeline: Evaluation pipeline shared by all subscriptions.
        dispatcher: Notification sink for alerts.
        settings: Monitor settings (default interval and exchange, minimum interval).
    """

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        dispatcher: NotificationDispatcher,
        settings: MonitorSettings | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._dispatcher = dispatcher
        self._settings = settings or MonitorSettings()
        self._subscriptions: dict[str, MonitorSubscription] = {}
        self._tasks: dict[str, asyncio.Task] = {}  # type: ignore[type-arg]
        self._locks: dict[str, asyncio.Lock] = {}
        self._triggers: dict[str, asyncio.Event] = {}
        self._checks: dict[str, set[asyncio.Task]] = {}  # type: ignore[type-arg]

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    async def subscribe(
        self,
        instrument: str,
        exchange: str | None = None,
        timeframe: str | None = None,
        mode: Mode = Mode.SWING,
        interval_seconds: int | None = None,
        high_accuracy: bool = True,
        oracle_credential: str | None = None,
    ) -> MonitorSubscription:
        """Register a subscription and start its loop (first cycle runs now).

        Raises:
            ValueError: Empty instrument, unknown exchange or timeframe, or an
                interval below ``min_interval_seconds``.
        """
        if not instrument or not instrument.strip():
            raise ValueError("instrument must be a non-empty symbol")
        exchange = (exchange or self._settings.default_exchange).lower()
        if exchange not in EXCHANGES:
            raise ValueError(f"Unsupported exchange: {exchange}")
        timeframe = canonical_code(timeframe or self._settings.default_timeframe)
        interval = interval_seconds or self._settings.interval_seconds
        if interval < self._settings.min_interval_seconds:
            raise ValueError(
                f"interval must be at least {self._settings.min_interval_seconds}s"
            )

        sub = MonitorSubscription(
            instrument=instrument.strip().upper(),
            exchange=exchange,
            timeframe=timeframe,
            mode=mode,
            interval_seconds=interval,
            high_accuracy=high_accuracy,
            oracle_credential=oracle_credential,
        )
        self._subscriptions[sub.id] = sub
        self._locks[sub.id] = asyncio.Lock()
        self._triggers[sub.id] = asyncio.Event()
        self._tasks[sub.id] = asyncio.create_task(
            self._run_loop(sub), name=f"monitor-{sub.id}"
        )
        logger.info(
            "subscription_started",
            subscription_id=sub.id,
            instrument=sub.instrument,
            exchange=sub.exchange,
            timeframe=sub.timeframe,
            mode=sub.mode.value,
            interval_seconds=sub.interval_seconds,
        )
        return sub

    async def unsubscribe(self, sub_id: str) -> MonitorSubscription:
        """Cancel the subscription's loop and any in-flight checks, then discard it.

        Raises:
            SubscriptionNotFound: Unknown id.
        """
        sub = self._subscriptions.pop(sub_id, None)
        if sub is None:
            raise SubscriptionNotFound(f"No subscription with id {sub_id}")

        sub.state = SubscriptionState.STOPPED
        pending = list(self._checks.pop(sub_id, ()))
        task = self._tasks.pop(sub_id, None)
        if task is not None:
            pending.append(task)
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._locks.pop(sub_id, None)
        self._triggers.pop(sub_id, None)
        logger.info("subscription_stopped", subscription_id=sub_id, instrument=sub.instrument)
        return sub

    async def stop_all(self) -> None:
        """Stop every subscription (shutdown)."""
        for sub_id in list(self._subscriptions):
            await self.unsubscribe(sub_id)
        logger.info("monitor_scheduler_stopped")

    def get(self, sub_id: str) -> MonitorSubscription:
        try:
            return self._subscriptions[sub_id]
        except KeyError:
            raise SubscriptionNotFound(f"No subscription with id {sub_id}") from None

    def subscriptions(self) -> list[MonitorSubscription]:
        return sorted(self._subscriptions.values(), key=lambda s: s.created_at)

    def trigger(self, sub_id: str) -> None:
        """Wake the subscription's loop for an immediate silent cycle."""
        self.get(sub_id)
        self._triggers[sub_id].set()

    @property
    def exchanges(self) -> list[str]:
        return self._pipeline.candle_service.exchanges

    def get_status(self) -> dict:
        states: dict[str, int] = {}
        for sub in self._subscriptions.values():
            states[sub.state.value] = states.get(sub.state.value, 0) + 1
        return {"subscriptions": len(self._subscriptions), "states": states}

    # ------------------------------------------------------------------
    # Evaluation call sites
    # ------------------------------------------------------------------

    async def check_now(self, sub_id: str) -> Verdict:
        """Interactive cycle for a subscription. Errors propagate to the caller.

        Raises:
            SubscriptionNotFound: Unknown id.
            AdvisorError: Any cycle failure (exchange, history, oracle).
            ValueError: Invalid subscription parameters.
        """
        sub = self.get(sub_id)
        task = asyncio.ensure_future(self._cycle(sub))
        checks = self._checks.setdefault(sub_id, set())
        checks.add(task)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            caller_cancelled = current is not None and current.cancelling() > 0
            if sub.state is SubscriptionState.STOPPED and not caller_cancelled:
                raise SubscriptionNotFound(
                    f"Subscription {sub_id} was stopped during the check"
                ) from None
            raise
        finally:
            checks.discard(task)

    async def analyze(
        self,
        instrument: str,
        exchange: str | None = None,
        timeframe: str | None = None,
        mode: Mode = Mode.SWING,
        high_accuracy: bool = True,
        oracle_credential: str | None = None,
    ) -> Verdict:
        """One-off interactive evaluation without a subscription or alert."""
        return await self._pipeline.evaluate(
            instrument=instrument.strip().upper(),
            exchange=(exchange or self._settings.default_exchange).lower(),
            timeframe=timeframe or self._settings.default_timeframe,
            mode=mode,
            high_accuracy=high_accuracy,
            oracle_credential=oracle_credential,
        )

    async def _run_loop(self, sub: MonitorSubscription) -> None:
        """Silent loop: cycle now, then wait for the interval or a trigger."""
        trigger = self._triggers[sub.id]
        while True:
            await self._run_silent_cycle(sub)
            trigger.clear()
            try:
                await asyncio.wait_for(trigger.wait(), timeout=sub.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def _run_silent_cycle(self, sub: MonitorSubscription) -> None:
        try:
            await self._cycle(sub)
        except asyncio.CancelledError:
            raise
        except AdvisorError as e:
            logger.warning(
                "monitor_cycle_failed",
                subscription_id=sub.id,
                instrument=sub.instrument,
                label=e.label,
                error=str(e),
            )
        except Exception:
            logger.error(
                "monitor_cycle_error",
                subscription_id=sub.id,
                instrument=sub.instrument,
                exc_info=True,
            )

    async def _cycle(self, sub: MonitorSubscription) -> Verdict:
        """Evaluate, update state and notify on a qualifying transition.

        Raises:
            SubscriptionNotFound: The subscription was stopped while evaluating;
                the verdict is discarded and nothing is sent.
        """
        async with self._locks[sub.id]:
            with subscription_context(sub.id, sub.instrument, sub.exchange, sub.timeframe):
                sub.state = SubscriptionState.EVALUATING
                try:
                    verdict = await self._pipeline.evaluate(
                        instrument=sub.instrument,
                        exchange=sub.exchange,
                        timeframe=sub.timeframe,
                        mode=sub.mode,
                        high_accuracy=sub.high_accuracy,
                        oracle_credential=sub.oracle_credential,
                    )
                except Exception as e:
                    sub.last_error = f"{getattr(e, 'label', type(e).__name__)}: {e}"
                    sub.last_evaluated_at = time.time()
                    raise
                finally:
                    if sub.state is not SubscriptionState.STOPPED:
                        sub.state = SubscriptionState.IDLE

                if sub.state is SubscriptionState.STOPPED:
                    logger.info("verdict_discarded_after_stop", direction=verdict.direction.value)
                    raise SubscriptionNotFound(f"Subscription {sub.id} was stopped")

                sub.last_verdict = verdict
                sub.last_error = None
                sub.last_evaluated_at = time.time()

                if should_notify(sub.last_verdict_direction, verdict.direction):
                    await self._notify(sub, verdict)
                else:
                    logger.debug(
                        "notification_suppressed",
                        direction=verdict.direction.value,
                        last_notified=(
                            sub.last_verdict_direction.value
                            if sub.last_verdict_direction is not None
                            else None
                        ),
                    )
                return verdict

    async def _notify(self, sub: MonitorSubscription, verdict: Verdict) -> None:
        # STOPPED is terminal: never leave it, never alert for it
        if sub.state is SubscriptionState.STOPPED:
            return
        sub.state = SubscriptionState.NOTIFYING
        sub.last_verdict_direction = verdict.direction
        try:
            sent = await self._dispatcher.send(format_alert(verdict))
        except Exception as e:
            logger.error("dispatch_failed", error=str(e), exc_info=True)
            sent = False
        finally:
            if sub.state is not SubscriptionState.STOPPED:
                sub.state = SubscriptionState.IDLE

        if sent:
            sub.notifications_sent += 1
        logger.info(
            "signal_change_notified",
            direction=verdict.direction.value,
            confidence=verdict.overall_confidence,
            delivered=sent,
        )
