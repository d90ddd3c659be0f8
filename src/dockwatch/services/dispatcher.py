"""
Event Dispatch Loop.

Consumes the Docker event stream, evaluates every subscription against
each event, and sends one notification per triggered subscription.

States:
    CONNECTING -> STREAMING -> DISCONNECTED -> (wait) -> CONNECTING ...

Stream failures never end the loop: the connection loss is logged, the
loop waits reconnect_delay seconds and opens a fresh stream.

Deliveries run as independent tasks so a slow gateway does not hold up
rule evaluation. A semaphore caps how many are in flight; when it is
exhausted the consumer waits for a free slot before reading further
events. Delivery failures are logged per target key and never affect
sibling deliveries or later events.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from ..core.logging import get_logger
from ..errors import DeliveryError, StreamError
from ..models import BodyFormat, ObservedEvent
from .payload import build_payload

if TYPE_CHECKING:
    from ..subscriptions import Subscription, Target
    from .apprise_client import SendResult
    from .payload import NotificationPayload

logger = get_logger(__name__)

DEFAULT_RECONNECT_DELAY = 2.0
DEFAULT_MAX_CONCURRENT_DELIVERIES = 8


class EventSource(Protocol):
    """
    Anything that can (re)open a stream of observed events.

    on_open must be called once the stream is established, before the
    first event; a stream that fails earlier never calls it.
    """

    def open_stream(
        self, on_open: Callable[[], None] | None = None
    ) -> AsyncIterator[ObservedEvent]: ...


class Gateway(Protocol):
    """Notification gateway accepting one payload per call."""

    async def send(self, target: Target, payload: NotificationPayload) -> SendResult: ...


class DispatcherState(Enum):
    """Dispatch loop states."""

    STOPPED = "stopped"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    DISCONNECTED = "disconnected"


@dataclass
class DispatcherMetrics:
    """Counters for the dispatch loop."""

    events_received: int = 0
    events_matched: int = 0
    events_skipped: int = 0
    deliveries_succeeded: int = 0
    deliveries_failed: int = 0
    reconnects: int = 0
    last_event_time: datetime | None = None


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery, keyed by the subscription's target key."""

    key: str
    success: bool
    error: str | None = None


@dataclass
class Dispatcher:
    """
    Consume-match-dispatch loop.

    Owns the event source and the gateway client for its lifetime;
    the subscription list is read-only and shared by all deliveries.
    """

    subscriptions: Sequence[Subscription]
    source: EventSource
    gateway: Gateway
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    max_concurrent_deliveries: int = DEFAULT_MAX_CONCURRENT_DELIVERIES
    body_format: BodyFormat = BodyFormat.TEXT

    # Runtime state
    _running: bool = field(default=False, repr=False)
    _state: DispatcherState = field(default=DispatcherState.STOPPED, repr=False)
    _task: asyncio.Task | None = field(default=None, repr=False)
    _slots: asyncio.Semaphore | None = field(default=None, repr=False)
    _pending: set[asyncio.Task] = field(default_factory=set, repr=False)
    _metrics: DispatcherMetrics = field(default_factory=DispatcherMetrics, repr=False)

    def __post_init__(self) -> None:
        if self.max_concurrent_deliveries < 1:
            raise ValueError("max_concurrent_deliveries must be at least 1")
        if self.reconnect_delay < 0:
            raise ValueError("reconnect_delay must not be negative")

    @property
    def state(self) -> DispatcherState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def metrics(self) -> DispatcherMetrics:
        return self._metrics

    @property
    def pending_deliveries(self) -> int:
        return len(self._pending)

    def _get_slots(self) -> asyncio.Semaphore:
        """Get delivery semaphore (created inside the running loop)."""
        if self._slots is None:
            self._slots = asyncio.Semaphore(self.max_concurrent_deliveries)
        return self._slots

    # =========================================================================
    # Matching
    # =========================================================================

    def match(self, event: ObservedEvent) -> list[Subscription]:
        """Subscriptions triggered by an event, in configuration order."""
        return [s for s in self.subscriptions if s.is_triggered_by(event)]

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> asyncio.Task:
        """
        Start the loop in a background task.

        Returns:
            The running task
        """
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self.run(), name="dockwatch-dispatcher")
        return self._task

    def request_stop(self) -> None:
        """Ask the loop to exit once the current stream ends."""
        self._running = False

    async def stop(self) -> None:
        """Stop the loop now and wait for in-flight deliveries."""
        self.request_stop()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.drain()

    async def drain(self) -> None:
        """Wait for all in-flight deliveries to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def run(self) -> None:
        """
        Run the dispatch loop until stopped or cancelled.

        Stream errors are logged and followed by a reconnect after
        reconnect_delay seconds; there is no retry limit.
        """
        if self._running:
            logger.warning("Dispatcher already running")
            return

        self._running = True
        logger.info(
            "Dispatcher started (%d subscriptions, max %d concurrent deliveries)",
            len(self.subscriptions),
            self.max_concurrent_deliveries,
        )

        try:
            while self._running:
                self._state = DispatcherState.CONNECTING
                try:
                    await self._consume()
                except StreamError as e:
                    logger.error("Docker daemon error: %s", e)
                except Exception:
                    logger.exception("Unexpected event stream failure")

                if not self._running:
                    break

                self._state = DispatcherState.DISCONNECTED
                self._metrics.reconnects += 1
                logger.warning(
                    "Docker daemon connection lost, reconnecting in %.1fs",
                    self.reconnect_delay,
                )
                await asyncio.sleep(self.reconnect_delay)
        finally:
            self._running = False
            self._state = DispatcherState.STOPPED
            await self.drain()
            logger.info(
                "Dispatcher stopped (events=%d, matched=%d, delivered=%d, failed=%d)",
                self._metrics.events_received,
                self._metrics.events_matched,
                self._metrics.deliveries_succeeded,
                self._metrics.deliveries_failed,
            )

    def _mark_streaming(self) -> None:
        self._state = DispatcherState.STREAMING
        logger.debug("Docker event stream connected")

    async def _consume(self) -> None:
        """Read one stream until it ends or fails."""
        async with aclosing(self.source.open_stream(on_open=self._mark_streaming)) as stream:
            async for event in stream:
                await self.handle_event(event)

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle_event(self, event: ObservedEvent) -> list[asyncio.Task]:
        """
        Evaluate an event and start a delivery for each triggered subscription.

        Returns:
            The delivery tasks started for this event
        """
        self._metrics.events_received += 1
        self._metrics.last_event_time = datetime.now()

        try:
            triggered = self.match(event)
        except Exception:
            self._metrics.events_skipped += 1
            logger.exception("Failed to evaluate rules for event %r", event.action)
            return []

        if not triggered:
            return []

        self._metrics.events_matched += 1
        logger.debug(
            "Event %s %s triggered %d subscription(s)",
            event.subject_type.value if event.subject_type else "-",
            event.action or "-",
            len(triggered),
        )

        tasks = []
        for subscription in triggered:
            tasks.append(await self._spawn_delivery(subscription, event))
        return tasks

    async def _spawn_delivery(self, subscription: Subscription, event: ObservedEvent) -> asyncio.Task:
        slots = self._get_slots()
        await slots.acquire()
        task = asyncio.create_task(
            self.deliver(subscription, event),
            name=f"deliver:{subscription.key}",
        )
        self._pending.add(task)
        task.add_done_callback(self._delivery_done)
        return task

    def _delivery_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        self._get_slots().release()

    async def deliver(self, subscription: Subscription, event: ObservedEvent) -> DeliveryOutcome:
        """
        Build and send the notification for one triggered subscription.

        Never raises: every failure is logged and returned as an outcome.
        """
        key = subscription.key

        try:
            payload = build_payload(subscription.target, event, self.body_format)
            result = await self.gateway.send(subscription.target, payload)
        except DeliveryError as e:
            return self._delivery_failed(key, str(e))
        except Exception as e:
            logger.debug("Unexpected delivery error for %s", key, exc_info=True)
            return self._delivery_failed(key, f"{type(e).__name__}: {e}")

        if not result.success:
            return self._delivery_failed(key, result.error or "unknown gateway error")

        self._metrics.deliveries_succeeded += 1
        logger.info("%s notified", key)
        return DeliveryOutcome(key=key, success=True)

    def _delivery_failed(self, key: str, error: str) -> DeliveryOutcome:
        self._metrics.deliveries_failed += 1
        logger.error("Error can't notify %s: %s", key, error)
        return DeliveryOutcome(key=key, success=False, error=error)

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self) -> dict[str, Any]:
        """Snapshot of loop state and counters."""
        m = self._metrics
        return {
            "state": self._state.value,
            "subscriptions": len(self.subscriptions),
            "pending_deliveries": len(self._pending),
            "events_received": m.events_received,
            "events_matched": m.events_matched,
            "events_skipped": m.events_skipped,
            "deliveries_succeeded": m.deliveries_succeeded,
            "deliveries_failed": m.deliveries_failed,
            "reconnects": m.reconnects,
            "last_event_time": m.last_event_time.isoformat() if m.last_event_time else None,
        }
