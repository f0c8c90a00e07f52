"""
AI Event Service for colony-ai.

A prioritized queue of AI events shared by every colony controller.
High-priority events are handled immediately in the caller; the rest are
drained by a background thread or by explicit ``process_pending`` calls.
Failed handling is retried with exponential backoff before the event is
marked failed and archived.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from uuid import UUID, uuid4

from pydantic import BaseModel

from colony_ai.clock import Clock, utc_now
from colony_ai.config import EventServiceConfig
from colony_ai.models.event import (
    PRIORITY_VALUES,
    AIEvent,
    AIEventType,
    EventHistoryFilter,
    EventStatistics,
    PriorityLevel,
)

logger = logging.getLogger(__name__)

EventCallback = Callable[[AIEvent], None]

# Event types worth an info line when no custom handler is registered.
NOTABLE_EVENTS = frozenset(
    {
        AIEventType.ATTACK_LAUNCHED,
        AIEventType.STRATEGY_CHANGED,
        AIEventType.ADAPTATION_TRIGGERED,
        AIEventType.COUNTER_STRATEGY_APPLIED,
        AIEventType.COLONY_DESTROYED,
        AIEventType.ALLIANCE_BROKEN,
    }
)


def _log_event(event: AIEvent) -> None:
    level = logging.INFO if event.type in NOTABLE_EVENTS else logging.DEBUG
    logger.log(level, "AI event %s (colony %s): %s", event.type.value, event.colony_id, event.payload)


@dataclass
class EventService:
    """
    Process-wide AI event queue.

    Construct one and inject it into every ColonyController that should
    publish to it.
    """

    config: EventServiceConfig = field(default_factory=EventServiceConfig)
    clock: Clock = utc_now

    _queue: list[AIEvent] = field(default_factory=list)
    _history: deque[AIEvent] = field(init=False)
    _handlers: dict[AIEventType, EventCallback] = field(default_factory=dict)
    _subscribers: dict[AIEventType, dict[str, EventCallback]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _stop: threading.Event = field(default_factory=threading.Event)
    _thread: threading.Thread | None = None

    def __post_init__(self) -> None:
        self._history = deque(maxlen=self.config.max_history)

    # =========================================================================
    # Publishing
    # =========================================================================

    def add_event(
        self,
        event_type: AIEventType,
        payload: BaseModel,
        priority: PriorityLevel = PriorityLevel.MEDIUM,
        colony_id: UUID | None = None,
    ) -> AIEvent:
        """
        Queue an event, or handle it right away if its priority is high enough.

        Args:
            event_type: Closed event type
            payload: Payload model matching the event type
            priority: Named priority level
            colony_id: Colony that produced the event

        Returns:
            The created event

        Raises:
            ValueError: If the payload model does not match the event type
        """
        event = AIEvent(
            type=event_type,
            payload=payload,
            priority_level=priority,
            colony_id=colony_id,
            timestamp=self.clock(),
            max_attempts=self.config.max_attempts,
        )

        if event.priority >= PRIORITY_VALUES[self.config.immediate_priority]:
            self._handle(event)
        else:
            self._enqueue(event)
        return event

    def _enqueue(self, event: AIEvent) -> None:
        with self._lock:
            self._queue.append(event)
            self._queue.sort(key=lambda e: (-e.priority, e.timestamp))

    # =========================================================================
    # Handling
    # =========================================================================

    def register_handler(self, event_type: AIEventType, handler: EventCallback) -> None:
        """Replace the default (logging) handler for one event type."""
        self._handlers[event_type] = handler

    def subscribe(
        self,
        event_type: AIEventType,
        callback: EventCallback,
        subscriber_id: str | None = None,
    ) -> str:
        """Register a callback for every processed event of a type. Returns its id."""
        subscriber_id = subscriber_id or f"sub_{uuid4().hex[:8]}"
        with self._lock:
            self._subscribers.setdefault(event_type, {})[subscriber_id] = callback
        return subscriber_id

    def unsubscribe(self, event_type: AIEventType, subscriber_id: str) -> bool:
        """Remove a subscriber. Returns False if it was not registered."""
        with self._lock:
            return self._subscribers.get(event_type, {}).pop(subscriber_id, None) is not None

    def _handle(self, event: AIEvent) -> None:
        event.attempts += 1
        with self._lock:
            callbacks = list(self._subscribers.get(event.type, {}).values())

        try:
            self._handlers.get(event.type, _log_event)(event)
            for callback in callbacks:
                callback(event)
        except Exception as exc:
            event.last_error = str(exc)
            if event.attempts < event.max_attempts:
                delay = self.config.retry_base_seconds * 2 ** (event.attempts - 1)
                event.retry_at = self.clock() + timedelta(seconds=delay)
                logger.warning(
                    "Event %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    event.id,
                    event.attempts,
                    event.max_attempts,
                    delay,
                    exc,
                )
                self._enqueue(event)
            else:
                event.failed = True
                logger.error(
                    "Event %s (%s) failed after %d attempts: %s",
                    event.id,
                    event.type.value,
                    event.attempts,
                    exc,
                )
                self._archive(event)
            return

        event.processed = True
        event.processed_at = self.clock()
        self._archive(event)

    def _archive(self, event: AIEvent) -> None:
        with self._lock:
            self._history.append(event)

    def process_pending(self) -> int:
        """
        Handle every queued event whose retry time has arrived.

        Returns:
            Number of events handled in this pass
        """
        now = self.clock()
        with self._lock:
            ready = [e for e in self._queue if e.retry_at is None or e.retry_at <= now]
            ready_ids = {e.id for e in ready}
            self._queue = [e for e in self._queue if e.id not in ready_ids]

        for event in ready:
            self._handle(event)
        return len(ready)

    # =========================================================================
    # Background drain
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background drain thread."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._drain_loop, name="ai-event-drain", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the drain thread and wait for it to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _drain_loop(self) -> None:
        while not self._stop.is_set():
            self.process_pending()
            self._stop.wait(self.config.poll_interval_seconds)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    def get_event_history(self, filters: EventHistoryFilter | None = None) -> list[AIEvent]:
        """Archived events matching the filters, newest first."""
        filters = filters or EventHistoryFilter()
        with self._lock:
            events = list(self._history)

        if filters.colony_id is not None:
            events = [e for e in events if e.colony_id == filters.colony_id]
        if filters.event_type is not None:
            events = [e for e in events if e.type == filters.event_type]
        if filters.min_priority is not None:
            floor = PRIORITY_VALUES[filters.min_priority]
            events = [e for e in events if e.priority >= floor]
        if filters.start_time is not None:
            events = [e for e in events if e.timestamp >= filters.start_time]
        if filters.end_time is not None:
            events = [e for e in events if e.timestamp <= filters.end_time]
        if filters.failed_only:
            events = [e for e in events if e.failed]

        return sorted(events, key=lambda e: e.timestamp, reverse=True)

    def get_event_statistics(self) -> EventStatistics:
        """Counts over the archive plus the current queue length."""
        with self._lock:
            events = list(self._history)
            queued = len(self._queue)

        stats = EventStatistics(total_events=len(events), events_in_queue=queued)
        durations: list[float] = []
        for event in events:
            stats.events_by_type[event.type.value] = stats.events_by_type.get(event.type.value, 0) + 1
            level = event.priority_level.value
            stats.events_by_priority[level] = stats.events_by_priority.get(level, 0) + 1
            if event.failed:
                stats.failed_events += 1
            elif event.processed_at is not None:
                durations.append((event.processed_at - event.timestamp).total_seconds())

        if durations:
            stats.average_processing_seconds = sum(durations) / len(durations)
        return stats
