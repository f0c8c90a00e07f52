"""Tests for the AI event queue."""

from __future__ import annotations

import threading
from uuid import uuid4

import pytest

from colony_ai.config import EventServiceConfig
from colony_ai.models.event import (
    AIEvent,
    AIEventType,
    DiscoveryPayload,
    EventHistoryFilter,
    PhaseChangedPayload,
    PriorityLevel,
)
from colony_ai.models.position import Position
from colony_ai.services.events import EventService


def _discovery(colony_id=None) -> DiscoveryPayload:
    return DiscoveryPayload(
        colony_id=colony_id or uuid4(), discovery_type="resource", location=Position(x=1, y=2)
    )


# =============================================================================
# Queueing
# =============================================================================


class TestQueue:
    """Tests for priority queueing and immediate handling."""

    @pytest.fixture
    def service(self, clock) -> EventService:
        return EventService(clock=clock)

    def test_low_priority_is_queued(self, service: EventService) -> None:
        """Events below the immediate threshold wait in the queue."""
        event = service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.LOW)

        assert service.pending_count == 1
        assert not event.processed

    def test_high_priority_handled_immediately(self, service: EventService) -> None:
        """HIGH and above are handled in the caller."""
        event = service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.HIGH)

        assert service.pending_count == 0
        assert event.processed
        assert event.attempts == 1

    def test_processed_in_priority_order(self, service: EventService) -> None:
        """The queue drains highest priority first."""
        seen: list[PriorityLevel] = []
        service.subscribe(AIEventType.DISCOVERY_MADE, lambda e: seen.append(e.priority_level))

        service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.LOW)
        service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.MEDIUM)
        service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.LOW)

        assert service.process_pending() == 3
        assert seen == [PriorityLevel.MEDIUM, PriorityLevel.LOW, PriorityLevel.LOW]

    def test_processed_exactly_once(self, service: EventService) -> None:
        """A successfully handled event never runs again."""
        calls: list[str] = []
        service.subscribe(AIEventType.DISCOVERY_MADE, lambda e: calls.append(e.id))

        service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.LOW)
        service.process_pending()
        service.process_pending()

        assert len(calls) == 1

    def test_payload_must_match_type(self, service: EventService) -> None:
        """A payload of the wrong model is rejected."""
        with pytest.raises(ValueError):
            service.add_event(
                AIEventType.PHASE_CHANGED, _discovery(), PriorityLevel.LOW
            )

    def test_event_priority_value(self) -> None:
        """Named levels map onto 1..5."""
        event = AIEvent(
            type=AIEventType.PHASE_CHANGED,
            payload=PhaseChangedPayload(colony_id=uuid4(), old_phase="early", new_phase="expansion"),
            priority_level=PriorityLevel.EMERGENCY,
        )
        assert event.priority == 5


# =============================================================================
# Retries
# =============================================================================


class TestRetries:
    """Tests for retry with backoff."""

    def test_failing_subscriber_retries_then_fails(self, clock) -> None:
        """An always-failing subscriber exhausts the attempts and the event is marked failed."""
        service = EventService(clock=clock)

        def broken(event: AIEvent) -> None:
            raise RuntimeError("boom")

        service.subscribe(AIEventType.DISCOVERY_MADE, broken)
        event = service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.HIGH)

        assert event.attempts == 1
        assert service.pending_count == 1

        # Not yet due
        assert service.process_pending() == 0

        clock.advance(1)
        assert service.process_pending() == 1
        assert event.attempts == 2

        clock.advance(2)
        assert service.process_pending() == 1
        assert event.attempts == 3

        assert event.failed
        assert not event.processed
        assert event.last_error == "boom"
        assert service.pending_count == 0
        failed = service.get_event_history(EventHistoryFilter(failed_only=True))
        assert [e.id for e in failed] == [event.id]

    def test_transient_failure_recovers(self, clock) -> None:
        """A subscriber that fails once succeeds on retry."""
        service = EventService(clock=clock)
        failures = [RuntimeError("once")]

        def flaky(event: AIEvent) -> None:
            if failures:
                raise failures.pop()

        service.subscribe(AIEventType.DISCOVERY_MADE, flaky)
        event = service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.LOW)

        service.process_pending()
        clock.advance(1)
        service.process_pending()

        assert event.processed
        assert not event.failed
        assert event.attempts == 2


# =============================================================================
# Subscribers and handlers
# =============================================================================


class TestSubscribers:
    """Tests for subscriber and handler registration."""

    def test_unsubscribe(self, clock) -> None:
        """Removed subscribers no longer receive events."""
        service = EventService(clock=clock)
        calls: list[AIEvent] = []
        sub_id = service.subscribe(AIEventType.DISCOVERY_MADE, calls.append)

        assert service.unsubscribe(AIEventType.DISCOVERY_MADE, sub_id)
        assert not service.unsubscribe(AIEventType.DISCOVERY_MADE, sub_id)

        service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.HIGH)
        assert calls == []

    def test_custom_handler_replaces_default(self, clock) -> None:
        """A registered handler runs for its event type."""
        service = EventService(clock=clock)
        handled: list[str] = []
        service.register_handler(AIEventType.DISCOVERY_MADE, lambda e: handled.append(e.id))

        event = service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.HIGH)

        assert handled == [event.id]


# =============================================================================
# History and statistics
# =============================================================================


class TestHistory:
    """Tests for history queries and statistics."""

    def test_history_filters(self, clock) -> None:
        """History can be filtered by colony, type and priority."""
        service = EventService(clock=clock)
        colony_id = uuid4()
        service.add_event(
            AIEventType.DISCOVERY_MADE, _discovery(colony_id), PriorityLevel.HIGH, colony_id
        )
        clock.advance(1)
        service.add_event(
            AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.CRITICAL, uuid4()
        )

        assert len(service.get_event_history()) == 2
        mine = service.get_event_history(EventHistoryFilter(colony_id=colony_id))
        assert len(mine) == 1
        critical = service.get_event_history(
            EventHistoryFilter(min_priority=PriorityLevel.CRITICAL)
        )
        assert len(critical) == 1
        assert critical[0].colony_id != colony_id

    def test_history_newest_first(self, clock) -> None:
        """History is ordered newest first."""
        service = EventService(clock=clock)
        first = service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.HIGH)
        clock.advance(5)
        second = service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.HIGH)

        assert [e.id for e in service.get_event_history()] == [second.id, first.id]

    def test_statistics(self, clock) -> None:
        """Statistics count archived events by type and priority."""
        service = EventService(clock=clock)
        service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.HIGH)
        service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.LOW)

        stats = service.get_event_statistics()

        assert stats.total_events == 1
        assert stats.events_in_queue == 1
        assert stats.events_by_type == {"discovery_made": 1}
        assert stats.events_by_priority == {"high": 1}
        assert stats.average_processing_seconds == 0.0

    def test_history_is_bounded(self, clock) -> None:
        """Only the most recent events are archived."""
        service = EventService(config=EventServiceConfig(max_history=3), clock=clock)
        for _ in range(5):
            service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.HIGH)

        assert len(service.get_event_history()) == 3


# =============================================================================
# Background drain
# =============================================================================


class TestBackgroundDrain:
    """Tests for the drain thread."""

    def test_background_thread_processes_queue(self) -> None:
        """Queued events are handled by the drain thread."""
        service = EventService()
        done = threading.Event()
        service.subscribe(AIEventType.DISCOVERY_MADE, lambda e: done.set())

        service.start()
        try:
            assert service.running
            service.add_event(AIEventType.DISCOVERY_MADE, _discovery(), PriorityLevel.LOW)
            assert done.wait(timeout=5)
        finally:
            service.stop(timeout=5)

        assert not service.running
