"""
Unit tests for the engine EventBus.

Covers priority ordering, wildcard patterns, one-time listeners, duplicate
prevention and error isolation.
"""

import pytest

from reputation_engine.core.event_bus import EventBus, ListenerPriority


@pytest.fixture
def bus():
    return EventBus()


@pytest.mark.unit
class TestEventBusDelivery:
    """Test publishing to subscribers."""

    async def test_listener_receives_payload(self, bus):
        """Subscribers get the published payload."""
        # Arrange
        received = []

        async def on_recomputed(data):
            received.append(data)

        bus.subscribe("progression.recomputed", on_recomputed)

        # Act
        await bus.publish("progression.recomputed", {"user_identifier": "u-1"})

        # Assert
        assert received == [{"user_identifier": "u-1"}]

    async def test_priority_order(self, bus):
        """Higher priority listeners run first."""
        # Arrange
        calls = []

        async def low(data):
            calls.append("low")

        async def critical(data):
            calls.append("critical")

        bus.subscribe("reputation.tier_changed", low, priority=ListenerPriority.LOW)
        bus.subscribe("reputation.tier_changed", critical, priority=ListenerPriority.CRITICAL)

        # Act
        await bus.publish("reputation.tier_changed", {})

        # Assert
        assert calls == ["critical", "low"]

    async def test_wildcard_subscription(self, bus):
        """A prefix pattern matches every event in the namespace."""
        # Arrange
        seen = []

        async def audit(data):
            seen.append(data["name"])

        bus.subscribe("progression.*", audit)

        # Act
        await bus.publish("progression.recomputed", {"name": "recomputed"})
        await bus.publish("progression.reset", {"name": "reset"})
        await bus.publish("reputation.tier_changed", {"name": "tier"})

        # Assert
        assert seen == ["recomputed", "reset"]

    async def test_wildcard_middle_segments_must_match(self, bus):
        """Every segment between stars is matched, not just prefix and suffix."""
        # Arrange
        seen = []

        async def audit(data):
            seen.append(data["name"])

        bus.subscribe("progression.*.level*.done", audit)

        # Act
        await bus.publish("progression.user.level_up.done", {"name": "match"})
        await bus.publish("progression.user.tier.done", {"name": "no-level"})
        await bus.publish("progression.done", {"name": "too-short"})

        # Assert
        assert seen == ["match"]
        assert bus.get_listener_count("progression.user.tier.done") == 0

    async def test_sync_callbacks_supported(self, bus):
        """Plain functions run in the executor."""
        # Arrange
        def double(data):
            return data["value"] * 2

        bus.subscribe("progression.recomputed", double)

        # Act
        results = await bus.publish("progression.recomputed", {"value": 21})

        # Assert
        assert results == [42]


@pytest.mark.unit
class TestEventBusRegistration:
    """Test subscription management."""

    async def test_once_listener_unsubscribes(self, bus):
        """A one-time listener fires once."""
        # Arrange
        calls = []

        async def first_level_up(data):
            calls.append(data)

        bus.subscribe("progression.leveled_up", first_level_up, once=True)

        # Act
        await bus.publish("progression.leveled_up", {"level": 2})
        await bus.publish("progression.leveled_up", {"level": 3})

        # Assert
        assert calls == [{"level": 2}]
        assert bus.get_listener_count("progression.leveled_up") == 0

    def test_duplicate_identifier_prevented(self, bus):
        """The same identifier is registered only once per event."""
        # Arrange
        async def listener(data):
            return None

        # Act
        bus.subscribe("progression.reset", listener, identifier="audit")
        bus.subscribe("progression.reset", listener, identifier="audit")

        # Assert
        assert bus.get_listener_count("progression.reset") == 1

    def test_unsubscribe(self, bus):
        """Unsubscribing removes the listener."""
        # Arrange
        async def listener(data):
            return None

        bus.subscribe("progression.reset", listener, identifier="audit")

        # Act
        removed = bus.unsubscribe("progression.reset", "audit")

        # Assert
        assert removed is True
        assert bus.get_listener_count("progression.reset") == 0

    def test_all_events_lists_names_and_patterns(self, bus):
        """Exact names and wildcard patterns are both reported."""
        # Arrange
        async def listener(data):
            return None

        bus.subscribe("reputation.tier_changed", listener)
        bus.subscribe("progression.*", listener)

        # Act
        events = bus.get_all_events()

        # Assert
        assert events == ["progression.*", "reputation.tier_changed"]

    def test_buses_do_not_share_listeners(self):
        """Each bus owns its listeners."""
        # Arrange
        first, second = EventBus(), EventBus()

        async def listener(data):
            return None

        # Act
        first.subscribe("progression.reset", listener)

        # Assert
        assert second.get_listener_count("progression.reset") == 0


@pytest.mark.unit
class TestEventBusErrorIsolation:
    """Test that failing listeners do not affect others."""

    async def test_failing_listener_is_isolated(self, bus):
        """An exception is counted and later listeners still run."""
        # Arrange
        calls = []

        async def broken(data):
            raise RuntimeError("listener failure")

        async def healthy(data):
            calls.append("healthy")
            return "ok"

        bus.subscribe("progression.recomputed", broken, priority=ListenerPriority.HIGH)
        bus.subscribe("progression.recomputed", healthy)

        # Act
        results = await bus.publish("progression.recomputed", {})

        # Assert
        assert results == [None, "ok"]
        assert calls == ["healthy"]
        summary = bus.get_metrics_summary()
        assert summary["total_errors"] == 1
        assert summary["errors_by_event"] == {"progression.recomputed": 1}
