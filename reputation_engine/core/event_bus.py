"""
Async pub/sub event bus for engine notifications.

Features:
- Priority-based listener execution (CRITICAL > HIGH > NORMAL > LOW)
- Error isolation - exceptions are logged and counted, other listeners still run
- Metrics tracking (events published, errors by event, listener count)
- One-time listeners (automatically unsubscribe after first execution)
- Duplicate prevention (same identifier registered twice for one event)
- Wildcard event patterns (e.g., "progression.*" matches all progression events)
- Sync callback support (runs in executor to avoid blocking)

Architecture:
- Instance-based: each engine wiring owns its bus, so tests and embedded
  deployments never share listeners through class state
- Sequential execution ordered by priority (predictable order)
- Publishing happens after state is persisted; a failing listener cannot
  undo or corrupt a committed recompute

Usage:
    bus = EventBus()
    bus.subscribe("reputation.tier_changed", notify_user, priority=ListenerPriority.HIGH)
    bus.subscribe("progression.*", audit_progression)

    await bus.publish("progression.recomputed", {"user_identifier": "u-1", ...})

    stats = bus.get_metrics_summary()
    # {"total_events_published": 12, "error_rate": 0.0, ...}
"""

import asyncio
import fnmatch
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from reputation_engine.core.logging.logger import get_logger

logger = get_logger(__name__)


class ListenerPriority(Enum):
    """Priority levels for event listeners."""
    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


@dataclass
class EventListener:
    """Represents a registered event listener."""
    callback: Callable[[Dict[str, Any]], Any]
    priority: ListenerPriority
    identifier: str
    once: bool = False


@dataclass
class EventMetrics:
    """Metrics for event bus operations."""
    events_published: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    listener_errors: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    total_listeners: int = 0

    def record_publish(self, event_name: str):
        self.events_published[event_name] += 1

    def record_error(self, event_name: str):
        self.listener_errors[event_name] += 1

    def get_summary(self) -> Dict[str, Any]:
        """Get formatted metrics summary."""
        published = sum(self.events_published.values())
        errors = sum(self.listener_errors.values())
        return {
            "total_events_published": published,
            "events_by_type": dict(self.events_published),
            "total_errors": errors,
            "errors_by_event": dict(self.listener_errors),
            "total_listeners": self.total_listeners,
            "error_rate": errors / max(1, published) * 100,
        }


class EventBus:
    """
    Async pub/sub event bus.

    Listeners receive the event payload dict. Return values are collected
    and returned from `publish` (None for a listener that raised).
    """

    def __init__(self, enable_metrics: bool = True) -> None:
        self._listeners: Dict[str, List[EventListener]] = {}
        self._wildcard_listeners: List[Tuple[str, EventListener]] = []
        self._metrics: Optional[EventMetrics] = EventMetrics() if enable_metrics else None

    def subscribe(
        self,
        event_name: str,
        callback: Callable[[Dict[str, Any]], Any],
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event.

        Args:
            event_name: Event to subscribe to (supports wildcards with '*')
            callback: Async or sync function to call when event fires
            priority: Execution priority (lower values execute first)
            identifier: Unique identifier for this listener (auto-generated if None)
            once: If True, automatically unsubscribe after first execution
            allow_duplicates: If False, prevents registering same identifier twice

        Returns:
            Listener identifier for later unsubscription
        """
        if identifier is None:
            identifier = f"{callback.__module__}.{callback.__qualname__}"

        listener = EventListener(
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )

        if not allow_duplicates and self._is_registered(event_name, identifier):
            logger.warning(
                f"Duplicate listener prevented: {identifier} for event {event_name}"
            )
            return identifier

        if "*" in event_name:
            self._wildcard_listeners.append((event_name, listener))
            self._wildcard_listeners.sort(key=lambda x: x[1].priority.value)
        else:
            self._listeners.setdefault(event_name, []).append(listener)
            self._listeners[event_name].sort(key=lambda l: l.priority.value)

        if self._metrics:
            self._metrics.total_listeners += 1

        logger.debug(
            f"Subscribed {identifier} to {event_name} with priority {priority.name}"
        )

        return identifier

    def _is_registered(self, event_name: str, identifier: str) -> bool:
        if "*" in event_name:
            return any(
                pattern == event_name and l.identifier == identifier
                for pattern, l in self._wildcard_listeners
            )
        return any(l.identifier == identifier for l in self._listeners.get(event_name, []))

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        """
        Unsubscribe a listener from an event.

        Returns:
            True if listener was found and removed
        """
        if event_name in self._listeners:
            original_count = len(self._listeners[event_name])
            self._listeners[event_name] = [
                l for l in self._listeners[event_name] if l.identifier != identifier
            ]
            if len(self._listeners[event_name]) < original_count:
                if self._metrics:
                    self._metrics.total_listeners -= 1
                logger.debug(f"Unsubscribed {identifier} from {event_name}")
                return True

        original_count = len(self._wildcard_listeners)
        self._wildcard_listeners = [
            (pattern, l)
            for pattern, l in self._wildcard_listeners
            if not (pattern == event_name and l.identifier == identifier)
        ]
        if len(self._wildcard_listeners) < original_count:
            if self._metrics:
                self._metrics.total_listeners -= 1
            logger.debug(f"Unsubscribed {identifier} from wildcard {event_name}")
            return True

        return False

    def clear(self) -> None:
        """Remove all listeners from all events."""
        self._listeners.clear()
        self._wildcard_listeners.clear()
        if self._metrics:
            self._metrics.total_listeners = 0
        logger.info("EventBus cleared - all listeners removed")

    async def publish(self, event_name: str, data: Dict[str, Any]) -> List[Any]:
        """
        Publish an event to all subscribed listeners.

        Args:
            event_name: Event to publish
            data: Event payload

        Returns:
            List of return values from listeners
        """
        if self._metrics:
            self._metrics.record_publish(event_name)

        listeners_to_execute: List[Tuple[str, EventListener]] = [
            (event_name, l) for l in self._listeners.get(event_name, [])
        ]
        for pattern, listener in self._wildcard_listeners:
            if self._matches_wildcard(event_name, pattern):
                listeners_to_execute.append((pattern, listener))

        listeners_to_execute.sort(key=lambda x: x[1].priority.value)

        if not listeners_to_execute:
            logger.debug(f"No listeners for event: {event_name}")
            return []

        logger.debug(
            f"Executing {len(listeners_to_execute)} listener(s) for {event_name}",
            extra={"event_name": event_name, "event_data_keys": list(data.keys())},
        )

        return await self._execute_listeners(event_name, data, listeners_to_execute)

    async def _execute_listeners(
        self,
        event_name: str,
        data: Dict[str, Any],
        listeners: List[Tuple[str, EventListener]],
    ) -> List[Any]:
        """Execute listeners sequentially with error isolation."""
        results: List[Any] = []
        listeners_to_remove: List[Tuple[str, EventListener]] = []

        for registered_as, listener in listeners:
            try:
                if asyncio.iscoroutinefunction(listener.callback):
                    result = await listener.callback(data)
                else:
                    loop = asyncio.get_running_loop()
                    result = await loop.run_in_executor(None, listener.callback, data)

                results.append(result)

                if listener.once:
                    listeners_to_remove.append((registered_as, listener))

            except Exception as e:
                if self._metrics:
                    self._metrics.record_error(event_name)

                logger.exception(
                    f"Error in listener {listener.identifier} for event {event_name}: {e}",
                    extra={
                        "event_name": event_name,
                        "listener_id": listener.identifier,
                        "error_type": type(e).__name__,
                    },
                )
                results.append(None)

        for registered_as, listener in listeners_to_remove:
            self.unsubscribe(registered_as, listener.identifier)

        return results

    @staticmethod
    def _matches_wildcard(event_name: str, pattern: str) -> bool:
        """Check if event name matches wildcard pattern; each ``*`` spans any run of characters."""
        if pattern == "*":
            return True

        if "*" not in pattern:
            return event_name == pattern

        return fnmatch.fnmatchcase(event_name, pattern)

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get formatted metrics summary, or empty dict if metrics disabled."""
        if self._metrics:
            return self._metrics.get_summary()
        return {}

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        """
        Get count of registered listeners.

        Args:
            event_name: If provided, count for specific event. Otherwise total count.
        """
        if event_name:
            count = len(self._listeners.get(event_name, []))
            count += sum(
                1
                for pattern, _ in self._wildcard_listeners
                if self._matches_wildcard(event_name, pattern)
            )
            return count
        return self._metrics.total_listeners if self._metrics else 0

    def get_all_events(self) -> List[str]:
        """Get sorted list of all event names and patterns with listeners."""
        events = list(self._listeners.keys())
        events.extend(pattern for pattern, _ in self._wildcard_listeners)
        return sorted(set(events))
