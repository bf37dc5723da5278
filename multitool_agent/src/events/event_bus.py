# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Event bus module for session event management."""

import logging

from collections import defaultdict
from typing import Callable, Dict, List

from ..types.event_types import EventType, Event

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class EventBus:
    """
    Publish/subscribe channel between an agent session and its collaborators.

    The rendering layer subscribes to assistant messages and alerts; tests and
    the CLI can read the full event history back. Each session owns its own
    bus, so independent conversations never see each other's events.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[Callable]] = defaultdict(list)
        self._events: List[Event] = []

    async def publish(self, event: Event, publisher_id: str) -> None:
        """Publish an event to the bus.

        Subscriber failures are logged and never reach the publisher.

        Args:
            event: The event to publish
            publisher_id: ID of the publishing session
        """
        logger.debug(f"New event from {publisher_id}: {event.type}")
        event.metadata["publisher_id"] = publisher_id
        self._events.append(event)

        for callback in list(self._subscribers[event.type]):
            try:
                await callback(event)
            except Exception as e:
                logger.error(f"Error in event subscriber {callback}: {e}")

    def subscribe(
        self,
        event_type: EventType | set[EventType] | list[EventType] | tuple[EventType],
        callback: Callable,
    ) -> None:
        """Subscribe to events of a specific type.

        Args:
            event_type: Single EventType or collection of EventTypes to subscribe to
            callback: Async callback function for event handling
        """
        if isinstance(event_type, (set, list, tuple)):
            for et in event_type:
                self._subscribers[et].append(callback)
        else:
            self._subscribers[event_type].append(callback)

    def unsubscribe(
        self,
        event_type: EventType | set[EventType] | list[EventType] | tuple[EventType],
        callback: Callable,
    ) -> None:
        if isinstance(event_type, (set, list, tuple)):
            for et in event_type:
                if callback in self._subscribers[et]:
                    self._subscribers[et].remove(callback)
        elif callback in self._subscribers[event_type]:
            self._subscribers[event_type].remove(callback)

    def get_events(self) -> List[Event]:
        return list(self._events)

    def get_events_by_type(self, event_type: EventType) -> List[Event]:
        return [e for e in self._events if e.type == event_type]

    def clear(self) -> None:
        """Clear all events and subscribers (mainly for testing)."""
        self._events.clear()
        self._subscribers.clear()
