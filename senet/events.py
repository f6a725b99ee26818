from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List

from loguru import logger


class EventType(str, Enum):
    STICKS_THROWN = "sticks_thrown"
    TURN_CHANGED = "turn_changed"
    TURN_PASSED = "turn_passed"
    MOVE_APPLIED = "move_applied"
    SPECIAL_SQUARE_TRIGGERED = "special_square_triggered"
    GAME_FINISHED = "game_finished"


@dataclass(slots=True)
class Event:
    event_type: EventType
    game_id: str
    payload: Dict[str, Any] = field(default_factory=dict)


EventHandler = Callable[[Event], None]


class EventBus:
    """Synchronous publish/subscribe for engine events."""

    def __init__(self) -> None:
        self._subscribers: Dict[EventType, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: EventType, callback: EventHandler) -> None:
        self._subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: EventType, callback: EventHandler) -> None:
        if callback in self._subscribers[event_type]:
            self._subscribers[event_type].remove(callback)

    def publish(self, event: Event) -> None:
        for callback in list(self._subscribers[event.event_type]):
            try:
                callback(event)
            except Exception:
                # state is already committed when handlers run
                logger.exception(f"Event handler error for {event.event_type.value}")
