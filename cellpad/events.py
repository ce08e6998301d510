"""
Notifications the engine sends to a view layer.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class NotebookEventType(str, Enum):
    """Kinds of change a view layer mirrors."""
    CELL_CREATED = "cell_created"
    CELL_DELETED = "cell_deleted"
    CELL_MOVED = "cell_moved"
    OUTPUT_APPENDED = "output_appended"
    EXECUTION_STATE_CHANGED = "execution_state_changed"


@dataclass
class NotebookEvent:
    """A single change notification."""
    type: NotebookEventType
    cell_id: str
    data: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[NotebookEvent], None]


class EventBus:
    """Delivers events to subscribed listeners in subscription order.

    A listener that raises is logged and skipped; it never interrupts the
    operation that emitted the event.
    """

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event_type: NotebookEventType, cell_id: str, **data: Any) -> NotebookEvent:
        event = NotebookEvent(type=event_type, cell_id=cell_id, data=data)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed on %s for %s", event_type.value, cell_id)
        return event
