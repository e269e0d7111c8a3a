"""Observer plumbing: a topic event bus and the user-facing notification center."""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from boardide.logging import logger

Listener = Callable[[Any], None]

NOTICE_STATUSES = ("success", "info", "warning", "error")


class EventBus:
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, topic: str, callback: Listener) -> Callable[[], None]:
        """Register callback for topic; returns a function that unsubscribes it."""
        if not callable(callback):
            raise TypeError("Callback must be a function.")
        self._listeners[topic].append(callback)
        return lambda: self.unsubscribe(topic, callback)

    def unsubscribe(self, topic: str, callback: Listener) -> None:
        listeners = self._listeners.get(topic, [])
        if callback in listeners:
            listeners.remove(callback)

    def publish(self, topic: str, payload: Any = None) -> None:
        for callback in list(self._listeners.get(topic, [])):
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Listener for {topic!r} failed")


@dataclass
class Notice:
    message: str
    status: str = "info"
    duration_ms: int = 3000
    group: Optional[str] = None


@dataclass
class NotificationCenter:
    """Transient, dismissible notifications waiting to be shown."""

    bus: Optional[EventBus] = None
    default_duration_ms: int = 3000
    pending: List[Notice] = field(default_factory=list)

    def alert(self, message: str, status: str = "info", duration_ms: Optional[int] = None,
              group: Optional[str] = None) -> Notice:
        if status not in NOTICE_STATUSES:
            status = "info"
        notice = Notice(message, status, duration_ms or self.default_duration_ms, group)
        if group:
            # A new message in a group replaces the previous one
            self.pending = [n for n in self.pending if n.group != group]
        self.pending.append(notice)
        if self.bus:
            self.bus.publish("notice", notice)
        return notice

    def drain(self) -> List[Notice]:
        notices, self.pending = self.pending, []
        return notices
