"""
src/orchestrator/events.py

Activity channel the orchestration loop publishes to. The UI (or a test)
subscribes and keeps its own view state; the loop never touches rendering.
"""


import threading
from typing import Callable, List

import structlog

from config import AgentType
from orchestrator.models import ActivityEvent, ActivityStatus


logger = structlog.get_logger(__name__)

Subscriber = Callable[[ActivityEvent], None]


class ActivityBus:

    def __init__(self) -> None:

        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register `callback` for every published event. Returns an unsubscribe function."""

        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def on_tool_call(self, callback: Callable[[AgentType, str], None]) -> Callable[[], None]:
        """
        Adapter for the (identity, action) callback shape: fires once per executed
        call, before its result is known.
        """

        def _forward(event: ActivityEvent) -> None:
            if event.status == ActivityStatus.PENDING:
                callback(event.capability, event.action)

        return self.subscribe(_forward)

    def publish(self, event: ActivityEvent) -> None:
        """Fire-and-forget fan-out. A failing subscriber is logged and skipped."""

        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("activity_subscriber_failed", capability=event.capability.value, action=event.action)
