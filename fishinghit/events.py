"""
A small in-process event bus.

Platform callbacks (push token registration, attribution data, deep links,
opened notifications) are posted here as topic + payload mapping, and the
launch coordinator subscribes to the topics it needs.
"""
# fishinghit/events.py

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Mapping

from fishinghit.logging_config import get_logger

logger = get_logger(__name__)

PUSH_TOKEN_RECEIVED = "push-token-received"
ATTRIBUTION_DATA_RECEIVED = "attribution-data-received"
DEEP_LINK_RECEIVED = "deep-link-received"
PUSH_OPENED = "push-opened"

Handler = Callable[[Mapping], None]


class EventBus:
    """Delivers posted payloads synchronously to every subscriber of a topic."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, topic: str, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.setdefault(topic, [])
            if handler not in handlers:
                handlers.append(handler)

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

    def post(self, topic: str, payload: Mapping = None) -> int:
        """Delivers `payload` to the topic's subscribers.

        A handler that raises is logged and skipped.

        Returns:
            int: The number of handlers that ran without error.
        """
        with self._lock:
            handlers = list(self._handlers.get(topic, []))
        delivered = 0
        for handler in handlers:
            try:
                handler(dict(payload or {}))
                delivered += 1
            except Exception:
                logger.exception("Handler for %s failed", topic)
        return delivered
