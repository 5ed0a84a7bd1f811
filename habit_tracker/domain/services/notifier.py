"""
In-process fan-out of redemption status changes.

Subscribers register per child and receive one event dict per state
transition, published after the transition commits.
"""
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class RedemptionNotifier:
    def __init__(self) -> None:
        self._listeners: Dict[int, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, child_id: int, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners[child_id].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(child_id, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(child_id, None)

        return unsubscribe

    def subscriber_count(self, child_id: int) -> int:
        with self._lock:
            return len(self._listeners.get(child_id, []))

    def publish(self, child_id: int, event: Dict[str, Any]) -> None:
        with self._lock:
            listeners = list(self._listeners.get(child_id, []))
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                # Listener failures never reach the publisher.
                logger.exception("redemption listener failed child_id=%s", child_id)


notifier = RedemptionNotifier()
