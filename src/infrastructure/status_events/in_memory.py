from copy import deepcopy
from threading import Lock
from typing import Any, Mapping, Optional

from src.core.notifications.publisher import StatusEventPublisher, StatusEventPublishError


class InMemoryStatusEventPublisher(StatusEventPublisher):
    def __init__(self) -> None:
        self._lock = Lock()
        self._messages: list[tuple[str, dict[str, Any]]] = []
        self._failure: Optional[str] = None

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        with self._lock:
            if self._failure is not None:
                raise StatusEventPublishError(self._failure)
            self._messages.append((topic, deepcopy(dict(payload))))

    def close(self) -> None:
        return None

    def set_publish_failure(self, reason: Optional[str]) -> None:
        """Make every publish raise until reset with ``None``."""
        with self._lock:
            self._failure = reason

    @property
    def messages(self) -> list[tuple[str, dict[str, Any]]]:
        with self._lock:
            return deepcopy(self._messages)
