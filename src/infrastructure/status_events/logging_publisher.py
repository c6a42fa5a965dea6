import json
import logging
from typing import Any, Mapping

from src.core.notifications.publisher import StatusEventPublisher

logger = logging.getLogger("status_events")


class LoggingStatusEventPublisher(StatusEventPublisher):
    """Publishes status events as structured log lines for local runs without a broker."""

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        logger.info(
            "status_event %s",
            json.dumps(dict(payload), separators=(",", ":"), sort_keys=True),
            extra={"extra_fields": {"topic": topic, "event": dict(payload)}},
        )

    def close(self) -> None:
        return None
