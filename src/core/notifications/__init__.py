from src.core.notifications.models import (
    STATUS_CHANGE_EVENT_TYPE,
    StatusChangeEvent,
    StatusNotificationOutcome,
)
from src.core.notifications.notifier import DEFAULT_STATUS_EVENT_TOPIC, StatusEventNotifier
from src.core.notifications.publisher import StatusEventPublisher, StatusEventPublishError

__all__ = [
    "DEFAULT_STATUS_EVENT_TOPIC",
    "STATUS_CHANGE_EVENT_TYPE",
    "StatusChangeEvent",
    "StatusEventNotifier",
    "StatusEventPublishError",
    "StatusEventPublisher",
    "StatusNotificationOutcome",
]
