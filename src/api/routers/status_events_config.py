import os
from typing import cast

from src.core.notifications.notifier import DEFAULT_STATUS_EVENT_TOPIC
from src.core.notifications.publisher import StatusEventPublisher
from src.infrastructure.status_events import (
    InMemoryStatusEventPublisher,
    LoggingStatusEventPublisher,
    RabbitMqStatusEventPublisher,
)
from src.infrastructure.status_events.rabbitmq import DEFAULT_QUEUE_NAME

_PUBLISHER_BACKENDS = {"LOGGING", "IN_MEMORY", "RABBITMQ"}


def status_event_publisher_backend_name() -> str:
    backend = os.getenv("STATUS_EVENT_PUBLISHER_BACKEND", "LOGGING").strip().upper()
    return backend if backend in _PUBLISHER_BACKENDS else "LOGGING"


def status_event_topic() -> str:
    return os.getenv("STATUS_EVENT_TOPIC", "").strip() or DEFAULT_STATUS_EVENT_TOPIC


def rabbitmq_settings() -> dict[str, object]:
    port = os.getenv("RABBITMQ_PORT", "5672").strip()
    try:
        resolved_port = int(port)
    except ValueError as exc:
        raise RuntimeError("STATUS_EVENT_RABBITMQ_PORT_INVALID") from exc
    return {
        "host": os.getenv("RABBITMQ_HOST", "localhost").strip() or "localhost",
        "port": resolved_port,
        "username": os.getenv("RABBITMQ_USERNAME", "guest"),
        "password": os.getenv("RABBITMQ_PASSWORD", "guest"),
        "virtual_host": os.getenv("RABBITMQ_VIRTUAL_HOST", "/").strip() or "/",
        "queue_name": os.getenv("RABBITMQ_QUEUE", DEFAULT_QUEUE_NAME).strip()
        or DEFAULT_QUEUE_NAME,
    }


def _rabbitmq_connection_exception_types() -> tuple[type[BaseException], ...]:
    types: list[type[BaseException]] = [ConnectionError, OSError, TimeoutError]
    try:
        import pika.exceptions
    except ImportError:
        pass
    else:
        types.append(pika.exceptions.AMQPError)
    return tuple(types)


def build_status_event_publisher() -> StatusEventPublisher:
    backend = status_event_publisher_backend_name()
    if backend == "RABBITMQ":
        settings = rabbitmq_settings()
        try:
            return cast(StatusEventPublisher, RabbitMqStatusEventPublisher(**settings))
        except RuntimeError:
            raise
        except _rabbitmq_connection_exception_types() as exc:
            raise RuntimeError("STATUS_EVENT_RABBITMQ_CONNECTION_FAILED") from exc
    if backend == "IN_MEMORY":
        return cast(StatusEventPublisher, InMemoryStatusEventPublisher())
    return cast(StatusEventPublisher, LoggingStatusEventPublisher())
