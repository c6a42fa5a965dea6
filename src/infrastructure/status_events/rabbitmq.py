import json
import logging
from functools import partial
from importlib.util import find_spec
from threading import Lock
from typing import Any, Callable, Mapping, Optional

from src.core.notifications.publisher import StatusEventPublisher, StatusEventPublishError

DEFAULT_QUEUE_NAME = "status.queue"
PERSISTENT_DELIVERY_MODE = 2
_PUBLISH_ATTEMPTS = 2

logger = logging.getLogger(__name__)


class RabbitMqStatusEventPublisher(StatusEventPublisher):
    """Publishes status events to a durable RabbitMQ queue via the default exchange.

    The connection is opened at construction and released by ``close``; its
    lifecycle belongs to the application, not to the services that publish.
    A channel or connection dropped by the broker is reopened on the next
    publish, and a publish that fails on a stale channel is retried once on a
    fresh one.
    """

    def __init__(
        self,
        *,
        host: str = "localhost",
        port: int = 5672,
        username: str = "guest",
        password: str = "guest",
        virtual_host: str = "/",
        queue_name: str = DEFAULT_QUEUE_NAME,
        connection_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        if connection_factory is None:
            if find_spec("pika") is None:
                raise RuntimeError("STATUS_EVENT_RABBITMQ_DRIVER_MISSING")
            connection_factory = partial(
                _open_blocking_connection,
                host=host,
                port=port,
                username=username,
                password=password,
                virtual_host=virtual_host,
            )
        self._queue_name = queue_name
        self._connection_factory = connection_factory
        self._connection: Any = None
        self._channel: Any = None
        self._closed = False
        # BlockingConnection channels are not thread-safe.
        self._lock = Lock()
        with self._lock:
            self._ensure_channel()

    @property
    def queue_name(self) -> str:
        return self._queue_name

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        pika = _import_pika()
        body = json.dumps(dict(payload), separators=(",", ":"), sort_keys=True).encode("utf-8")
        properties = pika.BasicProperties(
            content_type="application/json",
            delivery_mode=PERSISTENT_DELIVERY_MODE,
            type=topic,
        )
        with self._lock:
            for attempt in range(1, _PUBLISH_ATTEMPTS + 1):
                try:
                    self._ensure_channel().basic_publish(
                        exchange="",
                        routing_key=self._queue_name,
                        body=body,
                        properties=properties,
                    )
                    return
                except Exception as exc:
                    self._release()
                    if self._closed or attempt == _PUBLISH_ATTEMPTS:
                        raise StatusEventPublishError(
                            f"STATUS_EVENT_RABBITMQ_PUBLISH_FAILED:{self._queue_name}: {exc}"
                        ) from exc
                    logger.warning(
                        "RabbitMQ publish failed, reconnecting. Queue=%s Error=%s",
                        self._queue_name,
                        exc,
                    )

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._release()

    def _ensure_channel(self) -> Any:
        if self._closed:
            raise RuntimeError("publisher closed")
        if _is_open(self._channel) and _is_open(self._connection):
            return self._channel
        self._release()
        self._connection = self._connection_factory()
        self._channel = self._connection.channel()
        self._channel.queue_declare(queue=self._queue_name, durable=True)
        return self._channel

    def _release(self) -> None:
        for resource in (self._channel, self._connection):
            if not _is_open(resource):
                continue
            try:
                resource.close()
            except Exception:
                logger.warning("RabbitMQ resource close failed.", exc_info=True)
        self._channel = None
        self._connection = None


def _open_blocking_connection(
    *, host: str, port: int, username: str, password: str, virtual_host: str
) -> Any:
    pika = _import_pika()
    logger.info(
        "Connecting to RabbitMQ. Host=%s Port=%s VirtualHost=%s",
        host,
        port,
        virtual_host,
    )
    return pika.BlockingConnection(
        pika.ConnectionParameters(
            host=host,
            port=port,
            virtual_host=virtual_host,
            credentials=pika.PlainCredentials(username, password),
            heartbeat=60,
            blocked_connection_timeout=30,
        )
    )


def _is_open(resource: Optional[Any]) -> bool:
    return resource is not None and bool(getattr(resource, "is_open", True))


def _import_pika():
    import pika

    return pika
