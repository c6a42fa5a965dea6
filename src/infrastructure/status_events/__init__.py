from src.infrastructure.status_events.in_memory import InMemoryStatusEventPublisher
from src.infrastructure.status_events.logging_publisher import LoggingStatusEventPublisher
from src.infrastructure.status_events.rabbitmq import RabbitMqStatusEventPublisher

__all__ = [
    "InMemoryStatusEventPublisher",
    "LoggingStatusEventPublisher",
    "RabbitMqStatusEventPublisher",
]
