import json
from types import SimpleNamespace

import pytest

import src.infrastructure.status_events.rabbitmq as rabbitmq_module
from src.core.notifications import StatusEventPublishError
from src.infrastructure.status_events import (
    LoggingStatusEventPublisher,
    RabbitMqStatusEventPublisher,
)


class _FakeChannel:
    def __init__(self, *, fail_publish: bool = False):
        self.declared = []
        self.published = []
        self.is_open = True
        self._fail_publish = fail_publish

    def queue_declare(self, *, queue, durable):
        self.declared.append((queue, durable))

    def basic_publish(self, *, exchange, routing_key, body, properties):
        if self._fail_publish:
            raise ConnectionError("channel closed")
        self.published.append(
            {
                "exchange": exchange,
                "routing_key": routing_key,
                "body": body,
                "properties": properties,
            }
        )

    def close(self):
        self.is_open = False


class _FakeConnection:
    def __init__(self, channel):
        self._channel = channel
        self.is_open = True

    def channel(self):
        return self._channel

    def close(self):
        self.is_open = False


def _fake_pika(connections: list):
    def _blocking_connection(parameters):
        connections.append(parameters)
        return _FakeConnection(_FakeChannel())

    return SimpleNamespace(
        BlockingConnection=_blocking_connection,
        ConnectionParameters=lambda **kwargs: kwargs,
        PlainCredentials=lambda username, password: (username, password),
        BasicProperties=lambda **kwargs: kwargs,
    )


def test_logging_publisher_writes_structured_line(caplog):
    publisher = LoggingStatusEventPublisher()

    with caplog.at_level("INFO", logger="status_events"):
        publisher.publish("proposal.status", {"proposal_id": "pp_001", "new_status": "APPROVED"})

    assert 'status_event {"new_status":"APPROVED","proposal_id":"pp_001"}' in caplog.text
    publisher.close()


def test_rabbitmq_publisher_declares_durable_queue_and_publishes_json(monkeypatch):
    monkeypatch.setattr(rabbitmq_module, "_import_pika", lambda: _fake_pika([]))
    channel = _FakeChannel()
    publisher = RabbitMqStatusEventPublisher(
        queue_name="status.queue.test", connection_factory=lambda: _FakeConnection(channel)
    )

    publisher.publish("proposal.status", {"proposal_id": "pp_001", "new_status": "CONTRACTED"})

    assert publisher.queue_name == "status.queue.test"
    assert channel.declared == [("status.queue.test", True)]
    message = channel.published[0]
    assert message["exchange"] == ""
    assert message["routing_key"] == "status.queue.test"
    assert json.loads(message["body"]) == {"new_status": "CONTRACTED", "proposal_id": "pp_001"}
    assert message["properties"] == {
        "content_type": "application/json",
        "delivery_mode": 2,
        "type": "proposal.status",
    }


def test_rabbitmq_publisher_wraps_broker_failures(monkeypatch):
    monkeypatch.setattr(rabbitmq_module, "_import_pika", lambda: _fake_pika([]))
    publisher = RabbitMqStatusEventPublisher(
        connection_factory=lambda: _FakeConnection(_FakeChannel(fail_publish=True))
    )

    with pytest.raises(StatusEventPublishError) as exc:
        publisher.publish("proposal.status", {"proposal_id": "pp_001"})

    assert str(exc.value) == "STATUS_EVENT_RABBITMQ_PUBLISH_FAILED:status.queue: channel closed"


def test_rabbitmq_publisher_close_releases_open_resources_once():
    channel = _FakeChannel()
    connection = _FakeConnection(channel)
    publisher = RabbitMqStatusEventPublisher(connection_factory=lambda: connection)

    publisher.close()
    publisher.close()

    assert channel.is_open is False
    assert connection.is_open is False


def test_rabbitmq_publisher_opens_blocking_connection_from_settings(monkeypatch):
    connections = []
    monkeypatch.setattr(rabbitmq_module, "find_spec", lambda _name: object())
    monkeypatch.setattr(rabbitmq_module, "_import_pika", lambda: _fake_pika(connections))

    RabbitMqStatusEventPublisher(
        host="broker",
        port=5673,
        username="svc",
        password="secret",
        virtual_host="/proposals",
    )

    assert connections == [
        {
            "host": "broker",
            "port": 5673,
            "virtual_host": "/proposals",
            "credentials": ("svc", "secret"),
            "heartbeat": 60,
            "blocked_connection_timeout": 30,
        }
    ]


def test_rabbitmq_publisher_requires_driver(monkeypatch):
    monkeypatch.setattr(rabbitmq_module, "find_spec", lambda _name: None)

    with pytest.raises(RuntimeError, match="STATUS_EVENT_RABBITMQ_DRIVER_MISSING"):
        RabbitMqStatusEventPublisher()


def _connection_sequence(*channels):
    connections = [_FakeConnection(channel) for channel in channels]
    opened = []

    def _factory():
        connection = connections[len(opened)]
        opened.append(connection)
        return connection

    return _factory, opened


def test_rabbitmq_publisher_reconnects_after_publish_failure(monkeypatch, caplog):
    monkeypatch.setattr(rabbitmq_module, "_import_pika", lambda: _fake_pika([]))
    stale = _FakeChannel(fail_publish=True)
    fresh = _FakeChannel()
    factory, opened = _connection_sequence(stale, fresh)
    publisher = RabbitMqStatusEventPublisher(connection_factory=factory)

    with caplog.at_level("WARNING"):
        publisher.publish("proposal.status", {"proposal_id": "pp_001"})

    assert len(opened) == 2
    assert stale.is_open is False
    assert opened[0].is_open is False
    assert fresh.declared == [("status.queue", True)]
    assert json.loads(fresh.published[0]["body"]) == {"proposal_id": "pp_001"}
    assert "RabbitMQ publish failed, reconnecting. Queue=status.queue" in caplog.text


def test_rabbitmq_publisher_reopens_channel_closed_by_broker(monkeypatch):
    monkeypatch.setattr(rabbitmq_module, "_import_pika", lambda: _fake_pika([]))
    first = _FakeChannel()
    second = _FakeChannel()
    factory, opened = _connection_sequence(first, second)
    publisher = RabbitMqStatusEventPublisher(connection_factory=factory)
    publisher.publish("proposal.status", {"proposal_id": "pp_001"})

    first.is_open = False
    publisher.publish("proposal.status", {"proposal_id": "pp_002"})

    assert len(opened) == 2
    assert [json.loads(message["body"])["proposal_id"] for message in first.published] == [
        "pp_001"
    ]
    assert [json.loads(message["body"])["proposal_id"] for message in second.published] == [
        "pp_002"
    ]


def test_rabbitmq_publisher_does_not_reconnect_after_close(monkeypatch):
    monkeypatch.setattr(rabbitmq_module, "_import_pika", lambda: _fake_pika([]))
    factory, opened = _connection_sequence(_FakeChannel(), _FakeChannel())
    publisher = RabbitMqStatusEventPublisher(connection_factory=factory)
    publisher.close()

    with pytest.raises(StatusEventPublishError, match="publisher closed"):
        publisher.publish("proposal.status", {"proposal_id": "pp_001"})

    assert len(opened) == 1
