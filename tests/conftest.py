"""
FILE: tests/conftest.py
Shared fixtures for proposal contracting tests.
"""

from pathlib import Path

import pytest

from src.api.routers.proposals import reset_proposal_workflow_service_for_tests
from src.core.notifications import StatusEventNotifier
from src.infrastructure.contracts import InMemoryContractRepository
from src.infrastructure.proposals import InMemoryProposalRepository
from src.infrastructure.status_events import InMemoryStatusEventPublisher

_RUNTIME_ENV_VARS = (
    "APP_PERSISTENCE_PROFILE",
    "PROPOSAL_STORE_BACKEND",
    "PROPOSAL_POSTGRES_DSN",
    "CONTRACT_STORE_BACKEND",
    "CONTRACT_POSTGRES_DSN",
    "PROPOSAL_STRICT_TRANSITIONS",
    "PROPOSAL_ALLOW_DIRECT_CONTRACTED_STATUS",
    "STATUS_EVENT_TOPIC",
    "RABBITMQ_HOST",
    "RABBITMQ_PORT",
    "RABBITMQ_QUEUE",
)


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if _has_marker(item, "unit") or _has_marker(item, "integration"):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path or "_integration.py" in path:
            item.add_marker(pytest.mark.integration)
            continue
        item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def in_memory_runtime_test_harness(monkeypatch: pytest.MonkeyPatch):
    """Run the API against in-memory stores and a capturing status event publisher."""

    for name in _RUNTIME_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STATUS_EVENT_PUBLISHER_BACKEND", "IN_MEMORY")
    reset_proposal_workflow_service_for_tests()
    yield
    reset_proposal_workflow_service_for_tests()


@pytest.fixture
def proposal_repository() -> InMemoryProposalRepository:
    return InMemoryProposalRepository()


@pytest.fixture
def contract_repository() -> InMemoryContractRepository:
    return InMemoryContractRepository()


@pytest.fixture
def status_publisher() -> InMemoryStatusEventPublisher:
    return InMemoryStatusEventPublisher()


@pytest.fixture
def status_notifier(status_publisher: InMemoryStatusEventPublisher) -> StatusEventNotifier:
    return StatusEventNotifier(publisher=status_publisher, topic="proposal.status")
