from __future__ import annotations

import os

from src.api.routers.proposals_config import (
    contract_postgres_dsn,
    contract_store_backend_name,
    proposal_postgres_dsn,
    proposal_store_backend_name,
)
from src.api.routers.status_events_config import status_event_publisher_backend_name

_PRODUCTION_PROFILE = "PRODUCTION"
_LOCAL_PROFILE = "LOCAL"


def app_persistence_profile_name() -> str:
    profile = os.getenv("APP_PERSISTENCE_PROFILE", _LOCAL_PROFILE).strip().upper()
    return _PRODUCTION_PROFILE if profile == _PRODUCTION_PROFILE else _LOCAL_PROFILE


def validate_persistence_profile_guardrails() -> None:
    if app_persistence_profile_name() != _PRODUCTION_PROFILE:
        return
    if proposal_store_backend_name() != "POSTGRES":
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_PROPOSAL_POSTGRES")
    if not proposal_postgres_dsn():
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_PROPOSAL_POSTGRES_DSN")
    if contract_store_backend_name() != "POSTGRES":
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_CONTRACT_POSTGRES")
    if not contract_postgres_dsn():
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_CONTRACT_POSTGRES_DSN")
    if status_event_publisher_backend_name() != "RABBITMQ":
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_RABBITMQ_PUBLISHER")
