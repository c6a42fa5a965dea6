import os
from typing import cast

from src.core.contracts.repository import ContractRepository
from src.core.proposals.repository import ProposalRepository
from src.infrastructure.contracts import InMemoryContractRepository, PostgresContractRepository
from src.infrastructure.proposals import InMemoryProposalRepository, PostgresProposalRepository


def _backend_name(env_name: str, default: str) -> str:
    backend = os.getenv(env_name, default).strip().upper()
    return "POSTGRES" if backend == "POSTGRES" else "IN_MEMORY"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def proposal_store_backend_name() -> str:
    return _backend_name("PROPOSAL_STORE_BACKEND", "IN_MEMORY")


def proposal_postgres_dsn() -> str:
    return os.getenv("PROPOSAL_POSTGRES_DSN", "").strip()


def contract_store_backend_name() -> str:
    return _backend_name("CONTRACT_STORE_BACKEND", proposal_store_backend_name())


def contract_postgres_dsn() -> str:
    return os.getenv("CONTRACT_POSTGRES_DSN", "").strip() or proposal_postgres_dsn()


def strict_transitions_enabled() -> bool:
    return _env_flag("PROPOSAL_STRICT_TRANSITIONS", False)


def direct_contracted_status_allowed() -> bool:
    return _env_flag("PROPOSAL_ALLOW_DIRECT_CONTRACTED_STATUS", False)


def _postgres_connection_exception_types() -> tuple[type[BaseException], ...]:
    types: list[type[BaseException]] = [
        ConnectionError,
        OSError,
        TimeoutError,
        TypeError,
        ValueError,
    ]
    try:
        import psycopg
    except ImportError:
        pass
    else:
        types.append(psycopg.Error)
    return tuple(types)


def build_repository() -> ProposalRepository:
    if proposal_store_backend_name() == "POSTGRES":
        dsn = proposal_postgres_dsn()
        if not dsn:
            raise RuntimeError("PROPOSAL_POSTGRES_DSN_REQUIRED")
        try:
            return cast(ProposalRepository, PostgresProposalRepository(dsn=dsn))
        except RuntimeError:
            raise
        except _postgres_connection_exception_types() as exc:
            raise RuntimeError("PROPOSAL_POSTGRES_CONNECTION_FAILED") from exc
    return cast(ProposalRepository, InMemoryProposalRepository())


def build_contract_repository() -> ContractRepository:
    if contract_store_backend_name() == "POSTGRES":
        dsn = contract_postgres_dsn()
        if not dsn:
            raise RuntimeError("CONTRACT_POSTGRES_DSN_REQUIRED")
        try:
            return cast(ContractRepository, PostgresContractRepository(dsn=dsn))
        except RuntimeError:
            raise
        except _postgres_connection_exception_types() as exc:
            raise RuntimeError("CONTRACT_POSTGRES_CONNECTION_FAILED") from exc
    return cast(ContractRepository, InMemoryContractRepository())
