from contextlib import closing
from datetime import datetime
from importlib.util import find_spec
from typing import Optional

from src.core.contracts.models import ContractRecord
from src.core.contracts.service import ContractConflictError
from src.infrastructure.postgres_migrations import apply_postgres_migrations


class PostgresContractRepository:
    def __init__(self, *, dsn: str) -> None:
        if not dsn:
            raise RuntimeError("CONTRACT_POSTGRES_DSN_REQUIRED")
        if find_spec("psycopg") is None:
            raise RuntimeError("CONTRACT_POSTGRES_DRIVER_MISSING")
        self._dsn = dsn
        self._init_db()

    def get_contract(self, *, proposal_id: str) -> Optional[ContractRecord]:
        query = """
            SELECT
                proposal_id,
                contract_number,
                contracted_at
            FROM proposal_contracts
            WHERE proposal_id = %s
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (proposal_id,)).fetchone()
        return _to_contract(row)

    def create_contract(self, contract: ContractRecord) -> None:
        # The primary key on proposal_id is the one-contract-per-proposal guard.
        query = """
            INSERT INTO proposal_contracts (
                proposal_id,
                contract_number,
                contracted_at
            ) VALUES (%s, %s, %s)
            ON CONFLICT (proposal_id) DO NOTHING
            RETURNING proposal_id
        """
        with closing(self._connect()) as connection:
            inserted = connection.execute(
                query,
                (
                    contract.proposal_id,
                    contract.contract_number,
                    contract.contracted_at.isoformat(),
                ),
            ).fetchone()
            connection.commit()
        if inserted is None:
            raise ContractConflictError("CONTRACT_ALREADY_EXISTS")

    def _connect(self):
        psycopg, dict_row = _import_psycopg()
        return psycopg.connect(self._dsn, row_factory=dict_row)

    def _init_db(self) -> None:
        with closing(self._connect()) as connection:
            apply_postgres_migrations(connection=connection, namespace="contracts")


def _import_psycopg():
    import psycopg
    from psycopg.rows import dict_row

    return psycopg, dict_row


def _to_contract(row) -> Optional[ContractRecord]:
    if row is None:
        return None
    return ContractRecord(
        proposal_id=row["proposal_id"],
        contract_number=row["contract_number"],
        contracted_at=datetime.fromisoformat(row["contracted_at"]),
    )
