from contextlib import closing
from datetime import datetime
from decimal import Decimal
from importlib.util import find_spec
from typing import Optional

from src.core.common.proposal_status import ProposalStatus
from src.core.proposals.models import ProposalRecord
from src.core.proposals.service import ProposalStateConflictError
from src.infrastructure.postgres_migrations import apply_postgres_migrations


class PostgresProposalRepository:
    def __init__(self, *, dsn: str) -> None:
        if not dsn:
            raise RuntimeError("PROPOSAL_POSTGRES_DSN_REQUIRED")
        if find_spec("psycopg") is None:
            raise RuntimeError("PROPOSAL_POSTGRES_DRIVER_MISSING")
        self._dsn = dsn
        self._init_db()

    def create_proposal(self, proposal: ProposalRecord) -> None:
        query = """
            INSERT INTO proposal_records (
                proposal_id,
                client_name,
                coverage_amount,
                status,
                created_at,
                updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s)
        """
        with closing(self._connect()) as connection:
            connection.execute(
                query,
                (
                    proposal.proposal_id,
                    proposal.client_name,
                    proposal.coverage_amount,
                    proposal.status,
                    proposal.created_at.isoformat(),
                    proposal.updated_at.isoformat(),
                ),
            )
            connection.commit()

    def update_proposal(
        self, proposal: ProposalRecord, *, expected_status: ProposalStatus
    ) -> None:
        # Only status and updated_at are mutable after creation.
        query = """
            UPDATE proposal_records
            SET status = %s, updated_at = %s
            WHERE proposal_id = %s AND status = %s
            RETURNING proposal_id
        """
        with closing(self._connect()) as connection:
            row = connection.execute(
                query,
                (
                    proposal.status,
                    proposal.updated_at.isoformat(),
                    proposal.proposal_id,
                    expected_status,
                ),
            ).fetchone()
            connection.commit()
        if row is None:
            raise ProposalStateConflictError("STATE_CONFLICT: proposal status changed concurrently")

    def get_proposal(self, *, proposal_id: str) -> Optional[ProposalRecord]:
        query = """
            SELECT
                proposal_id,
                client_name,
                coverage_amount,
                status,
                created_at,
                updated_at
            FROM proposal_records
            WHERE proposal_id = %s
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (proposal_id,)).fetchone()
        return _to_proposal(row)

    def list_proposals(self, *, status: Optional[ProposalStatus]) -> list[ProposalRecord]:
        where_sql = "WHERE status = %s" if status is not None else ""
        args: tuple[str, ...] = (status,) if status is not None else ()
        query = f"""
            SELECT
                proposal_id,
                client_name,
                coverage_amount,
                status,
                created_at,
                updated_at
            FROM proposal_records
            {where_sql}
            ORDER BY created_at DESC, proposal_id DESC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, args).fetchall()
        proposals = [_to_proposal(row) for row in rows]
        return [proposal for proposal in proposals if proposal is not None]

    def _connect(self):
        psycopg, dict_row = _import_psycopg()
        return psycopg.connect(self._dsn, row_factory=dict_row)

    def _init_db(self) -> None:
        with closing(self._connect()) as connection:
            apply_postgres_migrations(connection=connection, namespace="proposals")


def _import_psycopg():
    import psycopg
    from psycopg.rows import dict_row

    return psycopg, dict_row


def _to_proposal(row) -> Optional[ProposalRecord]:
    if row is None:
        return None
    return ProposalRecord(
        proposal_id=row["proposal_id"],
        client_name=row["client_name"],
        coverage_amount=Decimal(str(row["coverage_amount"])),
        status=row["status"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )
