import pytest

from src.infrastructure.postgres_migrations import (
    apply_postgres_migrations,
    available_migration_namespaces,
    pending_postgres_migrations,
)


class _FakeCursor:
    def __init__(self, rows=None):
        self._rows = rows or []

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)


class _FakeConnection:
    def __init__(self):
        self.statements = []
        self.schema_migrations = {}
        self.ledger_created = False
        self.commits = 0
        self.rollbacks = 0

    def execute(self, query, args=None):
        sql = " ".join(str(query).split())
        self.statements.append(sql)
        if sql.startswith("CREATE TABLE IF NOT EXISTS schema_migrations"):
            self.ledger_created = True
        if "to_regclass('public.schema_migrations')" in sql:
            return _FakeCursor(
                rows=[{"regclass": "schema_migrations" if self.ledger_created else None}]
            )
        if "FROM schema_migrations" in sql:
            return _FakeCursor(
                rows=[
                    {"version": version, "checksum": checksum}
                    for (namespace, version), checksum in sorted(self.schema_migrations.items())
                    if namespace == args[0]
                ]
            )
        if "INSERT INTO schema_migrations" in sql:
            self.schema_migrations[(args[1], args[0])] = args[2]
        return _FakeCursor()

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


def test_available_migration_namespaces():
    assert available_migration_namespaces() == ["contracts", "proposals"]


def test_apply_migrations_is_idempotent_and_locked():
    connection = _FakeConnection()

    first = apply_postgres_migrations(connection=connection, namespace="proposals")
    second = apply_postgres_migrations(connection=connection, namespace="proposals")

    assert first == ["0001"]
    assert second == []
    assert connection.statements[0] == "SELECT pg_advisory_lock(%s::bigint)"
    assert connection.statements[-1] == "SELECT pg_advisory_unlock(%s::bigint)"
    assert any(
        statement.startswith("CREATE TABLE IF NOT EXISTS proposal_records")
        for statement in connection.statements
    )
    assert any(
        statement.startswith("CREATE INDEX IF NOT EXISTS idx_proposal_records_status_created")
        for statement in connection.statements
    )
    assert connection.commits == 2


def test_apply_migrations_rejects_checksum_drift():
    connection = _FakeConnection()
    connection.schema_migrations[("contracts", "contracts:0001")] = "sha256-of-something-else"

    with pytest.raises(RuntimeError, match="POSTGRES_MIGRATION_CHECKSUM_MISMATCH:contracts:0001"):
        apply_postgres_migrations(connection=connection, namespace="contracts")

    assert connection.rollbacks == 1
    assert connection.statements[-1] == "SELECT pg_advisory_unlock(%s::bigint)"


def test_apply_migrations_unknown_namespace():
    connection = _FakeConnection()

    with pytest.raises(RuntimeError, match="POSTGRES_MIGRATIONS_NAMESPACE_NOT_FOUND:unknown"):
        apply_postgres_migrations(connection=connection, namespace="unknown")


def test_pending_migrations_on_fresh_database_is_read_only():
    connection = _FakeConnection()

    pending = pending_postgres_migrations(connection=connection, namespace="proposals")

    assert pending == ["0001"]
    assert connection.ledger_created is False
    assert not any(statement.startswith("CREATE") for statement in connection.statements)
    assert connection.commits == 0


def test_pending_migrations_reads_ledger_after_apply():
    connection = _FakeConnection()
    apply_postgres_migrations(connection=connection, namespace="proposals")
    statements_before_check = len(connection.statements)

    pending = pending_postgres_migrations(connection=connection, namespace="proposals")

    assert pending == []
    assert not any(
        statement.startswith("CREATE")
        for statement in connection.statements[statements_before_check:]
    )


def test_pending_migrations_rejects_checksum_drift():
    connection = _FakeConnection()
    connection.ledger_created = True
    connection.schema_migrations[("proposals", "proposals:0001")] = "sha256-of-something-else"

    with pytest.raises(RuntimeError, match="POSTGRES_MIGRATION_CHECKSUM_MISMATCH:proposals:0001"):
        pending_postgres_migrations(connection=connection, namespace="proposals")
