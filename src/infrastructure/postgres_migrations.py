from __future__ import annotations

import hashlib
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

MIGRATIONS_ROOT = Path(__file__).with_name("postgres_migrations")

_LEDGER_DDL = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version TEXT PRIMARY KEY,
        namespace TEXT NOT NULL,
        checksum TEXT NOT NULL,
        applied_at TEXT NOT NULL
    )
"""


@dataclass(frozen=True)
class SchemaMigration:
    namespace: str
    version: str
    sql: str

    @property
    def ledger_key(self) -> str:
        return f"{self.namespace}:{self.version}"

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.sql.encode("utf-8")).hexdigest()

    def statements(self) -> list[str]:
        return [statement.strip() for statement in self.sql.split(";") if statement.strip()]


def available_migration_namespaces() -> list[str]:
    if not MIGRATIONS_ROOT.exists():
        return []
    return sorted(path.name for path in MIGRATIONS_ROOT.iterdir() if path.is_dir())


def load_schema_migrations(*, namespace: str) -> list[SchemaMigration]:
    namespace_path = MIGRATIONS_ROOT / namespace
    if not namespace_path.is_dir():
        raise RuntimeError(f"POSTGRES_MIGRATIONS_NAMESPACE_NOT_FOUND:{namespace}")
    return [
        SchemaMigration(
            namespace=namespace,
            version=sql_path.stem.split("_", maxsplit=1)[0],
            sql=sql_path.read_text(encoding="utf-8"),
        )
        for sql_path in sorted(namespace_path.glob("*.sql"))
    ]


def pending_postgres_migrations(*, connection: Any, namespace: str) -> list[str]:
    """Versions not yet recorded for ``namespace``.

    Read-only: a database without the ledger table reports every migration.
    """
    migrations = load_schema_migrations(namespace=namespace)
    if not _ledger_exists(connection=connection):
        return [migration.version for migration in migrations]
    recorded = _recorded_checksums(connection=connection, namespace=namespace)
    return [migration.version for migration in _unapplied(migrations, recorded)]


def apply_postgres_migrations(*, connection: Any, namespace: str) -> list[str]:
    """Apply pending forward-only migrations for one namespace.

    Runs under a namespace-scoped advisory lock so concurrently starting
    service instances apply each migration once. A recorded migration whose
    file content changed aborts the run. Returns the versions applied now.
    """
    migrations = load_schema_migrations(namespace=namespace)
    with _namespace_lock(connection=connection, namespace=namespace):
        connection.execute(_LEDGER_DDL)
        recorded = _recorded_checksums(connection=connection, namespace=namespace)
        applied: list[str] = []
        for migration in _unapplied(migrations, recorded):
            for statement in migration.statements():
                connection.execute(statement)
            _record(connection=connection, migration=migration)
            applied.append(migration.version)
        connection.commit()
    return applied


@contextmanager
def _namespace_lock(*, connection: Any, namespace: str) -> Iterator[None]:
    digest = hashlib.sha256(namespace.encode("utf-8")).digest()[:8]
    lock_key = int.from_bytes(digest, byteorder="big", signed=True)
    connection.execute("SELECT pg_advisory_lock(%s::bigint)", (lock_key,))
    try:
        yield
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.execute("SELECT pg_advisory_unlock(%s::bigint)", (lock_key,))


def _ledger_exists(*, connection: Any) -> bool:
    row = connection.execute(
        "SELECT to_regclass('public.schema_migrations') AS regclass"
    ).fetchone()
    return bool(row) and row["regclass"] is not None


def _recorded_checksums(*, connection: Any, namespace: str) -> dict[str, str]:
    rows = connection.execute(
        "SELECT version, checksum FROM schema_migrations WHERE namespace = %s",
        (namespace,),
    ).fetchall()
    return {str(row["version"]): str(row["checksum"]) for row in rows}


def _unapplied(
    migrations: list[SchemaMigration], recorded: dict[str, str]
) -> Iterator[SchemaMigration]:
    for migration in migrations:
        checksum = recorded.get(migration.ledger_key)
        if checksum is None:
            yield migration
        elif checksum != migration.checksum:
            raise RuntimeError(
                "POSTGRES_MIGRATION_CHECKSUM_MISMATCH:"
                f"{migration.namespace}:{migration.version}"
            )


def _record(*, connection: Any, migration: SchemaMigration) -> None:
    connection.execute(
        """
        INSERT INTO schema_migrations (version, namespace, checksum, applied_at)
        VALUES (%s, %s, %s, %s)
        """,
        (
            migration.ledger_key,
            migration.namespace,
            migration.checksum,
            datetime.now(timezone.utc).isoformat(),
        ),
    )
