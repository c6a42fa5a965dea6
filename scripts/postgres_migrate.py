import argparse
import os
import sys
from importlib.util import find_spec
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

_NAMESPACES = ("proposals", "contracts")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Apply or check forward-only PostgreSQL migrations for the proposal "
        "and contract stores."
    )
    parser.add_argument(
        "--target",
        choices=[*_NAMESPACES, "all"],
        default="all",
        help="Store whose migrations to process.",
    )
    parser.add_argument(
        "--proposals-dsn",
        default=os.getenv("PROPOSAL_POSTGRES_DSN", "").strip(),
        help="Proposal store DSN. Defaults to PROPOSAL_POSTGRES_DSN.",
    )
    parser.add_argument(
        "--contracts-dsn",
        default=os.getenv("CONTRACT_POSTGRES_DSN", "").strip(),
        help="Contract store DSN. Defaults to CONTRACT_POSTGRES_DSN, then the proposal DSN.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only report pending migrations; exit 1 when any are pending.",
    )
    args = parser.parse_args()

    targets = _resolve_targets(args.target, args.proposals_dsn, args.contracts_dsn)
    for namespace, dsn in targets:
        if not dsn:
            raise RuntimeError(f"POSTGRES_MIGRATION_DSN_REQUIRED:{namespace}")
    if find_spec("psycopg") is None:
        raise RuntimeError("POSTGRES_MIGRATION_DRIVER_MISSING")
    import psycopg
    from psycopg.rows import dict_row

    from src.infrastructure.postgres_migrations import (
        apply_postgres_migrations,
        pending_postgres_migrations,
    )

    outstanding = False
    for namespace, dsn in targets:
        with psycopg.connect(dsn, row_factory=dict_row) as connection:
            if args.check:
                versions = pending_postgres_migrations(connection=connection, namespace=namespace)
                connection.rollback()
                outstanding = outstanding or bool(versions)
                print(f"namespace={namespace} pending={','.join(versions) or 'none'}")
            else:
                versions = apply_postgres_migrations(connection=connection, namespace=namespace)
                print(f"namespace={namespace} applied={','.join(versions) or 'none'}")
    return 1 if outstanding else 0


def _resolve_targets(
    target: str, proposals_dsn: str, contracts_dsn: str
) -> list[tuple[str, str]]:
    dsns = {"proposals": proposals_dsn, "contracts": contracts_dsn or proposals_dsn}
    namespaces = _NAMESPACES if target == "all" else (target,)
    return [(namespace, dsns[namespace]) for namespace in namespaces]


if __name__ == "__main__":
    raise SystemExit(main())
