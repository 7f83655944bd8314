"""Durable ledger of applied migrations.

The ledger is the ``migration_log`` table. A version counts as applied while
it has an ``up`` record; rolling back deletes that record in the same
transaction as the down SQL. ``record`` and ``remove`` always run on the
caller's connection so the ledger write commits or rolls back together with
the schema change.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from userapi.database import migration_log, utcnow
from userapi.logging import get_logger
from userapi.migrations.errors import QueryError, SchemaError, WriteError
from userapi.migrations.models import Direction, MigrationLogEntry

log = get_logger("migrations.log_store")


class MigrationLogStore:
    """Reads and writes the migration ledger.

    Attributes:
        engine: SQLAlchemy engine for the target database.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def ensure_schema(self) -> None:
        """Create the ledger table if it does not exist. Safe to call every run.

        Raises:
            SchemaError: If the table cannot be created.
        """
        try:
            with self.engine.begin() as conn:
                migration_log.create(conn, checkfirst=True)
        except SQLAlchemyError as e:
            log.error("migration_log_schema_failed", error=str(e))
            raise SchemaError(f"failed to create migration log table: {e}") from e

    def applied_versions(self) -> list[str]:
        """Get applied versions, oldest application first.

        Raises:
            QueryError: If the ledger cannot be read.
        """
        query = (
            select(migration_log.c.version)
            .where(migration_log.c.direction == Direction.UP.value)
            .order_by(migration_log.c.applied_at, migration_log.c.id)
        )
        try:
            with self.engine.connect() as conn:
                return [row.version for row in conn.execute(query)]
        except SQLAlchemyError as e:
            raise QueryError(f"failed to read applied migrations: {e}") from e

    def entries(self) -> list[MigrationLogEntry]:
        """Get every ledger row, oldest first.

        Raises:
            QueryError: If the ledger cannot be read.
        """
        query = select(migration_log).order_by(migration_log.c.applied_at, migration_log.c.id)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as e:
            raise QueryError(f"failed to read migration log: {e}") from e

        return [
            MigrationLogEntry(
                version=row.version,
                name=row.name,
                direction=Direction(row.direction),
                applied_at=row.applied_at,
            )
            for row in rows
        ]

    def is_applied(self, conn: Connection, version: str) -> bool:
        """Check, inside the caller's transaction, whether a version is applied.

        Raises:
            QueryError: If the ledger cannot be read.
        """
        query = select(migration_log.c.id).where(
            migration_log.c.version == version,
            migration_log.c.direction == Direction.UP.value,
        )
        try:
            return conn.execute(query).first() is not None
        except SQLAlchemyError as e:
            raise QueryError(f"failed to read migration log: {e}", version=version) from e

    def record(self, conn: Connection, version: str, name: str, direction: Direction) -> None:
        """Insert a ledger entry inside the caller's transaction.

        Raises:
            WriteError: If the insert fails.
        """
        try:
            conn.execute(
                migration_log.insert().values(
                    version=version,
                    name=name,
                    direction=Direction(direction).value,
                    applied_at=utcnow(),
                )
            )
        except SQLAlchemyError as e:
            raise WriteError(
                f"failed to record migration: {e}", version=version, name=name
            ) from e

    def remove(self, conn: Connection, version: str) -> None:
        """Delete a version's ledger entry inside the caller's transaction.

        Raises:
            WriteError: If the delete fails.
        """
        try:
            conn.execute(delete(migration_log).where(migration_log.c.version == version))
        except SQLAlchemyError as e:
            raise WriteError(f"failed to remove migration record: {e}", version=version) from e
