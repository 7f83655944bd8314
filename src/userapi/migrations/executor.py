"""Transactional execution of a single migration.

Each migration runs as one unit: begin, execute its SQL, write (or remove)
its ledger entry, commit. Any failure rolls the transaction back before the
error propagates, so a migration is either fully applied with its ledger
entry or not applied at all.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from userapi.logging import get_logger
from userapi.migrations.errors import ExecutionError
from userapi.migrations.log_store import MigrationLogStore
from userapi.migrations.models import Direction, Migration, Outcome

log = get_logger("migrations.executor")

# Keywords closed by END inside a trigger body
_BLOCK_OPENERS = frozenset({"BEGIN", "CASE"})


def _is_trigger(leading: list[str]) -> bool:
    """Whether a statement's first keywords are CREATE [TEMP|TEMPORARY] TRIGGER."""
    return bool(leading) and leading[0] == "CREATE" and "TRIGGER" in leading[1:3]


def split_statements(sql: str) -> list[str]:
    """Split a SQL script into individual statements on top-level semicolons.

    Semicolons inside quoted strings, quoted identifiers and comments do not
    split, nor do those inside the ``BEGIN ... END`` body of a
    ``CREATE TRIGGER`` statement. Statements consisting only of whitespace
    and comments are dropped.

    Args:
        sql: SQL script text.

    Returns:
        Statements without their trailing semicolon.
    """
    statements: list[str] = []
    current: list[str] = []
    leading: list[str] = []
    depth = 0
    has_code = False
    i = 0
    n = len(sql)

    while i < n:
        ch = sql[i]
        nxt = sql[i + 1] if i + 1 < n else ""

        if ch == "-" and nxt == "-":
            end = sql.find("\n", i)
            end = n if end == -1 else end
            current.append(sql[i:end])
            i = end
            continue

        if ch == "/" and nxt == "*":
            end = sql.find("*/", i + 2)
            end = n if end == -1 else end + 2
            current.append(sql[i:end])
            i = end
            continue

        if ch in ("'", '"', "`"):
            j = i + 1
            while j < n:
                if sql[j] == "\\" and ch != "`":
                    j += 2
                    continue
                if sql[j] == ch:
                    # Doubled quote is an escaped quote
                    if j + 1 < n and sql[j + 1] == ch:
                        j += 2
                        continue
                    break
                j += 1
            current.append(sql[i : j + 1])
            has_code = True
            i = j + 1
            continue

        if ch.isalpha() or ch == "_":
            j = i + 1
            while j < n and (sql[j].isalnum() or sql[j] in "_$"):
                j += 1
            word = sql[i:j].upper()
            if len(leading) < 3:
                leading.append(word)
            elif _is_trigger(leading):
                if word in _BLOCK_OPENERS:
                    depth += 1
                elif word == "END" and depth:
                    depth -= 1
            current.append(sql[i:j])
            has_code = True
            i = j
            continue

        if ch == ";" and depth == 0:
            if has_code:
                statements.append("".join(current).strip())
            current = []
            leading = []
            has_code = False
            i += 1
            continue

        current.append(ch)
        if not ch.isspace():
            has_code = True
        i += 1

    if has_code:
        statements.append("".join(current).strip())

    return statements


class MigrationExecutor:
    """Applies or rolls back one migration inside a single transaction.

    Attributes:
        engine: SQLAlchemy engine for the target database.
        log_store: Ledger the migration's entry is written to.
    """

    def __init__(self, engine: Engine, log_store: MigrationLogStore) -> None:
        self.engine = engine
        self.log_store = log_store

    def apply(self, migration: Migration, direction: Direction) -> Outcome:
        """Run one migration in the given direction.

        Args:
            migration: The migration to run.
            direction: ``up`` runs ``up_sql`` and records the version;
                ``down`` runs ``down_sql`` and removes the record.

        Returns:
            ``applied`` or ``rolled_back`` on success; ``already_applied`` or
            ``skipped`` when the ledger shows there is nothing to do.

        Raises:
            ExecutionError: If the SQL fails, the body is empty, or the commit fails.
            WriteError: If the ledger entry cannot be written.
            QueryError: If the ledger cannot be read.
        """
        direction = Direction(direction)
        statements = split_statements(migration.body(direction))

        with self.engine.connect() as conn:
            try:
                tx = conn.begin()
            except SQLAlchemyError as e:
                raise ExecutionError(
                    f"failed to begin transaction: {e}",
                    version=migration.version,
                    name=migration.name,
                ) from e

            try:
                is_applied = self.log_store.is_applied(conn, migration.version)
                if direction is Direction.UP and is_applied:
                    tx.rollback()
                    return Outcome.ALREADY_APPLIED
                if direction is Direction.DOWN and not is_applied:
                    tx.rollback()
                    return Outcome.SKIPPED

                if not statements:
                    raise ExecutionError(
                        f"migration has no {direction.value} SQL",
                        version=migration.version,
                        name=migration.name,
                    )

                for index, statement in enumerate(statements, start=1):
                    try:
                        conn.exec_driver_sql(statement)
                    except SQLAlchemyError as e:
                        raise ExecutionError(
                            f"failed to execute statement {index} of {len(statements)}: {e}",
                            version=migration.version,
                            name=migration.name,
                        ) from e

                if direction is Direction.UP:
                    self.log_store.record(conn, migration.version, migration.name, direction)
                else:
                    self.log_store.remove(conn, migration.version)
            except Exception:
                tx.rollback()
                log.error(
                    "migration_aborted",
                    version=migration.version,
                    name=migration.name,
                    direction=direction.value,
                )
                raise

            try:
                tx.commit()
            except SQLAlchemyError as e:
                log.error(
                    "migration_commit_failed",
                    version=migration.version,
                    name=migration.name,
                    error=str(e),
                )
                raise ExecutionError(
                    f"failed to commit transaction: {e}",
                    version=migration.version,
                    name=migration.name,
                ) from e

        if direction is Direction.UP:
            log.info("migration_applied", version=migration.version, name=migration.name)
            return Outcome.APPLIED

        log.info("migration_reverted", version=migration.version, name=migration.name)
        return Outcome.ROLLED_BACK
