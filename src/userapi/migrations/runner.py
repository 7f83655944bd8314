"""Migration runner for userapi database schema evolution.

This module wires the migration components together for one run:
- Ensuring the ledger table exists
- Discovering migration files
- Planning which versions to apply or roll back
- Executing them strictly in order, halting at the first failure
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from sqlalchemy.engine import Engine

from userapi.logging import get_logger
from userapi.migrations import planner
from userapi.migrations.errors import MigrationError
from userapi.migrations.executor import MigrationExecutor
from userapi.migrations.log_store import MigrationLogStore
from userapi.migrations.models import (
    Direction,
    MigrationResult,
    Outcome,
    RunReport,
    StatusReport,
)
from userapi.migrations.repository import load_migrations

log = get_logger("migrations")

ProgressCallback = Callable[[MigrationResult], None]


class MigrationRunner:
    """Runs up, down and status operations against one database.

    Attributes:
        engine: SQLAlchemy engine for the target database.
        directory: Directory holding the ``.up.sql``/``.down.sql`` files.
        log_store: Ledger of applied versions.
        executor: Applies one migration per transaction.
    """

    def __init__(
        self,
        engine: Engine,
        directory: Path,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.engine = engine
        self.directory = Path(directory)
        self.log_store = MigrationLogStore(engine)
        self.executor = MigrationExecutor(engine, self.log_store)
        self.on_progress = on_progress

    def up(self, target: str | None = None) -> RunReport:
        """Apply all pending migrations, oldest first.

        Args:
            target: Last version to apply. If None, apply all.

        Returns:
            Report of every migration touched, including ones already applied.

        Raises:
            DiscoveryError, SchemaError, QueryError: Before any migration runs.
        """
        return self._run(Direction.UP, target)

    def down(self, target: str | None = None) -> RunReport:
        """Roll back applied migrations, newest first.

        Args:
            target: Version to roll back to; it stays applied. If None, roll
                back everything.
        """
        return self._run(Direction.DOWN, target)

    def status(self) -> StatusReport:
        """Report each known migration as applied or pending."""
        self.log_store.ensure_schema()
        migrations = load_migrations(self.directory)
        entries = self.log_store.entries()

        applied = [e.version for e in entries if e.direction is Direction.UP]
        applied_at = {e.version: e.applied_at for e in entries if e.direction is Direction.UP}
        return planner.status(migrations, applied, applied_at)

    def _run(self, direction: Direction, target: str | None) -> RunReport:
        self.log_store.ensure_schema()
        migrations = load_migrations(self.directory)
        applied = self.log_store.applied_versions()

        report = RunReport(direction=direction)

        if direction is Direction.UP:
            for migration in planner.already_applied(migrations, applied):
                self._emit(report, MigrationResult(migration, direction, Outcome.ALREADY_APPLIED))

        steps = planner.plan(direction, migrations, applied, target=target)
        log.info(
            "migration_run_started",
            direction=direction.value,
            discovered=len(migrations),
            planned=len(steps),
        )

        for migration in steps:
            log.info(
                "migration_starting",
                direction=direction.value,
                version=migration.version,
                name=migration.name,
            )
            try:
                outcome = self.executor.apply(migration, direction)
            except MigrationError as e:
                report.failed = migration
                report.error = e
                log.error(
                    "migration_run_failed",
                    direction=direction.value,
                    version=migration.version,
                    name=migration.name,
                    committed=report.committed,
                    error=str(e),
                )
                return report

            self._emit(report, MigrationResult(migration, direction, outcome))

        if not steps:
            log.info("no_pending_migrations", direction=direction.value)
        else:
            log.info(
                "migrations_complete",
                direction=direction.value,
                count=len(report.committed),
            )
        return report

    def _emit(self, report: RunReport, result: MigrationResult) -> None:
        report.results.append(result)
        if self.on_progress is not None:
            self.on_progress(result)
