"""Selection and ordering of migrations for a run.

Plans depend only on the discovered migrations and the applied versions:
``up`` walks pending versions oldest first, ``down`` walks applied versions
newest first so the most recent schema change is reverted before the ones it
builds on.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from userapi.migrations.models import (
    Direction,
    Migration,
    MigrationStatus,
    StatusReport,
)


def plan(
    direction: Direction,
    migrations: Iterable[Migration],
    applied: Iterable[str],
    target: str | None = None,
) -> list[Migration]:
    """Compute the ordered list of migrations to execute.

    Args:
        direction: ``up`` to apply pending migrations, ``down`` to roll back.
        migrations: All discovered migrations, in any order.
        applied: Versions currently applied.
        target: For ``up``, the last version to apply. For ``down``, the
            version to roll back to (it and everything older stay applied).

    Returns:
        Migrations to hand to the executor, in execution order.
    """
    direction = Direction(direction)
    applied_set = set(applied)

    if direction is Direction.UP:
        selected = [m for m in migrations if m.version not in applied_set]
        if target is not None:
            selected = [m for m in selected if m.version <= target]
        return sorted(selected, key=lambda m: (m.version, m.name))

    selected = [m for m in migrations if m.version in applied_set]
    if target is not None:
        selected = [m for m in selected if m.version > target]
    return sorted(selected, key=lambda m: (m.version, m.name), reverse=True)


def already_applied(migrations: Iterable[Migration], applied: Iterable[str]) -> list[Migration]:
    """Migrations an up run reports as already applied, oldest first."""
    applied_set = set(applied)
    return sorted(
        (m for m in migrations if m.version in applied_set),
        key=lambda m: (m.version, m.name),
    )


def status(
    migrations: Iterable[Migration],
    applied: Iterable[str],
    applied_at: dict[str, datetime | None] | None = None,
) -> StatusReport:
    """Build the applied/pending view over all known migrations.

    Versions present in the ledger without a migration file are reported as
    orphaned.
    """
    applied_list = list(applied)
    applied_set = set(applied_list)
    applied_at = applied_at or {}
    ordered = sorted(migrations, key=lambda m: (m.version, m.name))
    known = {m.version for m in ordered}

    return StatusReport(
        migrations=[
            MigrationStatus(
                migration=m,
                applied=m.version in applied_set,
                applied_at=applied_at.get(m.version) if m.version in applied_set else None,
            )
            for m in ordered
        ],
        orphaned=[v for v in applied_list if v not in known],
    )
