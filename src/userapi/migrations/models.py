"""Value types shared by the migration engine components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Direction(str, Enum):
    """Which way a migration runs."""

    UP = "up"
    DOWN = "down"


class Outcome(str, Enum):
    """Result of handing one migration to the executor.

    - applied: up SQL ran and the ledger entry committed
    - rolled_back: down SQL ran and the ledger entry was removed
    - already_applied: up requested for a version already in the ledger
    - skipped: down requested for a version not in the ledger
    """

    APPLIED = "applied"
    ROLLED_BACK = "rolled_back"
    ALREADY_APPLIED = "already_applied"
    SKIPPED = "skipped"


class FileKind(str, Enum):
    """Classification of a file found in the migrations directory."""

    MATCHED = "matched"
    SKIPPED = "skipped"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ParsedFile:
    """Parse result for one filename.

    Only ``matched`` results carry version, name and direction. ``reason``
    explains skipped and malformed results.
    """

    kind: FileKind
    version: str | None = None
    name: str | None = None
    direction: Direction | None = None
    reason: str | None = None

    @property
    def key(self) -> str:
        """Identity shared by the up and down halves of one migration."""
        return f"{self.version}_{self.name}"


@dataclass(frozen=True)
class Migration:
    """A named, versioned pair of forward and backward SQL scripts."""

    version: str
    name: str
    up_sql: str = ""
    down_sql: str = ""

    def body(self, direction: Direction) -> str:
        """Return the SQL text for the given direction."""
        return self.up_sql if direction is Direction.UP else self.down_sql

    @property
    def label(self) -> str:
        return f"{self.version} ({self.name})"


@dataclass(frozen=True)
class MigrationLogEntry:
    """One row of the migration ledger."""

    version: str
    name: str
    direction: Direction
    applied_at: datetime | None


@dataclass(frozen=True)
class MigrationStatus:
    """Applied/pending state of one known migration."""

    migration: Migration
    applied: bool
    applied_at: datetime | None = None


@dataclass(frozen=True)
class MigrationResult:
    """Outcome of one migration within a run."""

    migration: Migration
    direction: Direction
    outcome: Outcome


@dataclass
class RunReport:
    """Everything an up or down run did, in order.

    ``error`` is set when the run halted; ``failed`` then names the migration
    that was rolled back. Every migration in ``committed`` is durable.
    """

    direction: Direction
    results: list[MigrationResult] = field(default_factory=list)
    failed: Migration | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def committed(self) -> list[str]:
        """Versions whose change committed during this run."""
        return [
            r.migration.version
            for r in self.results
            if r.outcome in (Outcome.APPLIED, Outcome.ROLLED_BACK)
        ]

    @property
    def failed_version(self) -> str | None:
        return self.failed.version if self.failed else None

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)


@dataclass
class StatusReport:
    """Applied/pending view over all known migrations."""

    migrations: list[MigrationStatus] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)

    @property
    def applied_count(self) -> int:
        return sum(1 for s in self.migrations if s.applied)

    @property
    def pending_count(self) -> int:
        return sum(1 for s in self.migrations if not s.applied)

    @property
    def total(self) -> int:
        return len(self.migrations)
