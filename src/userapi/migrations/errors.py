"""Exceptions raised by the migration engine.

Every error carries the version and name of the migration it concerns, when
there is one, so callers can report exactly where a run stopped.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base class for migration engine failures."""

    def __init__(
        self,
        message: str,
        *,
        version: str | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.version = version
        self.name = name

    def __str__(self) -> str:
        if self.version is None:
            return self.message
        label = f"{self.version} ({self.name})" if self.name else self.version
        return f"{self.message} [migration {label}]"


class DiscoveryError(MigrationError):
    """The migrations directory or a migration file could not be read."""


class SchemaError(MigrationError):
    """The ledger table could not be created."""


class QueryError(MigrationError):
    """Applied versions could not be read from the ledger."""


class WriteError(MigrationError):
    """A ledger entry could not be written or removed."""


class ExecutionError(MigrationError):
    """A migration's SQL failed, or its transaction failed to commit."""
