"""SQL migration engine for userapi.

Migrations are pairs of SQL files in a single directory:

    {version}_{name}.up.sql     applied when migrating forward
    {version}_{name}.down.sql   applied when rolling back

Versions are compared as strings and must be fixed-width; ``migrate create``
uses ``YYYYMMDDhhmmss``. Each migration and its ledger entry in
``migration_log`` commit in one transaction. A version is applied while it
has an ``up`` record; rolling back deletes that record.
"""

from userapi.migrations.errors import (
    DiscoveryError,
    ExecutionError,
    MigrationError,
    QueryError,
    SchemaError,
    WriteError,
)
from userapi.migrations.executor import MigrationExecutor, split_statements
from userapi.migrations.log_store import MigrationLogStore
from userapi.migrations.models import (
    Direction,
    FileKind,
    Migration,
    MigrationLogEntry,
    MigrationResult,
    MigrationStatus,
    Outcome,
    ParsedFile,
    RunReport,
    StatusReport,
)
from userapi.migrations.planner import plan
from userapi.migrations.repository import (
    create_migration,
    load_migrations,
    parse_filename,
    scan_directory,
)
from userapi.migrations.runner import MigrationRunner

__all__ = [
    "Direction",
    "DiscoveryError",
    "ExecutionError",
    "FileKind",
    "Migration",
    "MigrationError",
    "MigrationExecutor",
    "MigrationLogEntry",
    "MigrationLogStore",
    "MigrationResult",
    "MigrationRunner",
    "MigrationStatus",
    "Outcome",
    "ParsedFile",
    "QueryError",
    "RunReport",
    "SchemaError",
    "StatusReport",
    "WriteError",
    "create_migration",
    "load_migrations",
    "parse_filename",
    "plan",
    "scan_directory",
    "split_statements",
]
