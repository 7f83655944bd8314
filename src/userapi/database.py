"""Database schema and connection management for userapi.

Uses SQLAlchemy Core (not ORM) for explicit SQL control. The ``users`` table
is created by the SQL files in the migrations directory; it is declared here
only so queries can be built against it. ``migration_log`` is owned by the
migration log store.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    event,
    func,
    text,
)
from sqlalchemy.engine import Engine

from userapi.config import Config

metadata = MetaData()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Users
# =============================================================================

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("updated_at", DateTime, nullable=False, default=utcnow),
    Column("deleted_at", DateTime, nullable=True),  # Soft delete tombstone
)


# =============================================================================
# Migration Ledger
# =============================================================================

migration_log = Table(
    "migration_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("version", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("applied_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("direction", String(10), nullable=False),  # 'up' or 'down'
    Index("ix_migration_log_applied_at", "applied_at"),
)


# =============================================================================
# Helper Functions
# =============================================================================


def _enable_sqlite_transactional_ddl(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so DDL joins the explicit transaction.

    pysqlite only opens a transaction before DML, which would leave
    CREATE/DROP statements autocommitted and impossible to roll back.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def get_engine(config: Config) -> Engine:
    """Create SQLAlchemy engine from config.

    Args:
        config: Application configuration.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = config.database_url
    echo = config.database.echo or config.log_level == "DEBUG"

    if url.startswith("sqlite"):
        if not config.database.url:
            # Ensure data directory exists
            config.database_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(url, echo=echo)
        _enable_sqlite_transactional_ddl(engine)
        return engine

    options: dict = {
        "echo": echo,
        "pool_pre_ping": True,
        "pool_recycle": config.database.pool_recycle_seconds,
    }
    if config.database.pool_size is not None:
        options["pool_size"] = config.database.pool_size
    if config.database.max_overflow is not None:
        options["max_overflow"] = config.database.max_overflow
    return create_engine(url, **options)


def ping(engine: Engine) -> bool:
    """Check that the database answers a trivial query."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True
