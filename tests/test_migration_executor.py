"""Tests for single-migration execution and SQL statement splitting."""

import pytest
from sqlalchemy import inspect

from userapi.migrations import (
    Direction,
    ExecutionError,
    Migration,
    MigrationExecutor,
    MigrationLogStore,
    Outcome,
    split_statements,
)

# =============================================================================
# Statement Splitting
# =============================================================================


class TestSplitStatements:
    """Tests for splitting SQL scripts on top-level semicolons."""

    def test_multiple_statements(self) -> None:
        """Each top-level statement is returned without its semicolon."""
        sql = "CREATE TABLE a (id INT);\nCREATE TABLE b (id INT);"
        assert split_statements(sql) == ["CREATE TABLE a (id INT)", "CREATE TABLE b (id INT)"]

    def test_trailing_statement_without_semicolon(self) -> None:
        """A final statement without a semicolon is kept."""
        assert split_statements("SELECT 1; SELECT 2") == ["SELECT 1", "SELECT 2"]

    def test_semicolon_in_string_literal(self) -> None:
        """Semicolons inside quotes do not split."""
        sql = "INSERT INTO t VALUES ('a;b'); SELECT 1;"
        assert split_statements(sql) == ["INSERT INTO t VALUES ('a;b')", "SELECT 1"]

    def test_doubled_quote_escape(self) -> None:
        """A doubled quote stays inside the literal."""
        sql = "INSERT INTO t VALUES ('it''s; fine');"
        assert split_statements(sql) == ["INSERT INTO t VALUES ('it''s; fine')"]

    def test_quoted_identifier(self) -> None:
        """Double-quoted and backtick identifiers may contain semicolons."""
        sql = 'CREATE TABLE "odd;name" (id INT); CREATE TABLE `x;y` (id INT);'
        assert split_statements(sql) == [
            'CREATE TABLE "odd;name" (id INT)',
            "CREATE TABLE `x;y` (id INT)",
        ]

    def test_comments_do_not_split(self) -> None:
        """Semicolons in line and block comments are ignored."""
        sql = "-- first; still a comment\nSELECT 1; /* a; b */ SELECT 2;"
        statements = split_statements(sql)
        assert len(statements) == 2
        assert statements[0].endswith("SELECT 1")
        assert statements[1].endswith("SELECT 2")

    def test_comment_only_script_is_empty(self) -> None:
        """Scripts with only comments and whitespace have no statements."""
        sql = "-- Migration: init\n-- Version: 20240101000000\n\n/* nothing */\n;\n"
        assert split_statements(sql) == []

    def test_empty_script(self) -> None:
        """An empty string has no statements."""
        assert split_statements("") == []

    def test_trigger_body_is_one_statement(self) -> None:
        """Semicolons inside a trigger's BEGIN ... END body do not split."""
        sql = (
            "CREATE TABLE t (id INTEGER PRIMARY KEY);\n"
            "CREATE TABLE audit (id INTEGER);\n"
            "CREATE TRIGGER t_ai AFTER INSERT ON t BEGIN\n"
            "    INSERT INTO audit VALUES (NEW.id);\n"
            "END;"
        )

        statements = split_statements(sql)

        assert len(statements) == 3
        assert statements[2].startswith("CREATE TRIGGER t_ai")
        assert "INSERT INTO audit VALUES (NEW.id);" in statements[2]
        assert statements[2].endswith("END")

    def test_trigger_with_case_and_following_statement(self) -> None:
        """CASE ... END inside a trigger body does not close the body early."""
        sql = (
            "CREATE TEMP TRIGGER t_au AFTER UPDATE ON t BEGIN "
            "UPDATE audit SET id = CASE WHEN NEW.id > 0 THEN NEW.id ELSE 0 END; "
            "DELETE FROM audit WHERE id IS NULL; "
            "END; SELECT 1;"
        )

        statements = split_statements(sql)

        assert len(statements) == 2
        assert statements[0].startswith("CREATE TEMP TRIGGER")
        assert statements[0].endswith("END")
        assert statements[1] == "SELECT 1"

    def test_begin_outside_trigger_still_splits(self) -> None:
        """BEGIN and END keywords only nest inside a trigger definition."""
        assert split_statements("BEGIN; SELECT 1; END;") == ["BEGIN", "SELECT 1", "END"]


# =============================================================================
# Executor
# =============================================================================


@pytest.fixture
def store(engine) -> MigrationLogStore:
    """Provide a log store with its table created."""
    log_store = MigrationLogStore(engine)
    log_store.ensure_schema()
    return log_store


@pytest.fixture
def executor(engine, store: MigrationLogStore) -> MigrationExecutor:
    """Provide an executor bound to the test engine."""
    return MigrationExecutor(engine, store)


def _table_names(engine) -> set[str]:
    return set(inspect(engine).get_table_names())


WIDGETS = Migration(
    version="20230101",
    name="widgets",
    up_sql="CREATE TABLE widgets (id INTEGER PRIMARY KEY);\n"
    "INSERT INTO widgets (id) VALUES (1);",
    down_sql="DROP TABLE widgets;",
)


class TestApply:
    """Tests for applying and rolling back one migration."""

    def test_up_applies_and_records(self, executor, store, engine) -> None:
        """Up runs the SQL and records the version."""
        assert executor.apply(WIDGETS, Direction.UP) is Outcome.APPLIED

        assert "widgets" in _table_names(engine)
        assert store.applied_versions() == ["20230101"]

    def test_down_reverts_and_removes_record(self, executor, store, engine) -> None:
        """Down runs the rollback SQL and removes the version."""
        executor.apply(WIDGETS, Direction.UP)

        assert executor.apply(WIDGETS, Direction.DOWN) is Outcome.ROLLED_BACK

        assert "widgets" not in _table_names(engine)
        assert store.applied_versions() == []

    def test_up_twice_reports_already_applied(self, executor, store) -> None:
        """Applying an applied version changes nothing."""
        executor.apply(WIDGETS, Direction.UP)

        assert executor.apply(WIDGETS, Direction.UP) is Outcome.ALREADY_APPLIED
        assert store.applied_versions() == ["20230101"]

    def test_down_unapplied_is_skipped(self, executor, engine) -> None:
        """Rolling back a pending version is a no-op."""
        assert executor.apply(WIDGETS, Direction.DOWN) is Outcome.SKIPPED
        assert "widgets" not in _table_names(engine)

    def test_failed_statement_rolls_back_ddl(self, executor, store, engine) -> None:
        """A failing statement undoes earlier statements and writes no record."""
        broken = Migration(
            version="20230102",
            name="broken",
            up_sql="CREATE TABLE partial (id INTEGER PRIMARY KEY);\n"
            "INSERT INTO missing VALUES (1);",
            down_sql="DROP TABLE partial;",
        )

        with pytest.raises(ExecutionError) as exc_info:
            executor.apply(broken, Direction.UP)

        assert exc_info.value.version == "20230102"
        assert exc_info.value.name == "broken"
        assert "statement 2 of 2" in str(exc_info.value)
        assert "partial" not in _table_names(engine)
        assert store.applied_versions() == []

    def test_empty_up_body_fails(self, executor, store) -> None:
        """A migration with no up statements is an error and is not recorded."""
        empty = Migration(version="1", name="empty", up_sql="-- nothing yet\n")

        with pytest.raises(ExecutionError, match="no up SQL"):
            executor.apply(empty, Direction.UP)

        assert store.applied_versions() == []

    def test_empty_down_body_keeps_version_applied(self, executor, store) -> None:
        """A migration without down SQL cannot be rolled back."""
        irreversible = Migration(
            version="1", name="irreversible", up_sql="CREATE TABLE keep (id INT);"
        )
        executor.apply(irreversible, Direction.UP)

        with pytest.raises(ExecutionError, match="no down SQL"):
            executor.apply(irreversible, Direction.DOWN)

        assert store.applied_versions() == ["1"]

    def test_error_message_names_migration(self, executor) -> None:
        """The error string includes the version and name."""
        broken = Migration(version="7", name="bad", up_sql="NOT VALID SQL;")

        with pytest.raises(ExecutionError) as exc_info:
            executor.apply(broken, Direction.UP)

        assert "[migration 7 (bad)]" in str(exc_info.value)
