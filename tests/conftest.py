"""Pytest configuration and shared fixtures."""

import logging
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner
from fastapi.testclient import TestClient

from userapi.api import build_app
from userapi.cache import MemoryCache
from userapi.config import Config
from userapi.database import get_engine
from userapi.migrations import MigrationRunner


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Create a test configuration with temp database and migrations dir."""
    config = Config(data_dir=tmp_path / "data")
    config.migrations.directory = tmp_path / "migrations"
    return config


@pytest.fixture
def engine(test_config: Config):
    """Create a test database engine (no tables yet)."""
    eng = get_engine(test_config)
    yield eng
    eng.dispose()


@pytest.fixture
def migrations_dir(test_config: Config) -> Path:
    """Provide an empty migrations directory."""
    directory = test_config.migrations_dir
    directory.mkdir(parents=True, exist_ok=True)
    return directory


@pytest.fixture
def write_migration(migrations_dir: Path):
    """Factory writing an up/down pair into the migrations directory.

    Pass ``down=None`` to leave out the down file.
    """

    def _write(version: str, name: str, up: str | None = "", down: str | None = "") -> None:
        if up is not None:
            (migrations_dir / f"{version}_{name}.up.sql").write_text(up)
        if down is not None:
            (migrations_dir / f"{version}_{name}.down.sql").write_text(down)

    return _write


@pytest.fixture
def three_migrations(write_migration) -> list[str]:
    """Three reversible migrations creating tables one, two and three."""
    write_migration(
        "20230101",
        "one",
        up="CREATE TABLE one (id INTEGER PRIMARY KEY);",
        down="DROP TABLE one;",
    )
    write_migration(
        "20230102",
        "two",
        up="CREATE TABLE two (id INTEGER PRIMARY KEY, label TEXT);\n"
        "INSERT INTO two (label) VALUES ('seed; with semicolon');",
        down="DROP TABLE two;",
    )
    write_migration(
        "20230103",
        "three",
        up="CREATE TABLE three (id INTEGER PRIMARY KEY);",
        down="DROP TABLE three;",
    )
    return ["20230101", "20230102", "20230103"]


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


@pytest.fixture
def repo_migrations_dir() -> Path:
    """The SQL migrations shipped at the repository root."""
    return Path(__file__).parent.parent / "migrations"


@pytest.fixture
def migrated_engine(engine, repo_migrations_dir: Path):
    """Engine whose database has the shipped migrations applied."""
    report = MigrationRunner(engine, repo_migrations_dir).up()
    assert report.ok
    return engine


@pytest.fixture
def app(test_config: Config, migrated_engine):
    """Create a test FastAPI application with an in-memory cache."""
    return build_app(test_config, migrated_engine, MemoryCache())


@pytest.fixture
def client(app) -> TestClient:
    """Create a test client for the API."""
    return TestClient(app)
