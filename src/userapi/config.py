"""Configuration loading and validation for userapi."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 8080


class DatabaseConfig(BaseModel):
    """Database configuration.

    ``url`` is any SQLAlchemy URL (e.g. ``mysql+pymysql://user:pw@host/db``).
    When unset, a SQLite file named ``path`` under ``data_dir`` is used.
    """

    url: str | None = None
    path: str = "userapi.db"
    echo: bool = False
    pool_size: int | None = None
    max_overflow: int | None = None
    pool_recycle_seconds: int = 3600


class MigrationsConfig(BaseModel):
    """Migration engine configuration."""

    directory: Path = Path("migrations")


class CacheConfig(BaseModel):
    """Read-through cache configuration."""

    backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    ttl_seconds: int = 3600

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate backend is one of allowed values."""
        allowed = {"memory", "redis", "none"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"cache backend must be one of: {allowed}")
        return v_lower


class Config(BaseModel):
    """Root configuration for userapi."""

    data_dir: Path = Path("./data")
    log_level: str = "INFO"
    log_json: bool = True

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    migrations: MigrationsConfig = Field(default_factory=MigrationsConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log_level is valid."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper

    @property
    def database_path(self) -> Path:
        """Get full path to the SQLite database file."""
        return self.data_dir / self.database.path

    @property
    def database_url(self) -> str:
        """Get the effective SQLAlchemy URL."""
        if self.database.url:
            return self.database.url
        return f"sqlite:///{self.database_path}"

    @property
    def migrations_dir(self) -> Path:
        """Get the directory scanned for SQL migration files."""
        return self.migrations.directory

    @classmethod
    def load(cls, config_path: Path | str = Path("config.yaml")) -> "Config":
        """Load configuration from YAML file with env var overlay.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Validated Config instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config is invalid.
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        return cls.model_validate(apply_env_overrides(yaml_config))

    @classmethod
    def load_or_default(cls, config_path: Path | str | None = None) -> "Config":
        """Load configuration, falling back to defaults if file not found.

        Args:
            config_path: Optional path to YAML configuration file.

        Returns:
            Config instance (from file or defaults).
        """
        if config_path is None:
            for path in [Path("config.yaml"), Path("config.yml")]:
                if path.exists():
                    return cls.load(path)
            return cls.model_validate(apply_env_overrides({}))

        try:
            return cls.load(config_path)
        except FileNotFoundError:
            return cls.model_validate(apply_env_overrides({}))


def apply_env_overrides(raw: dict) -> dict:
    """Overlay ``USERAPI_*`` environment variables onto raw config data."""
    if "USERAPI_DATA_DIR" in os.environ:
        raw["data_dir"] = os.environ["USERAPI_DATA_DIR"]
    if "USERAPI_LOG_LEVEL" in os.environ:
        raw["log_level"] = os.environ["USERAPI_LOG_LEVEL"]
    if "USERAPI_LOG_JSON" in os.environ:
        raw["log_json"] = os.environ["USERAPI_LOG_JSON"].lower() == "true"
    if "USERAPI_DATABASE_URL" in os.environ:
        raw.setdefault("database", {})["url"] = os.environ["USERAPI_DATABASE_URL"]
    if "USERAPI_MIGRATIONS_DIR" in os.environ:
        raw.setdefault("migrations", {})["directory"] = os.environ["USERAPI_MIGRATIONS_DIR"]
    if "USERAPI_REDIS_URL" in os.environ:
        raw.setdefault("cache", {})["redis_url"] = os.environ["USERAPI_REDIS_URL"]
    return raw
