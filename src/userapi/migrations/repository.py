"""Discovery of versioned SQL migration files.

Migrations live in a single directory as pairs of files named
``{version}_{name}.up.sql`` and ``{version}_{name}.down.sql``. Versions are
compared as plain strings, so they must be fixed-width (the scaffolder uses
``YYYYMMDDhhmmss``) for lexical order to match chronological order.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

from userapi.logging import get_logger
from userapi.migrations.errors import DiscoveryError
from userapi.migrations.models import Direction, FileKind, Migration, ParsedFile

log = get_logger("migrations.repository")

VERSION_FORMAT = "%Y%m%d%H%M%S"

_DIRECTION_SUFFIXES = {
    ".up.sql": Direction.UP,
    ".down.sql": Direction.DOWN,
}


def parse_filename(filename: str) -> ParsedFile:
    """Classify a filename against the ``{version}_{name}.{up|down}.sql`` pattern.

    Args:
        filename: Base name of a file in the migrations directory.

    Returns:
        A matched result with version, name and direction; a skipped result
        for files that are not directional SQL files at all; or a malformed
        result for ``.up.sql``/``.down.sql`` files whose stem is unusable.
    """
    if not filename.endswith(".sql"):
        return ParsedFile(FileKind.SKIPPED, reason="not an .sql file")

    for suffix, direction in _DIRECTION_SUFFIXES.items():
        if filename.endswith(suffix):
            stem = filename[: -len(suffix)]
            break
    else:
        return ParsedFile(FileKind.SKIPPED, reason="no .up/.down direction")

    if "." in stem:
        return ParsedFile(FileKind.MALFORMED, reason="extra '.' in migration stem")

    version, sep, name = stem.partition("_")
    if not sep or not version or not name:
        return ParsedFile(FileKind.MALFORMED, reason="stem is not {version}_{name}")

    return ParsedFile(FileKind.MATCHED, version=version, name=name, direction=direction)


def scan_directory(directory: Path) -> list[tuple[Path, ParsedFile]]:
    """Parse every regular file directly inside ``directory``.

    Args:
        directory: Migrations directory (not searched recursively).

    Returns:
        (path, parse result) pairs sorted by filename.

    Raises:
        DiscoveryError: If the directory cannot be listed.
    """
    directory = Path(directory)
    try:
        paths = sorted(p for p in directory.iterdir() if p.is_file())
    except OSError as e:
        raise DiscoveryError(f"failed to read migrations directory {directory}: {e}") from e

    return [(path, parse_filename(path.name)) for path in paths]


def load_migrations(directory: Path) -> list[Migration]:
    """Load all migrations from a directory, merged and sorted by version.

    Up and down files sharing ``{version}_{name}`` become one Migration. A
    missing counterpart leaves that body empty.

    Args:
        directory: Migrations directory.

    Returns:
        Migrations in ascending version order (string comparison).

    Raises:
        DiscoveryError: If the directory or a matched file cannot be read, or
            two migrations share a version.
    """
    bodies: dict[str, dict[str, str]] = {}
    names: dict[str, tuple[str, str]] = {}

    for path, parsed in scan_directory(directory):
        if parsed.kind is FileKind.SKIPPED:
            log.debug("migration_file_skipped", file=path.name, reason=parsed.reason)
            continue
        if parsed.kind is FileKind.MALFORMED:
            log.warning("migration_file_malformed", file=path.name, reason=parsed.reason)
            continue

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DiscoveryError(
                f"failed to read migration file {path}: {e}",
                version=parsed.version,
                name=parsed.name,
            ) from e

        names[parsed.key] = (parsed.version, parsed.name)
        bodies.setdefault(parsed.key, {})[parsed.direction.value] = content

    migrations = [
        Migration(
            version=version,
            name=name,
            up_sql=bodies[key].get(Direction.UP.value, ""),
            down_sql=bodies[key].get(Direction.DOWN.value, ""),
        )
        for key, (version, name) in names.items()
    ]
    migrations.sort(key=lambda m: (m.version, m.name))

    _check_duplicate_versions(migrations)
    log.debug("migrations_loaded", count=len(migrations), directory=str(directory))
    return migrations


def _check_duplicate_versions(migrations: list[Migration]) -> None:
    seen: dict[str, str] = {}
    for migration in migrations:
        if migration.version in seen:
            raise DiscoveryError(
                f"duplicate migration version {migration.version}: "
                f"{seen[migration.version]} and {migration.name}",
                version=migration.version,
                name=migration.name,
            )
        seen[migration.version] = migration.name


def slugify(name: str) -> str:
    """Normalize a migration name to lowercase words joined by underscores."""
    slug = re.sub(r"[^a-z0-9]+", "_", name.strip().lower())
    return slug.strip("_")


def _version_in_use(directory: Path, version: str) -> bool:
    if not directory.is_dir():
        return False
    return any(
        parsed.kind is FileKind.MATCHED and parsed.version == version
        for _, parsed in scan_directory(directory)
    )


def create_migration(
    directory: Path,
    name: str,
    now: datetime | None = None,
) -> tuple[Path, Path]:
    """Scaffold an empty up/down pair for a new migration.

    Args:
        directory: Migrations directory, created if missing.
        name: Human-readable migration name.
        now: Timestamp to derive the version from (defaults to current UTC).

    Returns:
        Paths of the (up, down) files.

    Raises:
        ValueError: If the name has no usable characters.
        DiscoveryError: If the version is already used by another migration,
            or the files cannot be written.
    """
    slug = slugify(name)
    if not slug:
        raise ValueError(f"Invalid migration name: {name!r}")

    version = (now or datetime.now(timezone.utc)).strftime(VERSION_FORMAT)
    directory = Path(directory)
    up_path = directory / f"{version}_{slug}.up.sql"
    down_path = directory / f"{version}_{slug}.down.sql"

    if _version_in_use(directory, version):
        raise DiscoveryError(
            f"migration version already in use: {version}", version=version, name=slug
        )

    up_content = f"-- Migration: {slug}\n-- Version: {version}\n-- Description: {name}\n\n"
    down_content = f"-- Rollback: {slug}\n-- Version: {version}\n\n"

    try:
        directory.mkdir(parents=True, exist_ok=True)
        # "x" mode refuses to clobber an existing migration
        with open(up_path, "x", encoding="utf-8") as f:
            f.write(up_content)
    except OSError as e:
        raise DiscoveryError(
            f"failed to create migration file {up_path}: {e}", version=version, name=slug
        ) from e

    try:
        with open(down_path, "x", encoding="utf-8") as f:
            f.write(down_content)
    except OSError as e:
        up_path.unlink(missing_ok=True)
        raise DiscoveryError(
            f"failed to create migration file {down_path}: {e}", version=version, name=slug
        ) from e

    log.info("migration_created", version=version, name=slug, directory=str(directory))
    return up_path, down_path
