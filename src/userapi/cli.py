"""Command-line interface for userapi."""

from pathlib import Path

import click
from sqlalchemy.engine import make_url

from userapi import __version__
from userapi.config import Config
from userapi.logging import get_logger, setup_logging
from userapi.migrations.models import MigrationResult, Outcome, RunReport

log = get_logger("cli")


@click.group()
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option(
    "--migrations-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Migrations directory (overrides config).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Set logging level (overrides config).",
)
@click.option(
    "--log-json/--no-log-json",
    default=None,
    help="Output logs as JSON or human-readable format (overrides config).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Path | None,
    migrations_dir: Path | None,
    log_level: str | None,
    log_json: bool | None,
) -> None:
    """User Management API.

    A REST API for user records with SQL schema migrations.
    """
    ctx.ensure_object(dict)

    config = Config.load_or_default(config_file)
    if migrations_dir is not None:
        config.migrations = config.migrations.model_copy(update={"directory": migrations_dir})
    if log_level is not None:
        config.log_level = log_level.upper()
    if log_json is not None:
        config.log_json = log_json

    ctx.obj["config"] = config
    ctx.obj["config_file"] = config_file

    setup_logging(json_output=config.log_json, level=config.log_level)


@cli.command()
def version() -> None:
    """Print version information."""
    click.echo(f"userapi {__version__}")


@cli.command()
@click.option("--host", default=None, help="API host to bind (overrides config).")
@click.option("--port", default=None, type=int, help="API port to bind (overrides config).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the REST API server.

    Pending migrations are not applied automatically; run 'migrate up' first.
    """
    import uvicorn

    from userapi.api import build_app
    from userapi.cache import create_cache
    from userapi.database import get_engine

    config: Config = ctx.obj["config"]
    engine = get_engine(config)
    cache = create_cache(config.cache)
    app = build_app(config, engine, cache)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    log.info("serve_command_invoked", host=bind_host, port=bind_port)

    try:
        uvicorn.run(app, host=bind_host, port=bind_port, log_level=config.log_level.lower())
    except KeyboardInterrupt:
        log.info("serve_shutdown_requested")
    finally:
        engine.dispose()


# =============================================================================
# Migration Commands
# =============================================================================


@cli.group()
def migrate() -> None:
    """Database migration commands."""
    pass


def _echo_progress(result: MigrationResult) -> None:
    label = result.migration.label
    if result.outcome is Outcome.ALREADY_APPLIED:
        click.echo(f"  Already applied: {label}")
    elif result.outcome is Outcome.APPLIED:
        click.echo(f"  Applied: {label}")
    elif result.outcome is Outcome.ROLLED_BACK:
        click.echo(f"  Rolled back: {label}")
    else:
        click.echo(f"  Skipped: {label}")


def _finish_run(report: RunReport, verb: str) -> None:
    if report.ok:
        click.echo(f"{verb} {len(report.committed)} migration(s)")
        return

    click.echo(
        f"Error: migration {report.failed.label} failed: {report.error}",
        err=True,
    )
    if report.committed:
        click.echo(f"Committed before failure: {', '.join(report.committed)}", err=True)
    else:
        click.echo("No migrations were committed", err=True)
    raise SystemExit(1)


def _run_migrations(ctx: click.Context, direction: str, target: str | None) -> None:
    from userapi.database import get_engine
    from userapi.migrations import MigrationError, MigrationRunner

    config: Config = ctx.obj["config"]
    engine = get_engine(config)
    runner = MigrationRunner(engine, config.migrations_dir, on_progress=_echo_progress)

    try:
        if direction == "up":
            click.echo("Running migrations up...")
            report = runner.up(target=target)
        else:
            click.echo("Running migrations down...")
            report = runner.down(target=target)
    except MigrationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    finally:
        engine.dispose()

    _finish_run(report, "Applied" if direction == "up" else "Rolled back")


@migrate.command(name="up")
@click.option("--target", default=None, help="Last version to apply (default: latest).")
@click.pass_context
def migrate_up(ctx: click.Context, target: str | None) -> None:
    """Apply all pending migrations in version order."""
    _run_migrations(ctx, "up", target)


@migrate.command(name="down")
@click.option(
    "--target",
    default=None,
    help="Version to roll back to; it stays applied (default: roll back everything).",
)
@click.pass_context
def migrate_down(ctx: click.Context, target: str | None) -> None:
    """Roll back applied migrations in reverse version order."""
    _run_migrations(ctx, "down", target)


@migrate.command(name="status")
@click.pass_context
def migrate_status(ctx: click.Context) -> None:
    """Show each known migration as Applied or Pending."""
    from userapi.database import get_engine
    from userapi.migrations import MigrationError, MigrationRunner

    config: Config = ctx.obj["config"]
    engine = get_engine(config)

    try:
        report = MigrationRunner(engine, config.migrations_dir).status()
    except MigrationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    finally:
        engine.dispose()

    click.echo(f"Migrations directory: {config.migrations_dir}")
    click.echo("Migration Status:")
    for entry in report.migrations:
        state = "Applied" if entry.applied else "Pending"
        click.echo(f"  {state:<8} {entry.migration.version} - {entry.migration.name}")

    if report.orphaned:
        click.echo(f"Applied without a migration file: {', '.join(report.orphaned)}")

    click.echo(
        f"\nTotal: {report.total} migrations "
        f"({report.applied_count} applied, {report.pending_count} pending)"
    )


@migrate.command(name="create")
@click.argument("name")
@click.pass_context
def migrate_create(ctx: click.Context, name: str) -> None:
    """Create empty up/down SQL files for a new migration."""
    from userapi.migrations import MigrationError, create_migration

    config: Config = ctx.obj["config"]

    try:
        up_path, down_path = create_migration(config.migrations_dir, name)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except MigrationError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo("Created migration files:")
    click.echo(f"  Up: {up_path}")
    click.echo(f"  Down: {down_path}")


# =============================================================================
# Config Commands
# =============================================================================


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command(name="check")
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=True, path_type=Path),
    default="config.yaml",
    help="Path to configuration file.",
)
def config_check(config_file: Path) -> None:
    """Validate configuration file."""
    try:
        cfg = Config.load(config_file)
        click.echo(f"Configuration valid: {config_file}")
        click.echo(f"  Database: {make_url(cfg.database_url).render_as_string(hide_password=True)}")
        click.echo(f"  Migrations directory: {cfg.migrations_dir}")
        click.echo(f"  Cache backend: {cfg.cache.backend}")
        click.echo(f"  Log level: {cfg.log_level}")
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except Exception as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
