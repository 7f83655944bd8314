"""CLI entrypoint for running userapi as a module."""

from userapi.cli import cli
from userapi.logging import setup_logging

if __name__ == "__main__":
    setup_logging()
    cli()
