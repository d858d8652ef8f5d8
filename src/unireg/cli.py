"""CLI entry point for UniReg.

Commands:
- serve: run the REST API with uvicorn
- init-db: create the database tables
- flush-outbox: deliver queued notification emails once
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
import uvicorn

from unireg.api import create_app
from unireg.config import ConfigError, Settings, load_settings
from unireg.logging import setup_logging
from unireg.notifier import Outbox, create_mailer
from unireg.state_store import StateStore


def _load(config_path: Path | None) -> Settings:
    """Load settings from a YAML file or the environment."""
    try:
        if config_path is not None:
            return load_settings(config_path)
        return Settings.from_env()
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


config_option = click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to a YAML settings file (default: UNIREG_* environment variables)",
)


@click.group()
@click.version_option(package_name="unireg")
def main() -> None:
    """UniReg - semester registration workflow service."""
    pass


@main.command()
@config_option
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", type=int, default=8000, show_default=True, help="Bind port")
def serve(config_path: Path | None, host: str, port: int) -> None:
    """Run the REST API server."""
    settings = _load(config_path)
    setup_logging(log_dir=settings.log_dir, level=settings.log_level)
    uvicorn.run(create_app(settings), host=host, port=port, log_level="info")


@main.command("init-db")
@config_option
def init_db(config_path: Path | None) -> None:
    """Create the database tables if they don't exist."""
    settings = _load(config_path)
    store = StateStore(settings.db_path)
    try:
        tables = store.database.table_names()
    finally:
        store.close()
    click.echo(f"Database ready at {settings.db_path} ({len(tables)} tables)")


@main.command("flush-outbox")
@config_option
@click.option("--limit", type=click.IntRange(min=1), default=50, show_default=True)
def flush_outbox(config_path: Path | None, limit: int) -> None:
    """Deliver pending notification emails once and report the result."""
    settings = _load(config_path)
    setup_logging(log_dir=settings.log_dir, level=settings.log_level, console=False)

    store = StateStore(settings.db_path)
    mailer = create_mailer(settings)
    try:
        result = Outbox(store, mailer, max_attempts=settings.outbox_max_attempts).flush(limit)
    finally:
        mailer.close()
        store.close()

    click.echo(f"{len(result.sent)} sent, {len(result.failed)} failed")
    if result.failed:
        sys.exit(1)
