from __future__ import annotations

import sys

from dotenv import load_dotenv
from loguru import logger
import typer

from bankmirror import __version__
from bankmirror.adapters.db.facade import DB
from bankmirror.adapters.storage.r2 import R2ObjectStore, StorageError
from bankmirror.core.config import load_database_url_from_env, load_settings_from_env
from bankmirror.core.factory import build_services
from bankmirror.errors import ConfigError, StoreUnavailable
from bankmirror.jobs.backup import run_backup
from bankmirror.jobs.update import read_balance, run_update

# Load environment variables from .env
load_dotenv()

app = typer.Typer(
    help="bankmirror: mirror N26 transactions into YNAB.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} [{level}] {name}: {message}",
        level="DEBUG" if verbose else "INFO",
    )


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    _configure_logging(verbose)


@app.command("update")
def update(
    manual: bool = typer.Option(
        True, help="Tag the run as a manual trigger (use --no-manual from cron)"
    ),
) -> None:
    """Mirror new transactions and publish the current balance."""
    try:
        services = build_services(load_settings_from_env())
        store = R2ObjectStore.from_env()
    except (ConfigError, StorageError) as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2) from e
    except StoreUnavailable as e:
        typer.echo(f"Database unavailable: {e}", err=True)
        raise typer.Exit(code=1) from e

    result = run_update(
        services.engine, store, trigger="manual" if manual else "scheduled"
    )
    if not result.success:
        typer.echo(f"Update failed: {result.error_kind}: {result.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(result.balance_text)


@app.command("backup")
def backup() -> None:
    """Export every source transaction to a timestamped backup object."""
    try:
        services = build_services(load_settings_from_env())
        store = R2ObjectStore.from_env()
    except (ConfigError, StorageError) as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2) from e
    except StoreUnavailable as e:
        typer.echo(f"Database unavailable: {e}", err=True)
        raise typer.Exit(code=1) from e

    result = run_backup(services.exporter, store)
    if not result.success:
        typer.echo(f"Backup failed: {result.error_kind}: {result.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{result.key} ({result.transaction_count} transactions)")


@app.command("balance")
def balance() -> None:
    """Print the last published balance."""
    try:
        typer.echo(read_balance(R2ObjectStore.from_env()))
    except StorageError as e:
        typer.echo(f"Balance unavailable: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("init-db")
def init_db(
    url: str | None = typer.Option(None, help="Database URL (default: DATABASE_URL)"),
) -> None:
    """Create the bindings and run-lease tables."""
    try:
        DB(url or load_database_url_from_env()).create_schema()
    except StoreUnavailable as e:
        typer.echo(f"Database unavailable: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo("Database initialized.")


@app.command("version")
def version() -> None:
    typer.echo(__version__)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
) -> None:
    """Serve the manual-trigger, balance and version endpoints over HTTP."""
    import uvicorn

    from bankmirror.ui.http import create_app

    uvicorn.run(create_app(), host=host, port=port)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
