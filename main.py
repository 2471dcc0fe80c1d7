#!/usr/bin/env python3
"""
Document Ledger — CLI entry point.

Usage examples:
  python main.py init-db                    # Create the database and schema
  python main.py check                      # Verify the database answers
  python main.py serve                      # Run the HTTP API (uvicorn)
  python main.py serve --port 9000 --reload
"""
import logging
import sys

import click

from config import Config


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Document Ledger — clients, purchase orders, invoices and finance records."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# --------------------------------------------------------------------
# init-db command
# --------------------------------------------------------------------

@cli.command("init-db")
def init_db() -> None:
    """Create the database file and every table (safe to re-run)."""
    from ledger import Database

    config = Config()
    config.ensure_output_dir()
    Database(config.db_path, timeout=config.db_timeout_seconds)
    click.echo(f"✓ Database ready: {config.db_path}")


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
def check() -> None:
    """Verify that the database opens and answers a query."""
    import sqlite3

    from ledger import Database

    config = Config()
    click.echo("\n=== Ledger Setup Check ===\n")
    click.echo(f"  Database:     {config.db_path}")
    click.echo(f"  Environment:  {config.environment}")
    click.echo(f"  Template:     {config.invoice_template_path}"
               f"  ({'custom' if config.invoice_template_path.exists() else 'built-in default'})")

    try:
        db = Database(
            config.db_path,
            timeout=config.db_timeout_seconds,
            statement_timeout=config.statement_timeout_seconds,
        )
        db.ping()
        counts = {
            table: db.query_one(f"SELECT COUNT(*) AS n FROM {table}")["n"]
            for table in ("clients", "purchases", "invoices", "finance_records")
        }
    except sqlite3.Error as exc:
        click.echo(f"  Database:     ✗ NOT reachable ({exc})")
        sys.exit(1)

    click.echo("  Database:     ✓ connected")
    for table, n in counts.items():
        click.echo(f"    {table:<16} {n}")
    click.echo()


# --------------------------------------------------------------------
# serve command
# --------------------------------------------------------------------

@cli.command()
@click.option("--host", default=None, help="Bind address (default: HOST env var or 0.0.0.0)")
@click.option("--port", "-p", default=None, type=int, help="Port (default: PORT env var or 8080)")
@click.option("--reload", is_flag=True, help="Restart on code changes (development)")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the HTTP API."""
    import uvicorn

    config = Config()
    click.echo(
        f"\n  Serving:   http://{host or config.host}:{port or config.port}/api\n"
        f"  Database:  {config.db_path}\n"
    )
    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=host or config.host,
        port=port or config.port,
        reload=reload,
    )


if __name__ == "__main__":
    cli()
