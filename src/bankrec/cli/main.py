"""Main CLI entry point."""

import getpass
import logging
import sys

import click

from bankrec.config import load_settings
from bankrec.database.factories import create_sqlite_database

# Import and register all commands at module level
from bankrec.cli.commands import (
    account,
    balance,
    batch,
    cash,
    export,
    import_cmd,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure root logging for a CLI run."""
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _default_user() -> str | None:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return None


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BANKREC_DB_PATH environment variable)",
    envvar="BANKREC_DB_PATH",
)
@click.option(
    "--user",
    "user_id",
    envvar="BANKREC_USER",
    help="User identity for ownership checks (defaults to the login name)",
)
@click.option("--timezone", envvar="BANKREC_TIMEZONE", help="Reporting timezone (default Asia/Bangkok)")
@click.option("--verbose", "-v", is_flag=True, help="Log import progress")
@click.option("--debug", is_flag=True, help="Log everything")
@click.pass_context
def cli(ctx, db_path: str | None, user_id: str | None, timezone: str | None, verbose: bool, debug: bool):
    """bankrec - bank statement import and reconciliation.

    Import CSV/XLSX bank statements into accounts, roll back or repair
    imports, and compare computed cash positions with the balance your bank
    reports.
    """
    ctx.ensure_object(dict)
    setup_logging(verbose=verbose, debug=debug)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings().with_overrides(db_path=db_path, timezone=timezone)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        db = create_sqlite_database(database_path=settings.db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.obj["user"] = user_id or _default_user()
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
import_cmd.register_commands(cli)
batch.register_commands(cli)
balance.register_commands(cli)
cash.register_commands(cli)
export.register_commands(cli)


def main():
    """Main entry point for CLI."""
    try:
        cli()
    except Exception:
        logger.exception("Unhandled error")
        click.echo("Error: Unexpected error. Run with --debug for details.", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
