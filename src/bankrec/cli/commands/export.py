"""Transaction export command."""

from pathlib import Path

import click

from bankrec.cli.account_resolution import resolve_account_or_exit
from bankrec.cli.date_filters import period_options, pop_period_flags, require_cli_date_range
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.errors import DomainError
from bankrec.domain.export import TransactionExportService


@click.command("export")
@click.option("--account", required=True, help="Account ID or account number")
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    help="File or directory to write to (default: generated name in the current directory); '-' for stdout",
)
@period_options
@click.pass_context
def export_transactions(
    ctx, account: str, output: str | None, start_date: str | None, end_date: str | None, **kwargs
):
    """Export an account's transactions with a running balance as CSV.

    Examples:
        bankrec export --account 1 --start-date 2025-01-01 --end-date 2025-03-31
        bankrec export --account 1 --last-month -o -
    """
    period_flags = pop_period_flags(kwargs)
    start, end = require_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    bank_account = resolve_account_or_exit(ctx, account)
    service = TransactionExportService(ctx.obj["db"], ctx.obj["settings"])

    try:
        export = service.export_csv(ctx.obj["user"], bank_account.id, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if output == "-":
        click.echo(export.content, nl=False)
        return

    target = Path(output) if output else Path(export.filename)
    if target.is_dir():
        target = target / export.filename
    try:
        target.write_text(export.content, encoding="utf-8")
    except OSError as e:
        click.echo(f"Error: Could not write {target}: {e}", err=True)
        ctx.exit(1)
    click.echo(f"Exported {export.row_count} transactions to {target}")


def register_commands(cli):
    """Register export command with main CLI."""
    cli.add_command(export_transactions)
