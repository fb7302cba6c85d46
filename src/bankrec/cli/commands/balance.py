"""Opening balance, reported balance and reconciliation commands."""

from datetime import date

import click

from bankrec.cli.account_resolution import resolve_account_or_exit
from bankrec.cli.date_filters import period_options, pop_period_flags, require_cli_date_range
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.balances import BalanceService
from bankrec.domain.errors import DomainError
from bankrec.domain.reconciliation import ReconciliationService
from bankrec.utils.amount_parser import parse_amount
from bankrec.utils.date_parser import parse_date


def _parse_inputs(ctx, amount: str, as_of: str | None):
    try:
        as_of_date = parse_date(as_of) if as_of else date.today()
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)
    try:
        value = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)
    return value, as_of_date


@click.group()
def balance_group():
    """Manage balances and reconcile against the bank."""
    pass


@balance_group.command("opening")
@click.option("--account", required=True, help="Account ID or account number")
@click.option("--amount", help="Set the opening balance to this amount")
@click.option("--as-of", help="Date the opening balance applies from (default today)")
@click.pass_context
def opening_balance(ctx, account: str, amount: str | None, as_of: str | None):
    """Show or set an account's opening balance.

    Without --amount the current opening balance is shown.

    Examples:
        bankrec balance opening --account 1
        bankrec balance opening --account 1 --amount 150000 --as-of 2025-01-01
    """
    bank_account = resolve_account_or_exit(ctx, account)
    service = BalanceService(ctx.obj["db"])

    if amount is None:
        if as_of is not None:
            click.echo("Error: --as-of requires --amount", err=True)
            ctx.exit(1)
        try:
            opening = service.get_opening_balance(ctx.obj["user"], bank_account.id)
        except DomainError as e:
            handle_domain_error(ctx, e)
            return
        if opening is None:
            click.echo(f"No opening balance set for {bank_account.display_name}.")
            return
        click.echo(
            f"Opening balance of {bank_account.display_name}: "
            f"{opening.amount:,.2f} {bank_account.currency} (as of {opening.as_of_date})"
        )
        return

    value, as_of_date = _parse_inputs(ctx, amount, as_of)
    try:
        opening = service.upsert_opening_balance(ctx.obj["user"], bank_account.id, as_of_date, value)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(
        f"Set opening balance of {bank_account.display_name} to "
        f"{opening.amount:,.2f} {bank_account.currency} as of {opening.as_of_date}"
    )


@balance_group.command("reported")
@click.option("--account", required=True, help="Account ID or account number")
@click.option("--amount", help="Record this balance as reported by the bank")
@click.option("--as-of", help="Date the bank reported the balance for (default today)")
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True, help="Reports to list")
@click.pass_context
def reported_balance(ctx, account: str, amount: str | None, as_of: str | None, limit: int):
    """Record or list balances reported by the bank.

    Examples:
        bankrec balance reported --account 1 --amount 152340.50 --as-of 2025-01-31
        bankrec balance reported --account 1
    """
    bank_account = resolve_account_or_exit(ctx, account)
    service = BalanceService(ctx.obj["db"])

    if amount is not None:
        value, as_of_date = _parse_inputs(ctx, amount, as_of)
        try:
            report = service.save_reported_balance(ctx.obj["user"], bank_account.id, as_of_date, value)
        except DomainError as e:
            handle_domain_error(ctx, e)
            return
        click.echo(
            f"Recorded reported balance {report.amount:,.2f} {bank_account.currency} "
            f"as of {report.reported_as_of_date} (ID: {report.id})"
        )
        return

    try:
        reports = service.list_reported_balances(ctx.obj["user"], bank_account.id, limit=limit)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    if not reports:
        click.echo(f"No reported balances for {bank_account.display_name}.")
        return

    click.echo(f"\nReported balances for {bank_account.display_name}:")
    click.echo("-" * 48)
    for report in reports:
        click.echo(f"{str(report.reported_as_of_date):<12} {report.amount:>18,.2f} {bank_account.currency}")


@balance_group.command("summary")
@click.option("--account", required=True, help="Account ID or account number")
@period_options
@click.pass_context
def balance_summary(ctx, account: str, start_date: str | None, end_date: str | None, **kwargs):
    """Compare the expected closing balance with the latest reported one.

    The date range defaults to this month.
    """
    period_flags = pop_period_flags(kwargs)
    start, end = require_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    bank_account = resolve_account_or_exit(ctx, account)
    service = ReconciliationService(ctx.obj["db"], ctx.obj["settings"])

    try:
        summary = service.balance_summary(ctx.obj["user"], bank_account.id, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    currency = bank_account.currency
    click.echo(f"\n{bank_account.display_name}: {summary.start} to {summary.end}")
    click.echo("-" * 48)
    click.echo(f"{'Opening balance':<24}{summary.opening_balance:>18,.2f} {currency}")
    click.echo(f"{'Net movement':<24}{summary.net_movement:>18,.2f} {currency}")
    click.echo(f"{'Expected closing':<24}{summary.expected_closing:>18,.2f} {currency}")
    if summary.reported_balance is None:
        click.echo(f"{'Reported balance':<24}{'(none)':>18}")
        return
    click.echo(
        f"{'Reported balance':<24}{summary.reported_balance:>18,.2f} {currency} "
        f"(as of {summary.reported_as_of})"
    )
    click.echo(f"{'Difference':<24}{summary.delta:>18,.2f} {currency}")
    if summary.is_mismatch:
        click.echo("\nMISMATCH: the reported balance differs from the expected closing balance.")
    else:
        click.echo("\nBalances match.")


def register_commands(cli):
    """Register balance commands with main CLI."""
    cli.add_command(balance_group, name="balance")
