"""Cash position commands."""

import click

from bankrec.cli.account_resolution import resolve_account_or_exit
from bankrec.cli.date_filters import period_options, pop_period_flags, require_cli_date_range
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.cash_position import CashPositionService
from bankrec.domain.entities import CashPositionResult
from bankrec.domain.errors import DomainError


def _print_position(title: str, result: CashPositionResult, daily: bool, currency: str) -> None:
    click.echo(f"\n{title}")
    click.echo("-" * 48)
    opening_note = f" (as of {result.opening_date})" if result.opening_date else ""
    click.echo(f"{'Opening balance':<20}{result.opening_balance:>18,.2f} {currency}{opening_note}")
    click.echo(f"{'Cash in':<20}{result.cash_in_total:>18,.2f} {currency}")
    click.echo(f"{'Cash out':<20}{result.cash_out_total:>18,.2f} {currency}")
    click.echo(f"{'Net':<20}{result.net_total:>18,.2f} {currency}")
    click.echo(f"{'Ending balance':<20}{result.ending_balance:>18,.2f} {currency}")

    if not daily:
        return
    if not result.daily:
        click.echo("\nNo transactions in this range.")
        return
    click.echo(f"\n{'Date':<12} {'In':>14} {'Out':>14} {'Net':>14} {'Balance':>16} {'Txns':>5}")
    for row in result.daily:
        click.echo(
            f"{str(row.date):<12} {row.cash_in:>14,.2f} {row.cash_out:>14,.2f} "
            f"{row.net:>14,.2f} {row.running_balance:>16,.2f} {row.txn_count:>5}"
        )


@click.group()
def cash_group():
    """Show cash positions."""
    pass


@cash_group.command("position")
@click.option("--account", required=True, help="Account ID or account number")
@click.option("--daily", is_flag=True, help="Show the day-by-day series")
@period_options
@click.pass_context
def account_position(ctx, account: str, daily: bool, start_date: str | None, end_date: str | None, **kwargs):
    """Cash position of one account over a date range (default this month).

    Examples:
        bankrec cash position --account 1 --last-month
        bankrec cash position --account 1 --start-date 2025-02-01 --end-date 2025-02-28 --daily
    """
    period_flags = pop_period_flags(kwargs)
    start, end = require_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    bank_account = resolve_account_or_exit(ctx, account)
    service = CashPositionService(ctx.obj["db"], ctx.obj["settings"])

    try:
        result = service.get_cash_position(ctx.obj["user"], bank_account.id, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    _print_position(f"{bank_account.display_name}: {start} to {end}", result, daily, bank_account.currency)


@cash_group.command("company")
@click.option("--daily", is_flag=True, help="Show the day-by-day series")
@period_options
@click.pass_context
def company_position(ctx, daily: bool, start_date: str | None, end_date: str | None, **kwargs):
    """Combined cash position of all your active accounts.

    Accounts whose position cannot be computed are skipped with a warning
    in the log.
    """
    period_flags = pop_period_flags(kwargs)
    start, end = require_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    settings = ctx.obj["settings"]
    service = CashPositionService(ctx.obj["db"], settings)

    try:
        result = service.get_company_cash_position(ctx.obj["user"], start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    _print_position(f"All active accounts: {start} to {end}", result, daily, settings.currency)


def register_commands(cli):
    """Register cash position commands with main CLI."""
    cli.add_command(cash_group, name="cash")
