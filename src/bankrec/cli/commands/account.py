"""Bank account management commands."""

import click

from bankrec.cli.account_resolution import resolve_account_or_exit
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.account import AccountService
from bankrec.domain.entities import AccountType
from bankrec.domain.errors import DomainError


@click.group()
def account_group():
    """Manage bank accounts."""
    pass


@account_group.command("create")
@click.argument("bank_name", metavar="BANK")
@click.argument("account_number", metavar="ACCOUNT_NUMBER")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in AccountType]),
    default=AccountType.CURRENT.value,
    show_default=True,
    help="Account type",
)
@click.option("--currency", help="ISO currency code (defaults to BANKREC_CURRENCY or THB)")
@click.pass_context
def create_account(ctx, bank_name: str, account_number: str, account_type: str, currency: str | None):
    """Create a bank account.

    Examples:
        bankrec account create KBANK 123-4-56789-0
        bankrec account create SCB 987-6-54321-0 --type savings
    """
    settings = ctx.obj["settings"]
    service = AccountService(ctx.obj["db"], default_currency=settings.currency)

    try:
        account_id = service.create_account(
            ctx.obj["user"],
            bank_name=bank_name,
            account_number=account_number,
            account_type=account_type,
            currency=currency,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created account '{bank_name} {account_number}' (ID: {account_id})")


@account_group.command("list")
@click.option("--all", "include_inactive", is_flag=True, help="Include deactivated accounts")
@click.pass_context
def list_accounts(ctx, include_inactive: bool):
    """List your bank accounts."""
    service = AccountService(ctx.obj["db"])

    try:
        accounts = service.list_accounts(ctx.obj["user"], include_inactive=include_inactive)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:3d} | {acc.bank_name:10s} | {acc.account_number:18s} | "
            f"{acc.account_type.value:13s} | {acc.currency}{status}"
        )


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str):
    """Deactivate an account.

    ACCOUNT can be an account ID or account number. Transactions are kept;
    the account just stops counting towards the company cash position.
    """
    bank_account = resolve_account_or_exit(ctx, account)
    service = AccountService(ctx.obj["db"])

    try:
        service.deactivate_account(ctx.obj["user"], bank_account.id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deactivated account '{bank_account.display_name}'")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
