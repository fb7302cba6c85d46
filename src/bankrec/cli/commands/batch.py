"""Import batch commands: history, rollback and repair."""

import click

from bankrec.cli.account_resolution import resolve_account_or_exit
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.batch_repair import BatchRepairService
from bankrec.domain.errors import DomainError
from bankrec.domain.statement_import import StatementImportService


@click.group()
def batch_group():
    """Inspect and undo statement imports."""
    pass


@batch_group.command("history")
@click.option("--account", required=True, help="Account ID or account number")
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True, help="Number of batches")
@click.pass_context
def batch_history(ctx, account: str, limit: int):
    """List recent imports of an account, newest first."""
    bank_account = resolve_account_or_exit(ctx, account)
    service = StatementImportService(ctx.obj["db"], ctx.obj["settings"])

    try:
        batches = service.list_history(ctx.obj["user"], bank_account.id, limit=limit)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    if not batches:
        click.echo("No imports found.")
        return

    click.echo(f"\nImports for {bank_account.display_name}:")
    click.echo("-" * 100)
    click.echo(
        f"{'ID':>5}  {'Imported at':<16}  {'Status':<11}  {'Mode':<13}  {'Rows':>6}  {'Inserted':>8}  File"
    )
    for b in batches:
        click.echo(
            f"{b.id:>5}  {b.imported_at.strftime('%Y-%m-%d %H:%M'):<16}  {b.status.value:<11}  "
            f"{b.import_mode.value:<13}  {b.row_count:>6}  {b.inserted_count:>8}  {b.file_name}"
        )
        date_range = b.metadata.get("date_range") or {}
        if date_range:
            click.echo(f"{'':>5}  covers {date_range.get('start')} to {date_range.get('end')}")


@batch_group.command("rollback")
@click.argument("batch_id", type=int)
@click.pass_context
def rollback_batch(ctx, batch_id: int):
    """Delete every transaction a completed import inserted.

    The batch is kept as an audit record and marked rolled_back, after which
    the same file can be imported again.
    """
    service = BatchRepairService(ctx.obj["db"])

    try:
        result = service.rollback(ctx.obj["user"], batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if result.deleted_count == 0:
        click.echo(f"Batch {batch_id} is {result.status.value}; no transactions deleted.")
        return
    click.echo(f"Rolled back batch {batch_id}: deleted {result.deleted_count} transactions.")


@batch_group.command("repair")
@click.option("--account", required=True, help="Account ID or account number")
@click.pass_context
def repair_batches(ctx, account: str):
    """Close imports left pending by an interrupted run."""
    bank_account = resolve_account_or_exit(ctx, account)
    service = BatchRepairService(ctx.obj["db"])

    try:
        result = service.repair_pending_batches(ctx.obj["user"], bank_account.id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if result.repaired == 0:
        click.echo("No pending batches.")
        return
    click.echo(f"Repaired {result.repaired} batch(es).")
    if result.completed_ids:
        click.echo(f"  Completed: {', '.join(str(i) for i in result.completed_ids)}")
    if result.failed_ids:
        click.echo(f"  Failed: {', '.join(str(i) for i in result.failed_ids)}")


def register_commands(cli):
    """Register batch commands with main CLI."""
    cli.add_command(batch_group, name="batch")
