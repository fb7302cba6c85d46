"""Statement import commands."""

import json
from pathlib import Path

import click

from bankrec.cli.account_resolution import resolve_account_or_exit
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.entities import ColumnMapping, ImportMode
from bankrec.domain.errors import DomainError
from bankrec.domain.statement_import import StatementImportService


def mapping_options(command):
    """Add --mapping and --header-row to a command."""
    command = click.option(
        "--header-row",
        type=click.IntRange(min=1),
        help="1-based row number of the header (with --mapping)",
    )(command)
    command = click.option(
        "--mapping",
        help='Column mapping as JSON, or @file.json, e.g. \'{"txn_date": "Date", "deposit": "In"}\'',
    )(command)
    return command


def load_mapping(ctx, mapping: str | None, header_row: int | None) -> ColumnMapping | None:
    """Parse the --mapping option, or exit with an error."""
    if mapping is None:
        if header_row is not None:
            click.echo("Error: --header-row can only be used with --mapping", err=True)
            ctx.exit(1)
        return None

    text = mapping
    if mapping.startswith("@"):
        try:
            text = Path(mapping[1:]).read_text(encoding="utf-8")
        except OSError as e:
            click.echo(f"Error: Could not read mapping file: {e}", err=True)
            ctx.exit(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        click.echo(f"Error: --mapping is not valid JSON: {e}", err=True)
        ctx.exit(1)
    if not isinstance(data, dict):
        click.echo("Error: --mapping must be a JSON object", err=True)
        ctx.exit(1)

    if header_row is not None:
        data["header_row_index"] = header_row - 1
    try:
        return ColumnMapping.from_dict(data)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


def _service(ctx) -> StatementImportService:
    return StatementImportService(ctx.obj["db"], ctx.obj["settings"])


@click.command("import")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Account ID or account number")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ImportMode]),
    default=ImportMode.APPEND.value,
    show_default=True,
    help="append: insert only; replace_range: replace the file's date span; replace_all: replace everything",
)
@mapping_options
@click.pass_context
def import_statement(ctx, statement_file: str, account: str, mode: str, mapping: str | None, header_row: int | None):
    """Import transactions from a CSV or XLSX bank statement.

    The layout is detected automatically for known bank exports. When it
    cannot be, pass --mapping naming the header of each column.

    Examples:
        bankrec import statement.xlsx --account 1
        bankrec import march.csv --account 123-4-56789-0 --mode replace_range
    """
    bank_account = resolve_account_or_exit(ctx, account)
    column_mapping = load_mapping(ctx, mapping, header_row)
    path = Path(statement_file)

    try:
        result = _service(ctx).import_statement(
            ctx.obj["user"],
            bank_account.id,
            path.read_bytes(),
            path.name,
            mapping=column_mapping,
            mode=mode,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\n{result.message}")
    click.echo(f"  Batch: {result.batch_id} ({result.status.value})")
    click.echo(f"  Inserted: {result.inserted_count}")
    click.echo(f"  Duplicates skipped: {result.duplicate_count}")
    if result.deleted_count:
        click.echo(f"  Deleted before import: {result.deleted_count}")
    if result.failed_count:
        click.echo(f"  Failed rows: {result.failed_count}")


@click.command("preview")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Account ID or account number")
@click.option("--overlap", is_flag=True, help="Also count stored transactions in the file's date range")
@mapping_options
@click.pass_context
def preview_statement(
    ctx, statement_file: str, account: str, overlap: bool, mapping: str | None, header_row: int | None
):
    """Show what a statement contains without importing it."""
    bank_account = resolve_account_or_exit(ctx, account)
    column_mapping = load_mapping(ctx, mapping, header_row)
    path = Path(statement_file)
    data = path.read_bytes()
    service = _service(ctx)

    try:
        preview = service.preview(ctx.obj["user"], bank_account.id, data, path.name, mapping=column_mapping)
        overlap_result = None
        if overlap:
            overlap_result = service.check_overlap(
                ctx.obj["user"], bank_account.id, data, path.name, mapping=column_mapping
            )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nFile: {preview.file_name} ({preview.format_type} layout)")
    click.echo(f"Date range: {preview.date_range.start} to {preview.date_range.end}")
    click.echo(f"Transactions: {preview.row_count}")
    click.echo(f"Total deposits: {preview.total_deposits:,.2f}")
    click.echo(f"Total withdrawals: {preview.total_withdrawals:,.2f}")
    click.echo(f"Net: {preview.net:,.2f}")

    click.echo("\nFirst rows:")
    click.echo("-" * 80)
    click.echo(f"{'Date':<12} {'Withdrawal':>12} {'Deposit':>12}  {'Description':<40}")
    for txn in preview.sample_rows:
        description = (txn.description or "")[:40]
        click.echo(f"{str(txn.txn_date):<12} {txn.withdrawal:>12,.2f} {txn.deposit:>12,.2f}  {description:<40}")

    if preview.warnings:
        click.echo(f"\nWarnings ({len(preview.warnings)}):")
        for warning in preview.warnings:
            click.echo(f"  {warning}")

    if overlap_result is not None:
        click.echo(
            f"\n{overlap_result.existing_count} stored transactions already fall between "
            f"{overlap_result.date_range.start} and {overlap_result.date_range.end}."
        )
        if overlap_result.existing_count:
            click.echo("Use --mode replace_range to replace them with this file.")


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_statement)
    cli.add_command(preview_statement)
