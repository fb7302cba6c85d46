"""CLI error handling helpers."""

import logging

import click

from bankrec.domain.errors import DomainError, ImportFailedError, ManualMappingRequired

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, ManualMappingRequired) and error.headers:
        click.echo("Pass --mapping with these columns, e.g.", err=True)
        click.echo(f"  --mapping '{{\"txn_date\": \"{error.headers[0]}\", ...}}'", err=True)
    if isinstance(error, ImportFailedError):
        click.echo(f"Batch {error.result.batch_id} marked {error.result.status.value}.", err=True)
    ctx.exit(1)
