"""CLI error handling helpers."""

import click

from tagledger.domain.errors import DomainError, NotFoundError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit.

    Missing entities are reported as a no-op; anything else is a failure.
    """
    if isinstance(error, NotFoundError):
        click.echo(f"Nothing to do: {error}", err=True)
        ctx.exit(0)
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
