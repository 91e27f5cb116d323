"""Undo commands."""

import click
from tagledger.cli.error_handling import handle_domain_error
from tagledger.domain.errors import DomainError
from tagledger.domain.undo import UndoService


@click.command("undo")
@click.option("--list", "list_steps", is_flag=True, help="Show the undo history instead")
@click.pass_context
def undo(ctx, list_steps: bool):
    """Undo the most recent command that changed the ledger."""
    db = ctx.obj["db"]
    service = UndoService(db)

    if list_steps:
        steps = service.list_steps()
        if not steps:
            click.echo("Nothing to undo.")
            return
        for step in steps:
            click.echo(
                f"{step.id:5d} | {step.created_at:%Y-%m-%d %H:%M:%S} | "
                f"{step.name} ({step.action_count} change(s))"
            )
        return

    try:
        name = service.undo()
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if name is None:
        click.echo("Nothing to undo.")
    else:
        click.echo(f"Undid '{name}'")


def register_commands(cli):
    """Register undo command with main CLI."""
    cli.add_command(undo)
