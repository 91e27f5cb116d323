"""Reset command."""

import click
from tagledger.domain.ledger import LedgerService


@click.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def reset(ctx, yes: bool):
    """Remove all data.

    Deletes every account, transaction and tag rule. Run 'tagledger undo'
    to bring them back.
    """
    db = ctx.obj["db"]
    service = LedgerService(db)

    if not yes and not click.confirm("This will delete ALL accounts, transactions and tag rules. Continue?"):
        click.echo("Cancelled.")
        return

    removed = service.reset()
    click.echo(f"Done. Removed {removed} transaction(s).")


def register_commands(cli):
    """Register reset command with main CLI."""
    cli.add_command(reset)
