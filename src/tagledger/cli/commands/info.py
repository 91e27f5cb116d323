"""Database information command."""

import click
from tagledger.domain.account import AccountService
from tagledger.domain.tag_rule import TagRuleService
from tagledger.domain.transaction import TransactionService
from tagledger.domain.undo import UndoService


@click.command("info")
@click.pass_context
def info(ctx):
    """Show where the ledger lives and what it holds."""
    db = ctx.obj["db"]

    accounts = AccountService(db).list_accounts()
    selected = [account.display_name for account in accounts if account.selected]
    last_step = UndoService(db).last_step()

    click.echo(f"Database: {db.engine.url.database}")
    click.echo(f"Accounts: {len(accounts)}")
    if selected:
        click.echo(f"Selected accounts: {', '.join(selected)}")
    click.echo(f"Transactions: {TransactionService(db).count_transactions()}")
    click.echo(f"Tag rules: {len(TagRuleService(db).list_tag_rules())}")
    click.echo(f"Undo steps: {len(db.list_undo_steps())}")
    if last_step is not None:
        click.echo(f"Next undo: '{last_step}'")


def register_commands(cli):
    """Register info command with main CLI."""
    cli.add_command(info)
