"""Account management commands."""

import click
from tagledger.cli.error_handling import handle_domain_error
from tagledger.domain.account import AccountService
from tagledger.domain.errors import DomainError


@click.group()
def accounts_group():
    """Manage account selection and aliases."""
    pass


@accounts_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts.

    Selected accounts, marked with '*', are the default scope of queries.
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    for acc in accounts:
        marker = "*" if acc.selected else " "
        alias = acc.alias if acc.alias is not None else ""
        click.echo(f"{marker} {acc.name:30s} | {alias}")


@accounts_group.command("select")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def select_account(ctx, account: str):
    """Add ACCOUNT (name or alias) to the default query scope."""
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        service.select(account)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Selected '{account}'")


@accounts_group.command("unselect")
@click.argument("account", metavar="ACCOUNT", required=False)
@click.pass_context
def unselect_account(ctx, account: str | None):
    """Remove ACCOUNT, or every account if omitted, from the default scope."""
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        service.unselect(account)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Unselected '{account}'" if account else "Unselected all accounts")


@accounts_group.command("alias")
@click.argument("account", metavar="ACCOUNT")
@click.argument("alias", metavar="ALIAS")
@click.pass_context
def set_alias(ctx, account: str, alias: str):
    """Give ACCOUNT a shorter name, shown instead of the account name.

    Examples:
        tagledger accounts alias "000000 - 00000000" current
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        service.set_alias(account, alias)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"'{account}' is now known as '{alias}'")


@accounts_group.command("delete-alias")
@click.argument("alias", metavar="ALIAS")
@click.pass_context
def delete_alias(ctx, alias: str):
    """Remove an alias."""
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        service.delete_alias(alias)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted alias '{alias}'")


def register_commands(cli):
    """Register accounts commands with main CLI."""
    cli.add_command(accounts_group, name="accounts")
