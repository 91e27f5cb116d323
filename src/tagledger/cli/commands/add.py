"""Add transaction command."""

import click
from tagledger.cli.error_handling import handle_domain_error
from tagledger.domain.errors import DomainError
from tagledger.domain.transaction import TransactionService


@click.command("add")
@click.option("--account", required=True, help="Account name (created if unknown)")
@click.option(
    "--date",
    "posted_date",
    required=True,
    help="Posting date (YYYY-MM-DD or relative like 'today', 'yesterday')",
)
@click.option("--description", default="", help="Transaction description")
@click.option("--debit", default="0", help="Debited amount (e.g., 50.00)")
@click.option("--credit", default="0", help="Credited amount (e.g., 1000.00)")
@click.option("--balance", required=True, help="Account balance after the transaction")
@click.option(
    "--type",
    "transaction_type",
    type=click.Choice(["Debit", "Credit", "Direct Debit"], case_sensitive=False),
    default="Debit",
    show_default=True,
    help="Transaction type",
)
@click.option("--currency", default="GBP", show_default=True, help="Currency code")
@click.pass_context
def add_transaction(
    ctx,
    account: str,
    posted_date: str,
    description: str,
    debit: str,
    credit: str,
    balance: str,
    transaction_type: str,
    currency: str,
):
    """Add a transaction manually and tag it.

    Adding a transaction identical to an existing one does nothing.

    Examples:
        tagledger add --account Current --date 2021-01-15 --debit 50 --balance 950 --description "ELECTRICITY COMPANY"
        tagledger add --account Current --date today --credit 1000 --balance 1950 --type Credit
    """
    db = ctx.obj["db"]
    service = TransactionService(db)
    count_before = service.count_transactions()

    try:
        transaction_id = service.insert_transaction(
            account=account,
            posted_date=posted_date,
            description=description,
            debit_amount=debit,
            credit_amount=credit,
            balance=balance,
            transaction_type=transaction_type,
            currency=currency,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if service.count_transactions() == count_before:
        click.echo(f"Transaction already exists (ID: {transaction_id})")
    else:
        click.echo(f"Created transaction {transaction_id}")


def register_commands(cli):
    """Register add command with main CLI."""
    cli.add_command(add_transaction)
