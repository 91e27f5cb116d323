"""CSV import command."""

import click
from tagledger.cli.error_handling import handle_domain_error
from tagledger.domain.csv_import import CSVImportService
from tagledger.domain.errors import DomainError


@click.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--account",
    help="Account for every row (required if the file has no 'Account' column)",
)
@click.pass_context
def import_csv(ctx, csv_file: str, account: str | None):
    """Import transactions from a CSV file.

    The file needs the columns Account, Posted Date, Description, Debit
    Amount, Credit Amount, Balance, Transaction Type and Currency. Rows that
    are already stored are skipped. Any invalid row cancels the whole import.
    """
    db = ctx.obj["db"]
    service = CSVImportService(db)

    try:
        result = service.import_csv(csv_file_path=csv_file, account=account)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo("Import complete:")
    click.echo(f"  Imported: {result.imported} transactions")
    click.echo(f"  Skipped: {result.skipped} duplicates")
    if result.accounts:
        click.echo(f"  Accounts: {', '.join(result.accounts)}")


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_csv)
