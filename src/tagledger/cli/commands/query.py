"""Query command."""

import click
from tagledger.cli.error_handling import handle_domain_error
from tagledger.cli.filters import AMOUNT_HELP, PERIOD_HELP, resolve_amount_range, resolve_period
from tagledger.domain.entities import (
    ByMonthRow,
    ByTagRow,
    QueryFilters,
    QueryKind,
    TransactionType,
)
from tagledger.domain.errors import DomainError
from tagledger.domain.query import QueryService


def _format_row(row) -> str:
    if isinstance(row, ByMonthRow):
        return (
            f"{row.account:20s} | {row.month:%Y/%m} | {row.credit_amount:>10} | "
            f"{row.debit_amount:>10} | {row.credit_minus_debit:>10} | {row.balance:>10} | "
            f"{row.credit_cumulative:>10} | {row.debit_cumulative:>10}"
        )
    if isinstance(row, ByTagRow):
        return (
            f"{row.tag or '(untagged)':25s} | {row.debit_amount:>10} | {row.debit_pct:6.2f}% | "
            f"{row.credit_amount:>10} | {row.credit_pct:6.2f}%"
        )
    tags = ", ".join(row.tags)
    return (
        f"{row.transaction_id:6d} | {row.posted_date} | {row.account:20s} | {row.amount:>10} | "
        f"{row.cumulative:>10} | {row.cumulative_pct:6.2f}% | {row.description} [{tags}]"
    )


_HEADERS = {
    QueryKind.BY_MONTH: "account | month | credit | debit | net | balance | credit cum. | debit cum.",
    QueryKind.BY_TAG: "tag | debit | debit % | credit | credit %",
    QueryKind.DEBITS: "id | date | account | amount | cumulative | cumulative % | description [tags]",
    QueryKind.CREDITS: "id | date | account | amount | cumulative | cumulative % | description [tags]",
}


@click.command("query")
@click.argument("kind", type=click.Choice([kind.value for kind in QueryKind]))
@click.option("--period", help=PERIOD_HELP)
@click.option("--tag", "tags", multiple=True, help="Only transactions with a tag starting with this")
@click.option("--not-tag", "not_tags", multiple=True, help="Skip transactions with a tag starting with this")
@click.option("--description", "description_contains", help="Description contains (any case)")
@click.option("--amount", help=AMOUNT_HELP)
@click.option("--account", help="Account name or alias (default: selected accounts)")
@click.option("--transaction-id", type=int, help="Only this transaction")
@click.option(
    "--transaction-type",
    type=click.Choice(["Debit", "Credit"], case_sensitive=False),
    help="Only this type; 'Debit' also covers 'Direct Debit'",
)
@click.pass_context
def query(
    ctx,
    kind: str,
    period: str | None,
    tags: tuple[str, ...],
    not_tags: tuple[str, ...],
    description_contains: str | None,
    amount: str | None,
    account: str | None,
    transaction_id: int | None,
    transaction_type: str | None,
):
    """Query the ledger.

    KIND is one of by-month, by-tag, debits or credits.

    Examples:
        tagledger query by-tag --period 2021
        tagledger query debits --tag travel/ --period january-march
        tagledger query by-month --account current --amount 50-:
        tagledger query by-tag --transaction-type debit
    """
    db = ctx.obj["db"]
    service = QueryService(db)
    date_from, date_to = resolve_period(ctx, period)
    amount_min, amount_max = resolve_amount_range(ctx, amount)

    filters = QueryFilters(
        date_from=date_from,
        date_to=date_to,
        tags=tags,
        not_tags=not_tags,
        description_contains=description_contains,
        amount_min=amount_min,
        amount_max=amount_max,
        account=account,
        transaction_id=transaction_id,
        transaction_types=TransactionType.family(transaction_type) if transaction_type else (),
    )
    try:
        rows = service.run_query(kind, filters)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not rows:
        click.echo("No transactions found.")
        return

    click.echo(_HEADERS[QueryKind(kind)])
    for row in rows:
        click.echo(_format_row(row))


def register_commands(cli):
    """Register query command with main CLI."""
    cli.add_command(query)
