"""CLI helpers for period and amount options."""

from datetime import date
from decimal import Decimal

import click

from tagledger.utils.amount_parser import parse_amount_range
from tagledger.utils.date_parser import parse_period


def resolve_period(ctx: click.Context, period: str | None) -> tuple[date | None, date | None]:
    """Resolve a --period option into an inclusive date range."""
    if period is None:
        return (None, None)
    try:
        return parse_period(period)
    except ValueError as e:
        click.echo(f"Error: Invalid period: {e}", err=True)
        ctx.exit(1)


def resolve_amount_range(
    ctx: click.Context, amount: str | None
) -> tuple[Decimal | None, Decimal | None]:
    """Resolve an --amount option into a [min, max) range."""
    if amount is None:
        return (None, None)
    try:
        return parse_amount_range(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount range: {e}", err=True)
        ctx.exit(1)


PERIOD_HELP = (
    "Month ('2021/01', 'january'), year ('2021'), named period ('last-month') "
    "or range ('2021/01/05-2021/02/01', ':-march')"
)
AMOUNT_HELP = "Amount range 'MIN-MAX', minimum inclusive, maximum exclusive; ':' leaves a side open"
