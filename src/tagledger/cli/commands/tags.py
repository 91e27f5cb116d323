"""Tag rule commands."""

import click
from tagledger.cli.error_handling import handle_domain_error
from tagledger.cli.filters import AMOUNT_HELP, PERIOD_HELP, resolve_amount_range, resolve_period
from tagledger.domain.errors import DomainError
from tagledger.domain.tag_rule import TagRuleService
from tagledger.domain.transaction import TransactionService


@click.group()
def tags_group():
    """Manage tag rules."""
    pass


@tags_group.command("list")
@click.argument("prefix", required=False)
@click.pass_context
def list_tag_rules(ctx, prefix: str | None):
    """List tag rules, optionally only tags starting with PREFIX."""
    db = ctx.obj["db"]
    service = TagRuleService(db)

    rules = service.list_tag_rules(tag_prefix=prefix)
    if not rules:
        click.echo("No tag rules found.")
        return

    for rule in rules:
        count = service.count_tagged(rule.id)
        click.echo(f"{rule.id:5d} | {rule.tag:25s} | {count:5d} | {rule.note}")


@tags_group.command("add")
@click.argument("tag")
@click.option("--transaction-id", type=int, help="Only tag this transaction; overrides other rules")
@click.option("--description", "description_contains", help="Description contains (any case)")
@click.option(
    "--type",
    "transaction_type",
    type=click.Choice(["Debit", "Credit"], case_sensitive=False),
    help="Transaction type; 'Debit' also matches 'Direct Debit'",
)
@click.option("--amount", help=AMOUNT_HELP)
@click.option("--period", help=PERIOD_HELP)
@click.option("--note", help="Description of the rule (generated if omitted)")
@click.pass_context
def add_tag_rule(
    ctx,
    tag: str,
    transaction_id: int | None,
    description_contains: str | None,
    transaction_type: str | None,
    amount: str | None,
    period: str | None,
    note: str | None,
):
    """Add a rule applying TAG to every matching transaction.

    Examples:
        tagledger tags add "electricity bill" --description ELECTRIC
        tagledger tags add travel/athens --period 2021/05/01-2021/05/14
        tagledger tags add special --transaction-id 42
    """
    db = ctx.obj["db"]
    service = TagRuleService(db)
    amount_min, amount_max = resolve_amount_range(ctx, amount)
    from_date, to_date = resolve_period(ctx, period)

    try:
        rule_id = service.add_tag_rule(
            tag=tag,
            transaction_id=transaction_id,
            description_contains=description_contains,
            transaction_type=transaction_type,
            amount_min=amount_min,
            amount_max=amount_max,
            from_date=from_date,
            to_date=to_date,
            note=note,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    rule = service.get_tag_rule(rule_id)
    click.echo(f"Added tag rule {rule_id}: {rule.note}")
    click.echo(f"Tagged {service.count_tagged(rule_id)} transaction(s)")


@tags_group.command("delete")
@click.argument("tag_rule_id", type=int)
@click.pass_context
def delete_tag_rule(ctx, tag_rule_id: int):
    """Delete a tag rule."""
    db = ctx.obj["db"]
    service = TagRuleService(db)

    try:
        service.delete_tag_rule(tag_rule_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted tag rule {tag_rule_id}")


@tags_group.command("touch")
@click.argument("transaction_id", type=int)
@click.pass_context
def touch_transaction(ctx, transaction_id: int):
    """Re-apply every tag rule to one transaction."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    try:
        service.touch_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Re-tagged transaction {transaction_id}")


def register_commands(cli):
    """Register tags commands with main CLI."""
    cli.add_command(tags_group, name="tags")
