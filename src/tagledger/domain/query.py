"""Query domain service.

Filtering on dates, description, amount, account and transaction ID is done
by the database; tag filters and all aggregation happen here, over the
unique set of matching transactions.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union

from tagledger.database.base import Database
from tagledger.domain.entities import (
    Account,
    ByMonthRow,
    ByTagRow,
    DetailRow,
    QueryFilters,
    QueryKind,
    Transaction,
)
from tagledger.domain.errors import ValidationError, account_not_found
from tagledger.utils.date_parser import month_end

logger = logging.getLogger(__name__)

UNTAGGED = ""
ZERO = Decimal("0.00")

QueryRow = Union[ByMonthRow, ByTagRow, DetailRow]


def percentage(part: Decimal, total: Decimal) -> float:
    """``part`` as a percentage of ``total``, or 0 when the total is 0."""
    if total == 0:
        return 0.0
    return float(100 * part / total)


def has_tag_prefix(tags: Iterable[str], prefixes: Sequence[str]) -> bool:
    """Check whether any tag starts with any prefix, ignoring case."""
    lowered = [prefix.lower() for prefix in prefixes]
    return any(tag.lower().startswith(prefix) for tag in tags for prefix in lowered)


class QueryService:
    """Service answering aggregate and detail queries."""

    def __init__(self, db: Database):
        """Initialize query service.

        Args:
            db: Database instance
        """
        self.db = db

    def run_query(
        self, kind: Union[str, QueryKind], filters: Optional[QueryFilters] = None
    ) -> list[QueryRow]:
        """Run a query of the given kind.

        Args:
            kind: "by-month", "by-tag", "debits" or "credits"
            filters: Filters combined with AND; None means no filtering

        Returns:
            Result rows in their deterministic order

        Raises:
            ValidationError: If the kind or a filter is invalid
        """
        try:
            kind = QueryKind(kind)
        except ValueError as e:
            raise ValidationError(f"Unknown query kind '{kind}'") from e
        filters = filters or QueryFilters()

        if kind == QueryKind.BY_MONTH:
            return self.by_month(filters)
        if kind == QueryKind.BY_TAG:
            return self.by_tag(filters)
        if kind == QueryKind.DEBITS:
            return self.debits(filters)
        return self.credits(filters)

    def select_transactions(
        self, filters: QueryFilters
    ) -> tuple[list[Transaction], dict[int, set[str]], dict[int, Account]]:
        """Find the transactions matching ``filters``.

        Returns:
            Tuple of (transactions ordered by ID, tag labels per transaction
            ID, accounts by ID)
        """
        if (
            filters.date_from is not None
            and filters.date_to is not None
            and filters.date_from > filters.date_to
        ):
            raise ValidationError("Query period ends before it starts")

        accounts = {account.id: account for account in self.db.list_accounts()}
        transactions = self.db.list_transactions(
            transaction_ids=[filters.transaction_id] if filters.transaction_id is not None else None,
            start_date=filters.date_from,
            end_date=filters.date_to,
            description_contains=filters.description_contains,
            amount_min=filters.amount_min,
            amount_max=filters.amount_max,
            account_ids=self._account_scope(filters, accounts.values()),
            transaction_types=filters.transaction_types or None,
        )
        tags = self.db.get_tags_by_transaction(txn.id for txn in transactions)

        if filters.tags:
            transactions = [txn for txn in transactions if has_tag_prefix(tags[txn.id], filters.tags)]
        if filters.not_tags:
            transactions = [
                txn for txn in transactions if not has_tag_prefix(tags[txn.id], filters.not_tags)
            ]
        logger.debug("%d transaction(s) match the query filters", len(transactions))
        return transactions, tags, accounts

    def _account_scope(
        self, filters: QueryFilters, accounts: Iterable[Account]
    ) -> Optional[list[int]]:
        if filters.account is not None:
            account = self.db.find_account(filters.account)
            if account is None:
                raise ValidationError(account_not_found(filters.account))
            return [account.id]
        selected = [account.id for account in accounts if account.selected]
        return selected or None

    def by_month(self, filters: QueryFilters) -> list[ByMonthRow]:
        """Totals per account and month, newest month first.

        The balance of a group comes from its transaction with the highest
        ID. The cumulative columns add up the groups from the newest month
        down to the current row.
        """
        transactions, _, accounts = self.select_transactions(filters)

        groups: dict[tuple[str, object], list[Transaction]] = defaultdict(list)
        for txn in transactions:
            display_name = accounts[txn.account_id].display_name
            groups[(display_name, month_end(txn.posted_date))].append(txn)

        ordered = sorted(groups.items(), key=lambda item: item[0][0])
        ordered.sort(key=lambda item: item[0][1], reverse=True)

        rows = []
        credit_cumulative = ZERO
        debit_cumulative = ZERO
        for (display_name, month), members in ordered:
            credit = sum((txn.credit_amount for txn in members), ZERO)
            debit = sum((txn.debit_amount for txn in members), ZERO)
            latest = max(members, key=lambda txn: txn.id)
            credit_cumulative += credit
            debit_cumulative += debit
            rows.append(
                ByMonthRow(
                    account=display_name,
                    month=month,
                    credit_amount=credit,
                    debit_amount=debit,
                    credit_minus_debit=credit - debit,
                    balance=latest.balance,
                    credit_cumulative=credit_cumulative,
                    debit_cumulative=debit_cumulative,
                )
            )
        return rows

    def by_tag(self, filters: QueryFilters) -> list[ByTagRow]:
        """Totals per tag with their share of the grand totals.

        A transaction with several tags counts once under each of them;
        untagged transactions are grouped under the empty tag.
        """
        transactions, tags, _ = self.select_transactions(filters)

        debits: dict[str, Decimal] = defaultdict(lambda: ZERO)
        credits: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for txn in transactions:
            for tag in tags[txn.id] or {UNTAGGED}:
                debits[tag] += txn.debit_amount
                credits[tag] += txn.credit_amount

        total_debit = sum(debits.values(), ZERO)
        total_credit = sum(credits.values(), ZERO)
        rows = [
            ByTagRow(
                tag=tag,
                debit_amount=debits[tag],
                debit_pct=percentage(debits[tag], total_debit),
                credit_amount=credits[tag],
                credit_pct=percentage(credits[tag], total_credit),
            )
            for tag in debits
        ]
        rows.sort(key=lambda row: row.tag)
        rows.sort(key=lambda row: row.debit_amount, reverse=True)
        return rows

    def debits(self, filters: QueryFilters) -> list[DetailRow]:
        """Transactions with a debit, largest first, with Pareto columns."""
        return self._details(filters, credit=False)

    def credits(self, filters: QueryFilters) -> list[DetailRow]:
        """Transactions with a credit, largest first, with Pareto columns."""
        return self._details(filters, credit=True)

    def _details(self, filters: QueryFilters, credit: bool) -> list[DetailRow]:
        transactions, tags, accounts = self.select_transactions(filters)

        def amount_of(txn: Transaction) -> Decimal:
            return txn.credit_amount if credit else txn.debit_amount

        selected = [txn for txn in transactions if amount_of(txn) != 0]
        selected.sort(key=lambda txn: (-amount_of(txn), txn.id))
        total = sum((amount_of(txn) for txn in selected), ZERO)

        rows = []
        cumulative = ZERO
        for txn in selected:
            cumulative += amount_of(txn)
            rows.append(
                DetailRow(
                    transaction_id=txn.id,
                    account=accounts[txn.account_id].display_name,
                    tags=tuple(sorted(tags[txn.id])),
                    amount=amount_of(txn),
                    description=txn.description,
                    posted_date=txn.posted_date,
                    cumulative=cumulative,
                    cumulative_pct=percentage(cumulative, total),
                )
            )
        return rows
