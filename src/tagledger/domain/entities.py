"""Domain model entities for tagledger.

These are pure data classes representing ledger concepts, independent of
the database schema. Services and the query engine only ever see these.
"""

from dataclasses import dataclass
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    """Kind of bank transaction."""

    DEBIT = "Debit"
    CREDIT = "Credit"
    DIRECT_DEBIT = "Direct Debit"

    @classmethod
    def parse(cls, value: "str | TransactionType") -> "TransactionType":
        """Parse a transaction type, accepting any letter case."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", " ")
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"Unknown transaction type '{value}'")

    @classmethod
    def family(cls, value: "str | TransactionType") -> tuple["TransactionType", ...]:
        """Types covered by ``value`` the way tag rules match them.

        "Debit" also covers "Direct Debit".
        """
        kind = cls.parse(value)
        return tuple(member for member in cls if kind.value.lower() in member.value.lower())


# Tag rules only distinguish debits from credits; "Debit" also covers
# "Direct Debit" through substring matching.
RULE_TRANSACTION_TYPES = (TransactionType.DEBIT, TransactionType.CREDIT)


class QueryKind(str, Enum):
    """Query kinds understood by the query engine."""

    BY_MONTH = "by-month"
    BY_TAG = "by-tag"
    DEBITS = "debits"
    CREDITS = "credits"


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    name: str
    alias: Optional[str]
    selected: bool

    @property
    def display_name(self) -> str:
        """Alias if one is set, otherwise the account name."""
        return self.alias if self.alias is not None else self.name


@dataclass(frozen=True)
class Transaction:
    """Imported bank transaction. Never modified after insertion."""

    id: int
    account_id: int
    posted_date: date
    description: str
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal
    transaction_type: TransactionType
    currency: str

    @property
    def amount(self) -> Decimal:
        """Larger of the debit and credit amounts."""
        return max(self.debit_amount, self.credit_amount)


@dataclass(frozen=True)
class TagRule:
    """User-authored classification rule.

    Every predicate is optional; ``None`` means the rule places no
    constraint on that attribute.
    """

    id: int
    tag: str
    note: str
    transaction_id: Optional[int] = None
    description_contains: Optional[str] = None
    transaction_type: Optional[TransactionType] = None
    amount_min: Optional[Decimal] = None
    amount_max: Optional[Decimal] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    @property
    def is_pinned(self) -> bool:
        """True for rules scoped to a single transaction."""
        return self.transaction_id is not None


@dataclass(frozen=True, order=True)
class TagAssignment:
    """Derived fact that a rule currently tags a transaction."""

    transaction_id: int
    tag_rule_id: int


@dataclass(frozen=True)
class UndoStep:
    """One reversible command in the undo history."""

    id: int
    name: str
    created_at: datetime
    action_count: int


@dataclass(frozen=True)
class ImportResult:
    """Outcome of importing a batch of candidate transactions."""

    imported: int
    skipped: int
    accounts: tuple[str, ...]
    transaction_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class QueryFilters:
    """Filter specification shared by all query kinds.

    All fields are optional and combined with AND. ``tags`` keeps
    transactions carrying at least one tag under any of the prefixes;
    ``not_tags`` drops transactions carrying any tag under those prefixes.
    An empty ``transaction_types`` allows every type.
    """

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    tags: tuple[str, ...] = ()
    not_tags: tuple[str, ...] = ()
    description_contains: Optional[str] = None
    amount_min: Optional[Decimal] = None
    amount_max: Optional[Decimal] = None
    account: Optional[str] = None
    transaction_id: Optional[int] = None
    transaction_types: tuple[TransactionType, ...] = ()


@dataclass(frozen=True)
class ByMonthRow:
    """Per account and month totals."""

    account: str
    month: date
    credit_amount: Decimal
    debit_amount: Decimal
    credit_minus_debit: Decimal
    balance: Decimal
    credit_cumulative: Decimal
    debit_cumulative: Decimal


@dataclass(frozen=True)
class ByTagRow:
    """Per tag totals and their share of the grand totals."""

    tag: str
    debit_amount: Decimal
    debit_pct: float
    credit_amount: Decimal
    credit_pct: float


@dataclass(frozen=True)
class DetailRow:
    """One debit or credit transaction with its Pareto columns."""

    transaction_id: int
    account: str
    tags: tuple[str, ...]
    amount: Decimal
    description: str
    posted_date: date
    cumulative: Decimal
    cumulative_pct: float


@dataclass(frozen=True)
class TransactionRecord:
    """Candidate transaction handed over by an import adapter."""

    account: str
    posted_date: date
    description: str
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal
    transaction_type: TransactionType
    currency: str
