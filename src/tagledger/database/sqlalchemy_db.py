"""Generic SQLAlchemy database implementation."""

import logging
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Iterator, Optional

from sqlalchemy import and_, case, delete, exc, func, insert, select, update
from sqlalchemy.orm import Session

from tagledger.database.base import Database
from tagledger.database.migrations import run_migrations
from tagledger.database.models import (
    Account,
    UNDOABLE_TABLES,
    Base,
    TagRule,
    Transaction,
    TransactionTag,
    UndoAction,
    UndoStep,
    create_session_factory,
    create_sqlite_engine,
)
from tagledger.database.mappers import (
    account_to_domain,
    assignment_to_domain,
    decode_row,
    encode_row,
    row_image,
    tag_rule_to_domain,
    transaction_to_domain,
    undo_step_to_domain,
)
from tagledger.domain.entities import (
    Account as DomainAccount,
    TagAssignment as DomainTagAssignment,
    TagRule as DomainTagRule,
    Transaction as DomainTransaction,
    TransactionType,
    UndoStep as DomainUndoStep,
)
from tagledger.domain.errors import (
    ConflictError,
    IntegrityError,
    NotFoundError,
    account_not_found,
    cannot_undo,
    tag_rule_not_found,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_UNDO_STEPS = 128

# Keeps IN (...) lists well below SQLite's bound parameter limit.
_CHUNK_SIZE = 500


def _chunks(values: Iterable[int]) -> Iterator[list[int]]:
    values = sorted(set(values))
    for start in range(0, len(values), _CHUNK_SIZE):
        yield values[start : start + _CHUNK_SIZE]


def _equal_or_null(column, value):
    """Compare a nullable column so that NULL only matches NULL."""
    if value is None:
        return column.is_(None)
    return column == value


class SQLAlchemyDatabase(Database):
    """SQLAlchemy-based implementation of Database interface."""

    def __init__(self, database_url: str, max_undo_steps: int = DEFAULT_MAX_UNDO_STEPS):
        """Initialize SQLAlchemy database.

        Args:
            database_url: SQLAlchemy database URL (e.g., 'sqlite:///path/to.db')
            max_undo_steps: Number of undo steps kept; older steps are dropped
        """
        self.database_url = database_url
        self.max_undo_steps = max_undo_steps
        self.engine = create_sqlite_engine(database_url)
        self.session_factory = create_session_factory(self.engine)
        self._session: Optional[Session] = None
        # Inverse actions of the open command, in the order the writes happened.
        self._pending_inverses: Optional[list[tuple[str, str, str]]] = None

    def _get_session(self) -> Session:
        """Get current session, creating one if needed."""
        if self._session is None:
            self._session = self.session_factory()
        return self._session

    def connect(self) -> None:
        """Connect to the database."""
        # Connection is lazy, so this is a no-op
        pass

    def disconnect(self) -> None:
        """Disconnect from the database."""
        if self._session is not None:
            self._session.close()
            self._session = None
        self.engine.dispose()

    def initialize_schema(self) -> None:
        """Run pending migrations and prepare the undo log.

        Inverse actions are only valid for the schema they were recorded
        against, so any migration discards the whole undo history.
        """
        applied = run_migrations(self.engine)
        if applied:
            logger.info("Schema upgraded by %d migration(s), clearing undo history", applied)
            self.clear_undo_steps()
            return
        session = self._get_session()
        recorded = select(UndoAction.undo_step_id)
        session.query(UndoStep).filter(UndoStep.id.not_in(recorded)).delete(
            synchronize_session=False
        )
        session.commit()

    @contextmanager
    def command(self, name: str) -> Iterator[None]:
        """Run the enclosed writes as one atomic, undoable command.

        Everything written inside the block, plus the undo step describing
        how to revert it, commits together. Any exception rolls all of it
        back. Commands that write nothing leave no undo step.
        """
        if self._pending_inverses is not None:
            raise RuntimeError("Commands cannot be nested")
        session = self._get_session()
        self._pending_inverses = []
        try:
            yield
            inverses = self._pending_inverses
            if inverses:
                step = UndoStep(name=name)
                session.add(step)
                session.flush()
                for position, (action, table_name, row_data) in enumerate(reversed(inverses)):
                    session.add(
                        UndoAction(
                            undo_step_id=step.id,
                            position=position,
                            action=action,
                            table_name=table_name,
                            row_data=row_data,
                        )
                    )
                session.flush()
                self._truncate_undo_steps(session)
            session.commit()
            logger.debug("Command '%s' committed with %d write(s)", name, len(inverses))
        except exc.IntegrityError as e:
            session.rollback()
            raise ConflictError(f"Command '{name}' violates a constraint: {e.orig}") from e
        except BaseException:
            session.rollback()
            raise
        finally:
            self._pending_inverses = None

    # Write helpers; each one records the inverse of the write it performs.
    def _record(self, action: str, table_name: str, values: dict[str, Any]) -> None:
        if self._pending_inverses is not None:
            self._pending_inverses.append((action, table_name, encode_row(values)))

    def _finish_write(self, session: Session) -> None:
        # Writes outside a command commit on their own and are not undoable.
        if self._pending_inverses is None:
            session.commit()

    def _insert(self, session: Session, orm_object: Any) -> None:
        session.add(orm_object)
        session.flush()
        self._record("delete", orm_object.__tablename__, row_image(orm_object))
        self._finish_write(session)

    def _delete(self, session: Session, orm_object: Any) -> None:
        image = row_image(orm_object)
        session.delete(orm_object)
        session.flush()
        self._record("insert", orm_object.__tablename__, image)
        self._finish_write(session)

    def _update(self, session: Session, orm_object: Any, **changes: Any) -> None:
        image = row_image(orm_object)
        for key, value in changes.items():
            setattr(orm_object, key, value)
        session.flush()
        self._record("update", orm_object.__tablename__, image)
        self._finish_write(session)

    # Account operations
    def create_account(self, name: str) -> int:
        """Create a new account. Returns account ID."""
        session = self._get_session()
        account = Account(name=name, alias=None, selected=False)
        self._insert(session, account)
        return account.id

    def get_account(self, account_id: int) -> Optional[DomainAccount]:
        """Get account by ID."""
        session = self._get_session()
        account = session.get(Account, account_id)
        if account is None:
            return None
        return account_to_domain(account)

    def find_account(self, name_or_alias: str) -> Optional[DomainAccount]:
        """Get account whose name or alias equals ``name_or_alias``."""
        session = self._get_session()
        account = (
            session.query(Account)
            .filter((Account.name == name_or_alias) | (Account.alias == name_or_alias))
            .order_by(Account.id)
            .first()
        )
        if account is None:
            return None
        return account_to_domain(account)

    def list_accounts(self) -> list[DomainAccount]:
        """List all accounts."""
        session = self._get_session()
        accounts = session.query(Account).order_by(Account.name).all()
        return [account_to_domain(acc) for acc in accounts]

    def update_account(
        self,
        account_id: int,
        alias: Optional[str] = None,
        selected: Optional[bool] = None,
        clear_alias: bool = False,
    ) -> None:
        """Update account alias and/or selection."""
        session = self._get_session()
        account = session.get(Account, account_id)
        if account is None:
            raise NotFoundError(account_not_found(str(account_id)))

        changes: dict[str, Any] = {}
        if clear_alias:
            changes["alias"] = None
        elif alias is not None:
            changes["alias"] = alias
        if selected is not None:
            changes["selected"] = selected
        if changes:
            self._update(session, account, **changes)

    # Transaction operations
    def create_transaction(
        self,
        account_id: int,
        posted_date: date,
        description: str,
        debit_amount: Decimal,
        credit_amount: Decimal,
        balance: Decimal,
        transaction_type: TransactionType,
        currency: str,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        session = self._get_session()
        transaction = Transaction(
            account_id=account_id,
            posted_date=posted_date,
            description=description,
            debit_amount=debit_amount,
            credit_amount=credit_amount,
            balance=balance,
            transaction_type=transaction_type.value,
            currency=currency,
        )
        self._insert(session, transaction)
        return transaction.id

    def find_transaction(
        self,
        account_id: int,
        posted_date: date,
        description: str,
        debit_amount: Decimal,
        credit_amount: Decimal,
        balance: Decimal,
        transaction_type: TransactionType,
        currency: str,
    ) -> Optional[int]:
        """Return the ID of the transaction with exactly these values, if any."""
        session = self._get_session()
        txn = (
            session.query(Transaction)
            .filter(
                Transaction.account_id == account_id,
                Transaction.posted_date == posted_date,
                Transaction.description == description,
                Transaction.debit_amount == debit_amount,
                Transaction.credit_amount == credit_amount,
                Transaction.balance == balance,
                Transaction.transaction_type == transaction_type.value,
                Transaction.currency == currency,
            )
            .first()
        )
        return txn.id if txn is not None else None

    def get_transaction(self, transaction_id: int) -> Optional[DomainTransaction]:
        """Get transaction by ID."""
        session = self._get_session()
        txn = session.get(Transaction, transaction_id)
        if txn is None:
            return None
        return transaction_to_domain(txn)

    def list_transactions(
        self,
        transaction_ids: Optional[Iterable[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        description_contains: Optional[str] = None,
        amount_min: Optional[Decimal] = None,
        amount_max: Optional[Decimal] = None,
        account_ids: Optional[Iterable[int]] = None,
        transaction_types: Optional[Iterable[TransactionType]] = None,
    ) -> list[DomainTransaction]:
        """List transactions with optional filters, ordered by ID.

        The amount filters compare the credit amount of credits and the
        debit amount of everything else, as ``[amount_min, amount_max)``.
        """
        session = self._get_session()
        query = session.query(Transaction)

        if start_date is not None:
            query = query.filter(Transaction.posted_date >= start_date)
        if end_date is not None:
            query = query.filter(Transaction.posted_date <= end_date)
        if description_contains is not None:
            query = query.filter(
                func.lower(Transaction.description).contains(
                    description_contains.lower(), autoescape=True
                )
            )

        amount = case(
            (Transaction.transaction_type == TransactionType.CREDIT.value, Transaction.credit_amount),
            else_=Transaction.debit_amount,
        )
        if amount_min is not None:
            query = query.filter(amount >= amount_min)
        if amount_max is not None:
            query = query.filter(amount < amount_max)
        if account_ids is not None:
            query = query.filter(Transaction.account_id.in_(list(account_ids)))
        if transaction_types is not None:
            query = query.filter(
                Transaction.transaction_type.in_([kind.value for kind in transaction_types])
            )

        if transaction_ids is None:
            transactions = query.order_by(Transaction.id).all()
        else:
            transactions = []
            for chunk in _chunks(transaction_ids):
                transactions.extend(query.filter(Transaction.id.in_(chunk)).all())
            transactions.sort(key=lambda txn: txn.id)
        return [transaction_to_domain(txn) for txn in transactions]

    def count_transactions(self) -> int:
        """Count all transactions."""
        session = self._get_session()
        return session.query(Transaction).count()

    # Tag rule operations
    def create_tag_rule(
        self,
        tag: str,
        note: str,
        transaction_id: Optional[int] = None,
        description_contains: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
        amount_min: Optional[Decimal] = None,
        amount_max: Optional[Decimal] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> int:
        """Create a tag rule. Returns tag rule ID."""
        session = self._get_session()
        rule = TagRule(
            tag=tag,
            note=note,
            transaction_id=transaction_id,
            description_contains=description_contains,
            transaction_type=transaction_type.value if transaction_type is not None else None,
            amount_min=amount_min,
            amount_max=amount_max,
            from_date=from_date,
            to_date=to_date,
        )
        self._insert(session, rule)
        return rule.id

    def find_tag_rule(
        self,
        tag: str,
        transaction_id: Optional[int] = None,
        description_contains: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
        amount_min: Optional[Decimal] = None,
        amount_max: Optional[Decimal] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> Optional[int]:
        """Return the ID of the tag rule with this tag and predicates, if any."""
        session = self._get_session()
        rule = (
            session.query(TagRule)
            .filter(
                TagRule.tag == tag,
                _equal_or_null(TagRule.transaction_id, transaction_id),
                _equal_or_null(TagRule.description_contains, description_contains),
                _equal_or_null(
                    TagRule.transaction_type,
                    transaction_type.value if transaction_type is not None else None,
                ),
                _equal_or_null(TagRule.amount_min, amount_min),
                _equal_or_null(TagRule.amount_max, amount_max),
                _equal_or_null(TagRule.from_date, from_date),
                _equal_or_null(TagRule.to_date, to_date),
            )
            .order_by(TagRule.id)
            .first()
        )
        return rule.id if rule is not None else None

    def get_tag_rule(self, tag_rule_id: int) -> Optional[DomainTagRule]:
        """Get tag rule by ID."""
        session = self._get_session()
        rule = session.get(TagRule, tag_rule_id)
        if rule is None:
            return None
        return tag_rule_to_domain(rule)

    def list_tag_rules(self) -> list[DomainTagRule]:
        """List all tag rules, ordered by ID."""
        session = self._get_session()
        rules = session.query(TagRule).order_by(TagRule.id).all()
        return [tag_rule_to_domain(rule) for rule in rules]

    def delete_tag_rule(self, tag_rule_id: int) -> None:
        """Delete a tag rule. Its assignments must already be gone."""
        session = self._get_session()
        rule = session.get(TagRule, tag_rule_id)
        if rule is None:
            raise NotFoundError(tag_rule_not_found(tag_rule_id))
        self._delete(session, rule)

    # Tag assignment operations
    def list_assignments(
        self,
        transaction_ids: Optional[Iterable[int]] = None,
        tag_rule_id: Optional[int] = None,
    ) -> list[DomainTagAssignment]:
        """List assignments, optionally restricted to transactions or a rule."""
        session = self._get_session()
        query = session.query(TransactionTag)
        if tag_rule_id is not None:
            query = query.filter(TransactionTag.tag_rule_id == tag_rule_id)

        if transaction_ids is None:
            rows = query.all()
        else:
            rows = []
            for chunk in _chunks(transaction_ids):
                rows.extend(query.filter(TransactionTag.transaction_id.in_(chunk)).all())
        return sorted(assignment_to_domain(row) for row in rows)

    def add_assignment(self, transaction_id: int, tag_rule_id: int) -> None:
        """Assign a rule to a transaction."""
        session = self._get_session()
        assignment = TransactionTag(transaction_id=transaction_id, tag_rule_id=tag_rule_id)
        self._insert(session, assignment)

    def remove_assignment(self, transaction_id: int, tag_rule_id: int) -> None:
        """Remove a rule assignment from a transaction."""
        session = self._get_session()
        assignment = session.get(TransactionTag, (transaction_id, tag_rule_id))
        if assignment is None:
            raise NotFoundError(
                f"Tag rule {tag_rule_id} is not assigned to transaction {transaction_id}"
            )
        self._delete(session, assignment)

    def get_tags_by_transaction(self, transaction_ids: Iterable[int]) -> dict[int, set[str]]:
        """Map transaction IDs to the distinct tag labels assigned to them.

        Transactions without assignments map to an empty set.
        """
        session = self._get_session()
        tags: dict[int, set[str]] = {}
        for chunk in _chunks(transaction_ids):
            for transaction_id in chunk:
                tags[transaction_id] = set()
            rows = (
                session.query(TransactionTag.transaction_id, TagRule.tag)
                .join(TagRule, TransactionTag.tag_rule_id == TagRule.id)
                .filter(TransactionTag.transaction_id.in_(chunk))
                .distinct()
                .all()
            )
            for transaction_id, tag in rows:
                tags[transaction_id].add(tag)
        return tags

    def delete_all(self) -> int:
        """Delete every account, transaction, tag rule and assignment.

        Rows are removed one by one, dependents first, so that an open
        command can restore them.

        Returns:
            Number of transactions deleted
        """
        session = self._get_session()
        count = session.query(func.count(Transaction.id)).scalar()
        for model in (TransactionTag, TagRule, Transaction, Account):
            for row in session.query(model).all():
                self._delete(session, row)
        logger.debug("Deleted all data (%d transaction(s))", count)
        return count

    # Undo operations
    def list_undo_steps(self) -> list[DomainUndoStep]:
        """List undo steps, newest first."""
        session = self._get_session()
        rows = (
            session.query(UndoStep, func.count(UndoAction.id))
            .outerjoin(UndoAction, UndoAction.undo_step_id == UndoStep.id)
            .group_by(UndoStep.id)
            .order_by(UndoStep.id.desc())
            .all()
        )
        return [undo_step_to_domain(step, count) for step, count in rows]

    def undo_last_step(self) -> Optional[str]:
        """Revert the newest undo step. Returns its name, or None if empty.

        Raises:
            IntegrityError: If the step can no longer be applied. Nothing
                is changed and the step is kept.
        """
        if self._pending_inverses is not None:
            raise RuntimeError("Cannot undo inside a command")
        session = self._get_session()
        step = session.query(UndoStep).order_by(UndoStep.id.desc()).first()
        if step is None:
            return None

        name = step.name
        try:
            for action in step.actions:
                self._apply_inverse(session, name, action)
            session.delete(step)
            session.commit()
        except exc.IntegrityError as e:
            session.rollback()
            raise IntegrityError(cannot_undo(name, str(e.orig))) from e
        except IntegrityError:
            session.rollback()
            raise
        except Exception as e:
            session.rollback()
            raise IntegrityError(cannot_undo(name, str(e))) from e
        finally:
            session.expire_all()

        logger.info("Undid command '%s'", name)
        return name

    def _apply_inverse(self, session: Session, step_name: str, action: UndoAction) -> None:
        if action.table_name not in UNDOABLE_TABLES:
            raise IntegrityError(cannot_undo(step_name, f"unknown table '{action.table_name}'"))
        table = Base.metadata.tables[action.table_name]
        values = decode_row(table, action.row_data)
        key = and_(*(column == values[column.name] for column in table.primary_key.columns))

        if action.action == "insert":
            session.execute(insert(table).values(**values))
            return

        if action.action == "delete":
            result = session.execute(delete(table).where(key))
        elif action.action == "update":
            result = session.execute(update(table).where(key).values(**values))
        else:
            raise IntegrityError(cannot_undo(step_name, f"unknown action '{action.action}'"))

        if result.rowcount != 1:
            row_key = ", ".join(
                f"{column.name}={values[column.name]}" for column in table.primary_key.columns
            )
            raise IntegrityError(
                cannot_undo(step_name, f"{table.name} row ({row_key}) no longer exists")
            )

    def clear_undo_steps(self) -> None:
        """Discard the whole undo history."""
        session = self._get_session()
        session.query(UndoStep).delete(synchronize_session=False)
        self._finish_write(session)

    def _truncate_undo_steps(self, session: Session) -> None:
        stale = [
            step_id
            for (step_id,) in session.query(UndoStep.id)
            .order_by(UndoStep.id.desc())
            .offset(self.max_undo_steps)
        ]
        if stale:
            session.query(UndoStep).filter(UndoStep.id.in_(stale)).delete(
                synchronize_session=False
            )
            logger.debug("Dropped %d old undo step(s)", len(stale))

