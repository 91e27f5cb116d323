"""Shared pytest fixtures for tagledger tests."""

import os
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from tagledger.cli.main import cli
from tagledger.database.factories import create_sqlite_database
from tagledger.domain.account import AccountService
from tagledger.domain.csv_import import CSVImportService
from tagledger.domain.query import QueryService
from tagledger.domain.tag_rule import TagRuleService
from tagledger.domain.tagging import TagAssignmentMaintainer
from tagledger.domain.transaction import TransactionService
from tagledger.domain.undo import UndoService

ACCOUNT_0 = "000000 - 00000000"
ACCOUNT_1 = "111111 - 11111111"


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def maintainer(temp_db):
    """Create a TagAssignmentMaintainer with a temporary database."""
    return TagAssignmentMaintainer(temp_db)


@pytest.fixture
def transaction_service(temp_db, maintainer):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db, maintainer)


@pytest.fixture
def tag_rule_service(temp_db, maintainer):
    """Create a TagRuleService with a temporary database."""
    return TagRuleService(temp_db, maintainer)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def query_service(temp_db):
    """Create a QueryService with a temporary database."""
    return QueryService(temp_db)


@pytest.fixture
def undo_service(temp_db):
    """Create an UndoService with a temporary database."""
    return UndoService(temp_db)


@pytest.fixture
def csv_import_service(temp_db, transaction_service):
    """Create a CSVImportService with a temporary database."""
    return CSVImportService(temp_db, transaction_service)


@pytest.fixture
def add_transaction(transaction_service):
    """Insert a transaction, filling in unimportant fields."""

    def add(
        description="",
        debit="0",
        credit="0",
        balance="0",
        posted_date=date(2021, 1, 15),
        transaction_type="Debit",
        account=ACCOUNT_0,
        currency="GBP",
    ):
        return transaction_service.insert_transaction(
            account=account,
            posted_date=posted_date,
            description=description,
            debit_amount=Decimal(debit),
            credit_amount=Decimal(credit),
            balance=Decimal(balance),
            transaction_type=transaction_type,
            currency=currency,
        )

    return add


@pytest.fixture
def sample_transactions(add_transaction):
    """A small two-account ledger spanning two months."""
    return {
        "electricity": add_transaction(
            "ELECTRICITY COMPANY", debit="50", balance="9950", posted_date=date(2021, 1, 5)
        ),
        "salary": add_transaction(
            "ACME PAYROLL",
            credit="2000",
            balance="11950",
            posted_date=date(2021, 1, 28),
            transaction_type="Credit",
        ),
        "grocery": add_transaction(
            "GROCERY STORE", debit="80.25", balance="11869.75", posted_date=date(2021, 2, 3)
        ),
        "gym": add_transaction(
            "GYM MEMBERSHIP",
            debit="30",
            balance="11839.75",
            posted_date=date(2021, 2, 10),
            transaction_type="Direct Debit",
        ),
        "savings_interest": add_transaction(
            "INTEREST",
            credit="1.50",
            balance="501.50",
            posted_date=date(2021, 2, 28),
            transaction_type="Credit",
            account=ACCOUNT_1,
        ),
    }


@pytest.fixture
def snapshot(temp_db):
    """Capture the full contents of every store, for before/after checks."""

    def take():
        return {
            "accounts": temp_db.list_accounts(),
            "transactions": temp_db.list_transactions(),
            "tag_rules": temp_db.list_tag_rules(),
            "assignments": temp_db.list_assignments(),
        }

    return take


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def run_cli(cli_runner, temp_db):
    """Invoke the CLI against the temporary database.

    The fixture's own handle is closed first so the CLI can write; it
    reconnects on next use.
    """

    def run(*args, input=None):
        temp_db.disconnect()
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args], input=input)

    return run


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
