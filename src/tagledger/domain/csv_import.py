"""CSV import domain service."""

import csv
import logging
from pathlib import Path
from typing import Iterable, Optional

from tagledger.database.base import Database
from tagledger.domain.entities import ImportResult, TransactionRecord, TransactionType
from tagledger.domain.errors import ConflictError, ValidationError
from tagledger.domain.transaction import TransactionService
from tagledger.utils.amount_parser import parse_amount
from tagledger.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

ACCOUNT_COLUMN = "Account"
# Column name -> TransactionRecord field
CSV_COLUMNS = {
    "Posted Date": "posted_date",
    "Description": "description",
    "Debit Amount": "debit_amount",
    "Credit Amount": "credit_amount",
    "Balance": "balance",
    "Transaction Type": "transaction_type",
    "Currency": "currency",
}
# Blank amount cells mean zero.
_OPTIONAL_AMOUNTS = {"debit_amount", "credit_amount"}


class CSVImportService:
    """Service for importing transactions in bulk."""

    def __init__(self, db: Database, transaction_service: Optional[TransactionService] = None):
        """Initialize CSV import service.

        Args:
            db: Database instance
            transaction_service: Service used for each insert
        """
        self.db = db
        self.transaction_service = transaction_service or TransactionService(db)

    def import_records(self, records: Iterable[TransactionRecord]) -> ImportResult:
        """Insert candidate transactions as a single undoable command.

        Records identical to a stored transaction are skipped. An invalid
        record aborts the whole import, leaving the store unchanged.

        Raises:
            ValidationError: If a record is invalid; the message names it
            ConflictError: If a record names an account by one of its aliases
        """
        imported = 0
        skipped = 0
        accounts: list[str] = []
        transaction_ids: list[int] = []

        with self.db.command("import"):
            for number, record in enumerate(records, start=1):
                try:
                    transaction_id, created = self.transaction_service.insert_within_command(
                        account=record.account,
                        posted_date=record.posted_date,
                        description=record.description,
                        debit_amount=record.debit_amount,
                        credit_amount=record.credit_amount,
                        balance=record.balance,
                        transaction_type=record.transaction_type,
                        currency=record.currency,
                    )
                except (ValidationError, ConflictError) as e:
                    raise type(e)(f"Record {number}: {e}") from e

                if created:
                    imported += 1
                    transaction_ids.append(transaction_id)
                else:
                    skipped += 1
                if record.account not in accounts:
                    accounts.append(record.account)

        logger.info("Imported %d transaction(s), skipped %d duplicate(s)", imported, skipped)
        return ImportResult(
            imported=imported,
            skipped=skipped,
            accounts=tuple(accounts),
            transaction_ids=tuple(transaction_ids),
        )

    def import_csv(self, csv_file_path: str, account: Optional[str] = None) -> ImportResult:
        """Import transactions from a CSV file with the standard columns.

        Args:
            csv_file_path: Path to CSV file
            account: Account for every row. Required when the file has no
                "Account" column, and overrides the column otherwise.

        Returns:
            Import statistics

        Raises:
            ValidationError: If the file lacks columns or a row is invalid
            FileNotFoundError: If CSV file doesn't exist
        """
        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

        with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
            # Try to detect delimiter
            sample = f.read(1024)
            f.seek(0)
            try:
                delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
            except csv.Error:
                delimiter = ","

            reader = csv.DictReader(f, delimiter=delimiter)
            csv_columns = reader.fieldnames
            if csv_columns is None:
                raise ValidationError("CSV file has no columns")
            csv_columns = [column.strip() for column in csv_columns]
            reader.fieldnames = csv_columns

            required = set(CSV_COLUMNS)
            if account is None:
                required.add(ACCOUNT_COLUMN)
            missing_columns = sorted(required - set(csv_columns))
            if missing_columns:
                raise ValidationError(
                    f"CSV file missing required columns: {', '.join(missing_columns)}"
                )

            records = [
                self._row_to_record(row, row_num, account)
                for row_num, row in enumerate(reader, start=2)  # Header is row 1
                if any(value and value.strip() for value in row.values() if isinstance(value, str))
            ]

        logger.debug("Read %d row(s) from %s", len(records), csv_path)
        return self.import_records(records)

    @staticmethod
    def _row_to_record(row: dict, row_num: int, account: Optional[str]) -> TransactionRecord:
        values = {field: (row.get(column) or "").strip() for column, field in CSV_COLUMNS.items()}
        try:
            for field in _OPTIONAL_AMOUNTS:
                values[field] = parse_amount(values[field]) if values[field] else parse_amount("0")
            values["balance"] = parse_amount(values["balance"])
            values["posted_date"] = parse_date(values["posted_date"])
            values["transaction_type"] = TransactionType.parse(values["transaction_type"])
        except ValueError as e:
            raise ValidationError(f"Row {row_num}: {e}") from e

        return TransactionRecord(
            account=account if account is not None else (row.get(ACCOUNT_COLUMN) or "").strip(),
            **values,
        )
