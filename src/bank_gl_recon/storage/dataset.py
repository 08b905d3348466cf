"""
CSV dataset adapter.

A dataset is a directory holding the store's tables as CSV files:
``transactions.csv``, ``entries.csv`` and, optionally, ``rules.csv`` and
``reconciliations.csv``. It lets the command line drive the reconciler against
exported data and write the updated tables back.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional
import logging

import pandas as pd

from ..config import ReconciliationConfig
from ..models.records import (
    AccountingEntry,
    BankTransaction,
    MatchMethod,
    Reconciliation,
    ReconciliationRule,
)
from ..utils.exceptions import DatasetError
from .memory import InMemoryStore

logger = logging.getLogger(__name__)

TRANSACTIONS_FILE = "transactions.csv"
ENTRIES_FILE = "entries.csv"
RULES_FILE = "rules.csv"
RECONCILIATIONS_FILE = "reconciliations.csv"

TRANSACTION_COLUMNS = [
    "id",
    "bank_account_id",
    "date",
    "amount",
    "description",
    "reference",
    "transaction_type",
    "status",
    "reconciliation_id",
]
ENTRY_COLUMNS = [
    "id",
    "company_id",
    "date",
    "amount",
    "description",
    "reference",
    "document_type",
    "document_direction",
    "status",
    "reconciliation_id",
]
RULE_COLUMNS = [
    "id",
    "company_id",
    "name",
    "priority",
    "is_active",
    "description_pattern",
    "amount_pattern",
    "transaction_type",
]
RECONCILIATION_COLUMNS = [
    "id",
    "transaction_id",
    "entry_id",
    "confidence_score",
    "method",
    "rule_id",
    "notes",
    "created_at",
    "updated_at",
]

_TRUE_VALUES = {"1", "true", "yes", "y", "t"}


def load_dataset(
    dataset_dir: Path,
    configs: Optional[dict[str, ReconciliationConfig]] = None,
) -> InMemoryStore:
    """
    Load a dataset directory into an in-memory store.

    Args:
        dataset_dir: Directory containing the CSV tables
        configs: Per-company reconciliation parameters

    Returns:
        Populated store

    Raises:
        DatasetError: If a required table is missing or a row is invalid
    """
    logger.info(f"Loading dataset from: {dataset_dir}")

    transactions = [
        _transaction_from_row(row, idx)
        for idx, row in _read_table(dataset_dir / TRANSACTIONS_FILE, required=True).iterrows()
    ]
    entries = [
        _entry_from_row(row, idx)
        for idx, row in _read_table(dataset_dir / ENTRIES_FILE, required=True).iterrows()
    ]
    rules = [
        _rule_from_row(row, idx)
        for idx, row in _read_table(dataset_dir / RULES_FILE).iterrows()
    ]
    reconciliations = [
        _reconciliation_from_row(row, idx)
        for idx, row in _read_table(dataset_dir / RECONCILIATIONS_FILE).iterrows()
    ]

    logger.info(
        f"Loaded {len(transactions)} transactions, {len(entries)} entries, "
        f"{len(rules)} rules, {len(reconciliations)} reconciliations"
    )

    return InMemoryStore(
        transactions=transactions,
        entries=entries,
        rules=rules,
        configs=configs,
        reconciliations=reconciliations,
    )


def save_dataset(store: InMemoryStore, dataset_dir: Path) -> None:
    """
    Write the store's tables back to a dataset directory.

    Args:
        store: Store to export
        dataset_dir: Target directory (created if missing)
    """
    dataset_dir.mkdir(parents=True, exist_ok=True)

    transactions = pd.DataFrame(
        [
            {
                "id": t.id,
                "bank_account_id": t.bank_account_id or "",
                "date": t.date.isoformat(),
                "amount": str(t.amount),
                "description": t.description,
                "reference": t.reference,
                "transaction_type": t.transaction_type.value,
                "status": t.status.value,
                "reconciliation_id": t.reconciliation_id or "",
            }
            for t in store.all_transactions()
        ],
        columns=TRANSACTION_COLUMNS,
    )
    entries = pd.DataFrame(
        [
            {
                "id": e.id,
                "company_id": e.company_id or "",
                "date": e.date.isoformat(),
                "amount": str(e.amount),
                "description": e.description,
                "reference": e.reference,
                "document_type": e.document_type,
                "document_direction": e.document_direction.value if e.document_direction else "",
                "status": e.status.value,
                "reconciliation_id": e.reconciliation_id or "",
            }
            for e in store.all_entries()
        ],
        columns=ENTRY_COLUMNS,
    )
    rules = pd.DataFrame(
        [
            {
                "id": r.id,
                "company_id": r.company_id,
                "name": r.name,
                "priority": r.priority,
                "is_active": "true" if r.is_active else "false",
                "description_pattern": r.description_pattern or "",
                "amount_pattern": r.amount_pattern or "",
                "transaction_type": r.transaction_type or "",
            }
            for r in store.all_rules()
        ],
        columns=RULE_COLUMNS,
    )
    reconciliations = pd.DataFrame(
        [
            {
                "id": r.id,
                "transaction_id": r.transaction_id,
                "entry_id": r.entry_id,
                "confidence_score": r.confidence_score,
                "method": r.method.value,
                "rule_id": r.rule_id or "",
                "notes": r.notes or "",
                "created_at": r.created_at.isoformat(),
                "updated_at": r.updated_at.isoformat(),
            }
            for r in store.list_reconciliations()
        ],
        columns=RECONCILIATION_COLUMNS,
    )

    transactions.to_csv(dataset_dir / TRANSACTIONS_FILE, index=False)
    entries.to_csv(dataset_dir / ENTRIES_FILE, index=False)
    rules.to_csv(dataset_dir / RULES_FILE, index=False)
    reconciliations.to_csv(dataset_dir / RECONCILIATIONS_FILE, index=False)

    logger.info(f"Dataset written to: {dataset_dir}")


def _read_table(path: Path, required: bool = False) -> pd.DataFrame:
    if not path.exists():
        if required:
            raise DatasetError(f"Missing dataset table: {path}")
        return pd.DataFrame()

    try:
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except (OSError, pd.errors.ParserError) as e:
        logger.error(f"Failed to read CSV file {path}: {e}")
        raise DatasetError(f"Failed to read CSV file {path}: {e}") from e


def _text(row: pd.Series, column: str) -> str:
    value = row.get(column)
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _optional(row: pd.Series, column: str) -> Optional[str]:
    return _text(row, column) or None


def _required(row: pd.Series, column: str, idx: Any) -> str:
    value = _text(row, column)
    if not value:
        raise DatasetError(f"Row {idx}: missing value for '{column}'")
    return value


def _parse_date(value: str, idx: Any) -> date:
    try:
        return pd.to_datetime(value).date()
    except (ValueError, TypeError) as e:
        raise DatasetError(f"Row {idx}: invalid date {value!r}") from e


def _parse_datetime(value: str) -> datetime:
    if not value:
        return datetime.now()
    return pd.to_datetime(value).to_pydatetime()


def _parse_amount(value: str, idx: Any) -> Decimal:
    try:
        # Remove any currency symbols and thousands separators
        amount = Decimal(value.replace("$", "").replace(",", "").strip())
    except InvalidOperation as e:
        raise DatasetError(f"Row {idx}: invalid amount {value!r}") from e

    if not amount.is_finite():
        raise DatasetError(f"Row {idx}: amount must be a finite number, got {value!r}")
    return amount


def _transaction_from_row(row: pd.Series, idx: Any) -> BankTransaction:
    try:
        return BankTransaction(
            id=_required(row, "id", idx),
            bank_account_id=_optional(row, "bank_account_id"),
            date=_parse_date(_required(row, "date", idx), idx),
            amount=_parse_amount(_required(row, "amount", idx), idx),
            description=_text(row, "description"),
            reference=_text(row, "reference"),
            transaction_type=_text(row, "transaction_type") or "other",
            status=_text(row, "status") or "pending",
            reconciliation_id=_optional(row, "reconciliation_id"),
        )
    except ValueError as e:
        raise DatasetError(f"Row {idx} of {TRANSACTIONS_FILE}: {e}") from e


def _entry_from_row(row: pd.Series, idx: Any) -> AccountingEntry:
    try:
        return AccountingEntry(
            id=_required(row, "id", idx),
            company_id=_optional(row, "company_id"),
            date=_parse_date(_required(row, "date", idx), idx),
            amount=_parse_amount(_required(row, "amount", idx), idx),
            description=_text(row, "description"),
            reference=_text(row, "reference"),
            document_type=_text(row, "document_type"),
            document_direction=_optional(row, "document_direction"),
            status=_text(row, "status") or "pending",
            reconciliation_id=_optional(row, "reconciliation_id"),
        )
    except ValueError as e:
        raise DatasetError(f"Row {idx} of {ENTRIES_FILE}: {e}") from e


def _rule_from_row(row: pd.Series, idx: Any) -> ReconciliationRule:
    priority = _text(row, "priority") or "0"
    try:
        return ReconciliationRule(
            id=_required(row, "id", idx),
            company_id=_required(row, "company_id", idx),
            name=_text(row, "name"),
            priority=int(priority),
            is_active=(_text(row, "is_active") or "true").lower() in _TRUE_VALUES,
            description_pattern=_optional(row, "description_pattern"),
            amount_pattern=_optional(row, "amount_pattern"),
            transaction_type=_optional(row, "transaction_type"),
        )
    except ValueError as e:
        raise DatasetError(f"Row {idx} of {RULES_FILE}: {e}") from e


def _reconciliation_from_row(row: pd.Series, idx: Any) -> Reconciliation:
    try:
        return Reconciliation(
            id=_required(row, "id", idx),
            transaction_id=_required(row, "transaction_id", idx),
            entry_id=_required(row, "entry_id", idx),
            confidence_score=int(_text(row, "confidence_score") or "0"),
            method=MatchMethod(_text(row, "method") or "manual"),
            rule_id=_optional(row, "rule_id"),
            notes=_optional(row, "notes"),
            created_at=_parse_datetime(_text(row, "created_at")),
            updated_at=_parse_datetime(_text(row, "updated_at")),
        )
    except ValueError as e:
        raise DatasetError(f"Row {idx} of {RECONCILIATIONS_FILE}: {e}") from e
