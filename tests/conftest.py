"""Shared fixtures and helpers for the reconciliation test suite."""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from bank_gl_recon.config import ReconciliationConfig
from bank_gl_recon.models.records import (
    AccountingEntry,
    BankTransaction,
    ReconciliationRule,
)
from bank_gl_recon.storage.memory import InMemoryStore

BASE_DATE = date(2024, 3, 10)


def make_transaction(**kwargs) -> BankTransaction:
    """Helper to create a BankTransaction with defaults (a payment out)."""
    defaults = {
        "id": "tx-1",
        "date": BASE_DATE,
        "amount": Decimal("-119000"),
        "description": "",
        "reference": "",
        "transaction_type": "payment",
        "bank_account_id": "acct-1",
    }
    defaults.update(kwargs)
    return BankTransaction(**defaults)


def make_entry(**kwargs) -> AccountingEntry:
    """Helper to create an AccountingEntry with defaults (a received invoice)."""
    defaults = {
        "id": "e-1",
        "date": BASE_DATE,
        "amount": Decimal("119000"),
        "description": "",
        "reference": "",
        "document_type": "invoice",
        "document_direction": "received",
        "company_id": "co-1",
    }
    defaults.update(kwargs)
    return AccountingEntry(**defaults)


def make_rule(**kwargs) -> ReconciliationRule:
    """Helper to create a rule that matches everything unless patterns are given."""
    defaults = {
        "id": "rule-1",
        "company_id": "co-1",
        "priority": 1,
    }
    defaults.update(kwargs)
    return ReconciliationRule(**defaults)


@pytest.fixture
def config() -> ReconciliationConfig:
    """Default reconciliation parameters."""
    return ReconciliationConfig()


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory store."""
    return InMemoryStore()


TRANSACTIONS_CSV = """id,bank_account_id,date,amount,description,reference,transaction_type
tx-1,acct-1,2024-03-10,-119000,pago factura 4521,,payment
tx-2,acct-1,2024-03-12,250000,deposito cliente,F-2001,deposit
"""

ENTRIES_CSV = """id,company_id,date,amount,description,reference,document_type,document_direction
e-1,co-1,2024-03-10,119000,Factura proveedor,FAC-4521,invoice,received
e-2,co-1,2024-03-11,"250,000",Factura cliente,F-2001,invoice,issued
"""


def write_dataset(directory: Path) -> Path:
    """Write a small two-pair dataset (one reference match, one amount+date match)."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "transactions.csv").write_text(TRANSACTIONS_CSV)
    (directory / "entries.csv").write_text(ENTRIES_CSV)
    return directory


@pytest.fixture
def dataset_dir(tmp_path) -> Path:
    """Dataset directory with transactions and entries but no rules."""
    return write_dataset(tmp_path / "dataset")
