"""Custom exceptions for the reconciliation application."""

from typing import Iterable, Optional


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class InvalidConfig(ConfigurationError):
    """Reconciliation parameters are inconsistent (weights, tolerances)."""

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__("Invalid reconciliation config: " + "; ".join(self.problems))


class CommitConflict(ReconciliationError):
    """A match could not be committed because a record is no longer pending."""

    def __init__(self, transaction_id: str, entry_id: str, reason: Optional[str] = None):
        self.transaction_id = transaction_id
        self.entry_id = entry_id
        self.reason = reason or "record is no longer pending"
        super().__init__(
            f"Cannot commit match {transaction_id} <-> {entry_id}: {self.reason}"
        )


class UndoIncomplete(ReconciliationError):
    """One or more undo steps failed; the undo must be retried."""

    def __init__(self, reconciliation_id: str, failed_steps: Iterable[str]):
        self.reconciliation_id = reconciliation_id
        self.failed_steps = list(failed_steps)
        super().__init__(
            f"Undo of reconciliation {reconciliation_id} incomplete, "
            f"failed steps: {', '.join(self.failed_steps)}"
        )


class StorageError(ReconciliationError):
    """Error raised by a storage collaborator."""

    pass


class DatasetError(StorageError):
    """Error reading or writing a CSV dataset."""

    pass
