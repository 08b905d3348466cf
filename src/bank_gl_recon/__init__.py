"""Bank transaction to accounting ledger reconciliation engine."""

from .config import ReconciliationConfig, validate_config
from .reconciler import AutoReconcileResult, Reconciler, UndoResult

__version__ = "0.1.0"

__all__ = [
    "AutoReconcileResult",
    "ReconciliationConfig",
    "Reconciler",
    "UndoResult",
    "validate_config",
]
