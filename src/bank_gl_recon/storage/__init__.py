"""Storage collaborator interface and implementations."""

from .base import CommitOutcome, ReconciliationStore, RevertOutcome
from .dataset import load_dataset, save_dataset
from .memory import InMemoryStore

__all__ = [
    "CommitOutcome",
    "InMemoryStore",
    "ReconciliationStore",
    "RevertOutcome",
    "load_dataset",
    "save_dataset",
]
