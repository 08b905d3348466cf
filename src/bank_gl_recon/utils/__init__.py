"""Utility modules."""

from .exceptions import (
    CommitConflict,
    ConfigurationError,
    DatasetError,
    InvalidConfig,
    ReconciliationError,
    StorageError,
    UndoIncomplete,
)
from .logging_config import setup_logging

__all__ = [
    "CommitConflict",
    "ConfigurationError",
    "DatasetError",
    "InvalidConfig",
    "ReconciliationError",
    "StorageError",
    "UndoIncomplete",
    "setup_logging",
]
