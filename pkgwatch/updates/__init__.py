"""Update checks run against a synchronized engine.

This module provides the full upgrade resolver, the watched package
matcher and the foreign package detector, along with the package change
records they produce.
"""

from .models import (
    ChangeKind,
    PackageChange,
    WatchedEntry,
    has_updates,
    MISSING_VERSION,
    NO_VERSION,
    NOT_FOUND_DESCRIPTION,
)
from .transaction import Transaction, TransactionState, TransitionError
from .resolver import ResolveMode, UpgradeResolver, format_prepare_error
from .watched import WatchedPackageMatcher
from .foreign import ForeignPackageDetector

__all__ = [
    "ChangeKind",
    "PackageChange",
    "WatchedEntry",
    "has_updates",
    "MISSING_VERSION",
    "NO_VERSION",
    "NOT_FOUND_DESCRIPTION",
    "Transaction",
    "TransactionState",
    "TransitionError",
    "ResolveMode",
    "UpgradeResolver",
    "format_prepare_error",
    "WatchedPackageMatcher",
    "ForeignPackageDetector",
]
