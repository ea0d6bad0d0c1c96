"""Package database engine interface and adapters."""

from .base import (
    DependencyConflict,
    EngineCallbacks,
    EngineOptions,
    MissingDependency,
    Package,
    PrepareError,
    PrepareErrorKind,
    QueryEngine,
    SIG_LEVEL_NAMES,
    SIG_USE_DEFAULT,
    classify_prepare_error,
    effective_sig_level,
    is_ignored,
    match_patterns,
)

__all__ = [
    "DependencyConflict",
    "EngineCallbacks",
    "EngineOptions",
    "MissingDependency",
    "Package",
    "PrepareError",
    "PrepareErrorKind",
    "QueryEngine",
    "SIG_LEVEL_NAMES",
    "SIG_USE_DEFAULT",
    "classify_prepare_error",
    "effective_sig_level",
    "is_ignored",
    "match_patterns",
]
