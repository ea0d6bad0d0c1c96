"""Exception hierarchy for pkgwatch.

All errors carry a human readable message built from the lower-level cause
and are propagated to the caller; nothing here is retried internally.
"""

from typing import List, Optional


class PkgwatchError(Exception):
    """Base class for all pkgwatch errors."""


class ConfigError(PkgwatchError):
    """Raised for invalid configuration (bad server template, missing arch)."""


class MirrorError(PkgwatchError):
    """Raised when the shadow database cannot be set up."""


class SessionError(PkgwatchError):
    """Raised when a session is used outside of its open/close lifecycle."""


class EngineError(PkgwatchError):
    """Raised when the query engine reports a failure."""


class RegistrationError(EngineError):
    """Raised when a repository or one of its servers cannot be registered."""


class SyncError(EngineError):
    """Raised when repository metadata cannot be refreshed."""


class TransactionError(EngineError):
    """Raised when an upgrade transaction cannot be computed.

    Attributes:
        details: Itemised failure lines (missing dependencies, conflicts...)
    """

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.details = list(details or [])
