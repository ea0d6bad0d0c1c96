"""Query engine interface.

The dependency solver, the installed-package index and the repository
metadata transport all live in an external package database engine
(libalpm). This module defines the narrow interface the rest of pkgwatch
consumes, along with the data structures used to describe a failed
transaction preparation.
"""

import fnmatch
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence, Union

from ..common.errors import EngineError

# Signature verification levels (bit values as used by libalpm)
SIG_PACKAGE = 1 << 0
SIG_PACKAGE_OPTIONAL = 1 << 1
SIG_PACKAGE_MARGINAL_OK = 1 << 2
SIG_PACKAGE_UNKNOWN_OK = 1 << 3
SIG_DATABASE = 1 << 10
SIG_DATABASE_OPTIONAL = 1 << 11
SIG_DATABASE_MARGINAL_OK = 1 << 12
SIG_DATABASE_UNKNOWN_OK = 1 << 13
SIG_USE_DEFAULT = 1 << 30

SIG_LEVEL_NAMES = {
    "package": SIG_PACKAGE,
    "package_optional": SIG_PACKAGE_OPTIONAL,
    "package_marginal_ok": SIG_PACKAGE_MARGINAL_OK,
    "package_unknown_ok": SIG_PACKAGE_UNKNOWN_OK,
    "database": SIG_DATABASE,
    "database_optional": SIG_DATABASE_OPTIONAL,
    "database_marginal_ok": SIG_DATABASE_MARGINAL_OK,
    "database_unknown_ok": SIG_DATABASE_UNKNOWN_OK,
    "use_default": SIG_USE_DEFAULT,
}


def effective_sig_level(level: int, default: int) -> int:
    """Return the level a repository is registered with.

    A repository asking for ``SIG_USE_DEFAULT`` inherits the configured
    default, unless that default is itself unset.
    """
    if level & SIG_USE_DEFAULT and not default & SIG_USE_DEFAULT:
        return default
    return level


def match_patterns(patterns: Iterable[str], value: str) -> Optional[bool]:
    """Match ``value`` against IgnorePkg/IgnoreGroup glob patterns.

    Later patterns take precedence. A leading ``!`` negates a pattern and a
    leading backslash escapes a literal ``!``. Matching is case sensitive.

    Returns:
        True if a pattern matches, False if a negated pattern matches,
        None if no pattern matches
    """
    for pattern in reversed(list(patterns)):
        negated = pattern.startswith("!")
        if negated or pattern.startswith("\\"):
            pattern = pattern[1:]
        if fnmatch.fnmatchcase(value, pattern):
            return not negated
    return None


def is_ignored(
    name: str,
    groups: Iterable[str],
    ignore_packages: Iterable[str],
    ignore_groups: Iterable[str],
) -> bool:
    """Whether a package falls under the ignore policy, by name or group."""
    if match_patterns(ignore_packages, name):
        return True
    ignore_groups = list(ignore_groups)
    return any(match_patterns(ignore_groups, group) for group in groups)


class Package(Protocol):
    """Package as exposed by the engine (installed or from a repository)."""

    @property
    def name(self) -> str: ...

    @property
    def version(self) -> str: ...

    @property
    def desc(self) -> Optional[str]: ...

    @property
    def repository(self) -> Optional[str]: ...

    @property
    def isize(self) -> int: ...

    @property
    def download_size(self) -> int: ...


class PrepareErrorKind(Enum):
    """Kind of failure reported when preparing a transaction."""

    INVALID_ARCH = auto()
    UNSATISFIED_DEPS = auto()
    CONFLICTING_DEPS = auto()
    OTHER = auto()


# alpm_errno_t codes reported by a failed prepare
ALPM_ERR_PKG_INVALID_ARCH = 42
ALPM_ERR_UNSATISFIED_DEPS = 46
ALPM_ERR_CONFLICTING_DEPS = 47

_PREPARE_CODES = {
    ALPM_ERR_PKG_INVALID_ARCH: PrepareErrorKind.INVALID_ARCH,
    ALPM_ERR_UNSATISFIED_DEPS: PrepareErrorKind.UNSATISFIED_DEPS,
    ALPM_ERR_CONFLICTING_DEPS: PrepareErrorKind.CONFLICTING_DEPS,
}

# alpm_strerror() texts, for errors raised without a code
_PREPARE_TEXTS = {
    "package architecture is not valid": PrepareErrorKind.INVALID_ARCH,
    "could not satisfy dependencies": PrepareErrorKind.UNSATISFIED_DEPS,
    "conflicting dependencies": PrepareErrorKind.CONFLICTING_DEPS,
}


def classify_prepare_error(code: Optional[int], message: str) -> PrepareErrorKind:
    """Classify a prepare failure by libalpm error code, else by message."""
    if code in _PREPARE_CODES:
        return _PREPARE_CODES[code]
    if code is None:
        for text, kind in _PREPARE_TEXTS.items():
            if text in message:
                return kind
    return PrepareErrorKind.OTHER


@dataclass(frozen=True)
class MissingDependency:
    """A dependency of ``target`` that nothing can satisfy."""

    target: str
    dependency: str


@dataclass(frozen=True)
class DependencyConflict:
    """Two packages in conflict; ``reason`` is set for versioned conflicts."""

    package1: str
    package2: str
    reason: Optional[str] = None


PrepareItem = Union[str, MissingDependency, DependencyConflict]


class PrepareError(EngineError):
    """Raised by :meth:`QueryEngine.prepare_transaction`.

    Attributes:
        kind: Classification of the failure
        items: Offending package names (INVALID_ARCH), MissingDependency
            (UNSATISFIED_DEPS) or DependencyConflict (CONFLICTING_DEPS) entries
    """

    def __init__(
        self,
        kind: PrepareErrorKind,
        message: str,
        items: Optional[Sequence[PrepareItem]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.items = list(items or [])


@dataclass
class EngineOptions:
    """Package manager options applied to a freshly initialized engine."""

    root_dir: str = "/"
    architecture: Optional[str] = None
    ignore_packages: List[str] = field(default_factory=list)
    ignore_groups: List[str] = field(default_factory=list)
    default_sig_level: int = SIG_USE_DEFAULT
    gpg_dir: Optional[str] = None
    cache_dirs: List[str] = field(default_factory=list)
    verbose: bool = False


@dataclass
class EngineCallbacks:
    """Optional passthrough callbacks handed to the engine."""

    download: Optional[Callable[..., Any]] = None
    question: Optional[Callable[..., Any]] = None
    log: Optional[Callable[[int, str], None]] = None


class QueryEngine(ABC):
    """Abstract package database engine bound to one database path.

    Exactly one transaction may be open at a time; implementations refuse a
    second ``begin_transaction`` until ``release_transaction`` was called.
    """

    @abstractmethod
    def register_repository(self, name: str, sig_level: int) -> None:
        """Register a sync repository.

        Raises:
            EngineError: If the engine refuses the repository
        """

    @abstractmethod
    def add_server(self, repository: str, url: str) -> None:
        """Add a resolved server URL to a registered repository.

        Raises:
            EngineError: If the URL cannot be added
        """

    @abstractmethod
    def repositories(self) -> List[str]:
        """Return registered repository names in registration order."""

    @abstractmethod
    def update_repository(self, name: str) -> bool:
        """Refresh metadata for a repository, network fetch allowed.

        Returns:
            True if the metadata changed, False if already up to date

        Raises:
            EngineError: If the refresh fails
        """

    @abstractmethod
    def begin_transaction(self) -> None:
        """Open a transaction."""

    @abstractmethod
    def sysupgrade(self) -> None:
        """Request a full system upgrade in the open transaction."""

    @abstractmethod
    def prepare_transaction(self) -> None:
        """Validate the transaction plan.

        Raises:
            PrepareError: If the plan cannot be satisfied
        """

    @abstractmethod
    def transaction_additions(self) -> List[Package]:
        """Packages the prepared plan would install or upgrade."""

    @abstractmethod
    def transaction_removals(self) -> List[Package]:
        """Packages the prepared plan would remove."""

    @abstractmethod
    def release_transaction(self) -> None:
        """Release the open transaction."""

    @abstractmethod
    def get_installed(self, name: str) -> Optional[Package]:
        """Look up an installed package by name."""

    @abstractmethod
    def installed_packages(self) -> Iterable[Package]:
        """Enumerate installed packages in index order."""

    @abstractmethod
    def get_package(self, repository: str, name: str) -> Optional[Package]:
        """Look up a package by name in a registered repository."""

    @abstractmethod
    def vercmp(self, version_a: str, version_b: str) -> int:
        """Compare two package versions (<0, 0, >0)."""

    @abstractmethod
    def should_ignore(self, package: Package) -> bool:
        """Whether the ignore policy excludes ``package`` from upgrades."""

    def release(self) -> None:
        """Release engine resources."""
