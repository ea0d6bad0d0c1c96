"""Full system upgrade resolution.

Opens a transaction against the query engine, asks for a full upgrade and
turns the prepared plan into package change records.
"""

from enum import Enum
from typing import List

from ..common.errors import EngineError, TransactionError
from ..common.logger import get_logger
from ..engine.base import (
    DependencyConflict,
    MissingDependency,
    PrepareError,
    PrepareErrorKind,
    QueryEngine,
)
from ..repos.sync import require_repositories
from .models import PackageChange
from .transaction import Transaction

logger = get_logger("upgrade_resolver")

MAX_DETAIL_LINE = 254
MAX_DETAILS = 1023


class ResolveMode(Enum):
    """Whether the upgrade is computed for a real run or a preview."""

    REAL = "real"
    PREVIEW = "preview"  # Removals chosen by the user are reported too


def format_prepare_error(error: PrepareError) -> List[str]:
    """Itemise a preparation failure.

    Args:
        error: Failure raised by the engine

    Returns:
        One line per offending package, dependency or conflict
    """
    lines = []
    for item in error.items:
        if error.kind is PrepareErrorKind.INVALID_ARCH:
            line = f"- Package {item} does not have a valid architecture"
        elif error.kind is PrepareErrorKind.UNSATISFIED_DEPS and isinstance(
            item, MissingDependency
        ):
            line = f"- {item.target} requires {item.dependency}"
        elif error.kind is PrepareErrorKind.CONFLICTING_DEPS and isinstance(
            item, DependencyConflict
        ):
            if item.reason:
                line = f"- {item.package1} and {item.package2} are in conflict ({item.reason})"
            else:
                line = f"- {item.package1} and {item.package2} are in conflict"
        else:
            continue
        lines.append(line[:MAX_DETAIL_LINE])
    return lines


def _join_details(lines: List[str]) -> str:
    text = ""
    for line in lines:
        entry = line + "\n"
        if len(text) + len(entry) > MAX_DETAILS:
            text += entry[: MAX_DETAILS - len(text)]
            break
        text += entry
    return text


class UpgradeResolver:
    """Computes what a full system upgrade would change."""

    def __init__(self, engine: QueryEngine, mode: ResolveMode = ResolveMode.REAL):
        self.engine = engine
        self.mode = mode

    def compute_upgrade(self) -> List[PackageChange]:
        """Compute the package changes of a full system upgrade.

        Returns:
            Change records in discovery order (empty if up to date)

        Raises:
            SyncError: If no repository is registered
            TransactionError: If the upgrade cannot be computed
        """
        require_repositories(self.engine)

        with Transaction(self.engine) as trans:
            try:
                trans.sysupgrade()
            except EngineError as e:
                raise TransactionError(str(e)) from e

            try:
                trans.prepare()
            except PrepareError as e:
                details = format_prepare_error(e)
                logger.warning(f"Failed to prepare transaction: {e}")
                raise TransactionError(
                    f"Failed to prepare transaction: {e}\n{_join_details(details)}",
                    details,
                ) from e

            changes = [
                PackageChange.addition(pkg, self.engine.get_installed(pkg.name))
                for pkg in trans.additions()
            ]

            if self.mode is ResolveMode.PREVIEW:
                for pkg in trans.removals():
                    installed = self.engine.get_installed(pkg.name) or pkg
                    changes.append(PackageChange.removal(pkg, installed))

        logger.info(f"{len(changes)} package(s) to upgrade")
        return changes
