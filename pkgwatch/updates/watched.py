"""Watched package evaluation."""

from typing import Iterable, List

from ..common.logger import get_logger
from ..engine.base import QueryEngine
from ..repos.sync import require_repositories
from .models import PackageChange, WatchedEntry

logger = get_logger("watched")


class WatchedPackageMatcher:
    """Checks watched packages against the synchronized repositories.

    Repositories are searched in registration order and the first one
    carrying the package wins, whether or not its version is newer.
    """

    def __init__(self, engine: QueryEngine):
        self.engine = engine

    def match(self, entries: Iterable[WatchedEntry]) -> List[PackageChange]:
        """Evaluate the watch list.

        Args:
            entries: Watched packages with their baseline versions

        Returns:
            A WATCHED record per package with a newer version and a
            NOT_FOUND record per package missing from every eligible
            repository
        """
        repositories = require_repositories(self.engine)
        changes = []

        for entry in entries:
            candidates = repositories
            if entry.repository is not None:
                candidates = [r for r in repositories if r == entry.repository]

            package = None
            for repository in candidates:
                package = self.engine.get_package(repository, entry.package_name)
                if package is not None:
                    break

            if package is None:
                logger.debug(f"watched package not found: {entry.name}")
                changes.append(PackageChange.not_found(entry))
            elif self.engine.vercmp(package.version, entry.version) > 0:
                change = PackageChange.watched(
                    entry, package, self.engine.should_ignore(package)
                )
                logger.debug(
                    f"found watched update {change.name}: "
                    f"{change.old_version} -> {change.new_version}"
                )
                changes.append(change)

        return changes
