"""Foreign package detection."""

from typing import Iterable, List

from ..engine.base import Package, QueryEngine
from ..repos.sync import require_repositories


class ForeignPackageDetector:
    """Finds installed packages that no registered repository provides."""

    def __init__(self, engine: QueryEngine):
        self.engine = engine

    def detect(self, ignore: Iterable[str] = ()) -> List[Package]:
        """List foreign packages in installed-index order.

        Args:
            ignore: Package names never reported

        Returns:
            Installed packages absent from every repository
        """
        repositories = require_repositories(self.engine)
        ignored = set(ignore)
        foreign = []

        for pkg in self.engine.installed_packages():
            if pkg.name in ignored:
                continue
            if not any(
                self.engine.get_package(repository, pkg.name) is not None
                for repository in repositories
            ):
                foreign.append(pkg)

        return foreign
