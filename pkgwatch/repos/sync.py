"""Repository metadata synchronization."""

from enum import Enum, auto
from typing import TYPE_CHECKING, List, Optional

from ..common.errors import EngineError, SyncError
from ..common.logger import get_logger
from ..engine.base import QueryEngine

if TYPE_CHECKING:
    from ..mirror.store import SyncedDbSet

logger = get_logger("repo_sync")


class SyncOutcome(Enum):
    """Outcome of one repository refresh."""

    SUCCESS = auto()
    FAILURE = auto()
    NOT_NEEDED = auto()


class SyncObserver:
    """Receives sync progress. Subclass and override what you need."""

    def on_sync_dbs(self, count: int) -> None:
        pass

    def on_sync_db_start(self, name: str) -> None:
        pass

    def on_sync_db_end(self, name: str, outcome: SyncOutcome) -> None:
        pass


def require_repositories(engine: QueryEngine) -> List[str]:
    """Return registered repositories, failing if there are none.

    Raises:
        SyncError: If no repository is registered
    """
    repositories = engine.repositories()
    if not repositories:
        raise SyncError("no repositories configured")
    return repositories


class SyncCoordinator:
    """Refreshes the metadata of every registered repository in turn."""

    def __init__(self, engine: QueryEngine, observer: Optional[SyncObserver] = None):
        self.engine = engine
        self.observer = observer or SyncObserver()

    def sync_all(self, synced: Optional["SyncedDbSet"] = None) -> List[str]:
        """Refresh every repository.

        Args:
            synced: Set receiving the name of each changed repository

        Returns:
            Repositories whose metadata changed during this call

        Raises:
            SyncError: If no repository is registered or a refresh fails
        """
        repositories = require_repositories(self.engine)
        self.observer.on_sync_dbs(len(repositories))

        changed = []
        for name in repositories:
            self.observer.on_sync_db_start(name)
            try:
                updated = self.engine.update_repository(name)
            except EngineError as e:
                self.observer.on_sync_db_end(name, SyncOutcome.FAILURE)
                raise SyncError(f"Failed to update {name}: {e}") from e

            if updated:
                logger.debug(f"{name} was updated")
                changed.append(name)
                if synced is not None:
                    synced.add(name)
                self.observer.on_sync_db_end(name, SyncOutcome.SUCCESS)
            else:
                logger.debug(f"{name} is up to date")
                self.observer.on_sync_db_end(name, SyncOutcome.NOT_NEEDED)

        return changed
