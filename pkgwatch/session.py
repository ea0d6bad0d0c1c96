"""Mirror session.

A session ties together one shadow database, one query engine bound to it
and the repositories registered into that engine. It replaces process-wide
state: callers construct it, ``open`` it, run checks and ``close`` it.

Usage::

    with Session(config) as session:
        session.sync()
        updates = session.check_updates()
"""

from typing import Callable, Iterable, List, Optional

from .common.config import PkgwatchConfig
from .common.errors import SessionError
from .common.logger import get_logger
from .engine.base import EngineCallbacks, EngineOptions, Package, QueryEngine
from .mirror.store import MirrorResult, MirrorStore, SyncedDbSet
from .repos.registry import RepositoryRegistry
from .repos.sync import SyncCoordinator, SyncObserver
from .updates.foreign import ForeignPackageDetector
from .updates.models import PackageChange, WatchedEntry
from .updates.resolver import ResolveMode, UpgradeResolver
from .updates.watched import WatchedPackageMatcher

logger = get_logger("session")

EngineFactory = Callable[[str, EngineOptions, EngineCallbacks], QueryEngine]


def alpm_engine_factory(
    dbpath: str, options: EngineOptions, callbacks: EngineCallbacks
) -> QueryEngine:
    """Build a pyalpm-backed engine (requires the ``alpm`` extra)."""
    from .engine.alpm import AlpmEngine

    return AlpmEngine(dbpath, options, callbacks)


class Session:
    """An open shadow database with its query engine."""

    def __init__(
        self,
        config: PkgwatchConfig,
        *,
        store: Optional[MirrorStore] = None,
        synced: Optional[SyncedDbSet] = None,
        engine_factory: Optional[EngineFactory] = None,
        observer: Optional[SyncObserver] = None,
        callbacks: Optional[EngineCallbacks] = None,
        mode: ResolveMode = ResolveMode.REAL,
    ):
        """Initialize the session.

        Args:
            config: Loaded configuration
            store: Shadow store to reuse across sessions (built from
                ``config.mirror`` if omitted)
            synced: Set of changed repositories shared across sessions
            engine_factory: Builds the engine for the shadow path
            observer: Receives sync progress
            callbacks: Engine passthrough callbacks
            mode: Whether upgrades are computed for a real run or a preview
        """
        self.config = config
        self.store = store or MirrorStore(config.mirror.path)
        self.synced = synced if synced is not None else SyncedDbSet()
        self.engine_factory = engine_factory or alpm_engine_factory
        self.observer = observer
        self.callbacks = callbacks or EngineCallbacks()
        self.mode = mode
        self.mirror: Optional[MirrorResult] = None
        self._engine: Optional[QueryEngine] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> QueryEngine:
        if self._engine is None:
            raise SessionError("Session is not open")
        return self._engine

    def open(self) -> None:
        """Establish the shadow, initialize the engine, register repositories.

        Raises:
            SessionError: If the session is already open
            MirrorError: If the shadow cannot be set up
            EngineError: If the engine cannot be initialized
            ConfigError, RegistrationError: If a repository cannot be registered
        """
        if self.is_open:
            raise SessionError("Session is already open")

        pacman = self.config.pacman
        self.mirror = self.store.establish(pacman.db_path, self.synced)
        logger.info(
            f"{'Re-using' if self.mirror.reused else 'Created'} local db {self.mirror.path}"
        )

        engine = self.engine_factory(
            self.mirror.path, pacman.engine_options(), self.callbacks
        )
        try:
            RepositoryRegistry(engine).register(pacman.repositories, pacman.architecture)
        except Exception:
            engine.release()
            raise
        self._engine = engine

    def close(self, keep_mirror: Optional[bool] = None) -> None:
        """Release the engine and dispose of the shadow.

        Args:
            keep_mirror: Keep the shadow on disk; defaults to
                ``config.mirror.keep`` for a fixed shadow and False for an
                ephemeral one
        """
        if self._engine is not None:
            self._engine.release()
            self._engine = None

        if keep_mirror is None:
            keep_mirror = self.config.mirror.keep and not self.store.is_ephemeral
        if not keep_mirror:
            self.store.remove()

    def __enter__(self) -> "Session":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def sync(self) -> List[str]:
        """Refresh repository metadata.

        Returns:
            Repositories whose metadata changed during this call
        """
        return SyncCoordinator(self.engine, self.observer).sync_all(self.synced)

    def check_updates(self) -> List[PackageChange]:
        """Compute the changes of a full system upgrade."""
        return UpgradeResolver(self.engine, self.mode).compute_upgrade()

    def check_watched(
        self, entries: Optional[Iterable[WatchedEntry]] = None
    ) -> List[PackageChange]:
        """Evaluate watched packages (``config.watched`` by default)."""
        if entries is None:
            entries = self.config.watched
        return WatchedPackageMatcher(self.engine).match(entries)

    def check_foreign(self, ignore: Optional[Iterable[str]] = None) -> List[Package]:
        """List foreign packages (ignoring ``config.foreign_ignore`` by default)."""
        if ignore is None:
            ignore = self.config.foreign_ignore
        return ForeignPackageDetector(self.engine).detect(ignore)
