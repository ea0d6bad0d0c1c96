"""libalpm query engine backed by pyalpm.

Requires the ``alpm`` extra (``pip install pkgwatch[alpm]``) and a system
libalpm. The engine is bound to one database path, normally the shadow
created by :class:`pkgwatch.mirror.MirrorStore`.
"""

from typing import Any, Dict, Iterable, List, Optional

import pyalpm

from ..common.logger import get_logger
from .base import (
    DependencyConflict,
    EngineCallbacks,
    EngineError,
    EngineOptions,
    MissingDependency,
    PrepareError,
    PrepareErrorKind,
    QueryEngine,
    classify_prepare_error,
    effective_sig_level,
    is_ignored,
)

logger = get_logger("alpm")


class AlpmPackage:
    """Read-only view of a pyalpm package."""

    def __init__(self, pkg: Any):
        self._pkg = pkg

    @property
    def name(self) -> str:
        return self._pkg.name

    @property
    def version(self) -> str:
        return self._pkg.version

    @property
    def desc(self) -> Optional[str]:
        return self._pkg.desc

    @property
    def repository(self) -> Optional[str]:
        db = self._pkg.db
        return db.name if db is not None else None

    @property
    def isize(self) -> int:
        return self._pkg.isize

    @property
    def download_size(self) -> int:
        return self._pkg.download_size

    @property
    def groups(self) -> List[str]:
        return list(self._pkg.groups)

    def __repr__(self) -> str:
        return f"AlpmPackage({self.name!r}, {self.version!r})"


def _error_text(error: "pyalpm.error") -> str:
    """Return the libalpm message carried by a pyalpm error."""
    if error.args:
        return str(error.args[0])
    return str(error)


class AlpmEngine(QueryEngine):
    """Query engine over a ``pyalpm.Handle``."""

    def __init__(
        self,
        dbpath: str,
        options: EngineOptions,
        callbacks: Optional[EngineCallbacks] = None,
    ):
        """Initialize libalpm and apply package manager options.

        Args:
            dbpath: Database path the handle is bound to
            options: Options from the package manager configuration
            callbacks: Optional download/question/log passthroughs

        Raises:
            EngineError: If libalpm cannot be initialized
        """
        self.dbpath = dbpath
        self.options = options
        try:
            self._handle = pyalpm.Handle(options.root_dir, dbpath)
        except pyalpm.error as e:
            raise EngineError(
                f"Failed to initialize alpm library: {_error_text(e)}"
            ) from e

        self._dbs: Dict[str, Any] = {}
        self._trans = None
        self._apply_options(options)
        self._apply_callbacks(callbacks or EngineCallbacks())

    def _apply_options(self, options: EngineOptions) -> None:
        handle = self._handle

        if options.architecture:
            if hasattr(handle, "add_architecture"):
                handle.add_architecture(options.architecture)
            else:
                handle.arch = options.architecture

        for name in options.ignore_packages:
            handle.add_ignorepkg(name)
        for name in options.ignore_groups:
            handle.add_ignoregrp(name)
        for path in options.cache_dirs:
            handle.add_cachedir(path)

        if options.gpg_dir:
            try:
                handle.gpgdir = options.gpg_dir
            except pyalpm.error as e:
                raise EngineError(
                    f"Failed to set GPGDir in ALPM: {_error_text(e)}"
                ) from e

    def _apply_callbacks(self, callbacks: EngineCallbacks) -> None:
        if callbacks.download is not None:
            self._handle.dlcb = callbacks.download
        if callbacks.question is not None:
            self._handle.questioncb = callbacks.question
        if callbacks.log is not None:
            self._handle.logcb = callbacks.log
        elif self.options.verbose:
            self._handle.logcb = self._log

    def _log(self, level: int, message: str) -> None:
        message = message.rstrip("\n")
        if message:
            logger.debug(f"ALPM: {message}")

    def register_repository(self, name: str, sig_level: int) -> None:
        try:
            self._dbs[name] = self._handle.register_syncdb(
                name, effective_sig_level(sig_level, self.options.default_sig_level)
            )
        except pyalpm.error as e:
            raise EngineError(_error_text(e)) from e

    def add_server(self, repository: str, url: str) -> None:
        db = self._dbs[repository]
        db.servers = list(db.servers) + [url]

    def repositories(self) -> List[str]:
        return list(self._dbs)

    def update_repository(self, name: str) -> bool:
        try:
            return bool(self._dbs[name].update(False))
        except pyalpm.error as e:
            raise EngineError(_error_text(e)) from e

    def begin_transaction(self) -> None:
        if self._trans is not None:
            raise EngineError("a transaction is already open")
        try:
            self._trans = self._handle.init_transaction()
        except pyalpm.error as e:
            raise EngineError(_error_text(e)) from e

    def sysupgrade(self) -> None:
        try:
            self._trans.sysupgrade(False)
        except pyalpm.error as e:
            raise EngineError(_error_text(e)) from e

    def prepare_transaction(self) -> None:
        try:
            self._trans.prepare()
        except pyalpm.error as e:
            message = _error_text(e)
            code = e.args[1] if len(e.args) > 1 else None
            kind = classify_prepare_error(code, message)
            extra = e.args[2] if len(e.args) > 2 else None
            raise PrepareError(kind, message, self._prepare_items(kind, extra)) from e

    def _prepare_items(self, kind: PrepareErrorKind, extra: Any) -> list:
        """Convert pyalpm's extra error data into prepare items."""
        if not extra or kind is PrepareErrorKind.OTHER:
            return []
        items = []
        for entry in extra:
            if kind is PrepareErrorKind.INVALID_ARCH:
                items.append(str(entry))
            elif kind is PrepareErrorKind.UNSATISFIED_DEPS:
                items.append(MissingDependency(str(entry[0]), str(entry[1])))
            else:
                reason = entry[2] if len(entry) > 2 else None
                items.append(DependencyConflict(str(entry[0]), str(entry[1]), reason))
        return items

    def transaction_additions(self) -> List[AlpmPackage]:
        return [AlpmPackage(pkg) for pkg in self._trans.to_add]

    def transaction_removals(self) -> List[AlpmPackage]:
        return [AlpmPackage(pkg) for pkg in self._trans.to_remove]

    def release_transaction(self) -> None:
        if self._trans is None:
            return
        try:
            self._trans.release()
        finally:
            self._trans = None

    def get_installed(self, name: str) -> Optional[AlpmPackage]:
        pkg = self._handle.get_localdb().get_pkg(name)
        return AlpmPackage(pkg) if pkg is not None else None

    def installed_packages(self) -> Iterable[AlpmPackage]:
        return [AlpmPackage(pkg) for pkg in self._handle.get_localdb().pkgcache]

    def get_package(self, repository: str, name: str) -> Optional[AlpmPackage]:
        db = self._dbs.get(repository)
        if db is None:
            return None
        pkg = db.get_pkg(name)
        return AlpmPackage(pkg) if pkg is not None else None

    def vercmp(self, version_a: str, version_b: str) -> int:
        return pyalpm.vercmp(version_a, version_b)

    def should_ignore(self, package: AlpmPackage) -> bool:
        return is_ignored(
            package.name,
            package.groups,
            self.options.ignore_packages,
            self.options.ignore_groups,
        )

    def release(self) -> None:
        self.release_transaction()
        self._dbs.clear()
        self._handle = None
        logger.debug(f"Released alpm handle for {self.dbpath}")
