"""Shadow copy of the package database.

libalpm needs a writable database path to refresh sync databases. The
shadow directory built here exposes the real local database through a
symlink (so nothing privileged is copied) and holds its own copy of every
sync database, which can then be refreshed without root.

Layout::

    <mirror>/local              -> <dbpath>/local
    <mirror>/sync/<repo>.db
    <mirror>/sync/<repo>.db.sig
    <mirror>/sync/<repo>.db.ts      staleness markers: empty files whose
    <mirror>/sync/<repo>.db.sig.ts  mtime is the source's at last copy
"""

import os
import shutil
import stat
import tempfile
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

from ..common.errors import MirrorError
from ..common.logger import get_logger

logger = get_logger("mirror_store")

PATH_MAX = 4096
TRACKED_SUFFIXES = (".db", ".db.sig")
DB_SUFFIX = ".db"
MARKER_SUFFIX = ".ts"
TEMP_PREFIX = "pkgwatch-"


class SyncedDbSet:
    """Names of repositories whose database changed, in insertion order."""

    def __init__(self, names=()):
        self._names: Dict[str, None] = dict.fromkeys(names)

    def add(self, name: str) -> None:
        self._names[name] = None

    def discard(self, name: str) -> None:
        self._names.pop(name, None)

    def clear(self) -> None:
        self._names.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._names))

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"SyncedDbSet({list(self._names)!r})"


@dataclass(frozen=True)
class MirrorResult:
    """Outcome of :meth:`MirrorStore.establish`."""

    path: str
    reused: bool


def _join(*parts: str) -> str:
    """Join path parts, refusing paths libalpm could not handle."""
    path = os.path.join(*parts)
    if len(path) >= PATH_MAX:
        raise MirrorError("Internal error: Path too long")
    return path


def _strip_slash(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path


class MirrorStore:
    """Owns the shadow database directory.

    With a fixed path the shadow survives across runs and is reused as long
    as it still mirrors the same database path. Without one, an ephemeral
    directory is created on first use and reused for the store's lifetime.
    """

    def __init__(self, fixed_path: Optional[str] = None):
        """Initialize the store.

        Args:
            fixed_path: Persistent shadow location, None for an ephemeral one
        """
        self.fixed_path = _strip_slash(fixed_path) if fixed_path else None
        self._path = self.fixed_path

    @property
    def path(self) -> Optional[str]:
        """Current shadow location, None before the first ephemeral setup."""
        return self._path

    @property
    def is_ephemeral(self) -> bool:
        return self.fixed_path is None

    def establish(
        self, real_dbpath: str, synced: Optional[SyncedDbSet] = None
    ) -> MirrorResult:
        """Create or reuse the shadow of ``real_dbpath`` and refresh it.

        Args:
            real_dbpath: The system database path (e.g. /var/lib/pacman/)
            synced: Repositories the sync step still has to treat as
                changed; cleared when the shadow is recreated

        Returns:
            MirrorResult with the shadow path and whether it was reused

        Raises:
            MirrorError: If the shadow cannot be set up or a copy fails
        """
        dbpath = _strip_slash(real_dbpath)
        _join(dbpath, "local")

        reused = False
        if self._path is not None:
            logger.debug(f"checking local db {self._path}")
            reused = self._is_reusable(self._path, dbpath)

        if reused:
            folder = self._path
        else:
            if synced is not None:
                synced.clear()
            folder = self._create(dbpath)

        try:
            self._refresh(dbpath, folder, fresh=not reused, synced=synced)
        except MirrorError:
            if not reused:
                shutil.rmtree(folder, ignore_errors=True)
            raise

        self._path = folder
        return MirrorResult(path=folder, reused=reused)

    def remove(self, keep: bool = False) -> None:
        """Dispose of the shadow.

        Args:
            keep: Leave the directory on disk
        """
        if self._path is None:
            return
        if not keep:
            logger.debug(f"removing {self._path}")
            shutil.rmtree(self._path, ignore_errors=True)
        self._path = self.fixed_path

    def _is_reusable(self, path: str, dbpath: str) -> bool:
        """Check an existing shadow, discarding it if it cannot be reused."""
        try:
            st = os.stat(path)
        except FileNotFoundError:
            logger.debug("..doesn't exist")
            return False
        except OSError as e:
            raise MirrorError(f"Failed to stat {path}: {e.strerror}") from e

        if not stat.S_ISDIR(st.st_mode):
            logger.warning(f"{path} is not a folder, replacing it")
            try:
                os.remove(path)
            except OSError as e:
                raise MirrorError(f"Unable to remove {path}: {e.strerror}") from e
            return False

        try:
            target = os.readlink(_join(path, "local"))
        except OSError:
            target = None

        if target is not None and target.endswith("/local"):
            linked = target[: -len("/local")]
            if linked == dbpath:
                logger.debug(f"same dbpath ({linked}), re-using")
                return True
            logger.debug(f"different dbpath ({linked} vs {dbpath})")
        else:
            logger.debug("symlink 'local' not found or invalid")

        logger.info(f"removing stale local db {path}")
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise MirrorError(f"Unable to remove {path}: {e.strerror}") from e
        return False

    def _create(self, dbpath: str) -> str:
        """Create a new shadow: folder, ``local`` symlink, empty ``sync``."""
        logger.debug("creating local db")
        if self.fixed_path is not None:
            folder = self.fixed_path
            try:
                os.mkdir(folder, 0o700)
            except OSError as e:
                raise MirrorError("Unable to create temp folder") from e
        else:
            try:
                folder = tempfile.mkdtemp(prefix=TEMP_PREFIX)
            except OSError as e:
                raise MirrorError("Unable to create temp folder") from e
            logger.debug(f"created tmp folder {folder}")

        try:
            link = _join(folder, "local")
            try:
                os.symlink(_join(dbpath, "local"), link)
            except OSError as e:
                raise MirrorError(f"Unable to create symlink {link}") from e

            sync_dir = _join(folder, "sync")
            try:
                os.mkdir(sync_dir, 0o700)
            except OSError as e:
                raise MirrorError(f"Unable to create folder {sync_dir}") from e
        except MirrorError:
            shutil.rmtree(folder, ignore_errors=True)
            raise

        return folder

    def _refresh(
        self,
        dbpath: str,
        folder: str,
        fresh: bool,
        synced: Optional[SyncedDbSet],
    ) -> None:
        """Copy sync databases from the real database path."""
        source_dir = _join(dbpath, "sync")
        try:
            names = sorted(os.listdir(source_dir))
        except OSError as e:
            raise MirrorError(f"Unable to open folder {source_dir}") from e

        for name in names:
            source = _join(source_dir, name)
            target = _join(folder, "sync", name)
            marker = _join(folder, "sync", name + MARKER_SUFFIX)

            # stat follows symlinks; only regular files get copied
            try:
                st = os.stat(source)
            except OSError as e:
                raise MirrorError(f"Unable to stat {source}") from e
            if not stat.S_ISREG(st.st_mode):
                logger.debug(f"ignoring non-regular file: {source}")
                continue

            tracked = name.endswith(TRACKED_SUFFIXES)
            if not fresh and tracked and self._is_fresh(st, target, marker):
                logger.debug(f"keeping current {target}")
                continue

            logger.debug(f"copying {source} to {target}")
            try:
                shutil.copyfile(source, target)
            except OSError as e:
                raise MirrorError(f"Copy failed for {source}") from e

            if tracked:
                self._stamp(st, target, marker)
                if synced is not None and name.endswith(DB_SUFFIX):
                    synced.discard(name[: -len(DB_SUFFIX)])

    @staticmethod
    def _is_fresh(st: os.stat_result, target: str, marker: str) -> bool:
        """Whether our copy is known to match the source's mtime."""
        if not os.path.exists(target):
            return False
        try:
            marker_st = os.stat(marker)
        except OSError:
            return False
        return marker_st.st_mtime_ns == st.st_mtime_ns

    @staticmethod
    def _stamp(st: os.stat_result, target: str, marker: str) -> None:
        """Give the copy the source's times and record them in the marker.

        libalpm decides whether a database is current from its mtime.
        Failures only cost a redundant download later.
        """
        times = (st.st_atime_ns, st.st_mtime_ns)
        try:
            os.utime(target, ns=times)
        except OSError as e:
            logger.debug(f"Unable to change time of {target}: {e.strerror}")

        try:
            with open(marker, "a"):
                pass
            os.utime(marker, ns=times)
        except OSError as e:
            logger.warning(f"Unable to update timestamp file {marker}: {e.strerror}")
