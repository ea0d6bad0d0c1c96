"""pkgwatch: unprivileged pacman database mirror and upgrade checker.

Keeps a writable shadow of the package database so sync databases can be
refreshed without root, then reports what a full system upgrade would
change, which watched packages have newer versions and which installed
packages come from no configured repository.
"""

from .mirror import MirrorResult, MirrorStore, SyncedDbSet
from .session import Session
from .updates import ChangeKind, PackageChange, ResolveMode, WatchedEntry

__version__ = "0.1.0"

__all__ = [
    "ChangeKind",
    "MirrorResult",
    "MirrorStore",
    "PackageChange",
    "ResolveMode",
    "Session",
    "SyncedDbSet",
    "WatchedEntry",
]
