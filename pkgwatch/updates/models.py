"""Package change records produced by the update checks."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Sequence

NO_VERSION = "none"
MISSING_VERSION = "-"
NOT_FOUND_DESCRIPTION = "<package not found>"


class ChangeKind(Enum):
    """Kind of package change."""

    UPGRADE = auto()  # Installed package replaced by a newer one
    INSTALL = auto()  # Pulled in by the upgrade, nothing installed yet
    REMOVE = auto()  # Removed by the transaction (preview only)
    WATCHED = auto()  # Watched package with a newer version available
    NOT_FOUND = auto()  # Watched package missing from every repository


@dataclass(frozen=True)
class WatchedEntry:
    """A package tracked against a baseline version.

    ``name`` may be ``repository/name`` to restrict the lookup to one
    repository.
    """

    name: str
    version: str

    @property
    def repository(self) -> Optional[str]:
        if "/" not in self.name:
            return None
        return self.name.split("/", 1)[0]

    @property
    def package_name(self) -> str:
        return self.name.split("/", 1)[-1]


@dataclass(frozen=True)
class PackageChange:
    """A single package change, tagged by ``kind``."""

    kind: ChangeKind
    repository: Optional[str]
    name: str
    description: str
    old_version: str
    new_version: str
    old_size: int = 0
    new_size: int = 0
    download_size: int = 0
    ignored: bool = False

    @classmethod
    def addition(cls, package, installed=None) -> "PackageChange":
        """Record for a package the upgrade would install."""
        if installed is not None:
            kind, old_version, old_size = ChangeKind.UPGRADE, installed.version, installed.isize
        else:
            kind, old_version, old_size = ChangeKind.INSTALL, NO_VERSION, 0
        return cls(
            kind=kind,
            repository=package.repository,
            name=package.name,
            description=package.desc or "",
            old_version=old_version,
            new_version=package.version,
            old_size=old_size,
            new_size=package.isize,
            download_size=package.download_size,
        )

    @classmethod
    def removal(cls, package, installed) -> "PackageChange":
        """Record for a package the upgrade would remove."""
        return cls(
            kind=ChangeKind.REMOVE,
            repository=package.repository,
            name=package.name,
            description=package.desc or "",
            old_version=installed.version,
            new_version=NO_VERSION,
            old_size=installed.isize,
        )

    @classmethod
    def watched(cls, entry: WatchedEntry, package, ignored: bool) -> "PackageChange":
        """Record for a watched package with a newer version available."""
        return cls(
            kind=ChangeKind.WATCHED,
            repository=package.repository,
            name=entry.name if entry.repository else package.name,
            description=package.desc or "",
            old_version=entry.version,
            new_version=package.version,
            new_size=package.isize,
            download_size=package.download_size,
            ignored=ignored,
        )

    @classmethod
    def not_found(cls, entry: WatchedEntry) -> "PackageChange":
        """Record for a watched package found in no repository."""
        return cls(
            kind=ChangeKind.NOT_FOUND,
            repository=None,
            name=entry.name,
            description=NOT_FOUND_DESCRIPTION,
            old_version=entry.version,
            new_version=MISSING_VERSION,
        )

    @property
    def is_found(self) -> bool:
        return self.kind is not ChangeKind.NOT_FOUND


def has_updates(changes: Sequence[PackageChange]) -> bool:
    """Whether a result sequence reports anything."""
    return len(changes) > 0


def total_download_size(changes: Sequence[PackageChange]) -> int:
    return sum(change.download_size for change in changes)


def net_size_change(changes: Sequence[PackageChange]) -> int:
    """Installed size difference (bytes) if all changes were applied."""
    return sum(change.new_size - change.old_size for change in changes)
