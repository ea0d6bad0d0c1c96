"""Repository registration and metadata synchronization."""

from .registry import RepositoryRegistry, resolve_server
from .sync import SyncCoordinator, SyncObserver, SyncOutcome, require_repositories

__all__ = [
    "RepositoryRegistry",
    "resolve_server",
    "SyncCoordinator",
    "SyncObserver",
    "SyncOutcome",
    "require_repositories",
]
