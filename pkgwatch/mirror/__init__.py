"""Shadow package database management."""

from .store import MirrorResult, MirrorStore, SyncedDbSet

__all__ = ["MirrorResult", "MirrorStore", "SyncedDbSet"]
