# phaseflow/store/__init__.py
"""
Persistence for phaseflow: roadmap codec and store, archive, lock, transactions.
"""

from phaseflow.store.archive import ArchiveManager, render_markdown
from phaseflow.store.lock import LockInfo, RoadmapLock
from phaseflow.store.roadmap_store import RoadmapStore
from phaseflow.store.workspace import Transaction, Workspace

__all__ = [
    "ArchiveManager",
    "RoadmapStore",
    "RoadmapLock",
    "LockInfo",
    "Transaction",
    "Workspace",
    "render_markdown",
]
