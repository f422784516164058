# phaseflow/tools/lock.py
"""
Lock tools: inspect and force-clear the roadmap lock.
"""

import logging

from phaseflow.models.responses import LockStatus
from phaseflow.store.lock import LockInfo
from phaseflow.store.workspace import Workspace

logger = logging.getLogger(__name__)


def _status(info: LockInfo | None, cleared: bool = False) -> LockStatus:
    if info is None:
        return LockStatus(locked=False, cleared=cleared)
    return LockStatus(
        locked=not cleared,
        owner=info.owner,
        pid=info.pid,
        host=info.host,
        acquired_at=info.acquired_at,
        cleared=cleared,
    )


def lock_status(workspace: Workspace) -> dict:
    """
    Report the current lock holder.

    Returns:
        LockStatus as dict
    """
    return _status(workspace.lock().read_info()).model_dump(mode="json")


def clear_lock(workspace: Workspace) -> dict:
    """
    Force-clear the lock regardless of holder.

    Returns:
        LockStatus as dict with cleared=True when a lock was removed
    """
    info = workspace.lock().force_clear()
    if info is not None:
        logger.warning(f"Lock held by {info.owner} cleared on request")
    return _status(info, cleared=info is not None).model_dump(mode="json")
