# phaseflow/store/lock.py
"""
Cross-process lock on the roadmap's backing location.

A sidecar `<roadmap>.lock` file created with O_CREAT | O_EXCL marks the lock
as held. It records the owner identity and acquisition time so waiters can
tell a live holder (LockHeld after the timeout) from an abandoned one
(StaleLock immediately). Stale locks are never taken over implicitly; the
caller decides whether to force_clear().
"""

import getpass
import logging
import os
import socket
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from phaseflow.errors import LockError, LockHeld, StaleLock

logger = logging.getLogger(__name__)


def default_owner() -> str:
    """Owner identity: user@host:pid."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown"
    return f"{user}@{socket.gethostname()}:{os.getpid()}"


class LockInfo(BaseModel):
    """Metadata stored inside the lock file."""

    owner: str
    pid: int
    host: str
    acquired_at: datetime
    token: str = Field(default="", description="Per-acquisition id, guards release")


class RoadmapLock:
    """
    Exclusive lock with owner identity and staleness detection.

    Usable as a context manager:

        with RoadmapLock(path) as lock:
            ...

    Args:
        target: Path of the file being protected (lock file: sibling `*.lock`)
        owner: Identity recorded in the lock file (default: user@host:pid)
        timeout: Seconds to wait for a fresh lock before raising LockHeld
        stale_after: Age in seconds after which a lock is reported as StaleLock
        poll_interval: Seconds between acquisition attempts
        clock: Returns the current UTC time (injectable for tests)
    """

    def __init__(
        self,
        target: str | Path,
        owner: str | None = None,
        timeout: float = 5.0,
        stale_after: float = 600.0,
        poll_interval: float = 0.05,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        target = Path(target)
        self.lock_path = target.parent / f"{target.name}.lock"
        self.owner = owner or default_owner()
        self.timeout = timeout
        self.stale_after = stale_after
        self.poll_interval = poll_interval
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._token: str | None = None

    @property
    def held(self) -> bool:
        return self._token is not None

    def read_info(self) -> LockInfo | None:
        """Return the current holder's metadata, or None if unlocked."""
        try:
            raw = self.lock_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LockError(f"Cannot read lock file {self.lock_path}: {e}")

        try:
            return LockInfo.model_validate_json(raw)
        except PydanticValidationError:
            # Holder crashed between create and write; fall back to file mtime.
            try:
                mtime = self.lock_path.stat().st_mtime
            except FileNotFoundError:
                return None
            return LockInfo(
                owner="unknown",
                pid=-1,
                host="unknown",
                acquired_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
            )

    def _try_create(self) -> bool:
        now = self._clock()
        token = uuid4().hex
        info = LockInfo(
            owner=self.owner,
            pid=os.getpid(),
            host=socket.gethostname(),
            acquired_at=now,
            token=token,
        )
        try:
            fd = os.open(str(self.lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        except OSError as e:
            raise LockError(f"Cannot create lock file {self.lock_path}: {e}")

        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(info.model_dump_json())
        self._token = token
        return True

    def acquire(self) -> None:
        """
        Acquire the lock.

        Raises:
            StaleLock: If the existing lock is older than stale_after
            LockHeld: If a fresh lock is not released within timeout
        """
        if self.held:
            raise LockError(f"Lock {self.lock_path} already held by this instance")

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        start = time.monotonic()

        while True:
            if self._try_create():
                logger.info(f"Acquired roadmap lock {self.lock_path} as {self.owner}")
                return

            info = self.read_info()
            if info is None:
                # Released between our attempt and the read; retry at once.
                continue

            age = (self._clock() - info.acquired_at).total_seconds()
            if age > self.stale_after:
                logger.warning(
                    f"Stale roadmap lock held by {info.owner} ({age:.0f}s > {self.stale_after:.0f}s)"
                )
                raise StaleLock(info.owner, info.acquired_at, age)

            if time.monotonic() - start >= self.timeout:
                raise LockHeld(info.owner, info.acquired_at, self.timeout)

            time.sleep(self.poll_interval)

    def release(self) -> None:
        """Release the lock if this instance holds it."""
        if not self.held:
            return
        info = self.read_info()
        if info is not None and info.token == self._token:
            try:
                self.lock_path.unlink()
            except FileNotFoundError:
                pass
            logger.info(f"Released roadmap lock {self.lock_path}")
        else:
            logger.warning(f"Roadmap lock {self.lock_path} was cleared by someone else")
        self._token = None

    def force_clear(self) -> LockInfo | None:
        """Remove the lock regardless of holder. Returns the cleared holder, if any."""
        info = self.read_info()
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            return None
        if info is not None:
            logger.warning(f"Force-cleared roadmap lock held by {info.owner}")
        return info

    def __enter__(self) -> "RoadmapLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release()
        return False
