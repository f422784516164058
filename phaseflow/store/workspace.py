# phaseflow/store/workspace.py
"""
Workspace and transactions.

A Workspace bundles the project's RoadmapStore, ArchiveManager and lock
settings. Every mutating operation runs inside a Transaction:

    with workspace.transaction() as txn:
        doc = txn.document          # loaded under the lock
        ...mutate doc...
        txn.write_archive(entry)    # staged, applied at commit

On a clean exit the staged archive changes are applied and the roadmap is
saved; if any of that fails, archive changes already applied are restored
and the roadmap file is left untouched. Any exception raised inside the
block discards the in-memory copy. The lock is released in every case.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from phaseflow.config.schema import PhaseflowConfig
from phaseflow.errors import StorageIOError, ValidationError
from phaseflow.models.roadmap import ArchiveEntry, RoadmapDocument, utcnow
from phaseflow.store.archive import ArchiveManager
from phaseflow.store.lock import RoadmapLock
from phaseflow.store.roadmap_store import RoadmapStore

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """Project-scoped handles to the roadmap, archive and lock."""

    root: Path
    config: PhaseflowConfig
    store: RoadmapStore
    archive: ArchiveManager
    clock: Callable[[], datetime] = field(default=utcnow)

    @classmethod
    def open(
        cls,
        root: str | Path,
        config: PhaseflowConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "Workspace":
        root = Path(root).resolve()
        config = config or PhaseflowConfig()
        return cls(
            root=root,
            config=config,
            store=RoadmapStore(root / config.paths.roadmap_file),
            archive=ArchiveManager(root / config.paths.archive_dir),
            clock=clock or utcnow,
        )

    def lock(self) -> RoadmapLock:
        settings = self.config.lock
        return RoadmapLock(
            self.store.path,
            owner=settings.owner,
            timeout=settings.timeout,
            stale_after=settings.stale_after,
            poll_interval=settings.poll_interval,
        )

    def read(self) -> RoadmapDocument:
        """Unlocked snapshot for status/listing; may be stale."""
        return self.store.load()

    def transaction(self) -> "Transaction":
        return Transaction(self)


class Transaction:
    """
    One locked read-modify-write cycle over the roadmap and archive.

    Not reentrant. The document attribute is only valid inside the block.
    """

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace
        self.document: RoadmapDocument | None = None
        self._lock = workspace.lock()
        self._renumbering: dict[str, str] = {}
        self._writes: dict[str, ArchiveEntry] = {}
        self._deletes: list[str] = []
        self.committed = False

    # -- staging -----------------------------------------------------------

    def write_archive(self, entry: ArchiveEntry) -> None:
        self._writes[entry.phase_number] = entry

    def delete_archive(self, phase_number: str) -> None:
        self._writes.pop(phase_number, None)
        self._deletes.append(phase_number)

    def renumber_archive(self, mapping: dict[str, str]) -> None:
        """
        Re-key archive entries and rewrite their phase references.

        Staged writes follow the new numbers immediately; on-disk entries
        are moved at commit. Successive calls compose, so the recorded
        mapping always runs from on-disk number to current number.
        """
        moved_to = set(self._renumbering.values())
        composed = {old: mapping.get(mid, mid) for old, mid in self._renumbering.items()}
        for old, new in mapping.items():
            if old not in moved_to:
                composed.setdefault(old, new)
        self._renumbering = {old: new for old, new in composed.items() if old != new}

        writes: dict[str, ArchiveEntry] = {}
        for entry in self._writes.values():
            _renumber_entry(entry, mapping)
            writes[entry.phase_number] = entry
        self._writes = writes
        self._deletes = [mapping.get(number, number) for number in self._deletes]

    def staged_archive(self, phase_number: str) -> ArchiveEntry | None:
        """Latest version of an entry: staged write if any, else what is on disk."""
        if phase_number in self._writes:
            return self._writes[phase_number]
        if phase_number in self._deletes:
            return None
        source = phase_number
        for old, new in self._renumbering.items():
            if new == phase_number:
                source = old
                break
        else:
            if phase_number in self._renumbering:
                return None
        entry = self.workspace.archive.find(source)
        if entry is not None:
            _renumber_entry(entry, self._renumbering)
        return entry

    # -- context manager ---------------------------------------------------

    def __enter__(self) -> "Transaction":
        self._lock.acquire()
        try:
            self.document = self.workspace.store.load()
        except Exception:
            self._lock.release()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        try:
            if exc_type is None:
                self._commit()
            else:
                logger.warning(f"Transaction rolled back: {exc_val}")
        finally:
            self._lock.release()
        return False

    # -- commit ------------------------------------------------------------

    def _commit(self) -> None:
        document = self.document
        issues = document.find_issues()
        if issues:
            raise ValidationError("Transaction would break invariants: " + "; ".join(issues))

        archive = self.workspace.archive
        undo: dict[str, str | None] = {}

        def remember(number: str) -> None:
            if number not in undo:
                undo[number] = archive.read_raw(number)

        try:
            if self._renumbering:
                self._apply_renumbering(remember)

            for number, entry in self._writes.items():
                remember(number)
                archive.write(entry)

            for number in self._deletes:
                remember(number)
                if archive.exists(number):
                    archive.delete(number)

            self.workspace.store.save(document)
        except Exception:
            self._rollback_archive(undo)
            raise

        self.committed = True

    def _apply_renumbering(self, remember: Callable[[str], None]) -> None:
        archive = self.workspace.archive
        mapping = self._renumbering
        entries = {number: archive.read(number) for number in archive.list_numbers()}

        changed: list[tuple[str, ArchiveEntry]] = []
        for number, entry in entries.items():
            new_number = mapping.get(number, number)
            deps = [mapping.get(d, d) for d in entry.snapshot.dependencies]
            if new_number == number and deps == entry.snapshot.dependencies:
                continue
            remember(number)
            remember(new_number)
            _renumber_entry(entry, mapping)
            changed.append((number, entry))

        # Clear every moved source first so shifted entries never clobber each other.
        for old_number, entry in changed:
            if entry.phase_number != old_number:
                archive.restore_raw(old_number, None)
        for _, entry in changed:
            archive.write(entry)
        logger.info(f"Renumbered archive entries: {mapping}")

    def _rollback_archive(self, undo: dict[str, str | None]) -> None:
        archive = self.workspace.archive
        for number, raw in undo.items():
            try:
                archive.restore_raw(number, raw)
            except (StorageIOError, OSError) as e:
                logger.error(f"Failed to restore archive entry {number} during rollback: {e}")
        if undo:
            logger.warning(f"Rolled back {len(undo)} archive change(s)")


def _renumber_entry(entry: ArchiveEntry, mapping: dict[str, str]) -> None:
    new_number = mapping.get(entry.phase_number, entry.phase_number)
    entry.phase_number = new_number
    entry.snapshot.number = new_number
    entry.snapshot.dependencies = [mapping.get(d, d) for d in entry.snapshot.dependencies]
