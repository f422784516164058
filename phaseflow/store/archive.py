# phaseflow/store/archive.py
"""
ArchiveManager: historical storage for closed phases.

One JSON document per closed phase, keyed by phase number, under the
configured archive directory. Writes are atomic; the transaction layer uses
read_raw/restore_raw to undo archive changes when the roadmap save fails.
"""

import logging
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from phaseflow.errors import NotFound, ParseError, StorageIOError
from phaseflow.models.roadmap import ArchiveEntry
from phaseflow.store.roadmap_store import atomic_write_text

logger = logging.getLogger(__name__)


class ArchiveManager:
    """File-backed archive of closed-phase snapshots."""

    def __init__(self, archive_dir: str | Path) -> None:
        self.archive_dir = Path(archive_dir)

    def _path(self, phase_number: str) -> Path:
        return self.archive_dir / f"{phase_number}.json"

    def exists(self, phase_number: str) -> bool:
        return self._path(phase_number).exists()

    def list_numbers(self) -> list[str]:
        """Phase numbers with an archive entry, ascending."""
        if not self.archive_dir.is_dir():
            return []
        numbers = [p.stem for p in self.archive_dir.glob("*.json") if p.stem.isdigit()]
        return sorted(numbers, key=int)

    def read(self, phase_number: str) -> ArchiveEntry:
        """
        Load an archive entry.

        Raises:
            NotFound: If no entry exists for the phase
            ParseError: If the entry file is not a valid ArchiveEntry
        """
        raw = self.read_raw(phase_number)
        if raw is None:
            raise NotFound(
                f"Archive entry for phase {phase_number}",
                "Use 'phaseflow archive' to list archived phases",
            )
        try:
            return ArchiveEntry.model_validate_json(raw)
        except PydanticValidationError as e:
            raise ParseError(
                f"Invalid archive entry: {e.error_count()} error(s)",
                section=str(self._path(phase_number)),
            )

    def find(self, phase_number: str) -> ArchiveEntry | None:
        """Like read, but None when the phase has no entry."""
        return self.read(phase_number) if self.exists(phase_number) else None

    def list_entries(self) -> list[ArchiveEntry]:
        return [self.read(number) for number in self.list_numbers()]

    def write(self, entry: ArchiveEntry) -> None:
        """
        Persist an entry, replacing any previous one for the same phase.

        Raises:
            StorageIOError: If the write fails
        """
        atomic_write_text(self._path(entry.phase_number), entry.model_dump_json(indent=2) + "\n")
        logger.info(f"Archived phase {entry.phase_number} to {self._path(entry.phase_number)}")

    def delete(self, phase_number: str) -> None:
        path = self._path(phase_number)
        if not path.exists():
            raise NotFound(f"Archive entry for phase {phase_number}")
        try:
            path.unlink()
        except OSError as e:
            raise StorageIOError(f"Failed to delete {path}: {e}")
        logger.info(f"Deleted archive entry for phase {phase_number}")

    def read_raw(self, phase_number: str) -> str | None:
        path = self._path(phase_number)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageIOError(f"Failed to read {path}: {e}")

    def restore_raw(self, phase_number: str, raw: str | None) -> None:
        """Put an entry back exactly as it was (None means absent)."""
        path = self._path(phase_number)
        if raw is None:
            if path.exists():
                path.unlink()
            return
        atomic_write_text(path, raw)


def render_markdown(entry: ArchiveEntry) -> str:
    """Render an entry in the HISTORY.md style: heading, completion date, detail."""
    phase = entry.snapshot
    completed = phase.closed_at.date().isoformat() if phase.closed_at else "unknown"
    lines = [f"## {phase.number} - {phase.name}", "", f"**Completed**: {completed}", ""]

    if phase.goal:
        lines += [f"**Goal**: {phase.goal}", ""]
    if phase.scope:
        lines.append("**Scope**:")
        lines += [f"- {bullet}" for bullet in phase.scope]
        lines.append("")
    if phase.tasks:
        done = sum(1 for t in phase.tasks if t.done)
        lines.append(f"**Tasks** ({done}/{len(phase.tasks)} done):")
        for task in phase.tasks:
            mark = "x" if task.done else ("~" if task.deferred else " ")
            lines.append(f"- [{mark}] {task.id} {task.description}")
        lines.append("")
    if not phase.has_detail:
        lines += ["Phase completed without detailed phase record.", ""]

    if entry.reviewed:
        lines += ["_Retained for manual review._", ""]
    lines.append("---")
    return "\n".join(lines) + "\n"
