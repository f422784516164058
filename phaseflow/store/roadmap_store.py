# phaseflow/store/roadmap_store.py
"""
RoadmapStore: owns the persisted roadmap bytes.

Load parses ROADMAP.md into a RoadmapDocument; Save validates document
invariants and writes atomically (temp file in the same directory, then
os.replace) so a crash mid-write never leaves a truncated document.
"""

import logging
import os
import tempfile
from pathlib import Path

from phaseflow.errors import NotFound, ParseError, StorageIOError, ValidationError
from phaseflow.models.roadmap import RoadmapDocument
from phaseflow.store import codec

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """
    Write content to path atomically.

    Raises:
        StorageIOError: If the temp file cannot be written or renamed
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise StorageIOError(f"Cannot create temp file next to {path}: {e}")

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, str(path))
    except OSError as e:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise StorageIOError(f"Failed to write {path}: {e}")


class RoadmapStore:
    """
    File-backed roadmap store.

    Round-trip law: load() after save(d) returns a document field-equal to d.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read_text(self) -> str:
        if not self.path.exists():
            raise NotFound(
                f"Roadmap file {self.path}",
                "Run 'phaseflow init' to create one",
            )
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageIOError(f"Failed to read {self.path}: {e}")

    def load(self) -> RoadmapDocument:
        """
        Load and parse the roadmap.

        Raises:
            NotFound: If the roadmap file does not exist
            ParseError: If the file is malformed or violates document invariants
        """
        document = codec.parse(self.read_text())
        issues = document.find_issues()
        if issues:
            raise ParseError(
                "Roadmap violates invariants: " + "; ".join(issues),
                section="document",
                suggestion=f"Fix {self.path.name} by hand or restore it from version control",
            )
        return document

    def save(self, document: RoadmapDocument) -> None:
        """
        Validate and atomically persist the document.

        Raises:
            ValidationError: If the document violates invariants (nothing written)
            StorageIOError: If the write fails (previous file left intact)
        """
        issues = document.find_issues()
        if issues:
            raise ValidationError("Refusing to save roadmap: " + "; ".join(issues))

        atomic_write_text(self.path, codec.serialize(document))
        logger.info(
            f"Saved roadmap {self.path} ({len(document.phases)} phases, "
            f"{len(document.backlog)} backlog items)"
        )
