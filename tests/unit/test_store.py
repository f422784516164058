# tests/unit/test_store.py
"""Unit tests for RoadmapStore and ArchiveManager."""

from unittest.mock import patch

import pytest

from conftest import T0, make_phase
from phaseflow.errors import NotFound, ParseError, StorageIOError, ValidationError
from phaseflow.models.roadmap import ArchiveEntry, PhaseStatus, RoadmapDocument, Task
from phaseflow.store.archive import ArchiveManager, render_markdown
from phaseflow.store.roadmap_store import RoadmapStore, atomic_write_text


class TestRoadmapStore:
    def test_save_then_load(self, tmp_path, sample_document):
        store = RoadmapStore(tmp_path / "ROADMAP.md")
        store.save(sample_document)
        assert store.load() == sample_document

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(NotFound) as exc:
            RoadmapStore(tmp_path / "ROADMAP.md").load()
        assert "phaseflow init" in exc.value.suggestion

    def test_save_refuses_invalid_document(self, tmp_path):
        store = RoadmapStore(tmp_path / "ROADMAP.md")
        doc = RoadmapDocument(phases=[make_phase("0010"), make_phase("0010")])
        with pytest.raises(ValidationError):
            store.save(doc)
        assert not store.exists()

    def test_save_refuses_empty_scope_bullet(self, tmp_path):
        store = RoadmapStore(tmp_path / "ROADMAP.md")
        doc = RoadmapDocument(phases=[make_phase("0010", scope=[" "])])
        with pytest.raises(ValidationError, match="empty scope bullet"):
            store.save(doc)
        assert not store.exists()

    def test_load_rejects_invariant_violation(self, tmp_path, sample_document):
        store = RoadmapStore(tmp_path / "ROADMAP.md")
        store.save(sample_document)
        text = store.path.read_text().replace("**Current Phase**: 0010", "**Current Phase**: 0020")
        store.path.write_text(text)
        with pytest.raises(ParseError) as exc:
            store.load()
        assert exc.value.section == "document"

    def test_failed_write_keeps_previous_file(self, tmp_path, sample_document):
        store = RoadmapStore(tmp_path / "repo" / "ROADMAP.md")
        store.save(sample_document)
        before = store.path.read_text()

        with patch("phaseflow.store.roadmap_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageIOError):
                store.save(RoadmapDocument(project="other"))

        assert store.path.read_text() == before
        assert [p.name for p in store.path.parent.iterdir()] == ["ROADMAP.md"]


class TestAtomicWrite:
    def test_creates_parent_dirs(self, tmp_path):
        target = tmp_path / "a" / "b" / "file.txt"
        atomic_write_text(target, "hello")
        assert target.read_text() == "hello"


def _entry(number="0010", **kwargs) -> ArchiveEntry:
    phase = make_phase(
        number,
        "Foundation",
        PhaseStatus.COMPLETE,
        goal="Set up the project skeleton",
        scope=["Create repository layout"],
        tasks=[
            Task(id="T001", description="Create repository layout", done=True),
            Task(id="T015", description="Write contributor guide", deferred=True),
        ],
    )
    return ArchiveEntry(phase_number=number, snapshot=phase, archived_at=T0, **kwargs)


class TestArchiveManager:
    def test_write_read(self, tmp_path):
        archive = ArchiveManager(tmp_path / "archive")
        archive.write(_entry())
        assert archive.read("0010") == _entry()
        assert archive.list_numbers() == ["0010"]

    def test_list_numbers_sorted_numerically(self, tmp_path):
        archive = ArchiveManager(tmp_path / "archive")
        for number in ["0100", "0020", "0010"]:
            archive.write(_entry(number))
        assert archive.list_numbers() == ["0010", "0020", "0100"]

    def test_list_numbers_without_dir(self, tmp_path):
        assert ArchiveManager(tmp_path / "missing").list_numbers() == []

    def test_read_missing(self, tmp_path):
        with pytest.raises(NotFound):
            ArchiveManager(tmp_path).read("0010")

    def test_read_invalid(self, tmp_path):
        archive = ArchiveManager(tmp_path)
        (tmp_path / "0010.json").write_text('{"phase_number": "0010"}')
        with pytest.raises(ParseError):
            archive.read("0010")

    def test_delete(self, tmp_path):
        archive = ArchiveManager(tmp_path)
        archive.write(_entry())
        archive.delete("0010")
        assert not archive.exists("0010")
        with pytest.raises(NotFound):
            archive.delete("0010")

    def test_restore_raw(self, tmp_path):
        archive = ArchiveManager(tmp_path)
        archive.write(_entry())
        raw = archive.read_raw("0010")
        archive.write(_entry(reviewed=True))
        archive.restore_raw("0010", raw)
        assert archive.read("0010").reviewed is False
        archive.restore_raw("0010", None)
        assert not archive.exists("0010")


class TestRenderMarkdown:
    def test_history_style(self):
        text = render_markdown(_entry())
        assert text.startswith("## 0010 - Foundation")
        assert "**Completed**: 2026-01-01" in text
        assert "**Tasks** (1/2 done):" in text
        assert "- [~] T015 Write contributor guide" in text
        assert text.rstrip().endswith("---")

    def test_without_detail(self):
        entry = ArchiveEntry(
            phase_number="0010",
            snapshot=make_phase("0010", status=PhaseStatus.COMPLETE),
            reviewed=True,
        )
        text = render_markdown(entry)
        assert "Phase completed without detailed phase record." in text
        assert "_Retained for manual review._" in text
