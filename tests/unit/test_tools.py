# tests/unit/test_tools.py
"""Unit tests for the tool layer shared by the CLI and MCP server."""

import pytest

from conftest import make_item
from phaseflow.errors import NotFound, ValidationError
from phaseflow.models.roadmap import BacklogStatus
from phaseflow.tools.archive import delete_archive, list_archive, review_archive, show_archive
from phaseflow.tools.backlog import defer_items, parse_decisions, scan_orphans, triage_backlog
from phaseflow.tools.lock import clear_lock, lock_status
from phaseflow.tools.phases import (
    add_phase,
    add_task,
    close_phase,
    complete_task,
    init_roadmap,
    start_phase,
)
from phaseflow.tools.status import list_backlog, roadmap_status


class TestPhaseTools:
    def test_init_and_add(self, workspace):
        result = init_roadmap(workspace, "  demo  ")
        assert result["project"] == "demo"
        added = add_phase(workspace, "Foundation", goal="Skeleton", scope=["Layout", " CI  setup "])
        assert added["phase"]["number"] == "0010"
        assert added["phase"]["scope"] == ["Layout", "CI setup"]
        assert added["phase"]["status"] == "Draft"

    def test_numbers_are_normalized(self, seeded):
        result = add_phase(seeded, "Hotfix", after="20")
        assert result["phase"]["number"] == "0021"

    def test_blank_name_rejected(self, seeded):
        with pytest.raises(ValidationError, match="Phase name cannot be empty"):
            add_phase(seeded, "   ")

    def test_close_returns_json(self, seeded):
        result = close_phase(seeded)
        assert result["phase_number"] == "0010"
        assert result["closed_at"] == "2026-01-01T09:00:00Z"
        assert result["new_items"][0]["source_task"] == "T015"
        assert result["next_phase"] == {"number": "0020", "name": "UI Polish"}

    def test_close_dry_run(self, seeded):
        result = close_phase(seeded, "10", dry_run=True)
        assert result["dry_run"] is True
        assert seeded.read().current_phase == "0010"

    def test_start_after_close(self, seeded):
        close_phase(seeded)
        result = start_phase(seeded, "0020")
        assert result == {"phase_number": "0020", "phase_name": "UI Polish"}

    def test_tasks(self, seeded):
        added = add_task(seeded, "20", "Theme picker")
        assert added["task_id"] == "T001"
        done = complete_task(seeded, "20", "t1")
        assert done["done"] is True


class TestBacklogTools:
    def test_defer(self, seeded):
        result = defer_items(seeded, ["Rate limiting"], reason="later", priority="p1", category="api")
        item = result["items"][0]
        assert item["priority"] == "P1"
        assert item["category"] == "api"
        assert item["provenance"] == "0010"

    def test_defer_nothing(self, seeded):
        with pytest.raises(ValidationError, match="Nothing to defer"):
            defer_items(seeded, [])

    def test_scan(self, seeded):
        assert scan_orphans(seeded) == {"created": [], "scanned_phases": []}

    def test_list_backlog_filter(self, seeded):
        defer_items(seeded, ["One", "Two"])
        with seeded.transaction() as txn:
            txn.document.get_item("B002").status = BacklogStatus.SKIPPED
        listing = list_backlog(seeded, status="open")
        assert [i["id"] for i in listing["items"]] == ["B001"]
        assert listing["items"][0]["label"] == "One"

    def test_triage_with_decisions(self, seeded):
        with seeded.transaction() as txn:
            txn.document.backlog.append(make_item("B001", "Add dark mode support", category="ui"))
        result = triage_backlog(
            seeded, mode="auto", decisions={"B001": {"kind": "assign_recommended"}}
        )
        assert result["assignments"][0]["phase_number"] == "0020"
        assert result["assignments"][0]["confirmed"] is True

    def test_triage_mode_normalized(self, seeded):
        result = triage_backlog(seeded, mode="DRY_RUN")
        assert result["mode"] == "dry-run"

    def test_triage_unknown_mode(self, seeded):
        with pytest.raises(ValidationError, match="Unknown triage mode"):
            triage_backlog(seeded, mode="later")

    def test_bad_decision(self):
        with pytest.raises(ValidationError, match="B001"):
            parse_decisions({"B001": {"kind": "teleport"}})


class TestStatusTool:
    def test_status(self, seeded):
        status = roadmap_status(seeded)
        assert status["project"] == "demo"
        assert status["current_phase"] == {"number": "0010", "name": "Foundation"}
        assert status["next_phase"]["number"] == "0020"
        assert [p["tasks_done"] for p in status["phases"]] == [1, 0, 0]
        assert status["open_items"] == 0

    def test_status_missing_roadmap(self, workspace):
        with pytest.raises(NotFound):
            roadmap_status(workspace)


class TestArchiveTools:
    def test_list_show_delete(self, seeded):
        close_phase(seeded)
        listing = list_archive(seeded)
        assert listing["total"] == 1
        assert listing["entries"][0]["name"] == "Foundation"

        shown = show_archive(seeded, "10", format="markdown")
        assert "Foundation" in shown["content"]
        assert show_archive(seeded, "10")["content"]["phase_number"] == "0010"

        assert delete_archive(seeded, "0010") == {"phase_number": "0010", "deleted": True}
        assert list_archive(seeded)["total"] == 0

    def test_show_unknown_format(self, seeded):
        close_phase(seeded)
        with pytest.raises(ValidationError, match="Unknown format"):
            show_archive(seeded, "0010", format="yaml")

    def test_delete_missing(self, seeded):
        with pytest.raises(NotFound):
            delete_archive(seeded, "0010")

    def test_review_reported_outcome(self, seeded):
        close_phase(seeded)
        result = review_archive(seeded, "0010", promoted=False)
        assert result["deleted"] is False
        assert list_archive(seeded)["entries"][0]["reviewed"] is True

        result = review_archive(seeded, "0010", promoted=True)
        assert result["deleted"] is True

    def test_review_needs_outcome(self, seeded):
        close_phase(seeded)
        with pytest.raises(ValidationError):
            review_archive(seeded, "0010")


class TestLockTools:
    def test_unlocked(self, seeded):
        assert lock_status(seeded)["locked"] is False

    def test_status_and_clear(self, seeded):
        lock = seeded.lock()
        lock.acquire()
        status = lock_status(seeded)
        assert status["locked"] is True
        assert status["owner"] == lock.owner

        cleared = clear_lock(seeded)
        assert cleared["cleared"] is True
        assert cleared["locked"] is False
        assert not lock.lock_path.exists()

    def test_clear_when_free(self, seeded):
        assert clear_lock(seeded)["cleared"] is False
