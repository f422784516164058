# tests/unit/test_models.py
"""Unit tests for roadmap models and document invariants."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from conftest import T0, make_item, make_phase
from phaseflow.models.roadmap import (
    BacklogStatus,
    PhaseStatus,
    RoadmapDocument,
    Task,
)


class TestPhaseRecord:
    def test_next_task_id(self):
        phase = make_phase("0010", tasks=[Task(id="T001", description="a"), Task(id="T015", description="b")])
        assert phase.next_task_id() == "T016"

    def test_next_task_id_empty(self):
        assert make_phase("0010").next_task_id() == "T001"

    def test_summary_elides_detail(self):
        phase = make_phase("0010", goal="g", scope=["s"], tasks=[Task(id="T001", description="t")])
        summary = phase.summary()
        assert summary.goal == "" and summary.scope == [] and summary.tasks == []
        assert summary.number == "0010" and summary.name == phase.name
        assert phase.tasks, "original is untouched"

    def test_user_gate(self):
        phase = make_phase("0010")
        phase.verification_gate = "user gate: check on device"
        assert phase.has_user_gate
        phase.verification_gate = "Automated tests"
        assert not phase.has_user_gate


class TestBacklogItem:
    def test_label_for_orphan(self):
        item = make_item("B001", "Write docs", provenance="0010", source_task="T015")
        assert item.label == "Orphaned from 0010: T015 Write docs"

    def test_label_plain(self):
        assert make_item("B001", "Write docs").label == "Write docs"

    def test_priority_pattern(self):
        with pytest.raises(PydanticValidationError):
            make_item("B001", "x", priority="P9")

    def test_confidence_bounds(self):
        with pytest.raises(PydanticValidationError):
            make_item("B001", "x", confidence_score=1.5)


class TestDocumentHelpers:
    def test_next_backlog_id(self):
        doc = RoadmapDocument(backlog=[make_item("B001", "a"), make_item("B007", "b")])
        assert doc.next_backlog_id() == "B008"

    def test_next_draft_phase_skips_excluded(self, sample_document):
        assert sample_document.next_draft_phase().number == "0020"
        assert sample_document.next_draft_phase(exclude="0020").number == "0030"

    def test_open_items(self):
        doc = RoadmapDocument(
            phases=[make_phase("0010")],
            backlog=[
                make_item("B001", "a"),
                make_item("B002", "b", status=BacklogStatus.SKIPPED),
                make_item("B003", "c", status=BacklogStatus.ASSIGNED, assigned_phase="0010"),
            ],
        )
        assert [i.id for i in doc.open_items()] == ["B001"]


class TestFindIssues:
    def test_valid_document(self, sample_document):
        assert sample_document.find_issues() == []

    def test_two_active_phases(self):
        doc = RoadmapDocument(
            current_phase="0010",
            phases=[
                make_phase("0010", status=PhaseStatus.ACTIVE),
                make_phase("0020", status=PhaseStatus.ACTIVE),
            ],
        )
        assert any("More than one Active" in issue for issue in doc.find_issues())

    def test_current_pointer_mismatch(self):
        doc = RoadmapDocument(current_phase="0020", phases=[make_phase("0010", status=PhaseStatus.ACTIVE)])
        assert any("Current phase pointer" in issue for issue in doc.find_issues())

    def test_duplicate_phase_number(self):
        doc = RoadmapDocument(phases=[make_phase("0010"), make_phase("0010")])
        assert any("Duplicate phase number" in issue for issue in doc.find_issues())

    def test_out_of_order(self):
        doc = RoadmapDocument(phases=[make_phase("0020"), make_phase("0010")])
        assert any("ascending" in issue for issue in doc.find_issues())

    def test_closed_at_requires_complete(self):
        phase = make_phase("0010")
        phase.closed_at = T0
        assert any("closed_at" in issue for issue in RoadmapDocument(phases=[phase]).find_issues())

    def test_unknown_dependency(self):
        doc = RoadmapDocument(phases=[make_phase("0010", dependencies=["0099"])])
        assert any("unknown phase 0099" in issue for issue in doc.find_issues())

    def test_assigned_requires_phase(self):
        doc = RoadmapDocument(backlog=[make_item("B001", "x", status=BacklogStatus.ASSIGNED)])
        assert any("assigned_phase must be set" in issue for issue in doc.find_issues())

    def test_task_done_and_deferred(self):
        task = Task(id="T001", description="x", done=True, deferred=True)
        doc = RoadmapDocument(phases=[make_phase("0010", tasks=[task])])
        assert any("both done and deferred" in issue for issue in doc.find_issues())

    def test_empty_name(self):
        doc = RoadmapDocument(phases=[make_phase("0010", name=" ")])
        assert any("empty name" in issue for issue in doc.find_issues())

    def test_empty_scope_bullet(self):
        doc = RoadmapDocument(phases=[make_phase("0010", scope=["Layout", "   "])])
        assert "Phase 0010 has an empty scope bullet" in doc.find_issues()


class TestTextNormalization:
    def test_whitespace_collapsed(self):
        phase = make_phase(
            "0010",
            "  Core\n setup ",
            goal=" Build   it ",
            scope=["  CI\tsetup "],
            tasks=[Task(id="T001", description=" Wire  settings ")],
        )
        assert phase.name == "Core setup"
        assert phase.goal == "Build it"
        assert phase.scope == ["CI setup"]
        assert phase.tasks[0].description == "Wire settings"

    def test_blank_optionals_become_none(self):
        item = make_item("B001", " Rate limiting ", category="  ", reason="")
        assert item.description == "Rate limiting"
        assert item.category is None
        assert item.reason is None
        assert RoadmapDocument(project="   ").project is None
