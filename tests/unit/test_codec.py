# tests/unit/test_codec.py
"""Unit tests for the ROADMAP.md codec."""

import pytest

from conftest import T0, make_item, make_phase
from phaseflow.errors import ParseError
from phaseflow.models.roadmap import BacklogStatus, PhaseStatus, RoadmapDocument, Task
from phaseflow.store import codec


class TestRoundTrip:
    def test_sample_document_round_trips(self, sample_document):
        """parse(serialize(d)) is field-equal to d."""
        assert codec.parse(codec.serialize(sample_document)) == sample_document

    def test_empty_document_round_trips(self):
        doc = RoadmapDocument()
        assert codec.parse(codec.serialize(doc)) == doc

    def test_pipes_and_backslashes_survive(self):
        doc = RoadmapDocument(
            phases=[make_phase("0010", "Parse a|b \\ c", category="io|x")],
            backlog=[make_item("B001", "Support | in names", reason="c:\\temp")],
        )
        parsed = codec.parse(codec.serialize(doc))
        assert parsed.phases[0].name == "Parse a|b \\ c"
        assert parsed.phases[0].category == "io|x"
        assert parsed.backlog[0].description == "Support | in names"
        assert parsed.backlog[0].reason == "c:\\temp"

    def test_backlog_fields_round_trip(self):
        doc = RoadmapDocument(
            phases=[
                make_phase("0010", status=PhaseStatus.COMPLETE),
                make_phase("0020"),
            ],
            backlog=[
                make_item(
                    "B001",
                    "Write contributor guide",
                    provenance="0010",
                    source_task="T015",
                    priority="P1",
                    category="docs",
                    reason="Incomplete at phase close",
                ),
                make_item(
                    "B002",
                    "Add dark mode support",
                    status=BacklogStatus.ASSIGNED,
                    assigned_phase="0020",
                    confidence_score=0.5,
                ),
            ],
        )
        parsed = codec.parse(codec.serialize(doc))
        assert parsed == doc
        assert parsed.backlog[0].label == "Orphaned from 0010: T015 Write contributor guide"
        assert parsed.backlog[1].confidence_score == 0.5

    def test_task_text_that_looks_like_provenance(self):
        doc = RoadmapDocument(
            phases=[
                make_phase(
                    "0010",
                    tasks=[
                        Task(id="T001", description="Fix (from B002)"),
                        Task(
                            id="T002",
                            description="Port c:\\tmp (from B003)",
                            deferred=True,
                            provenance="B004",
                        ),
                    ],
                )
            ]
        )
        parsed = codec.parse(codec.serialize(doc))
        assert parsed == doc
        assert parsed.phases[0].tasks[0].description == "Fix (from B002)"
        assert parsed.phases[0].tasks[0].provenance is None
        assert parsed.phases[0].tasks[1].provenance == "B004"

    def test_padded_text_round_trips(self):
        doc = RoadmapDocument(
            project=" demo ",
            phases=[
                make_phase(
                    "0010",
                    " Padded name ",
                    goal="  Two\nlines ",
                    scope=["  leading", "trailing  "],
                    tasks=[Task(id="T001", description=" spaced   out ")],
                    category=" ui ",
                )
            ],
            backlog=[make_item("B001", "  padded  ", reason=" later ")],
        )
        assert codec.parse(codec.serialize(doc)) == doc

    def test_task_marks_and_provenance(self):
        doc = RoadmapDocument(
            current_phase="0010",
            phases=[
                make_phase(
                    "0010",
                    status=PhaseStatus.ACTIVE,
                    tasks=[
                        Task(id="T001", description="done one", done=True),
                        Task(id="T002", description="todo one"),
                        Task(id="T003", description="deferred one", deferred=True, provenance="B004"),
                    ],
                )
            ],
        )
        text = codec.serialize(doc)
        assert "- [x] T001 done one" in text
        assert "- [ ] T002 todo one" in text
        assert "- [~] T003 deferred one (from B004)" in text
        assert codec.parse(text) == doc

    def test_dependencies_and_gate_round_trip(self):
        doc = RoadmapDocument(
            phases=[
                make_phase("0010"),
                make_phase("0020", dependencies=["0010"]),
            ]
        )
        doc.phases[1].verification_gate = "USER GATE: try it on a phone"
        parsed = codec.parse(codec.serialize(doc))
        assert parsed.phases[1].dependencies == ["0010"]
        assert parsed.phases[1].has_user_gate

    def test_summary_phase_has_no_detail_block(self):
        doc = RoadmapDocument(phases=[make_phase("0010", status=PhaseStatus.COMPLETE)])
        text = codec.serialize(doc)
        assert "### 0010" not in text


class TestParseErrors:
    def test_missing_overview(self):
        with pytest.raises(ParseError) as exc:
            codec.parse("# Roadmap\n\n## Backlog\n")
        assert exc.value.section == "Phase Overview"

    def test_bad_status_reports_line_and_section(self, sample_document):
        text = codec.serialize(sample_document).replace("| Draft |", "| Someday |", 1)
        with pytest.raises(ParseError) as exc:
            codec.parse(text)
        bad_line = next(
            i + 1 for i, line in enumerate(text.splitlines()) if "Someday" in line
        )
        assert exc.value.line == bad_line
        assert exc.value.section == "Phase Overview"
        assert f"line {bad_line}" in exc.value.message

    def test_wrong_cell_count(self):
        text = (
            "# Roadmap\n\n## Phase Overview\n\n"
            "| Phase | Name |\n|---|---|\n| 0010 | Only two |\n"
        )
        with pytest.raises(ParseError, match="Expected 8 cells"):
            codec.parse(text)

    def test_bad_timestamp(self, sample_document):
        text = codec.serialize(sample_document).replace(T0.isoformat(), "yesterday", 1)
        with pytest.raises(ParseError, match="Invalid timestamp"):
            codec.parse(text)

    def test_malformed_task_line(self, sample_document):
        text = codec.serialize(sample_document).replace("- [x] T001", "- [?] T001")
        with pytest.raises(ParseError) as exc:
            codec.parse(text)
        assert exc.value.section == "Phase Details"

    def test_detail_for_unknown_phase(self, sample_document):
        text = codec.serialize(sample_document).replace("### 0030 - Sync Engine", "### 0099 - Ghost")
        with pytest.raises(ParseError, match="unknown phase 0099"):
            codec.parse(text)

    def test_unknown_prose_is_ignored(self, sample_document):
        text = codec.serialize(sample_document).replace(
            "## Backlog", "## Notes\n\nSome free text here.\n\n## Backlog"
        )
        assert codec.parse(text) == sample_document
