# tests/unit/test_numbering.py
"""Unit tests for phase number allocation."""

import pytest

from conftest import make_item, make_phase
from phaseflow.config.schema import NumberingConfig
from phaseflow.errors import NotFound
from phaseflow.models.roadmap import BacklogStatus, PhaseStatus, RoadmapDocument
from phaseflow.planning.numbering import (
    allocate_after,
    apply_renumbering,
    format_number,
    next_append_number,
)

NUMBERING = NumberingConfig()


def _doc(*numbers: str) -> RoadmapDocument:
    return RoadmapDocument(phases=[make_phase(n) for n in numbers])


class TestAppend:
    def test_empty(self):
        assert next_append_number(RoadmapDocument(), NUMBERING) == "0010"

    def test_next_multiple_of_step(self):
        assert next_append_number(_doc("0010", "0020"), NUMBERING) == "0030"

    def test_after_hotfix_number(self):
        assert next_append_number(_doc("0010", "0021"), NUMBERING) == "0030"

    def test_custom_width_and_step(self):
        numbering = NumberingConfig(width=3, step=100)
        assert next_append_number(_doc("100"), numbering) == "200"


class TestAllocateAfter:
    def test_between_0020_and_0030(self):
        number, renumbering = allocate_after(_doc("0010", "0020", "0030"), "0020", NUMBERING)
        assert number == "0021"
        assert 20 < int(number) < 30
        assert renumbering == {}

    def test_smallest_unused_in_gap(self):
        number, _ = allocate_after(_doc("0020", "0023"), "0020", NUMBERING)
        assert number == "0021"

    def test_after_last_phase_appends_step(self):
        number, renumbering = allocate_after(_doc("0010", "0020"), "0020", NUMBERING)
        assert number == "0030"
        assert renumbering == {}

    def test_no_gap_shifts_successors(self):
        number, renumbering = allocate_after(_doc("0020", "0021", "0022", "0030"), "0020", NUMBERING)
        assert number == "0021"
        assert renumbering == {"0021": "0031", "0022": "0032", "0030": "0040"}

    def test_unknown_predecessor(self):
        with pytest.raises(NotFound):
            allocate_after(_doc("0010"), "0050", NUMBERING)

    def test_width_grows_past_padding(self):
        assert format_number(12345, 4) == "12345"


class TestApplyRenumbering:
    def test_rewrites_all_references(self):
        doc = RoadmapDocument(
            current_phase="0021",
            phases=[
                make_phase("0020", status=PhaseStatus.COMPLETE),
                make_phase("0021", status=PhaseStatus.ACTIVE, dependencies=["0020"]),
                make_phase("0030", dependencies=["0021"]),
            ],
            backlog=[
                make_item("B001", "x", status=BacklogStatus.ASSIGNED, assigned_phase="0030"),
                make_item("B002", "y", provenance="0021", source_task="T001"),
            ],
        )
        mapping = {"0021": "0031", "0030": "0040"}
        apply_renumbering(doc, mapping)

        assert [p.number for p in doc.phases] == ["0020", "0031", "0040"]
        assert doc.phases[1].dependencies == ["0020"]
        assert doc.phases[2].dependencies == ["0031"]
        assert doc.current_phase == "0031"
        assert doc.backlog[0].assigned_phase == "0040"
        assert doc.backlog[1].provenance == "0031"
        assert doc.find_issues() == []
