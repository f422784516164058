# phaseflow/planning/numbering.py
"""
Phase number allocation.

Numbers are zero-padded decimal strings kept in ascending document order.
Appended phases land on the next multiple of the configured step (0010,
0020, ...). A phase inserted after an existing one takes the smallest
unused number strictly between it and its successor; when the two are
adjacent, every later phase is shifted up by one step to open a gap.
"""

import logging

from phaseflow.config.schema import NumberingConfig
from phaseflow.errors import NotFound
from phaseflow.models.roadmap import RoadmapDocument

logger = logging.getLogger(__name__)


def format_number(value: int, width: int) -> str:
    return str(value).zfill(width)


def next_append_number(document: RoadmapDocument, numbering: NumberingConfig) -> str:
    """Number for a phase appended after the last one."""
    if not document.phases:
        return format_number(numbering.step, numbering.width)
    highest = max(int(p.number) for p in document.phases)
    return format_number((highest // numbering.step + 1) * numbering.step, numbering.width)


def allocate_after(
    document: RoadmapDocument, after: str, numbering: NumberingConfig
) -> tuple[str, dict[str, str]]:
    """
    Pick a number for a phase inserted immediately after `after`.

    Returns:
        (new_number, renumbering) where renumbering maps old -> new numbers
        for phases that must shift to open a gap (empty when a gap exists)

    Raises:
        NotFound: If `after` is not a phase in the document
    """
    index = next((i for i, p in enumerate(document.phases) if p.number == after), None)
    if index is None:
        raise NotFound(
            f"Phase {after}",
            f"Available phases: {', '.join(p.number for p in document.phases) or 'none'}",
        )

    width = max(numbering.width, len(after))
    predecessor = int(after)

    if index == len(document.phases) - 1:
        return format_number(predecessor + numbering.step, width), {}

    successor = int(document.phases[index + 1].number)
    if successor - predecessor > 1:
        return format_number(predecessor + 1, width), {}

    renumbering = {
        phase.number: format_number(int(phase.number) + numbering.step, width)
        for phase in document.phases[index + 1:]
    }
    logger.info(f"No gap after {after}; shifting {len(renumbering)} phase(s) by {numbering.step}")
    return format_number(predecessor + 1, width), renumbering


def apply_renumbering(document: RoadmapDocument, mapping: dict[str, str]) -> None:
    """Rewrite phase numbers and every reference to them inside the document."""
    if not mapping:
        return

    for phase in document.phases:
        phase.number = mapping.get(phase.number, phase.number)
        phase.dependencies = [mapping.get(d, d) for d in phase.dependencies]

    if document.current_phase is not None:
        document.current_phase = mapping.get(document.current_phase, document.current_phase)

    for item in document.backlog:
        if item.assigned_phase is not None:
            item.assigned_phase = mapping.get(item.assigned_phase, item.assigned_phase)
        if item.provenance is not None:
            item.provenance = mapping.get(item.provenance, item.provenance)
