# phaseflow/store/codec.py
"""
Markdown codec for the roadmap document.

The persisted form is a human-editable ROADMAP.md:

    # Roadmap

    **Project**: demo
    **Schema Version**: 1
    **Current Phase**: 0020

    ## Phase Overview

    | Phase | Name | Status | Category | Depends On | Created | Closed | Verification Gate |
    |-------|------|--------|----------|------------|---------|--------|-------------------|
    | 0010 | Core | Complete | core | - | 2026-01-01T00:00:00+00:00 | ... | - |

    ## Phase Details

    ### 0020 - UI Polish

    **Goal**: Make the first-run experience smooth

    **Scope**:
    - Add UI polish for first-run

    **Tasks**:
    - [x] T001 Wire settings screen
    - [~] T002 Dark theme (from B004)

    ## Backlog

    | ID | Description | Status | Priority | Category | Source | Assigned | Confidence | Reason | Created |

Only this module touches raw text; everything else works on RoadmapDocument.
"""

import logging
import re
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from phaseflow.errors import ParseError
from phaseflow.models.roadmap import (
    BacklogItem,
    BacklogStatus,
    PhaseRecord,
    PhaseStatus,
    RoadmapDocument,
    Task,
)

logger = logging.getLogger(__name__)

EMPTY_CELL = "-"

PHASE_COLUMNS = [
    "Phase", "Name", "Status", "Category", "Depends On", "Created", "Closed", "Verification Gate",
]
BACKLOG_COLUMNS = [
    "ID", "Description", "Status", "Priority", "Category", "Source", "Assigned",
    "Confidence", "Reason", "Created",
]

_HEADER_FIELD_RE = re.compile(r"^\*\*(Project|Schema Version|Current Phase)\*\*:\s*(.*)$")
_SECTION_RE = re.compile(r"^##\s+(.+?)\s*$")
_PHASE_HEADING_RE = re.compile(r"^###\s+(\d{3,})\s+-\s+(.+?)\s*$")
_SEPARATOR_RE = re.compile(r"^\|[-:\s|]+\|$")
_TASK_RE = re.compile(r"^- \[( |x|X|~)\]\s+(T\d{3,}[a-z]?)\s+(.*?)(?:\s+\(from (B\d{3,})\))?$")
_BULLET_RE = re.compile(r"^- (.*)$")
_SOURCE_RE = re.compile(r"^(\d{3,})(?:/(T\d{3,}[a-z]?))?$")
_TASK_ESCAPE_RE = re.compile(r"\\(.)")


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------

def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("|", "\\|").replace("\n", " ")


def _escape_task(text: str) -> str:
    """Keep a literal "(from " in a description from reading as provenance."""
    return text.replace("\\", "\\\\").replace("(from ", "\\(from ")


def _unescape_task(text: str) -> str:
    return _TASK_ESCAPE_RE.sub(r"\1", text)


def _split_row(line: str) -> list[str]:
    """Split a table row on unescaped pipes and unescape each cell."""
    body = line.strip()
    if body.startswith("|"):
        body = body[1:]
    if body.endswith("|") and not body.endswith("\\|"):
        body = body[:-1]

    cells: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            current.append(body[i + 1])
            i += 2
            continue
        if ch == "|":
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    cells.append("".join(current).strip())
    return cells


def _row(cells: list[str]) -> str:
    return "| " + " | ".join(_escape(c) for c in cells) + " |"


def _opt(value: str | None) -> str:
    return value if value else EMPTY_CELL


def _cell_or_none(cell: str) -> str | None:
    return None if cell in ("", EMPTY_CELL) else cell


def _parse_datetime(cell: str, line: int, section: str) -> datetime | None:
    value = _cell_or_none(cell)
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ParseError(f"Invalid timestamp '{value}'", line=line, section=section)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def serialize(document: RoadmapDocument) -> str:
    """Render a RoadmapDocument as ROADMAP.md text."""
    lines: list[str] = ["# Roadmap", ""]
    if document.project:
        lines.append(f"**Project**: {document.project}")
    lines.append(f"**Schema Version**: {document.schema_version}")
    lines.append(f"**Current Phase**: {_opt(document.current_phase)}")
    lines += ["", "## Phase Overview", ""]

    lines.append(_row(PHASE_COLUMNS))
    lines.append("|" + "|".join("-" * (len(c) + 2) for c in PHASE_COLUMNS) + "|")
    for phase in document.phases:
        lines.append(_row([
            phase.number,
            phase.name,
            phase.status.value,
            _opt(phase.category),
            ", ".join(phase.dependencies) or EMPTY_CELL,
            phase.created_at.isoformat(),
            phase.closed_at.isoformat() if phase.closed_at else EMPTY_CELL,
            _opt(phase.verification_gate),
        ]))

    detailed = [p for p in document.phases if p.has_detail]
    if detailed:
        lines += ["", "## Phase Details"]
        for phase in detailed:
            lines += ["", f"### {phase.number} - {phase.name}"]
            if phase.goal:
                lines += ["", f"**Goal**: {phase.goal.replace(chr(10), ' ')}"]
            if phase.scope:
                lines += ["", "**Scope**:"]
                lines += [f"- {bullet.replace(chr(10), ' ')}" for bullet in phase.scope]
            if phase.tasks:
                lines += ["", "**Tasks**:"]
                for task in phase.tasks:
                    mark = "x" if task.done else ("~" if task.deferred else " ")
                    text = f"- [{mark}] {task.id} {_escape_task(task.description)}"
                    if task.provenance:
                        text += f" (from {task.provenance})"
                    lines.append(text)

    lines += ["", "## Backlog", ""]
    lines.append(_row(BACKLOG_COLUMNS))
    lines.append("|" + "|".join("-" * (len(c) + 2) for c in BACKLOG_COLUMNS) + "|")
    for item in document.backlog:
        source = EMPTY_CELL
        if item.provenance:
            source = item.provenance + (f"/{item.source_task}" if item.source_task else "")
        lines.append(_row([
            item.id,
            item.description,
            item.status.value,
            item.priority,
            _opt(item.category),
            source,
            _opt(item.assigned_phase),
            repr(item.confidence_score) if item.confidence_score is not None else EMPTY_CELL,
            _opt(item.reason),
            item.created_at.isoformat(),
        ]))

    lines.append("")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _parse_phase_row(cells: list[str], line: int) -> PhaseRecord:
    section = "Phase Overview"
    if len(cells) != len(PHASE_COLUMNS):
        raise ParseError(
            f"Expected {len(PHASE_COLUMNS)} cells, found {len(cells)}", line=line, section=section
        )
    number, name, status, category, deps, created, closed, gate = cells
    try:
        status_value = PhaseStatus(status)
    except ValueError:
        raise ParseError(f"Unknown phase status '{status}'", line=line, section=section)

    dependencies = [] if _cell_or_none(deps) is None else [d.strip() for d in deps.split(",") if d.strip()]
    created_at = _parse_datetime(created, line, section)
    if created_at is None:
        raise ParseError(f"Phase {number} has no created timestamp", line=line, section=section)

    try:
        return PhaseRecord(
            number=number,
            name=name,
            status=status_value,
            category=_cell_or_none(category),
            dependencies=dependencies,
            created_at=created_at,
            closed_at=_parse_datetime(closed, line, section),
            verification_gate=_cell_or_none(gate),
        )
    except PydanticValidationError as e:
        raise ParseError(f"Invalid phase row: {e}", line=line, section=section)


def _parse_backlog_row(cells: list[str], line: int) -> BacklogItem:
    section = "Backlog"
    if len(cells) != len(BACKLOG_COLUMNS):
        raise ParseError(
            f"Expected {len(BACKLOG_COLUMNS)} cells, found {len(cells)}", line=line, section=section
        )
    item_id, description, status, priority, category, source, assigned, confidence, reason, created = cells
    try:
        status_value = BacklogStatus(status)
    except ValueError:
        raise ParseError(f"Unknown backlog status '{status}'", line=line, section=section)

    provenance = source_task = None
    if _cell_or_none(source) is not None:
        match = _SOURCE_RE.match(source)
        if not match:
            raise ParseError(f"Invalid source '{source}'", line=line, section=section)
        provenance, source_task = match.group(1), match.group(2)

    score = None
    if _cell_or_none(confidence) is not None:
        try:
            score = float(confidence)
        except ValueError:
            raise ParseError(f"Invalid confidence '{confidence}'", line=line, section=section)

    created_at = _parse_datetime(created, line, section)
    if created_at is None:
        raise ParseError(f"Backlog item {item_id} has no created timestamp", line=line, section=section)

    try:
        return BacklogItem(
            id=item_id,
            description=description,
            status=status_value,
            priority=priority,
            category=_cell_or_none(category),
            provenance=provenance,
            source_task=source_task,
            assigned_phase=_cell_or_none(assigned),
            confidence_score=score,
            reason=_cell_or_none(reason),
            created_at=created_at,
        )
    except PydanticValidationError as e:
        raise ParseError(f"Invalid backlog row: {e}", line=line, section=section)


def parse(text: str) -> RoadmapDocument:
    """
    Parse ROADMAP.md text into a RoadmapDocument.

    Raises:
        ParseError: With the 1-based line number and section of the first problem
    """
    document = RoadmapDocument()
    section = ""
    table_header_seen = False
    details: dict[str, tuple[int, str, list[str], list[Task]]] = {}
    detail_phase: str | None = None
    detail_block = ""
    saw_overview = False

    for index, raw in enumerate(text.splitlines()):
        line_no = index + 1
        line = raw.rstrip()

        if not line.strip():
            continue

        header = _HEADER_FIELD_RE.match(line)
        if header and section == "":
            key, value = header.group(1), header.group(2).strip()
            if key == "Project":
                document.project = value or None
            elif key == "Schema Version":
                document.schema_version = value
            else:
                document.current_phase = _cell_or_none(value)
            continue

        heading = _SECTION_RE.match(line)
        if heading and not line.startswith("###"):
            section = heading.group(1)
            table_header_seen = False
            detail_phase = None
            if section == "Phase Overview":
                saw_overview = True
            continue

        if section == "Phase Overview" and line.startswith("|"):
            if not table_header_seen:
                if _SEPARATOR_RE.match(line):
                    table_header_seen = True
                continue
            document.phases.append(_parse_phase_row(_split_row(line), line_no))
            continue

        if section == "Backlog" and line.startswith("|"):
            if not table_header_seen:
                if _SEPARATOR_RE.match(line):
                    table_header_seen = True
                continue
            document.backlog.append(_parse_backlog_row(_split_row(line), line_no))
            continue

        if section == "Phase Details":
            phase_heading = _PHASE_HEADING_RE.match(line)
            if phase_heading:
                detail_phase = phase_heading.group(1)
                if detail_phase in details:
                    raise ParseError(
                        f"Duplicate detail block for phase {detail_phase}",
                        line=line_no, section=section,
                    )
                details[detail_phase] = (line_no, "", [], [])
                detail_block = ""
                continue
            if detail_phase is None:
                continue

            entry_line, goal, scope, tasks = details[detail_phase]
            if line.startswith("**Goal**:"):
                details[detail_phase] = (entry_line, line[len("**Goal**:"):].strip(), scope, tasks)
                detail_block = "goal"
            elif line.startswith("**Scope**:"):
                detail_block = "scope"
            elif line.startswith("**Tasks**:"):
                detail_block = "tasks"
            elif detail_block == "tasks":
                match = _TASK_RE.match(line)
                if not match:
                    raise ParseError(f"Malformed task line '{line}'", line=line_no, section=section)
                mark, task_id, description, provenance = match.groups()
                tasks.append(Task(
                    id=task_id,
                    description=_unescape_task(description),
                    done=mark in ("x", "X"),
                    deferred=mark == "~",
                    provenance=provenance,
                ))
            elif detail_block == "scope":
                bullet = _BULLET_RE.match(line)
                if not bullet:
                    raise ParseError(f"Malformed scope bullet '{line}'", line=line_no, section=section)
                scope.append(bullet.group(1))

    if not saw_overview:
        raise ParseError("Missing '## Phase Overview' section", line=None, section="Phase Overview")

    for number, (line_no, goal, scope, tasks) in details.items():
        phase = document.get_phase(number)
        if phase is None:
            raise ParseError(
                f"Detail block for unknown phase {number}", line=line_no, section="Phase Details"
            )
        phase.goal = goal
        phase.scope = scope
        phase.tasks = tasks

    logger.debug(
        f"Parsed roadmap: {len(document.phases)} phases, {len(document.backlog)} backlog items"
    )
    return document
