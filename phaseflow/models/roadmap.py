# phaseflow/models/roadmap.py
"""
Roadmap domain models.

RoadmapDocument is the aggregate root. Instances are transient in-memory
copies; only RoadmapStore owns the persisted form.
"""

import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

PHASE_NUMBER_RE = re.compile(r"^\d{3,}$")
TASK_ID_RE = re.compile(r"^T\d{3,}[a-z]?$")
BACKLOG_ID_RE = re.compile(r"^B\d{3,}$")


def utcnow() -> datetime:
    """Current time, second precision, UTC."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def single_line(text: str) -> str:
    """Collapse whitespace runs (newlines included) to one space and trim."""
    return " ".join(text.split())


def _single_line_or_none(text: str | None) -> str | None:
    if text is None:
        return None
    return single_line(text) or None


class PhaseStatus(str, Enum):
    """Phase lifecycle states."""

    DRAFT = "Draft"
    ACTIVE = "Active"
    CLOSING = "Closing"
    COMPLETE = "Complete"


class BacklogStatus(str, Enum):
    """Backlog item states."""

    OPEN = "Open"
    ASSIGNED = "Assigned"
    SKIPPED = "Skipped"


class Task(BaseModel):
    """A single checklist task inside a phase."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Task id, e.g. T001")
    description: str = Field(..., description="What the task does")
    done: bool = Field(default=False)
    deferred: bool = Field(
        default=False, description="Moved to the backlog; kept here for history"
    )
    provenance: str | None = Field(
        default=None, description="Backlog item id this task was created from"
    )

    @field_validator("description")
    @classmethod
    def _clean_description(cls, v: str) -> str:
        return single_line(v)


class PhaseRecord(BaseModel):
    """A tracked unit of work."""

    model_config = ConfigDict(extra="ignore")

    number: str = Field(..., description="Zero-padded phase number, e.g. 0020")
    name: str
    status: PhaseStatus = PhaseStatus.DRAFT
    goal: str = ""
    scope: list[str] = Field(default_factory=list, description="Ordered scope bullets")
    dependencies: list[str] = Field(
        default_factory=list, description="Phase numbers that must be Complete first"
    )
    tasks: list[Task] = Field(default_factory=list)
    category: str | None = Field(default=None, description="Domain tag used by triage")
    verification_gate: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    closed_at: datetime | None = None

    @field_validator("name", "goal")
    @classmethod
    def _clean_text(cls, v: str) -> str:
        return single_line(v)

    @field_validator("category", "verification_gate")
    @classmethod
    def _clean_optional(cls, v: str | None) -> str | None:
        return _single_line_or_none(v)

    @field_validator("scope")
    @classmethod
    def _clean_scope(cls, v: list[str]) -> list[str]:
        return [single_line(bullet) for bullet in v]

    @property
    def has_user_gate(self) -> bool:
        return bool(self.verification_gate) and "USER GATE" in self.verification_gate.upper()

    @property
    def has_detail(self) -> bool:
        return bool(self.goal or self.scope or self.tasks)

    def get_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def next_task_id(self) -> str:
        highest = 0
        for task in self.tasks:
            match = re.match(r"^T(\d+)", task.id)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"T{highest + 1:03d}"

    def summary(self) -> "PhaseRecord":
        """Copy with scope/task detail elided (archived form)."""
        return self.model_copy(
            update={"goal": "", "scope": [], "tasks": []}, deep=True
        )


class BacklogItem(BaseModel):
    """An unscheduled piece of work awaiting assignment."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Backlog id, e.g. B001")
    description: str
    status: BacklogStatus = BacklogStatus.OPEN
    provenance: str | None = Field(
        default=None, description="Phase number the item was filed from"
    )
    source_task: str | None = Field(
        default=None, description="Task id within the provenance phase"
    )
    assigned_phase: str | None = None
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    category: str | None = None
    priority: str = Field(default="P2", pattern=r"^P[1-3]$")
    reason: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("description")
    @classmethod
    def _clean_description(cls, v: str) -> str:
        return single_line(v)

    @field_validator("category", "reason")
    @classmethod
    def _clean_optional(cls, v: str | None) -> str | None:
        return _single_line_or_none(v)

    @property
    def label(self) -> str:
        """Display label; orphaned tasks name their origin."""
        if self.provenance and self.source_task:
            return f"Orphaned from {self.provenance}: {self.source_task} {self.description}"
        return self.description


class ArchiveEntry(BaseModel):
    """Full historical snapshot of a phase at closure."""

    model_config = ConfigDict(extra="ignore")

    phase_number: str
    snapshot: PhaseRecord
    reviewed: bool = False
    archived_at: datetime = Field(default_factory=utcnow)


class RoadmapDocument(BaseModel):
    """Aggregate root: ordered phases plus the backlog."""

    model_config = ConfigDict(extra="ignore")

    project: str | None = None
    schema_version: str = "1"
    current_phase: str | None = Field(
        default=None, description="Number of the Active phase, if any"
    )
    phases: list[PhaseRecord] = Field(default_factory=list)
    backlog: list[BacklogItem] = Field(default_factory=list)

    @field_validator("project")
    @classmethod
    def _clean_project(cls, v: str | None) -> str | None:
        return _single_line_or_none(v)

    def get_phase(self, number: str) -> PhaseRecord | None:
        for phase in self.phases:
            if phase.number == number:
                return phase
        return None

    def get_item(self, item_id: str) -> BacklogItem | None:
        for item in self.backlog:
            if item.id == item_id:
                return item
        return None

    def active_phase(self) -> PhaseRecord | None:
        for phase in self.phases:
            if phase.status == PhaseStatus.ACTIVE:
                return phase
        return None

    def next_draft_phase(self, exclude: str | None = None) -> PhaseRecord | None:
        for phase in self.phases:
            if phase.status == PhaseStatus.DRAFT and phase.number != exclude:
                return phase
        return None

    def open_items(self) -> list[BacklogItem]:
        return [i for i in self.backlog if i.status == BacklogStatus.OPEN]

    def next_backlog_id(self) -> str:
        highest = 0
        for item in self.backlog:
            match = re.match(r"^B(\d+)$", item.id)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"B{highest + 1:03d}"

    def find_issues(self) -> list[str]:
        """Check document invariants and return every violation found."""
        issues: list[str] = []

        numbers = [p.number for p in self.phases]
        seen: set[str] = set()
        for number in numbers:
            if number in seen:
                issues.append(f"Duplicate phase number {number}")
            seen.add(number)
            if not PHASE_NUMBER_RE.match(number):
                issues.append(f"Invalid phase number '{number}'")

        as_ints = [int(n) for n in numbers if n.isdigit()]
        if as_ints != sorted(as_ints):
            issues.append("Phases are not in ascending number order")

        active = [p.number for p in self.phases if p.status == PhaseStatus.ACTIVE]
        if len(active) > 1:
            issues.append(f"More than one Active phase: {', '.join(active)}")
        expected_current = active[0] if active else None
        if self.current_phase != expected_current:
            issues.append(
                f"Current phase pointer {self.current_phase!r} does not match "
                f"Active phase {expected_current!r}"
            )

        for phase in self.phases:
            if not phase.name.strip():
                issues.append(f"Phase {phase.number} has an empty name")
            if any(not bullet.strip() for bullet in phase.scope):
                issues.append(f"Phase {phase.number} has an empty scope bullet")
            if (phase.closed_at is not None) != (phase.status == PhaseStatus.COMPLETE):
                issues.append(f"Phase {phase.number}: closed_at must be set iff Complete")
            for dep in phase.dependencies:
                if dep == phase.number:
                    issues.append(f"Phase {phase.number} depends on itself")
                elif dep not in seen:
                    issues.append(f"Phase {phase.number} depends on unknown phase {dep}")
            task_ids: set[str] = set()
            for task in phase.tasks:
                if task.id in task_ids:
                    issues.append(f"Phase {phase.number}: duplicate task id {task.id}")
                task_ids.add(task.id)
                if task.done and task.deferred:
                    issues.append(f"Phase {phase.number}: task {task.id} is both done and deferred")
                if not task.description.strip():
                    issues.append(f"Phase {phase.number}: task {task.id} has no description")

        item_ids: set[str] = set()
        for item in self.backlog:
            if item.id in item_ids:
                issues.append(f"Duplicate backlog id {item.id}")
            item_ids.add(item.id)
            if not item.description.strip():
                issues.append(f"Backlog item {item.id} has an empty description")
            if (item.assigned_phase is not None) != (item.status == BacklogStatus.ASSIGNED):
                issues.append(f"Backlog item {item.id}: assigned_phase must be set iff Assigned")
            if item.assigned_phase is not None and item.assigned_phase not in seen:
                issues.append(
                    f"Backlog item {item.id} is assigned to unknown phase {item.assigned_phase}"
                )

        return issues
