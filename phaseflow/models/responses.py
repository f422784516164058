# phaseflow/models/responses.py
"""
Pydantic result models for engine operations.

Every mutating operation returns one of these so the calling driver (CLI,
MCP client, version-control hook) can inspect what happened.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from phaseflow.models.roadmap import BacklogItem, PhaseRecord


class PhaseRef(BaseModel):
    """Minimal pointer to a phase."""

    number: str = Field(description="Phase number")
    name: str = Field(description="Phase name")


class InitResult(BaseModel):
    """Result of creating a roadmap."""

    path: str = Field(description="Roadmap file that was created")
    project: str | None = Field(default=None, description="Project name")


class AddPhaseResult(BaseModel):
    """Result of adding a Draft phase."""

    phase: PhaseRecord = Field(description="The new phase")
    renumbered: dict[str, str] = Field(
        default_factory=dict, description="Old -> new numbers of shifted phases"
    )


class StartResult(BaseModel):
    """Result of Draft -> Active."""

    phase_number: str
    phase_name: str


class CloseResult(BaseModel):
    """Result of closing a phase; consumed by the version-control collaborator."""

    phase_number: str = Field(description="Closed phase number")
    phase_name: str = Field(description="Closed phase name")
    closed_at: datetime | None = Field(default=None, description="Closure time")
    new_items: list[BacklogItem] = Field(
        default_factory=list, description="Backlog items filed from unfinished tasks"
    )
    next_phase: PhaseRef | None = Field(
        default=None, description="First Draft phase after the close, if any"
    )
    dry_run: bool = Field(default=False, description="True when nothing was persisted")


class TaskResult(BaseModel):
    """Result of adding or completing a task."""

    phase_number: str
    task_id: str
    description: str
    done: bool


class DeferResult(BaseModel):
    """Result of filing items directly into the backlog."""

    items: list[BacklogItem] = Field(default_factory=list)


class Assignment(BaseModel):
    """One backlog item assigned (or proposed for assignment) to a phase."""

    item_id: str
    description: str
    phase_number: str
    score: float = Field(ge=0.0, le=1.0)
    band: str = Field(description="Confidence band (High/Medium/Low/None)")
    confirmed: bool = Field(
        default=False, description="Whether the decision oracle was consulted"
    )


class NewPhase(BaseModel):
    """A phase created by triage to hold an item."""

    item_id: str
    phase_number: str
    name: str
    after: str | None = None


class Proposal(BaseModel):
    """Dry-run view of one item: best and runner-up candidates."""

    item_id: str
    description: str
    best_phase: str | None = None
    best_score: float = 0.0
    band: str = "None"
    runner_up: str | None = None
    runner_up_score: float | None = None
    action: str = Field(
        description="What auto mode would do: assign, ask, or keep_open"
    )


class TriageReport(BaseModel):
    """Outcome of one triage run."""

    mode: str = Field(description="interactive, auto or dry-run")
    assignments: list[Assignment] = Field(default_factory=list)
    new_phases: list[NewPhase] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list, description="Item ids marked Skipped")
    remaining_open: list[str] = Field(
        default_factory=list, description="Item ids still Open after the run"
    )
    renumbered: dict[str, str] = Field(default_factory=dict)
    orphans: list[str] = Field(
        default_factory=list, description="Item ids created by the pre-triage orphan scan"
    )
    proposals: list[Proposal] = Field(default_factory=list, description="Dry-run only")


class ScanReport(BaseModel):
    """Result of an orphan scan."""

    created: list[BacklogItem] = Field(default_factory=list)
    scanned_phases: list[str] = Field(default_factory=list)


class PhaseSummary(BaseModel):
    """One row of the status listing."""

    number: str
    name: str
    status: str
    category: str | None = None
    tasks_done: int = 0
    tasks_total: int = 0
    user_gate: bool = False


class StatusResponse(BaseModel):
    """Read-only roadmap summary."""

    project: str | None = None
    current_phase: PhaseRef | None = None
    next_phase: PhaseRef | None = None
    phases: list[PhaseSummary] = Field(default_factory=list)
    open_items: int = 0
    assigned_items: int = 0
    skipped_items: int = 0
    archived: list[str] = Field(default_factory=list, description="Archived phase numbers")


class ArchiveReviewResult(BaseModel):
    """Outcome of handing an archive entry to the memory integrator."""

    phase_number: str
    promoted: bool = Field(description="Integrator reported success")
    deleted: bool = Field(description="Entry was removed from the archive")
    error: str | None = Field(default=None, description="Integrator failure, if any")


class LockStatus(BaseModel):
    """Current roadmap lock holder."""

    locked: bool
    owner: str | None = None
    pid: int | None = None
    host: str | None = None
    acquired_at: datetime | None = None
    cleared: bool = False
