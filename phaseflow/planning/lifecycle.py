# phaseflow/planning/lifecycle.py
"""
PhaseLifecycle: the Draft -> Active -> Closing -> Complete state machine.

Every mutation runs inside one Workspace transaction (lock, load, mutate,
validate, commit). Close is the operation of interest: unfinished tasks are
filed into the backlog, the full phase is archived, and the roadmap keeps
only a summary. If any step fails, nothing is persisted.
"""

import logging
from datetime import datetime
from typing import Protocol

from phaseflow.errors import InvalidState, NotFound, PreconditionFailed, ValidationError
from phaseflow.models.responses import (
    AddPhaseResult,
    ArchiveReviewResult,
    CloseResult,
    DeferResult,
    InitResult,
    PhaseRef,
    StartResult,
    TaskResult,
)
from phaseflow.models.roadmap import (
    ArchiveEntry,
    BacklogItem,
    PhaseRecord,
    PhaseStatus,
    RoadmapDocument,
    Task,
)
from phaseflow.planning.numbering import allocate_after, apply_renumbering, next_append_number
from phaseflow.store.workspace import Transaction, Workspace

logger = logging.getLogger(__name__)

CLOSE_REASON = "Incomplete at phase close"


class MemoryIntegrator(Protocol):
    """External collaborator that promotes archived content into long-term memory."""

    def promote(self, entry: ArchiveEntry) -> bool:
        """Return True when nothing promotable remains and the entry may be deleted."""
        ...


def _phase_ref(phase: PhaseRecord | None) -> PhaseRef | None:
    if phase is None:
        return None
    return PhaseRef(number=phase.number, name=phase.name)


def _require_phase(document: RoadmapDocument, number: str) -> PhaseRecord:
    phase = document.get_phase(number)
    if phase is None:
        raise NotFound(
            f"Phase {number}",
            f"Available phases: {', '.join(p.number for p in document.phases) or 'none'}",
        )
    return phase


def close_document(
    document: RoadmapDocument, number: str | None, now: datetime
) -> tuple[PhaseRecord, ArchiveEntry, list[BacklogItem]]:
    """
    Apply the close transition to an in-memory document.

    Returns:
        (summary, archive_entry, new_items). The document is mutated in place;
        the caller decides whether to persist it.

    Raises:
        InvalidState: If there is no current phase or the phase is not Active
        NotFound: If an explicit phase number is unknown
    """
    if number is None:
        number = document.current_phase
        if number is None:
            raise InvalidState("No active phase to close", "Start a phase first with 'phaseflow start'")
    phase = _require_phase(document, number)
    if phase.status != PhaseStatus.ACTIVE:
        raise InvalidState(f"Phase {number} is {phase.status.value}, not Active")

    phase.status = PhaseStatus.CLOSING

    already_filed = {
        (item.provenance, item.source_task) for item in document.backlog if item.source_task
    }
    new_items: list[BacklogItem] = []
    for task in phase.tasks:
        if task.done or task.deferred:
            continue
        if (phase.number, task.id) not in already_filed:
            item = BacklogItem(
                id=document.next_backlog_id(),
                description=task.description,
                provenance=phase.number,
                source_task=task.id,
                category=phase.category,
                reason=CLOSE_REASON,
                created_at=now,
            )
            document.backlog.append(item)
            new_items.append(item)
        task.deferred = True

    phase.status = PhaseStatus.COMPLETE
    phase.closed_at = now

    entry = ArchiveEntry(phase_number=phase.number, snapshot=phase.model_copy(deep=True), archived_at=now)
    summary = phase.summary()
    index = document.phases.index(phase)
    document.phases[index] = summary

    document.current_phase = None
    return summary, entry, new_items


class PhaseLifecycle:
    """
    Lifecycle operations over a project's roadmap.

    Args:
        workspace: Project workspace (store, archive, lock settings, clock)
    """

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    def init(self, project: str | None = None) -> InitResult:
        """
        Create an empty roadmap.

        Raises:
            ValidationError: If the roadmap already exists
        """
        store = self.workspace.store
        with self.workspace.lock():
            if store.exists():
                raise ValidationError(
                    f"Roadmap {store.path} already exists",
                    "Use 'phaseflow status' to inspect it",
                )
            store.save(RoadmapDocument(project=project))
        logger.info(f"Initialized roadmap {store.path} for project {project!r}")
        return InitResult(path=str(store.path), project=project)

    def add_phase(
        self,
        name: str,
        goal: str = "",
        scope: list[str] | None = None,
        dependencies: list[str] | None = None,
        after: str | None = None,
        category: str | None = None,
        verification_gate: str | None = None,
    ) -> AddPhaseResult:
        """
        Add a Draft phase, appended or inserted after an existing phase.

        Raises:
            NotFound: If `after` is unknown
            ValidationError: If a dependency is unknown or the name is empty
        """
        with self.workspace.transaction() as txn:
            phase, renumbered = insert_phase(
                txn,
                name=name,
                goal=goal,
                scope=scope or [],
                dependencies=dependencies or [],
                after=after,
                category=category,
                verification_gate=verification_gate,
            )
        logger.info(f"Added phase {phase.number} - {phase.name}")
        return AddPhaseResult(phase=phase, renumbered=renumbered)

    def start(self, number: str) -> StartResult:
        """
        Draft -> Active.

        Raises:
            NotFound: If the phase is unknown
            InvalidState: If the phase is not Draft
            PreconditionFailed: If another phase is Active or dependencies are not Complete
        """
        with self.workspace.transaction() as txn:
            document = txn.document
            phase = _require_phase(document, number)
            if phase.status != PhaseStatus.DRAFT:
                raise InvalidState(f"Phase {number} is {phase.status.value}, not Draft")

            active = document.active_phase()
            if active is not None:
                raise PreconditionFailed(
                    f"Phase {active.number} is already Active",
                    f"Close it first with 'phaseflow close {active.number}'",
                )

            unmet = [
                dep for dep in phase.dependencies
                if (dep_phase := document.get_phase(dep)) is None
                or dep_phase.status != PhaseStatus.COMPLETE
            ]
            if unmet:
                raise PreconditionFailed(
                    f"Phase {number} depends on incomplete phase(s): {', '.join(unmet)}"
                )

            phase.status = PhaseStatus.ACTIVE
            document.current_phase = phase.number

        logger.info(f"Started phase {phase.number} - {phase.name}")
        return StartResult(phase_number=phase.number, phase_name=phase.name)

    def close(self, number: str | None = None, dry_run: bool = False) -> CloseResult:
        """
        Active -> Complete, filing unfinished tasks and archiving the phase.

        Args:
            number: Phase to close (default: the current phase)
            dry_run: Compute the result without locking or persisting

        Raises:
            InvalidState: If the phase is not Active
            NotFound: If the phase is unknown
            StorageIOError: If the archive or roadmap write fails (nothing persisted)
        """
        now = self.workspace.clock()

        if dry_run:
            document = self.workspace.read()
            summary, _, new_items = close_document(document, number, now)
            return CloseResult(
                phase_number=summary.number,
                phase_name=summary.name,
                closed_at=now,
                new_items=new_items,
                next_phase=_phase_ref(document.next_draft_phase()),
                dry_run=True,
            )

        with self.workspace.transaction() as txn:
            summary, entry, new_items = close_document(txn.document, number, now)
            txn.write_archive(entry)
            next_phase = _phase_ref(txn.document.next_draft_phase())

        logger.info(
            f"Closed phase {summary.number} - {summary.name}; "
            f"filed {len(new_items)} backlog item(s)"
        )
        return CloseResult(
            phase_number=summary.number,
            phase_name=summary.name,
            closed_at=now,
            new_items=new_items,
            next_phase=next_phase,
        )

    def add_task(self, number: str, description: str) -> TaskResult:
        """
        Append a task to a non-Complete phase.

        Raises:
            NotFound: If the phase is unknown
            InvalidState: If the phase is Complete
        """
        with self.workspace.transaction() as txn:
            phase = _require_phase(txn.document, number)
            if phase.status == PhaseStatus.COMPLETE:
                raise InvalidState(f"Phase {number} is Complete; tasks live in the archive")
            task = Task(id=phase.next_task_id(), description=description)
            phase.tasks.append(task)

        logger.info(f"Added task {task.id} to phase {number}")
        return TaskResult(
            phase_number=number, task_id=task.id, description=task.description, done=False
        )

    def complete_task(self, number: str, task_id: str) -> TaskResult:
        """
        Mark a task done.

        Raises:
            NotFound: If the phase or task is unknown
            InvalidState: If the phase is Complete or the task was deferred
        """
        with self.workspace.transaction() as txn:
            phase = _require_phase(txn.document, number)
            if phase.status == PhaseStatus.COMPLETE:
                raise InvalidState(f"Phase {number} is Complete")
            task = phase.get_task(task_id)
            if task is None:
                raise NotFound(f"Task {task_id} in phase {number}")
            if task.deferred:
                raise InvalidState(f"Task {task_id} was deferred to the backlog")
            task.done = True

        logger.info(f"Completed task {task_id} in phase {number}")
        return TaskResult(
            phase_number=number, task_id=task.id, description=task.description, done=True
        )

    def defer(
        self,
        descriptions: list[str],
        reason: str | None = None,
        priority: str = "P2",
        category: str | None = None,
    ) -> DeferResult:
        """File free-text items into the backlog, tagged with the current phase."""
        now = self.workspace.clock()
        with self.workspace.transaction() as txn:
            document = txn.document
            items = []
            for description in descriptions:
                item = BacklogItem(
                    id=document.next_backlog_id(),
                    description=description,
                    provenance=document.current_phase,
                    priority=priority,
                    category=category,
                    reason=reason,
                    created_at=now,
                )
                document.backlog.append(item)
                items.append(item)

        logger.info(f"Deferred {len(items)} item(s) to the backlog")
        return DeferResult(items=items)

    def review_archive(self, number: str, integrator: MemoryIntegrator) -> ArchiveReviewResult:
        """
        Hand an archive entry to the memory integrator.

        On success the entry is deleted; otherwise it is kept with
        reviewed=True for manual review.

        Raises:
            NotFound: If no archive entry exists for the phase
        """
        with self.workspace.transaction() as txn:
            entry = txn.staged_archive(number)
            if entry is None:
                raise NotFound(f"Archive entry for phase {number}")

            error = None
            try:
                promoted = bool(integrator.promote(entry))
            except Exception as e:
                logger.warning(f"Memory integration failed for phase {number}: {e}")
                promoted = False
                error = str(e)

            if promoted:
                txn.delete_archive(number)
            else:
                entry.reviewed = True
                txn.write_archive(entry)

        logger.info(
            f"Reviewed archive entry {number}: "
            f"{'deleted' if promoted else 'retained for manual review'}"
        )
        return ArchiveReviewResult(
            phase_number=number, promoted=promoted, deleted=promoted, error=error
        )


def insert_phase(
    txn: Transaction,
    name: str,
    goal: str = "",
    scope: list[str] | None = None,
    dependencies: list[str] | None = None,
    after: str | None = None,
    category: str | None = None,
    verification_gate: str | None = None,
) -> tuple[PhaseRecord, dict[str, str]]:
    """
    Create a Draft phase inside an open transaction.

    Shared by AddPhase and triage new-phase creation. When inserting after an
    existing phase forces a renumbering, the document and archive are both
    re-keyed in the same transaction.

    Returns:
        (new_phase, renumbering)
    """
    document = txn.document
    numbering = txn.workspace.config.numbering

    if not name or not name.strip():
        raise ValidationError("Phase name must not be empty")

    renumbering: dict[str, str] = {}
    if after is None:
        number = next_append_number(document, numbering)
        position = len(document.phases)
    else:
        number, renumbering = allocate_after(document, after, numbering)
        position = next(i for i, p in enumerate(document.phases) if p.number == after) + 1
        if renumbering:
            apply_renumbering(document, renumbering)
            txn.renumber_archive(renumbering)

    deps = [renumbering.get(d, d) for d in (dependencies or [])]
    unknown = [d for d in deps if document.get_phase(d) is None]
    if unknown:
        raise ValidationError(f"Unknown dependency phase(s): {', '.join(unknown)}")

    phase = PhaseRecord(
        number=number,
        name=name.strip(),
        goal=goal,
        scope=list(scope or []),
        dependencies=deps,
        category=category,
        verification_gate=verification_gate,
        created_at=txn.workspace.clock(),
    )
    document.phases.insert(position, phase)
    return phase, renumbering
