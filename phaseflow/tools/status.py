# phaseflow/tools/status.py
"""
roadmap_status tool implementation.

Read-only: no lock is taken, so the snapshot may be stale.
"""

import logging

from phaseflow.models.responses import PhaseRef, PhaseSummary, StatusResponse
from phaseflow.models.roadmap import BacklogStatus
from phaseflow.store.workspace import Workspace

logger = logging.getLogger(__name__)


def roadmap_status(workspace: Workspace) -> dict:
    """
    Summarize the roadmap.

    Returns:
        StatusResponse as dict
    """
    document = workspace.read()

    phases = [
        PhaseSummary(
            number=phase.number,
            name=phase.name,
            status=phase.status.value,
            category=phase.category,
            tasks_done=sum(1 for t in phase.tasks if t.done),
            tasks_total=len(phase.tasks),
            user_gate=phase.has_user_gate,
        )
        for phase in document.phases
    ]

    current = document.get_phase(document.current_phase) if document.current_phase else None
    next_draft = document.next_draft_phase()

    response = StatusResponse(
        project=document.project,
        current_phase=PhaseRef(number=current.number, name=current.name) if current else None,
        next_phase=PhaseRef(number=next_draft.number, name=next_draft.name) if next_draft else None,
        phases=phases,
        open_items=sum(1 for i in document.backlog if i.status == BacklogStatus.OPEN),
        assigned_items=sum(1 for i in document.backlog if i.status == BacklogStatus.ASSIGNED),
        skipped_items=sum(1 for i in document.backlog if i.status == BacklogStatus.SKIPPED),
        archived=workspace.archive.list_numbers(),
    )
    return response.model_dump(mode="json")


def list_backlog(workspace: Workspace, status: str | None = None) -> dict:
    """
    List backlog items, optionally filtered by status.

    Returns:
        {"items": [...], "total": n}
    """
    document = workspace.read()
    items = document.backlog
    if status:
        wanted = status.strip().capitalize()
        items = [i for i in items if i.status.value == wanted]
    return {
        "items": [i.model_dump(mode="json") | {"label": i.label} for i in items],
        "total": len(items),
    }
