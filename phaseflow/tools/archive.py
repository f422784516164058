# phaseflow/tools/archive.py
"""
Archive tools: list, show, delete and memory review of closed phases.
"""

import logging

from phaseflow.errors import NotFound, ValidationError
from phaseflow.models.roadmap import ArchiveEntry
from phaseflow.planning.lifecycle import MemoryIntegrator, PhaseLifecycle
from phaseflow.store.archive import render_markdown
from phaseflow.store.workspace import Workspace
from phaseflow.validation.sanitize import sanitize_phase_number

logger = logging.getLogger(__name__)


class ReportedIntegrator:
    """Integrator whose outcome was decided by the caller (CLI flag or MCP argument)."""

    def __init__(self, promoted: bool) -> None:
        self.promoted = promoted

    def promote(self, entry: ArchiveEntry) -> bool:
        return self.promoted


def list_archive(workspace: Workspace) -> dict:
    """
    List archived phases.

    Returns:
        {"entries": [...], "total": n}
    """
    entries = [
        {
            "phase_number": entry.phase_number,
            "name": entry.snapshot.name,
            "closed_at": entry.snapshot.closed_at.isoformat() if entry.snapshot.closed_at else None,
            "tasks": len(entry.snapshot.tasks),
            "reviewed": entry.reviewed,
        }
        for entry in workspace.archive.list_entries()
    ]
    return {"entries": entries, "total": len(entries)}


def show_archive(workspace: Workspace, phase: str, format: str = "json") -> dict:
    """
    Show one archive entry.

    Args:
        format: "json" for the raw entry or "markdown" for the history view

    Returns:
        {"phase_number": ..., "format": ..., "content": ...}
    """
    number = sanitize_phase_number(phase, workspace.config.numbering.width)
    entry = workspace.archive.read(number)
    if format == "markdown":
        content = render_markdown(entry)
    elif format == "json":
        content = entry.model_dump(mode="json")
    else:
        raise ValidationError(f"Unknown format '{format}'", "Use json or markdown")
    return {"phase_number": number, "format": format, "content": content}


def delete_archive(workspace: Workspace, phase: str) -> dict:
    """
    Delete an archive entry under the roadmap lock.

    Returns:
        {"phase_number": ..., "deleted": true}
    """
    number = sanitize_phase_number(phase, workspace.config.numbering.width)
    with workspace.transaction() as txn:
        if txn.staged_archive(number) is None:
            raise NotFound(f"Archive entry for phase {number}")
        txn.delete_archive(number)
    return {"phase_number": number, "deleted": True}


def review_archive(
    workspace: Workspace,
    phase: str,
    promoted: bool | None = None,
    integrator: MemoryIntegrator | None = None,
) -> dict:
    """
    Hand an archive entry to the memory integrator.

    Args:
        promoted: Outcome reported by the caller (used when no integrator is given)
        integrator: Memory-integration collaborator

    Returns:
        ArchiveReviewResult as dict
    """
    number = sanitize_phase_number(phase, workspace.config.numbering.width)
    if integrator is None:
        if promoted is None:
            raise ValidationError("Review needs an integrator or a reported outcome")
        integrator = ReportedIntegrator(promoted)
    result = PhaseLifecycle(workspace).review_archive(number, integrator)
    return result.model_dump(mode="json")
