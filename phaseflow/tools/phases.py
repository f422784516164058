# phaseflow/tools/phases.py
"""
Phase tools: init, add, start, close, tasks.
"""

import logging

from phaseflow.planning.lifecycle import PhaseLifecycle
from phaseflow.store.workspace import Workspace
from phaseflow.validation.sanitize import (
    sanitize_optional,
    sanitize_phase_number,
    sanitize_task_id,
    sanitize_text,
)

logger = logging.getLogger(__name__)


def init_roadmap(workspace: Workspace, project: str | None = None) -> dict:
    """
    Create an empty roadmap in the workspace.

    Returns:
        InitResult as dict
    """
    project = sanitize_optional(project, "Project name", max_length=120)
    return PhaseLifecycle(workspace).init(project).model_dump(mode="json")


def add_phase(
    workspace: Workspace,
    name: str,
    goal: str = "",
    scope: list[str] | None = None,
    dependencies: list[str] | None = None,
    after: str | None = None,
    category: str | None = None,
    verification_gate: str | None = None,
) -> dict:
    """
    Add a Draft phase, appended or inserted after `after`.

    Returns:
        AddPhaseResult as dict
    """
    width = workspace.config.numbering.width
    result = PhaseLifecycle(workspace).add_phase(
        name=sanitize_text(name, "Phase name", max_length=120),
        goal=sanitize_optional(goal, "Goal") or "",
        scope=[sanitize_text(bullet, "Scope bullet") for bullet in scope or []],
        dependencies=[sanitize_phase_number(d, width) for d in dependencies or []],
        after=sanitize_phase_number(after, width) if after else None,
        category=sanitize_optional(category, "Category", max_length=40),
        verification_gate=sanitize_optional(verification_gate, "Verification gate"),
    )
    return result.model_dump(mode="json")


def start_phase(workspace: Workspace, phase: str) -> dict:
    """
    Make a Draft phase the current Active phase.

    Returns:
        StartResult as dict
    """
    number = sanitize_phase_number(phase, workspace.config.numbering.width)
    return PhaseLifecycle(workspace).start(number).model_dump(mode="json")


def close_phase(workspace: Workspace, phase: str | None = None, dry_run: bool = False) -> dict:
    """
    Close a phase (default: the current one), filing unfinished tasks.

    Returns:
        CloseResult as dict
    """
    number = sanitize_phase_number(phase, workspace.config.numbering.width) if phase else None
    result = PhaseLifecycle(workspace).close(number, dry_run=dry_run)
    return result.model_dump(mode="json")


def add_task(workspace: Workspace, phase: str, description: str) -> dict:
    """
    Append a task to a phase.

    Returns:
        TaskResult as dict
    """
    number = sanitize_phase_number(phase, workspace.config.numbering.width)
    result = PhaseLifecycle(workspace).add_task(number, sanitize_text(description))
    return result.model_dump(mode="json")


def complete_task(workspace: Workspace, phase: str, task_id: str) -> dict:
    """
    Mark a task done.

    Returns:
        TaskResult as dict
    """
    number = sanitize_phase_number(phase, workspace.config.numbering.width)
    result = PhaseLifecycle(workspace).complete_task(number, sanitize_task_id(task_id))
    return result.model_dump(mode="json")
