# phaseflow/tools/backlog.py
"""
Backlog tools: defer, orphan scan, triage.
"""

import logging

from pydantic import ValidationError as PydanticValidationError

from phaseflow.errors import ValidationError
from phaseflow.planning.lifecycle import PhaseLifecycle
from phaseflow.planning.orphans import scan_orphans as _scan_orphans
from phaseflow.planning.triage.engine import MODES, BacklogTriageEngine
from phaseflow.planning.triage.oracle import Choice, DecisionOracle, ScriptedOracle
from phaseflow.store.workspace import Workspace
from phaseflow.validation.sanitize import sanitize_optional, sanitize_priority, sanitize_text

logger = logging.getLogger(__name__)


def defer_items(
    workspace: Workspace,
    descriptions: list[str],
    reason: str | None = None,
    priority: str = "P2",
    category: str | None = None,
) -> dict:
    """
    File items directly into the backlog.

    Returns:
        DeferResult as dict
    """
    cleaned = [sanitize_text(d) for d in descriptions]
    if not cleaned:
        raise ValidationError("Nothing to defer", "Pass at least one description")
    result = PhaseLifecycle(workspace).defer(
        cleaned,
        reason=sanitize_optional(reason, "Reason"),
        priority=sanitize_priority(priority),
        category=sanitize_optional(category, "Category", max_length=40),
    )
    return result.model_dump(mode="json")


def scan_orphans(workspace: Workspace) -> dict:
    """
    Recover unfinished tasks from archived phases.

    Returns:
        ScanReport as dict
    """
    return _scan_orphans(workspace).model_dump(mode="json")


def parse_decisions(decisions: dict[str, dict] | None) -> dict[str, Choice]:
    """
    Build oracle answers from plain dicts ({"B001": {"kind": "skip"}}).

    Raises:
        ValidationError: If any decision is malformed
    """
    parsed: dict[str, Choice] = {}
    for item_id, raw in (decisions or {}).items():
        try:
            parsed[item_id] = Choice.model_validate(raw)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid decision for {item_id}: {e.error_count()} error(s)")
    return parsed


def triage_backlog(
    workspace: Workspace,
    mode: str = "auto",
    decisions: dict[str, dict] | None = None,
    oracle: DecisionOracle | None = None,
) -> dict:
    """
    Triage every Open backlog item.

    Args:
        mode: interactive, auto or dry-run
        decisions: Pre-made oracle answers keyed by item id; unlisted items stay Open
        oracle: Explicit decision oracle (overrides decisions)

    Returns:
        TriageReport as dict
    """
    mode = mode.strip().lower().replace("_", "-")
    if mode not in MODES:
        raise ValidationError(f"Unknown triage mode '{mode}'", f"Use one of: {', '.join(MODES)}")
    if oracle is None and mode != "dry-run":
        oracle = ScriptedOracle(parse_decisions(decisions))
    report = BacklogTriageEngine(workspace).triage(mode, oracle)
    return report.model_dump(mode="json")
