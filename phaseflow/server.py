# phaseflow/server.py
"""
FastMCP server instance with tool registration.

CRITICAL: configure_logging() is called first to prevent stdout pollution.
All logging goes to stderr as JSON.
"""

# Configure logging FIRST before any other imports
from phaseflow.logging_config import configure_logging

configure_logging()

# Now safe to import everything else
import logging
from collections.abc import Callable

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from phaseflow.config.loader import load_config
from phaseflow.errors import PhaseflowError
from phaseflow.store.workspace import Workspace
from phaseflow.tools import archive as archive_tools
from phaseflow.tools import backlog as backlog_tools
from phaseflow.tools import lock as lock_tools
from phaseflow.tools import phases as phase_tools
from phaseflow.tools.status import list_backlog as _list_backlog
from phaseflow.tools.status import roadmap_status as _roadmap_status
from phaseflow.validation.sanitize import sanitize_project_path

logger = logging.getLogger(__name__)

# Create FastMCP instance
mcp = FastMCP("phaseflow")


def get_workspace(project_dir: str) -> Workspace:
    """
    Open the workspace for a project directory.

    Raises:
        PhaseflowError: If the path or its config is invalid
    """
    root = sanitize_project_path(project_dir)
    return Workspace.open(root, load_config(root))


def _call(tool: Callable[..., dict], project_dir: str, *args, **kwargs) -> dict:
    """Run a tool against a project, converting engine errors to ToolError."""
    try:
        return tool(get_workspace(project_dir), *args, **kwargs)
    except PhaseflowError as e:
        logger.warning(f"{tool.__name__} failed: [{e.code}] {e.message}")
        raise ToolError(e.format())


@mcp.tool()
def init_roadmap(project_dir: str, project: str | None = None) -> dict:
    """Create an empty ROADMAP.md in the project directory."""
    return _call(phase_tools.init_roadmap, project_dir, project)


@mcp.tool()
def roadmap_status(project_dir: str) -> dict:
    """Summarize phases, the current phase and backlog counts (read-only)."""
    return _call(_roadmap_status, project_dir)


@mcp.tool()
def list_backlog(project_dir: str, status: str | None = None) -> dict:
    """List backlog items, optionally filtered by status (Open/Assigned/Skipped)."""
    return _call(_list_backlog, project_dir, status)


@mcp.tool()
def add_phase(
    project_dir: str,
    name: str,
    goal: str = "",
    scope: list[str] | None = None,
    dependencies: list[str] | None = None,
    after: str | None = None,
    category: str | None = None,
    verification_gate: str | None = None,
) -> dict:
    """Add a Draft phase, appended or inserted after an existing phase."""
    return _call(
        phase_tools.add_phase,
        project_dir,
        name,
        goal=goal,
        scope=scope,
        dependencies=dependencies,
        after=after,
        category=category,
        verification_gate=verification_gate,
    )


@mcp.tool()
def start_phase(project_dir: str, phase: str) -> dict:
    """Make a Draft phase Active. Fails if another phase is Active or dependencies are open."""
    return _call(phase_tools.start_phase, project_dir, phase)


@mcp.tool()
def close_phase(project_dir: str, phase: str | None = None, dry_run: bool = False) -> dict:
    """Close the current phase: file unfinished tasks to the backlog and archive the detail."""
    return _call(phase_tools.close_phase, project_dir, phase, dry_run=dry_run)


@mcp.tool()
def add_task(project_dir: str, phase: str, description: str) -> dict:
    """Append a task to a phase."""
    return _call(phase_tools.add_task, project_dir, phase, description)


@mcp.tool()
def complete_task(project_dir: str, phase: str, task_id: str) -> dict:
    """Mark a task done."""
    return _call(phase_tools.complete_task, project_dir, phase, task_id)


@mcp.tool()
def defer_items(
    project_dir: str,
    descriptions: list[str],
    reason: str | None = None,
    priority: str = "P2",
    category: str | None = None,
) -> dict:
    """File items directly into the backlog, tagged with the current phase."""
    return _call(
        backlog_tools.defer_items,
        project_dir,
        descriptions,
        reason=reason,
        priority=priority,
        category=category,
    )


@mcp.tool()
def scan_orphans(project_dir: str) -> dict:
    """Recover unfinished tasks from archived phases into the backlog (idempotent)."""
    return _call(backlog_tools.scan_orphans, project_dir)


@mcp.tool()
def triage_backlog(
    project_dir: str, mode: str = "dry-run", decisions: dict[str, dict] | None = None
) -> dict:
    """
    Triage Open backlog items. Run dry-run first, then pass decisions keyed by
    item id ({"kind": "assign_recommended"|"assign_other"|"create_phase"|"skip"|"keep_open"}).
    """
    return _call(backlog_tools.triage_backlog, project_dir, mode, decisions)


@mcp.tool()
def list_archive(project_dir: str) -> dict:
    """List archived (closed) phases."""
    return _call(archive_tools.list_archive, project_dir)


@mcp.tool()
def show_archive(project_dir: str, phase: str, format: str = "markdown") -> dict:
    """Show one archived phase as markdown or json."""
    return _call(archive_tools.show_archive, project_dir, phase, format)


@mcp.tool()
def review_archive(project_dir: str, phase: str, promoted: bool) -> dict:
    """Report memory integration for an archived phase: delete it if promoted, else retain."""
    return _call(archive_tools.review_archive, project_dir, phase, promoted=promoted)


@mcp.tool()
def lock_status(project_dir: str) -> dict:
    """Show who holds the roadmap lock."""
    return _call(lock_tools.lock_status, project_dir)


logger.info("MCP server initialized with 15 tools")
