# phaseflow/cli.py
"""
CLI interface for phaseflow.

Thin presentation layer over the tools/ service layer.
All commands delegate to the same functions that MCP wraps.
"""

import json
from collections.abc import Callable
from pathlib import Path

import typer

from phaseflow.config.loader import load_config
from phaseflow.errors import PhaseflowError
from phaseflow.logging_config import configure_cli_logging
from phaseflow.planning.triage.oracle import Choice, TriagePrompt
from phaseflow.store.workspace import Workspace

app = typer.Typer(
    name="phaseflow",
    help="Phase lifecycle and backlog triage for roadmap-driven projects.",
    no_args_is_help=True,
)
archive_app = typer.Typer(help="Inspect and review archived phases.", no_args_is_help=True)
app.add_typer(archive_app, name="archive")


class _State:
    project_dir: Path = Path(".")
    as_json: bool = False
    verbosity: str | None = None


_state = _State()


@app.callback()
def main(
    project_dir: Path = typer.Option(
        Path("."), "--project", "-C", help="Project directory containing the roadmap"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable JSON results"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine activity to stderr"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
):
    """Phase lifecycle and backlog triage for roadmap-driven projects."""
    _state.project_dir = project_dir
    _state.as_json = as_json
    verbosity = "verbose" if verbose else ("quiet" if quiet else None)
    configure_cli_logging(verbosity or "normal")
    _state.verbosity = verbosity


def _workspace() -> Workspace:
    root = _state.project_dir.resolve()
    config = load_config(root)
    if _state.verbosity is None:
        configure_cli_logging(config.output.verbosity)
    return Workspace.open(root, config)


def _invoke(tool: Callable[..., dict], *args, **kwargs) -> dict:
    """Run a tool against the project; engine errors become exit code 1."""
    try:
        return tool(_workspace(), *args, **kwargs)
    except PhaseflowError as e:
        typer.echo(e.format(), err=True)
        raise typer.Exit(1)


def _emit_json(result: dict) -> bool:
    if _state.as_json:
        typer.echo(json.dumps(result, indent=2))
        return True
    return False


def _status_color(status: str) -> str:
    colors = {
        "Complete": typer.colors.GREEN,
        "Active": typer.colors.YELLOW,
        "Draft": typer.colors.CYAN,
        "Closing": typer.colors.MAGENTA,
        "Open": typer.colors.YELLOW,
        "Assigned": typer.colors.GREEN,
        "Skipped": typer.colors.BRIGHT_BLACK,
    }
    return colors.get(status, typer.colors.WHITE)


# ---------------------------------------------------------------------------
# Roadmap
# ---------------------------------------------------------------------------


@app.command()
def init(project: str = typer.Option(None, "--name", "-n", help="Project name")):
    """Create an empty ROADMAP.md."""
    from phaseflow.tools.phases import init_roadmap

    result = _invoke(init_roadmap, project)
    if _emit_json(result):
        return
    typer.echo(f"Created {result['path']}")


@app.command()
def status():
    """Show phases, the current phase and backlog counts."""
    from phaseflow.tools.status import roadmap_status

    result = _invoke(roadmap_status)
    if _emit_json(result):
        return

    if result.get("project"):
        typer.echo(f"Project: {result['project']}")
    current = result.get("current_phase")
    typer.echo(f"Current: {current['number']} - {current['name']}" if current else "Current: none")

    if not result["phases"]:
        typer.echo("No phases yet. Add one with 'phaseflow add-phase'.")
    else:
        typer.echo("")
        typer.echo(f"{'PHASE':<7} {'STATUS':<10} {'TASKS':<7} NAME")
        typer.echo("-" * 60)
        for p in result["phases"]:
            tasks = f"{p['tasks_done']}/{p['tasks_total']}" if p["tasks_total"] else "-"
            gate = typer.style("  [user gate]", fg=typer.colors.MAGENTA) if p["user_gate"] else ""
            typer.echo(
                f"{p['number']:<7} "
                + typer.style(f"{p['status']:<10} ", fg=_status_color(p["status"]))
                + f"{tasks:<7} {p['name']}"
                + gate
            )

    typer.echo("")
    typer.echo(
        f"Backlog: {result['open_items']} open, {result['assigned_items']} assigned, "
        f"{result['skipped_items']} skipped"
    )
    if result.get("next_phase"):
        nxt = result["next_phase"]
        typer.echo(f"Next:    {nxt['number']} - {nxt['name']}")


@app.command()
def backlog(
    status_filter: str = typer.Option(None, "--status", "-s", help="Open, Assigned or Skipped"),
):
    """List backlog items."""
    from phaseflow.tools.status import list_backlog

    result = _invoke(list_backlog, status_filter)
    if _emit_json(result):
        return
    if not result["items"]:
        typer.echo("Backlog is empty.")
        return
    typer.echo(f"{'ID':<6} {'STATUS':<10} {'PRI':<4} {'PHASE':<6} DESCRIPTION")
    typer.echo("-" * 70)
    for item in result["items"]:
        typer.echo(
            f"{item['id']:<6} "
            + typer.style(f"{item['status']:<10} ", fg=_status_color(item["status"]))
            + f"{item['priority']:<4} {item['assigned_phase'] or '-':<6} {item['label']}"
        )


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


@app.command("add-phase")
def add_phase_cmd(
    name: str = typer.Argument(..., help="Phase name"),
    goal: str = typer.Option("", "--goal", "-g", help="Phase goal"),
    scope: list[str] = typer.Option(None, "--scope", "-s", help="Scope bullet (repeatable)"),
    depends: list[str] = typer.Option(None, "--depends", "-d", help="Dependency phase (repeatable)"),
    after: str = typer.Option(None, "--after", "-a", help="Insert after this phase"),
    category: str = typer.Option(None, "--category", help="Domain tag used by triage"),
    gate: str = typer.Option(None, "--gate", help="Verification gate text"),
):
    """Add a Draft phase."""
    from phaseflow.tools.phases import add_phase

    result = _invoke(
        add_phase,
        name,
        goal=goal,
        scope=scope or [],
        dependencies=depends or [],
        after=after,
        category=category,
        verification_gate=gate,
    )
    if _emit_json(result):
        return
    phase = result["phase"]
    typer.echo(f"Added phase {phase['number']} - {phase['name']}")
    for old, new in result["renumbered"].items():
        typer.echo(f"  renumbered {old} -> {new}")


@app.command()
def start(phase: str = typer.Argument(..., help="Phase number")):
    """Make a Draft phase the current phase."""
    from phaseflow.tools.phases import start_phase

    result = _invoke(start_phase, phase)
    if _emit_json(result):
        return
    typer.echo(f"Started phase {result['phase_number']} - {result['phase_name']}")


@app.command()
def close(
    phase: str = typer.Argument(None, help="Phase number (default: current phase)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would happen"),
):
    """Close a phase: file unfinished tasks and archive its detail."""
    from phaseflow.tools.phases import close_phase

    result = _invoke(close_phase, phase, dry_run=dry_run)
    if _emit_json(result):
        return

    prefix = "Would close" if result["dry_run"] else "Closed"
    typer.echo(f"{prefix} phase {result['phase_number']} - {result['phase_name']}")
    for item in result["new_items"]:
        typer.echo(
            f"  {item['id']}  Orphaned from {item['provenance']}: "
            f"{item['source_task']} {item['description']}"
        )
    if result.get("next_phase"):
        nxt = result["next_phase"]
        typer.echo(f"Next phase: {nxt['number']} - {nxt['name']} (run 'phaseflow start {nxt['number']}')")


@app.command("add-task")
def add_task_cmd(
    phase: str = typer.Argument(..., help="Phase number"),
    description: str = typer.Argument(..., help="Task description"),
):
    """Append a task to a phase."""
    from phaseflow.tools.phases import add_task

    result = _invoke(add_task, phase, description)
    if _emit_json(result):
        return
    typer.echo(f"Added {result['task_id']} to phase {result['phase_number']}")


@app.command()
def done(
    phase: str = typer.Argument(..., help="Phase number"),
    task_id: str = typer.Argument(..., help="Task id, e.g. T001"),
):
    """Mark a task done."""
    from phaseflow.tools.phases import complete_task

    result = _invoke(complete_task, phase, task_id)
    if _emit_json(result):
        return
    typer.echo(f"Completed {result['task_id']} in phase {result['phase_number']}")


# ---------------------------------------------------------------------------
# Backlog
# ---------------------------------------------------------------------------


@app.command()
def defer(
    descriptions: list[str] = typer.Argument(..., help="Items to file"),
    reason: str = typer.Option(None, "--reason", "-r", help="Why it was deferred"),
    priority: str = typer.Option("P2", "--priority", "-p", help="P1, P2 or P3"),
    category: str = typer.Option(None, "--category", help="Domain tag used by triage"),
):
    """File items into the backlog."""
    from phaseflow.tools.backlog import defer_items

    result = _invoke(defer_items, descriptions, reason=reason, priority=priority, category=category)
    if _emit_json(result):
        return
    for item in result["items"]:
        typer.echo(f"Deferred {item['id']}: {item['description']}")


@app.command()
def scan():
    """Recover unfinished tasks from archived phases."""
    from phaseflow.tools.backlog import scan_orphans

    result = _invoke(scan_orphans)
    if _emit_json(result):
        return
    if not result["created"]:
        typer.echo("No orphaned tasks found.")
        return
    for item in result["created"]:
        typer.echo(
            f"{item['id']}  Orphaned from {item['provenance']}: "
            f"{item['source_task']} {item['description']}"
        )


class PromptOracle:
    """Interactive decision oracle backed by rich prompts."""

    def __init__(self, console=None):
        from rich.console import Console

        self.console = console or Console()

    def ask(self, prompt: TriagePrompt) -> Choice:
        from rich.prompt import Prompt
        from rich.table import Table

        item = prompt.item
        self.console.print(f"\n[bold]{item.id}[/bold] {item.label}")
        if prompt.candidates:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Phase")
            table.add_column("Name")
            table.add_column("Score", justify="right")
            table.add_column("Band")
            for candidate in prompt.candidates[:5]:
                table.add_row(
                    candidate.phase_number,
                    candidate.phase_name,
                    f"{candidate.score:.2f}",
                    candidate.band,
                )
            self.console.print(table)

        kind = Prompt.ask("Decision", choices=prompt.options, default="keep_open", console=self.console)
        if kind == "assign_other":
            phase = Prompt.ask(
                "Phase",
                choices=[c.phase_number for c in prompt.candidates],
                console=self.console,
            )
            return Choice.assign_other(phase)
        if kind == "create_phase":
            name = Prompt.ask("New phase name", console=self.console)
            while not name.strip():
                self.console.print("[red]A phase name is required.[/red]")
                name = Prompt.ask("New phase name", console=self.console)
            goal = Prompt.ask("Goal", default="", console=self.console)
            after = Prompt.ask("Insert after phase (blank = append)", default="", console=self.console)
            return Choice.create_phase(name, goal, after or None, item.category)
        return Choice(kind=kind)


@app.command()
def triage(
    mode: str = typer.Option("interactive", "--mode", "-m", help="interactive, auto or dry-run"),
):
    """Assign Open backlog items to phases."""
    from phaseflow.tools.backlog import triage_backlog

    oracle = PromptOracle() if mode != "dry-run" and not _state.as_json else None
    result = _invoke(triage_backlog, mode, oracle=oracle)
    if _emit_json(result):
        return

    if result["mode"] == "dry-run":
        for item_id in result["orphans"]:
            typer.echo(f"Would recover orphan {item_id}")
        if not result["proposals"]:
            typer.echo("No open backlog items.")
        for p in result["proposals"]:
            target = f"{p['best_phase']} ({p['best_score']:.2f}, {p['band']})" if p["best_phase"] else "-"
            typer.echo(f"{p['item_id']:<6} {p['action']:<10} {target:<22} {p['description']}")
        return

    for item_id in result["orphans"]:
        typer.echo(f"Recovered orphan {item_id}")
    for a in result["assignments"]:
        typer.echo(f"Assigned {a['item_id']} -> {a['phase_number']} ({a['score']:.2f}, {a['band']})")
    for n in result["new_phases"]:
        typer.echo(f"Created phase {n['phase_number']} - {n['name']} for {n['item_id']}")
    for old, new in result["renumbered"].items():
        typer.echo(f"Renumbered {old} -> {new}")
    for item_id in result["skipped"]:
        typer.echo(f"Skipped {item_id}")
    typer.echo(f"{len(result['remaining_open'])} item(s) still open")


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


@archive_app.command("list")
def archive_list():
    """List archived phases."""
    from phaseflow.tools.archive import list_archive

    result = _invoke(list_archive)
    if _emit_json(result):
        return
    if not result["entries"]:
        typer.echo("Archive is empty.")
        return
    for entry in result["entries"]:
        flag = "  (reviewed)" if entry["reviewed"] else ""
        closed = (entry["closed_at"] or "")[:10]
        typer.echo(f"{entry['phase_number']:<7} {closed:<11} {entry['name']}{flag}")


@archive_app.command("show")
def archive_show(phase: str = typer.Argument(..., help="Phase number")):
    """Show an archived phase."""
    from phaseflow.tools.archive import show_archive

    result = _invoke(show_archive, phase, "json" if _state.as_json else "markdown")
    if _emit_json(result):
        return
    typer.echo(result["content"], nl=False)


@archive_app.command("delete")
def archive_delete(
    phase: str = typer.Argument(..., help="Phase number"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete an archived phase."""
    from phaseflow.tools.archive import delete_archive

    if not yes and not typer.confirm(f"Delete archive entry {phase}?"):
        raise typer.Exit(1)
    result = _invoke(delete_archive, phase)
    if _emit_json(result):
        return
    typer.echo(f"Deleted archive entry {result['phase_number']}")


@archive_app.command("review")
def archive_review(
    phase: str = typer.Argument(..., help="Phase number"),
    promoted: bool = typer.Option(
        ..., "--promoted/--retain", help="Whether memory integration took everything promotable"
    ),
):
    """Record memory review of an archived phase."""
    from phaseflow.tools.archive import review_archive

    result = _invoke(review_archive, phase, promoted=promoted)
    if _emit_json(result):
        return
    if result["deleted"]:
        typer.echo(f"Archive entry {result['phase_number']} promoted and deleted")
    else:
        typer.echo(f"Archive entry {result['phase_number']} retained for manual review")


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@app.command()
def unlock(force: bool = typer.Option(False, "--force", help="Remove the lock regardless of holder")):
    """Show or force-clear the roadmap lock."""
    from phaseflow.tools.lock import clear_lock, lock_status

    result = _invoke(clear_lock if force else lock_status)
    if _emit_json(result):
        return
    if result["cleared"]:
        typer.echo(f"Cleared lock held by {result['owner']}")
    elif result["locked"]:
        typer.echo(f"Locked by {result['owner']} since {result['acquired_at']}")
    else:
        typer.echo("Roadmap is not locked.")


@app.command()
def serve():
    """Start the MCP server on stdio."""
    from phaseflow.__main__ import main as run_server

    run_server()


if __name__ == "__main__":
    app()
