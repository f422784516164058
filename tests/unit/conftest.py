# tests/unit/conftest.py
"""Shared fixtures: isolated config, fixed clock, temp workspaces and roadmap builders."""

from datetime import datetime, timedelta, timezone

import pytest

from phaseflow.config.schema import LockConfig, PhaseflowConfig
from phaseflow.models.roadmap import (
    BacklogItem,
    PhaseRecord,
    PhaseStatus,
    RoadmapDocument,
    Task,
)
from phaseflow.store.workspace import Workspace

T0 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Deterministic clock; advance() moves it forward."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def isolated_user_config(tmp_path, monkeypatch):
    """Keep load_config() away from the real user config directory."""
    config_path = tmp_path / "user-config" / "config.yaml"
    config_path.parent.mkdir(parents=True)
    monkeypatch.setattr("phaseflow.config.loader.get_config_path", lambda: config_path)
    return config_path


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def config():
    return PhaseflowConfig(lock=LockConfig(timeout=0.2, poll_interval=0.01))


@pytest.fixture
def project_dir(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def workspace(project_dir, config, clock):
    return Workspace.open(project_dir, config, clock=clock)


def make_phase(
    number: str,
    name: str | None = None,
    status: PhaseStatus = PhaseStatus.DRAFT,
    goal: str = "",
    scope: list[str] | None = None,
    tasks: list[Task] | None = None,
    category: str | None = None,
    dependencies: list[str] | None = None,
) -> PhaseRecord:
    return PhaseRecord(
        number=number,
        name=name or f"Phase {number}",
        status=status,
        goal=goal,
        scope=scope or [],
        tasks=tasks or [],
        category=category,
        dependencies=dependencies or [],
        created_at=T0,
        closed_at=T0 if status == PhaseStatus.COMPLETE else None,
    )


def make_item(item_id: str, description: str, **kwargs) -> BacklogItem:
    kwargs.setdefault("created_at", T0)
    return BacklogItem(id=item_id, description=description, **kwargs)


@pytest.fixture
def sample_document() -> RoadmapDocument:
    """
    0010 Active with T001 done and T015 open; 0020 Draft UI phase; 0030 Draft.
    """
    return RoadmapDocument(
        project="demo",
        current_phase="0010",
        phases=[
            make_phase(
                "0010",
                "Foundation",
                PhaseStatus.ACTIVE,
                goal="Set up the project skeleton",
                scope=["Create repository layout"],
                tasks=[
                    Task(id="T001", description="Create repository layout", done=True),
                    Task(id="T015", description="Write contributor guide"),
                ],
            ),
            make_phase(
                "0020",
                "UI Polish",
                goal="Make the first-run experience smooth",
                scope=["Add UI polish for first-run"],
                category="ui",
            ),
            make_phase(
                "0030",
                "Sync Engine",
                goal="Offline sync for notes",
                scope=["Conflict resolution", "Background sync worker"],
                category="sync",
            ),
        ],
    )


@pytest.fixture
def seeded(workspace, sample_document):
    """Workspace with sample_document persisted."""
    workspace.store.save(sample_document)
    return workspace
