# phaseflow/models/__init__.py
"""
Data models for phaseflow.

Provides the roadmap domain models and structured operation results.
"""

from phaseflow.models.responses import (
    AddPhaseResult,
    ArchiveReviewResult,
    Assignment,
    CloseResult,
    DeferResult,
    InitResult,
    LockStatus,
    NewPhase,
    PhaseRef,
    PhaseSummary,
    Proposal,
    ScanReport,
    StartResult,
    StatusResponse,
    TaskResult,
    TriageReport,
)
from phaseflow.models.roadmap import (
    ArchiveEntry,
    BacklogItem,
    BacklogStatus,
    PhaseRecord,
    PhaseStatus,
    RoadmapDocument,
    Task,
    utcnow,
)

__all__ = [
    # Domain models
    "PhaseStatus",
    "BacklogStatus",
    "Task",
    "PhaseRecord",
    "BacklogItem",
    "ArchiveEntry",
    "RoadmapDocument",
    "utcnow",
    # Results
    "PhaseRef",
    "InitResult",
    "AddPhaseResult",
    "StartResult",
    "CloseResult",
    "TaskResult",
    "DeferResult",
    "Assignment",
    "NewPhase",
    "Proposal",
    "TriageReport",
    "ScanReport",
    "PhaseSummary",
    "StatusResponse",
    "ArchiveReviewResult",
    "LockStatus",
]
