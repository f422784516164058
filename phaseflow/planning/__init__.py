# phaseflow/planning/__init__.py
"""
Roadmap planning logic: phase numbering, lifecycle state machine,
orphan scan and backlog triage.
"""

from phaseflow.planning.lifecycle import MemoryIntegrator, PhaseLifecycle
from phaseflow.planning.orphans import scan_orphans

__all__ = ["PhaseLifecycle", "MemoryIntegrator", "scan_orphans"]
