# phaseflow/planning/triage/__init__.py
"""
Backlog triage: fit scoring, confidence bands, decision oracle and engine.
"""

from phaseflow.planning.triage.engine import MODES, BacklogTriageEngine
from phaseflow.planning.triage.oracle import (
    Candidate,
    Choice,
    DecisionOracle,
    KeepOpenOracle,
    ScriptedOracle,
    TriagePrompt,
)
from phaseflow.planning.triage.scorer import ConfidenceBand, TriageScorer, tokenize

__all__ = [
    "BacklogTriageEngine",
    "MODES",
    "Choice",
    "Candidate",
    "TriagePrompt",
    "DecisionOracle",
    "ScriptedOracle",
    "KeepOpenOracle",
    "ConfidenceBand",
    "TriageScorer",
    "tokenize",
]
