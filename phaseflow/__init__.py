# phaseflow/__init__.py
"""
phaseflow: phase lifecycle and backlog triage engine for roadmap-driven projects.

Tracks phases and a backlog in a human-editable ROADMAP.md, closes phases
into an archive, and triages backlog items onto phases.
"""

__version__ = "0.1.0"
