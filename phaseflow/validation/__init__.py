"""Input validation and sanitization utilities."""

from .sanitize import (
    sanitize_optional,
    sanitize_phase_number,
    sanitize_priority,
    sanitize_project_path,
    sanitize_task_id,
    sanitize_text,
)

__all__ = [
    "sanitize_project_path",
    "sanitize_text",
    "sanitize_optional",
    "sanitize_phase_number",
    "sanitize_task_id",
    "sanitize_priority",
]
