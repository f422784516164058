# phaseflow/validation/sanitize.py
"""
Input sanitization and validation utilities.

Normalizes identifiers and free text coming from the CLI or MCP clients
before they reach the engine. Text must fit on one line because the
roadmap stores it in Markdown table cells and bullets.
"""

import logging
import re
from pathlib import Path

from phaseflow.errors import ValidationError

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_project_path(user_path: str) -> Path:
    """
    Resolve a project directory.

    Raises:
        ValidationError: If path doesn't exist or is not a directory
    """
    try:
        resolved = Path(user_path).expanduser().resolve()
    except (ValueError, OSError) as e:
        raise ValidationError(f"Invalid path '{user_path}': {e}")

    if not resolved.exists():
        raise ValidationError(f"Path does not exist: {resolved}")

    if not resolved.is_dir():
        raise ValidationError(f"Path is not a directory: {resolved}")

    return resolved


def sanitize_text(text: str, field: str = "Description", max_length: int = 500) -> str:
    """
    Collapse whitespace to single spaces and validate non-empty.

    Truncates to max_length if needed.

    Raises:
        ValidationError: If the text is empty after stripping
    """
    cleaned = _WHITESPACE_RE.sub(" ", text or "").strip()

    if not cleaned:
        raise ValidationError(f"{field} cannot be empty")

    if len(cleaned) > max_length:
        logger.warning(f"{field} truncated from {len(cleaned)} to {max_length} characters")
        cleaned = cleaned[:max_length].rstrip()

    return cleaned


def sanitize_optional(text: str | None, field: str, max_length: int = 500) -> str | None:
    """Like sanitize_text, but blank input means None."""
    if text is None or not text.strip():
        return None
    return sanitize_text(text, field, max_length)


def sanitize_phase_number(value: str, width: int = 4) -> str:
    """
    Normalize a phase number to its zero-padded form ("20" -> "0020").

    Raises:
        ValidationError: If the value is not a non-negative integer
    """
    cleaned = (value or "").strip()
    if not cleaned.isdigit():
        raise ValidationError(
            f"Invalid phase number '{value}'", "Phase numbers are digits, e.g. 0020"
        )
    return cleaned.zfill(width)


def sanitize_task_id(task_id: str) -> str:
    """
    Normalize a task id ("t15" -> "T015").

    Raises:
        ValidationError: If the id is not T followed by digits
    """
    match = re.match(r"^[Tt](\d+)$", (task_id or "").strip())
    if not match:
        raise ValidationError(f"Invalid task id '{task_id}'", "Task ids look like T001")
    return f"T{int(match.group(1)):03d}"


def sanitize_priority(priority: str) -> str:
    """
    Normalize a priority ("p1" -> "P1").

    Raises:
        ValidationError: If not one of P1, P2, P3
    """
    cleaned = (priority or "").strip().upper()
    if cleaned not in {"P1", "P2", "P3"}:
        raise ValidationError(f"Invalid priority '{priority}'", "Use P1, P2 or P3")
    return cleaned
