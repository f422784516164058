# phaseflow/config/__init__.py
"""Configuration system for phaseflow."""

from .loader import get_config_path, load_config
from .schema import (
    LockConfig,
    NumberingConfig,
    OutputConfig,
    PathsConfig,
    PhaseflowConfig,
    TriageConfig,
)

__all__ = [
    "PhaseflowConfig",
    "PathsConfig",
    "LockConfig",
    "NumberingConfig",
    "TriageConfig",
    "OutputConfig",
    "load_config",
    "get_config_path",
]
