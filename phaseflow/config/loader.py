# phaseflow/config/loader.py
"""
Configuration loading with auto-creation of defaults.

A project-level `.phaseflow/config.yaml` wins when present; otherwise the
user config (platformdirs) is used and created with defaults on first run.
"""

import logging
from pathlib import Path

import yaml
from platformdirs import user_config_path
from pydantic import ValidationError as PydanticValidationError

from phaseflow.errors import ValidationError

from .schema import PhaseflowConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG = Path(".phaseflow") / "config.yaml"


def get_config_path() -> Path:
    """Get path to the user config file, ensuring config directory exists."""
    config_dir = user_config_path("phaseflow", ensure_exists=True)
    return config_dir / "config.yaml"


def _read_yaml(path: Path) -> PhaseflowConfig:
    with path.open("r", encoding="utf-8") as f:
        try:
            config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Config file {path} is not valid YAML: {e}")

    if not isinstance(config_data, dict):
        raise ValidationError(f"Config file {path} must contain a mapping")

    try:
        return PhaseflowConfig(**config_data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid config in {path}: {e}")


def load_config(project_root: str | Path | None = None) -> PhaseflowConfig:
    """
    Load configuration from YAML.

    Args:
        project_root: Project directory checked for `.phaseflow/config.yaml`

    Returns:
        Validated PhaseflowConfig

    Raises:
        ValidationError: If the YAML is malformed or fails schema validation
    """
    if project_root is not None:
        project_config = Path(project_root) / PROJECT_CONFIG
        if project_config.exists():
            config = _read_yaml(project_config)
            logger.info(f"Loaded project config from {project_config}")
            return config

    config_path = get_config_path()

    if not config_path.exists():
        # Create default config
        default_config = PhaseflowConfig()
        config_dict = default_config.model_dump(mode="json")

        with config_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Created default config at {config_path}")
        return default_config

    config = _read_yaml(config_path)
    logger.info(f"Loaded config from {config_path}")
    return config
