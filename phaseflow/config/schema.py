# phaseflow/config/schema.py
"""
Pydantic configuration models for phaseflow.

All models use extra="ignore" to allow unknown YAML keys without crashing.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PathsConfig(BaseModel):
    """Where the roadmap and archive live (relative to the project root)."""

    model_config = ConfigDict(extra="ignore")

    roadmap_file: str = Field(default="ROADMAP.md", description="Roadmap document path")
    archive_dir: str = Field(
        default=".phaseflow/archive", description="Directory for closed-phase snapshots"
    )


class LockConfig(BaseModel):
    """Roadmap lock acquisition settings."""

    model_config = ConfigDict(extra="ignore")

    timeout: float = Field(
        default=5.0, ge=0.0, description="Seconds to wait for a held lock before failing"
    )
    stale_after: float = Field(
        default=600.0, gt=0.0, description="Lock age in seconds reported as stale"
    )
    poll_interval: float = Field(
        default=0.05, gt=0.0, description="Seconds between acquisition attempts"
    )
    owner: str | None = Field(
        default=None, description="Owner identity (None = user@host:pid)"
    )


class NumberingConfig(BaseModel):
    """Phase number formatting."""

    model_config = ConfigDict(extra="ignore")

    width: int = Field(default=4, ge=3, le=8, description="Zero-padded digits")
    step: int = Field(default=10, ge=1, description="Gap between appended phases")


class TriageConfig(BaseModel):
    """Backlog triage scoring weights and confidence bands."""

    model_config = ConfigDict(extra="ignore")

    keyword_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    keyword_max_matches: int = Field(default=3, ge=1)
    goal_weight: float = Field(default=0.2, ge=0.0, le=1.0)
    goal_min_shared: int = Field(
        default=1, ge=1, description="Shared goal tokens needed for the goal bonus"
    )
    category_weight: float = Field(default=0.2, ge=0.0, le=1.0)
    high: float = Field(default=0.70, ge=0.0, le=1.0, description="High band lower bound")
    medium: float = Field(default=0.40, ge=0.0, le=1.0, description="Medium band lower bound")
    low: float = Field(default=0.10, ge=0.0, le=1.0, description="Low band lower bound")
    extra_stop_words: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _bands_ordered(self) -> "TriageConfig":
        if not (self.low <= self.medium <= self.high):
            raise ValueError("Band thresholds must satisfy low <= medium <= high")
        return self


class OutputConfig(BaseModel):
    """CLI output settings."""

    model_config = ConfigDict(extra="ignore")

    verbosity: Literal["quiet", "normal", "verbose"] = Field(
        default="normal", description="Logging verbosity level"
    )


class PhaseflowConfig(BaseModel):
    """Root configuration for phaseflow."""

    model_config = ConfigDict(extra="ignore")

    paths: PathsConfig = Field(default_factory=PathsConfig)
    lock: LockConfig = Field(default_factory=LockConfig)
    numbering: NumberingConfig = Field(default_factory=NumberingConfig)
    triage: TriageConfig = Field(default_factory=TriageConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
