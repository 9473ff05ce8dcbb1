"""
Pydantic models for PM-Flow configuration.

Strongly-typed configuration with validation and environment-aware defaults.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApplicationConfig(BaseModel):
    """General application settings."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    debug: bool = Field(default=False, validate_default=True, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "WARNING",
        description="Console logging level"
    )
    no_color: bool = Field(False, validate_default=True, description="Disable colored output")
    log_to_file: bool = Field(True, description="Write JSON logs under .pmflow/logs")

    @field_validator('debug')
    @classmethod
    def check_debug_env(cls, v: bool) -> bool:
        """Check PMFLOW_DEBUG environment variable."""
        env_debug = os.getenv('PMFLOW_DEBUG')
        if env_debug:
            return env_debug.lower() in ('1', 'true', 'yes', 'on')
        return v

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept lower-case level names."""
        return v.upper() if isinstance(v, str) else v

    @field_validator('no_color')
    @classmethod
    def check_no_color_env(cls, v: bool) -> bool:
        """Respect the standard NO_COLOR environment variable."""
        if os.getenv('NO_COLOR'):
            return True
        return v


class WorkflowConfig(BaseModel):
    """Settings for entity storage, transitions, and reports."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    templates_dir: Path = Field(
        default=Path("templates"),
        description="Project template overrides, relative to the project root"
    )
    reports_dir: Path = Field(
        default=Path("reports"),
        description="Where sprint reports are saved, relative to the project root"
    )
    wip_limit: int = Field(
        5,
        ge=1,
        le=100,
        description="Tickets in progress above this count trigger a recommendation"
    )
    git_timeout: float = Field(
        10.0,
        gt=0,
        le=300,
        description="Seconds to wait for each git invocation"
    )
    update_guard: Literal["permissive", "guarded"] = Field(
        "permissive",
        description="Whether update commands apply the pick guard"
    )


class Config(BaseModel):
    """
    Main configuration model for PM-Flow.

    Combines all configuration sections with validation and defaults.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    project_root: Path = Field(
        default_factory=Path.cwd,
        description="Root directory of the project"
    )
    app: ApplicationConfig = Field(
        default_factory=ApplicationConfig,
        description="Application settings"
    )
    workflow: WorkflowConfig = Field(
        default_factory=WorkflowConfig,
        description="Workflow settings"
    )

    @field_validator('project_root')
    @classmethod
    def validate_project_root(cls, v: Path) -> Path:
        """Ensure project root is absolute."""
        return v.expanduser().resolve()

    @property
    def templates_path(self) -> Path:
        """Absolute path of the project templates directory."""
        return self._resolve(self.workflow.templates_dir)

    @property
    def reports_path(self) -> Path:
        """Absolute path of the reports directory."""
        return self._resolve(self.workflow.reports_dir)

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.project_root / path

    def model_dump_display(self) -> Dict[str, Any]:
        """Dump model to a JSON-friendly dict for display."""
        return self.model_dump(mode="json")


__all__ = [
    "Config",
    "ApplicationConfig",
    "WorkflowConfig",
]
