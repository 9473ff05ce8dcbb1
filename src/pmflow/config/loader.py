"""
Configuration loader for PM-Flow.

Implements hierarchical configuration loading with proper precedence:
Environment Variables > .env > .pmflow.yaml > ~/.pmflow/config.yaml > defaults
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.panel import Panel
from rich.text import Text

from pmflow.exceptions import ConfigError
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from .models import Config

logger = get_logger(__name__)

PROJECT_CONFIG_NAME = ".pmflow.yaml"


class ConfigLoader:
    """
    Loads configuration from multiple sources with proper precedence.

    Loading order (highest to lowest precedence):
    1. Environment variables (PMFLOW_*, NO_COLOR)
    2. .env file in the working directory
    3. .pmflow.yaml in the working directory (project config)
    4. ~/.pmflow/config.yaml (user global config)
    5. Built-in defaults
    """

    def __init__(self, cwd: Optional[Path] = None) -> None:
        """Initialize the configuration loader."""
        self.cwd = cwd or Path.cwd()
        self.global_config_path = Path.home() / ".pmflow" / "config.yaml"
        self.project_config_path = self.cwd / PROJECT_CONFIG_NAME

    def load(self) -> Config:
        """
        Load configuration from all sources with proper precedence.

        Returns:
            Validated Config instance

        Raises:
            ConfigError: If configuration is invalid
        """
        config_dict: Dict[str, Any] = {"project_root": self.cwd}

        global_config = self._load_yaml(self.global_config_path)
        if global_config:
            config_dict = self._deep_merge(config_dict, global_config)
            logger.debug(f"Loaded global config from {self.global_config_path}")

        project_config = self._load_yaml(self.project_config_path)
        if project_config:
            config_dict = self._deep_merge(config_dict, project_config)
            logger.debug(f"Loaded project config from {self.project_config_path}")

        env_path = self.cwd / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment from {env_path}")

        config_dict = self._apply_env_overrides(config_dict)

        try:
            return Config(**config_dict)
        except ValidationError as e:
            self._handle_validation_error(e)
            raise ConfigError(f"Invalid configuration: {e.error_count()} error(s)") from e

    def _load_yaml(self, path: Path) -> Optional[Dict[str, Any]]:
        """
        Load YAML config file safely.

        Args:
            path: Path to YAML file

        Returns:
            Parsed YAML data or None if file doesn't exist

        Raises:
            ConfigError: If YAML is malformed or unreadable
        """
        if not path.exists():
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = yaml.safe_load(f) or {}
                return content if isinstance(content, dict) else {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read {path}: {e}") from e

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Deep merge two dictionaries with override taking precedence.

        Args:
            base: Base dictionary
            override: Override dictionary (takes precedence)

        Returns:
            Merged dictionary
        """
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides to configuration.

        Args:
            config_dict: Base configuration dictionary

        Returns:
            Configuration with environment overrides applied
        """
        env_mapping = {
            "PMFLOW_DEBUG": ("app", "debug"),
            "PMFLOW_LOG_LEVEL": ("app", "log_level"),
            "PMFLOW_LOG_TO_FILE": ("app", "log_to_file"),
            "NO_COLOR": ("app", "no_color"),

            "PMFLOW_TEMPLATES_DIR": ("workflow", "templates_dir"),
            "PMFLOW_REPORTS_DIR": ("workflow", "reports_dir"),
            "PMFLOW_WIP_LIMIT": ("workflow", "wip_limit"),
            "PMFLOW_GIT_TIMEOUT": ("workflow", "git_timeout"),
            "PMFLOW_UPDATE_GUARD": ("workflow", "update_guard"),

            "PMFLOW_PROJECT_ROOT": ("project_root",),
        }

        for env_var, config_path in env_mapping.items():
            value = os.getenv(env_var)
            if value is not None:
                converted_value = self._convert_env_value(env_var, value)
                self._set_nested(config_dict, config_path, converted_value)

        return config_dict

    def _convert_env_value(self, env_var: str, value: str) -> Any:
        """
        Convert environment variable string to appropriate type.

        Args:
            env_var: Environment variable name
            value: String value from environment

        Returns:
            Converted value
        """
        bool_vars = {"PMFLOW_DEBUG", "PMFLOW_LOG_TO_FILE", "NO_COLOR"}
        if env_var in bool_vars:
            # NO_COLOR is set-means-true, whatever the value
            if env_var == "NO_COLOR":
                return bool(value)
            return value.lower() in ('1', 'true', 'yes', 'on')

        if env_var == "PMFLOW_WIP_LIMIT":
            try:
                return int(value)
            except ValueError:
                console.warning(f"Invalid integer value for {env_var}: {value}")
                return value

        if env_var == "PMFLOW_GIT_TIMEOUT":
            try:
                return float(value)
            except ValueError:
                console.warning(f"Invalid number for {env_var}: {value}")
                return value

        path_vars = {"PMFLOW_TEMPLATES_DIR", "PMFLOW_REPORTS_DIR", "PMFLOW_PROJECT_ROOT"}
        if env_var in path_vars:
            return Path(value)

        return value

    def _set_nested(
        self,
        config_dict: Dict[str, Any],
        path: tuple[str, ...],
        value: Any
    ) -> None:
        """
        Set a nested dictionary value using a path tuple.

        Args:
            config_dict: Dictionary to modify
            path: Tuple of keys representing the nested path
            value: Value to set
        """
        current = config_dict

        for key in path[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[path[-1]] = value

    def _handle_validation_error(self, error: ValidationError) -> None:
        """
        Display validation errors with helpful suggestions.

        Args:
            error: Pydantic validation error
        """
        console.print()
        console.print(
            Panel(
                self._format_validation_errors(error),
                title="[error]❌ Configuration Validation Error[/error]",
                title_align="left",
                border_style="error.text",
                padding=(1, 2),
            )
        )

    def _format_validation_errors(self, error: ValidationError) -> Text:
        """
        Format validation errors into rich text with suggestions.

        Args:
            error: Pydantic validation error

        Returns:
            Formatted rich text
        """
        text = Text()

        for i, err in enumerate(error.errors()):
            if i > 0:
                text.append("\n")

            field_path = " → ".join(str(loc) for loc in err['loc'])
            text.append("Field: ", style="dim")
            text.append(field_path, style="warning.text")
            text.append("\n")

            text.append("Error: ", style="dim")
            text.append(err['msg'], style="error.text")
            text.append("\n")

            suggestion = self._get_field_suggestion(field_path)
            if suggestion:
                text.append("💡 Tip: ", style="info.text")
                text.append(suggestion, style="dim")
                text.append("\n")

        return text

    def _get_field_suggestion(self, field_path: str) -> str:
        """
        Get helpful suggestion for a validation error.

        Args:
            field_path: Field path joined with arrows

        Returns:
            Suggestion string or empty string
        """
        field_lower = field_path.lower()

        if "wip_limit" in field_lower:
            return "wip_limit must be an integer between 1 and 100"
        if "git_timeout" in field_lower:
            return "git_timeout is in seconds, between 0 and 300"
        if "update_guard" in field_lower:
            return "update_guard is either 'permissive' or 'guarded'"
        if "dir" in field_lower or "root" in field_lower:
            return "Use a path relative to the project root or an absolute path"
        if "log_level" in field_lower:
            return "Use one of DEBUG, INFO, WARNING, ERROR"

        return ""


__all__ = ["ConfigLoader", "PROJECT_CONFIG_NAME"]
