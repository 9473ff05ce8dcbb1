"""
PM-Flow Configuration Management.

Provides singleton access to configuration with hierarchical loading from
multiple sources.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .loader import ConfigLoader, PROJECT_CONFIG_NAME
from .models import ApplicationConfig, Config, WorkflowConfig


class ConfigManager:
    """
    Singleton configuration manager.

    One CLI invocation runs in one thread, so the loaded Config is simply
    cached on the single instance.
    """

    _instance: Optional[ConfigManager] = None
    _config: Optional[Config] = None

    def __new__(cls) -> ConfigManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load_config(self, reload: bool = False) -> Config:
        """
        Load configuration once and cache it.

        Args:
            reload: Force reload even if config is already loaded

        Returns:
            Validated Config instance

        Raises:
            ConfigError: If configuration is invalid
        """
        if self._config is None or reload:
            self._config = ConfigLoader().load()
        return self._config

    def get_config_safe(self) -> Config:
        """
        Get configuration, loading it if necessary.

        Returns:
            Config instance (loads automatically if needed)
        """
        return self._config if self._config is not None else self.load_config()

    def is_loaded(self) -> bool:
        """Check if configuration is loaded."""
        return self._config is not None

    def clear(self) -> None:
        """Clear loaded configuration (useful for testing)."""
        self._config = None


# Global instance
_manager = ConfigManager()


def load_config(reload: bool = False) -> Config:
    """
    Load configuration (singleton pattern).

    Args:
        reload: Force reload configuration even if already loaded

    Returns:
        Validated Config instance
    """
    return _manager.load_config(reload=reload)


def get_config_safe() -> Config:
    """
    Get configuration, loading it automatically if needed.

    Returns:
        Config instance
    """
    return _manager.get_config_safe()


def is_config_loaded() -> bool:
    """Check if configuration is loaded."""
    return _manager.is_loaded()


def clear_config() -> None:
    """Clear loaded configuration (useful for testing)."""
    _manager.clear()


PROJECT_CONFIG_TEMPLATE = '''# PM-Flow Configuration
# Values here override ~/.pmflow/config.yaml; PMFLOW_* environment
# variables override both.

# project_root: /path/to/project  # Defaults to current directory

app:
  debug: false
  log_level: WARNING  # Options: DEBUG, INFO, WARNING, ERROR
  no_color: false
  log_to_file: true  # JSON logs under .pmflow/logs

workflow:
  templates_dir: templates  # Project overrides for built-in templates
  reports_dir: reports  # Where sprint-report saves JSON snapshots
  wip_limit: 5  # Tickets in progress above this trigger a recommendation
  git_timeout: 10  # Seconds per git call in sprint-report
  update_guard: permissive  # 'guarded' blocks updates of In Progress/Complete items
'''


def init_project_config(path: Optional[Path] = None, force: bool = False) -> Path:
    """
    Write a commented .pmflow.yaml with the default settings.

    Args:
        path: Path for the config file (defaults to .pmflow.yaml in current directory)
        force: Overwrite an existing file

    Returns:
        Path to the created configuration file

    Raises:
        FileExistsError: If config file already exists and force is False
    """
    config_path = path or Path.cwd() / PROJECT_CONFIG_NAME

    if config_path.exists() and not force:
        raise FileExistsError(
            f"Configuration file already exists: {config_path}\n"
            "Use --force to overwrite."
        )

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(PROJECT_CONFIG_TEMPLATE, encoding='utf-8')

    return config_path


__all__ = [
    "Config",
    "ApplicationConfig",
    "WorkflowConfig",
    "ConfigLoader",
    "ConfigManager",
    "load_config",
    "get_config_safe",
    "is_config_loaded",
    "clear_config",
    "init_project_config",
]
