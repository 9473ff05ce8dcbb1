"""
Tests for PM-Flow configuration management.

Tests hierarchical loading (env > .env > project > global > defaults),
validation, and the singleton manager.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from pmflow.config import (
    ConfigManager,
    PROJECT_CONFIG_TEMPLATE,
    clear_config,
    get_config_safe,
    init_project_config,
    is_config_loaded,
    load_config,
)
from pmflow.config.loader import ConfigLoader
from pmflow.config.models import ApplicationConfig, Config, WorkflowConfig
from pmflow.exceptions import ConfigError


def write_yaml(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


class TestModels:
    """Test configuration models and their validation."""

    def test_defaults(self, tmp_path: Path):
        config = Config(project_root=tmp_path)
        assert config.app.log_level == "WARNING"
        assert config.app.log_to_file is True
        assert config.workflow.wip_limit == 5
        assert config.workflow.git_timeout == 10.0
        assert config.workflow.update_guard == "permissive"
        assert config.templates_path == tmp_path.resolve() / "templates"
        assert config.reports_path == tmp_path.resolve() / "reports"

    def test_absolute_dirs_are_kept(self, tmp_path: Path):
        config = Config(project_root=tmp_path, workflow=WorkflowConfig(reports_dir=tmp_path / "out"))
        assert config.reports_path == tmp_path / "out"

    def test_log_level_is_normalized(self):
        assert ApplicationConfig(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize("field,value", [
        ("wip_limit", 0),
        ("git_timeout", 0),
        ("update_guard", "strict"),
    ])
    def test_invalid_workflow_values(self, field, value):
        with pytest.raises(ValidationError):
            WorkflowConfig(**{field: value})

    def test_unknown_keys_are_rejected(self):
        with pytest.raises(ValidationError):
            Config(workflow={"wip_limt": 3})

    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert ApplicationConfig().no_color is True
        assert Config().app.no_color is True

    def test_debug_env(self, monkeypatch):
        monkeypatch.setenv("PMFLOW_DEBUG", "true")
        assert ApplicationConfig().debug is True
        monkeypatch.setenv("PMFLOW_DEBUG", "0")
        assert ApplicationConfig(debug=True).debug is False


class TestConfigLoader:
    """Test source precedence."""

    def test_defaults_without_files(self, tmp_path: Path):
        config = ConfigLoader(tmp_path).load()
        assert config.project_root == tmp_path.resolve()
        assert config.workflow.wip_limit == 5

    def test_project_overrides_global(self, tmp_path: Path):
        home = Path.home()
        write_yaml(home / ".pmflow" / "config.yaml", {"workflow": {"wip_limit": 3, "git_timeout": 2}})
        write_yaml(tmp_path / ".pmflow.yaml", {"workflow": {"wip_limit": 8}})

        config = ConfigLoader(tmp_path).load()
        assert config.workflow.wip_limit == 8
        assert config.workflow.git_timeout == 2.0

    def test_env_overrides_project(self, tmp_path: Path, monkeypatch):
        write_yaml(tmp_path / ".pmflow.yaml", {"workflow": {"wip_limit": 8, "update_guard": "permissive"}})
        monkeypatch.setenv("PMFLOW_WIP_LIMIT", "2")
        monkeypatch.setenv("PMFLOW_UPDATE_GUARD", "guarded")
        monkeypatch.setenv("PMFLOW_TEMPLATES_DIR", "tpl")

        config = ConfigLoader(tmp_path).load()
        assert config.workflow.wip_limit == 2
        assert config.workflow.update_guard == "guarded"
        assert config.templates_path == tmp_path.resolve() / "tpl"

    def test_dotenv_is_loaded(self, tmp_path: Path):
        (tmp_path / ".env").write_text("PMFLOW_GIT_TIMEOUT=3.5\n", encoding="utf-8")
        config = ConfigLoader(tmp_path).load()
        assert config.workflow.git_timeout == 3.5

    def test_project_root_from_env(self, tmp_path: Path, monkeypatch):
        other = tmp_path / "elsewhere"
        other.mkdir()
        monkeypatch.setenv("PMFLOW_PROJECT_ROOT", str(other))
        assert ConfigLoader(tmp_path).load().project_root == other.resolve()

    def test_invalid_values_raise_config_error(self, tmp_path: Path, captured_console):
        """Test validation failures are shown with tips and raised as ConfigError."""
        write_yaml(tmp_path / ".pmflow.yaml", {"workflow": {"wip_limit": 500}})
        with pytest.raises(ConfigError):
            ConfigLoader(tmp_path).load()
        output = captured_console.getvalue()
        assert "Configuration Validation Error" in output
        assert "between 1 and 100" in output

    def test_malformed_yaml_raises_config_error(self, tmp_path: Path):
        (tmp_path / ".pmflow.yaml").write_text("workflow: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError) as exc_info:
            ConfigLoader(tmp_path).load()
        assert "Invalid YAML" in exc_info.value.message


class TestConfigManager:
    """Test the singleton manager."""

    def test_singleton(self):
        assert ConfigManager() is ConfigManager()

    def test_load_and_clear(self, tmp_project: Path):
        assert is_config_loaded() is False
        config = get_config_safe()
        assert config.project_root == tmp_project.resolve()
        assert is_config_loaded() is True
        assert get_config_safe() is config

        clear_config()
        assert is_config_loaded() is False

    def test_reload_reads_new_values(self, tmp_project: Path):
        assert load_config().workflow.wip_limit == 5
        write_yaml(tmp_project / ".pmflow.yaml", {"workflow": {"wip_limit": 9}})
        assert load_config().workflow.wip_limit == 5
        assert load_config(reload=True).workflow.wip_limit == 9

    def test_instances_share_loaded_config(self, tmp_project: Path):
        config = ConfigManager().load_config()
        assert ConfigManager().get_config_safe() is config
        assert get_config_safe() is config


class TestInitProjectConfig:
    """Test the commented project config file."""

    def test_writes_template(self, tmp_path: Path):
        path = init_project_config(tmp_path / ".pmflow.yaml")
        assert path.read_text(encoding="utf-8") == PROJECT_CONFIG_TEMPLATE
        assert ConfigLoader(tmp_path).load().workflow.wip_limit == 5

    def test_refuses_to_overwrite(self, tmp_path: Path):
        path = tmp_path / ".pmflow.yaml"
        path.write_text("custom: true\n")
        with pytest.raises(FileExistsError):
            init_project_config(path)
        init_project_config(path, force=True)
        assert path.read_text(encoding="utf-8") == PROJECT_CONFIG_TEMPLATE
