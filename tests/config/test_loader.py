"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- _deep_merge() function
- load_config() precedence: global < project < env < kwargs
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from idriscov.config.loader import (
    GLOBAL_CONFIG_PATH,
    PROJECT_CONFIG_NAME,
    _deep_merge,
    _load_yaml,
    load_config,
)
from idriscov.config.models import AnalysisConfig
from idriscov.core.errors import ConfigError, ErrorCode


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        """Returns empty dict when file doesn't exist."""
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        """Loads valid YAML content."""
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("analysis:\n  mangling: namespace-join\n")

        assert _load_yaml(yaml_file) == {"analysis": {"mangling": "namespace-join"}}

    def test_returns_empty_for_empty_file(self, tmp_path: Path) -> None:
        """Returns empty dict for empty file."""
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert _load_yaml(yaml_file) == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        """Raises ConfigError for invalid YAML syntax."""
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("logging:\n  level:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_raises_config_error_for_non_mapping(self, tmp_path: Path) -> None:
        """A top-level list is not a config."""
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            _load_yaml(yaml_file)


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_override_wins(self) -> None:
        """Override values replace base values."""
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self) -> None:
        """Nested dicts are merged recursively."""
        base = {"toolchain": {"idris2": "idris2", "build_timeout_sec": 60}}
        override = {"toolchain": {"idris2": "/opt/idris2/bin/idris2"}}
        assert _deep_merge(base, override) == {
            "toolchain": {"idris2": "/opt/idris2/bin/idris2", "build_timeout_sec": 60}
        }

    def test_override_replaces_non_dict(self) -> None:
        """Non-dict override replaces dict base."""
        base: dict[str, Any] = {"a": {"nested": 1}}
        override: dict[str, Any] = {"a": "simple"}
        assert _deep_merge(base, override) == {"a": "simple"}

    def test_does_not_mutate_base(self) -> None:
        """Base dict is not mutated."""
        base = {"a": 1}
        _deep_merge(base, {"b": 2})
        assert base == {"a": 1}


class TestLoadConfig:
    """Tests for load_config function."""

    def test_returns_default_config_when_no_files(self, tmp_path: Path) -> None:
        """Returns default config when no config files exist."""
        with patch("idriscov.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"):
            config = load_config(tmp_path)
        assert config.logging.level == "WARNING"
        assert config.analysis.mangling == "uniform"
        assert config.exclusions.use_defaults is True

    def test_loads_project_config(self, tmp_path: Path) -> None:
        """Loads config from the project file."""
        (tmp_path / PROJECT_CONFIG_NAME).write_text(
            "analysis:\n  top: 5\nexclusions:\n  patterns:\n    - Main.debug*\n"
        )

        with patch("idriscov.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"):
            config = load_config(tmp_path)
        assert config.analysis.top == 5
        assert config.exclusions.patterns == ["Main.debug*"]

    def test_project_overrides_global(self, tmp_path: Path) -> None:
        """Project YAML wins over global YAML, key by key."""
        global_file = tmp_path / "global.yaml"
        global_file.write_text("toolchain:\n  idris2: /usr/bin/idris2\n  run_timeout_sec: 10\n")
        (tmp_path / PROJECT_CONFIG_NAME).write_text("toolchain:\n  run_timeout_sec: 20\n")

        with patch("idriscov.config.loader.GLOBAL_CONFIG_PATH", global_file):
            config = load_config(tmp_path)
        assert config.toolchain.idris2 == "/usr/bin/idris2"
        assert config.toolchain.run_timeout_sec == 20

    def test_env_vars_override_yaml(self, tmp_path: Path) -> None:
        """Environment variables override YAML config."""
        (tmp_path / PROJECT_CONFIG_NAME).write_text("logging:\n  level: INFO\n")

        with (
            patch("idriscov.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"),
            patch.dict(os.environ, {"IDRISCOV__LOGGING__LEVEL": "DEBUG"}),
        ):
            config = load_config(tmp_path)
        assert config.logging.level == "DEBUG"

    def test_kwargs_override_all(self, tmp_path: Path) -> None:
        """Keyword arguments override everything."""
        with (
            patch("idriscov.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"),
            patch.dict(os.environ, {"IDRISCOV__ANALYSIS__MANGLING": "uniform"}),
        ):
            config = load_config(tmp_path, analysis=AnalysisConfig(mangling="namespace-join"))
        assert config.analysis.mangling == "namespace-join"

    def test_raises_config_error_for_invalid_value(self, tmp_path: Path) -> None:
        """Raises ConfigError for invalid config values."""
        (tmp_path / PROJECT_CONFIG_NAME).write_text("analysis:\n  mangling: reversed\n")

        with (
            patch("idriscov.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"),
            pytest.raises(ConfigError) as exc_info,
        ):
            load_config(tmp_path)
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert exc_info.value.details["field"] == "analysis.mangling"


class TestGlobalConfigPath:
    """Tests for GLOBAL_CONFIG_PATH constant."""

    def test_is_in_user_config(self) -> None:
        """Path is in user config directory."""
        assert isinstance(GLOBAL_CONFIG_PATH, Path)
        assert "idris2-cov" in str(GLOBAL_CONFIG_PATH)
