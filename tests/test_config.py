"""Integration tests for the ConfigManager."""

from __future__ import annotations

from pathlib import Path

import pytest

from sprite_capture.core.config import DEFAULTS, ConfigManager
from sprite_capture.core.datatypes import Anchor
from sprite_capture.core.exceptions import ConfigurationError


class TestConfigManagerDefaults:
    """Tests for in-memory configuration."""

    def test_builtin_defaults(self) -> None:
        """Without files the built-in export defaults apply."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        assert cfg.get("frames_per_second") == 20.0
        assert cfg.get("columns") == 6
        assert cfg.get("export_path") == "SpriteSheets"

    def test_get_returns_default_for_unknown_key(self) -> None:
        """Unknown keys fall back to the provided default."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        assert cfg.get("theme", default="dark") == "dark"
        assert cfg.get("missing_key") is None

    def test_set_global_and_get(self) -> None:
        """Values set via ``set_global`` override the defaults."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        cfg.set_global("columns", 8)

        assert cfg.get("columns") == 8

    def test_export_defaults(self) -> None:
        """Resolved defaults carry typed values."""
        defaults = ConfigManager(config_dir=Path("/nonexistent")).export_defaults()

        assert defaults.export_path == Path(DEFAULTS["export_path"])
        assert defaults.frames_per_second == 20.0
        assert defaults.columns == 6
        assert defaults.anchor is Anchor.TOP_LEFT
        assert defaults.metadata_format is None


class TestConfigManagerToml:
    """Tests for TOML-based configuration loading."""

    def test_load_global_config(self, tmp_path: Path) -> None:
        """The ``[export]`` table of config.toml is loaded."""
        config_dir = tmp_path / "cfg"
        config_dir.mkdir()
        (config_dir / "config.toml").write_text('[export]\nframes_per_second = 12.0\nanchor = "center"\n')

        cfg = ConfigManager(config_dir=config_dir)
        cfg.load()

        assert cfg.get("frames_per_second") == 12.0
        assert cfg.export_defaults().anchor is Anchor.CENTER

    def test_load_per_subject_config(self, tmp_path: Path) -> None:
        """Per-subject TOML files override global values for that subject only."""
        config_dir = tmp_path / "cfg"
        subjects_dir = config_dir / "subjects"
        subjects_dir.mkdir(parents=True)
        (config_dir / "config.toml").write_text("[export]\ncolumns = 4\n")
        (subjects_dir / "Hero.toml").write_text('columns = 10\nmetadata_format = "json"\n')

        cfg = ConfigManager(config_dir=config_dir)
        cfg.load()

        assert cfg.get("columns", subject="Hero") == 10
        assert cfg.get("columns", subject="Villain") == 4
        assert cfg.get("columns") == 4
        assert cfg.export_defaults("Hero").metadata_format == "json"

    def test_load_missing_dir_is_silent(self, tmp_path: Path) -> None:
        """Loading from a non-existent directory does not raise."""
        cfg = ConfigManager(config_dir=tmp_path / "does_not_exist")
        cfg.load()

        assert cfg.get("anything") is None
        assert cfg.get("columns") == 6

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """A malformed file raises ``ConfigurationError``."""
        (tmp_path / "config.toml").write_text("[export\ncolumns = ")

        with pytest.raises(ConfigurationError, match="not valid TOML"):
            ConfigManager(config_dir=tmp_path).load()


class TestExportDefaultsValidation:
    """Tests for range and type checks on configured values."""

    def test_unknown_anchor(self) -> None:
        """Anchors outside the enum are rejected."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        cfg.set_global("anchor", "middle")

        with pytest.raises(ConfigurationError, match="Unknown anchor"):
            cfg.export_defaults()

    def test_non_positive_fps(self) -> None:
        """A frame rate of zero is rejected."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        cfg.set_global("frames_per_second", 0)

        with pytest.raises(ConfigurationError, match="frames_per_second"):
            cfg.export_defaults()

    def test_non_numeric_fps(self, tmp_path: Path) -> None:
        """A frame rate that is not a number is a configuration error."""
        (tmp_path / "config.toml").write_text('[export]\nframes_per_second = "fast"\n')
        cfg = ConfigManager(config_dir=tmp_path)
        cfg.load()

        with pytest.raises(ConfigurationError, match="must be a number"):
            cfg.export_defaults()

    def test_non_integer_columns(self, tmp_path: Path) -> None:
        """Columns given as a word are a configuration error."""
        (tmp_path / "config.toml").write_text('[export]\ncolumns = "six"\n')
        cfg = ConfigManager(config_dir=tmp_path)
        cfg.load()

        with pytest.raises(ConfigurationError, match="must be an integer"):
            cfg.export_defaults()

    def test_zero_columns(self) -> None:
        """Zero columns are rejected."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        cfg.set_global("columns", 0)

        with pytest.raises(ConfigurationError, match="columns"):
            cfg.export_defaults()
