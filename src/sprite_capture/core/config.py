"""ConfigManager — export defaults backed by TOML files, with per-subject overrides."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sprite_capture.core.datatypes import Anchor
from sprite_capture.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "sprite-capture"

DEFAULTS: dict[str, Any] = {
    "export_path": "SpriteSheets",
    "frames_per_second": 20.0,
    "columns": 6,
    "anchor": Anchor.TOP_LEFT.value,
    "metadata_format": None,
}


@dataclass(frozen=True)
class ExportDefaults:
    """Resolved export settings for one subject."""

    export_path: Path
    frames_per_second: float
    columns: int
    anchor: Anchor
    metadata_format: str | None


class ConfigManager:
    """Layered configuration for exports.

    Lookup order for a key: ``subjects/<subject>.toml``, then the
    ``[export]`` table of ``config.toml``, then the built-in ``DEFAULTS``.

    Args:
        config_dir: Root directory for configuration files.
                    Defaults to ``~/.config/sprite-capture/``.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialise the config manager.

        Args:
            config_dir: Custom configuration directory.  Uses the
                        platform default if ``None``.
        """
        self._config_dir = config_dir or _DEFAULT_CONFIG_DIR
        self._global: dict[str, Any] = {}
        self._per_subject: dict[str, dict[str, Any]] = {}

    @property
    def config_dir(self) -> Path:
        """Return the configuration directory path."""
        return self._config_dir

    def load(self) -> None:
        """Load ``config.toml`` and every ``subjects/*.toml`` from ``config_dir``.

        Missing files are skipped.

        Raises:
            ConfigurationError: If a file exists but is not valid TOML.
        """
        global_file = self._config_dir / "config.toml"
        if global_file.is_file():
            self._global = self._read_toml(global_file).get("export", {})
            logger.info("Loaded export config from %s", global_file)

        subjects_dir = self._config_dir / "subjects"
        if subjects_dir.is_dir():
            for toml_file in sorted(subjects_dir.glob("*.toml")):
                self._per_subject[toml_file.stem] = self._read_toml(toml_file)
                logger.info("Loaded overrides for subject '%s'", toml_file.stem)

    def get(self, key: str, *, subject: str | None = None, default: Any = None) -> Any:
        """Retrieve a value, preferring the subject's override.

        Args:
            key: The configuration key.
            subject: Subject whose overrides are consulted first.
            default: Fallback when neither file nor ``DEFAULTS`` define the key.

        Returns:
            The configuration value, or *default*.
        """
        if subject and subject in self._per_subject:
            value = self._per_subject[subject].get(key)
            if value is not None:
                return value
        value = self._global.get(key)
        if value is not None:
            return value
        return DEFAULTS.get(key, default)

    def set_global(self, key: str, value: Any) -> None:
        """Set a global value (in-memory only)."""
        self._global[key] = value

    def export_defaults(self, subject: str | None = None) -> ExportDefaults:
        """Resolve every export setting for *subject*.

        Raises:
            ConfigurationError: If a configured value has the wrong type or range.
        """
        try:
            anchor = Anchor(self.get("anchor", subject=subject))
        except ValueError as exc:
            msg = f"Unknown anchor {self.get('anchor', subject=subject)!r}; use one of {[a.value for a in Anchor]}"
            raise ConfigurationError(msg) from exc

        raw_fps = self.get("frames_per_second", subject=subject)
        try:
            fps = float(raw_fps)
        except (TypeError, ValueError) as exc:
            msg = f"frames_per_second must be a number, got {raw_fps!r}"
            raise ConfigurationError(msg) from exc

        raw_columns = self.get("columns", subject=subject)
        try:
            columns = int(raw_columns)
        except (TypeError, ValueError) as exc:
            msg = f"columns must be an integer, got {raw_columns!r}"
            raise ConfigurationError(msg) from exc

        if fps <= 0:
            msg = f"frames_per_second must be > 0, got {fps}"
            raise ConfigurationError(msg)
        if columns < 1:
            msg = f"columns must be >= 1, got {columns}"
            raise ConfigurationError(msg)

        return ExportDefaults(
            export_path=Path(self.get("export_path", subject=subject)),
            frames_per_second=fps,
            columns=columns,
            anchor=anchor,
            metadata_format=self.get("metadata_format", subject=subject),
        )

    @staticmethod
    def _read_toml(path: Path) -> dict[str, Any]:
        """Read and parse a TOML file."""
        try:
            with path.open("rb") as fh:
                return tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Config file '{path}' is not valid TOML"
            raise ConfigurationError(msg) from exc
