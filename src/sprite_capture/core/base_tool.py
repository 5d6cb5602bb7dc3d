"""BaseTool ABC — the contract the export and packing tools implement."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from sprite_capture.core.events import EventBus
from sprite_capture.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ToolParameter:
    """Declarative parameter definition — drives CLI options and validation."""

    name: str
    label: str
    type: type
    default: Any = None
    required: bool = False
    choices: list[Any] | None = None
    min_value: float | None = None
    max_value: float | None = None
    help: str = ""


class BaseTool(ABC):
    """Template Method base for every tool.

    Subclasses declare their metadata and parameters and implement
    ``_do_execute``; callers only ever use ``run()``.
    """

    # ── metadata (override in subclass) ────────────────────────
    name: str
    display_name: str
    description: str
    version: str = "0.1.0"

    def __init__(self, event_bus: EventBus | None = None) -> None:
        """Initialise the tool with an optional event bus.

        Args:
            event_bus: Event bus for progress and status events.
                       A private bus is created if none is provided.
        """
        self.event_bus = event_bus or EventBus()

    @abstractmethod
    def define_parameters(self) -> list[ToolParameter]:
        """Return the list of parameters this tool accepts."""
        ...

    def run(self, params: dict[str, Any]) -> Any:
        """Execute the tool — public entry point, do NOT override.

        Args:
            params: Parameter values keyed by parameter name.

        Returns:
            The result produced by ``_do_execute``.
        """
        self.validate(params)
        logger.info("Running tool '%s'", self.name)
        return self._do_execute(params)

    def validate(self, params: dict[str, Any]) -> None:
        """Validate *params* against ``define_parameters()``.

        Required parameters must be present and not ``None``; values with
        ``choices`` must be in the allowed set; numeric values must respect
        ``min_value`` / ``max_value``.  Override to add tool-specific rules.

        Raises:
            ValidationError: If any parameter is invalid.
        """
        for param in self.define_parameters():
            value = params.get(param.name)
            if value is None:
                if param.required:
                    msg = f"Parameter '{param.name}' is required"
                    raise ValidationError(msg)
                continue
            if param.choices is not None and value not in param.choices:
                msg = f"Parameter '{param.name}' must be one of {param.choices}, got '{value}'"
                raise ValidationError(msg)
            if param.min_value is not None and value < param.min_value:
                msg = f"Parameter '{param.name}' must be >= {param.min_value}, got {value}"
                raise ValidationError(msg)
            if param.max_value is not None and value > param.max_value:
                msg = f"Parameter '{param.name}' must be <= {param.max_value}, got {value}"
                raise ValidationError(msg)

    @abstractmethod
    def _do_execute(self, params: dict[str, Any]) -> Any:
        """Core logic — MUST override.

        Args:
            params: Validated parameter dictionary.

        Returns:
            The tool's result.
        """
        ...
