"""AtlasPackerTool — BaseTool wrapper for packing existing frames into a sprite sheet."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sprite_capture.core.base_tool import BaseTool, ToolParameter
from sprite_capture.core.datatypes import AtlasResult
from sprite_capture.core.events import LOG, EventBus
from sprite_capture.core.exceptions import ValidationError
from sprite_capture.core.storage import remove_directory
from sprite_capture.tools.atlas_packer.logic import (
    DEFAULT_COLUMNS,
    VALID_METADATA_FORMATS,
    collect_frame_paths,
    pack_atlas,
)


class AtlasPackerTool(BaseTool):
    """Pack a directory of frames into a fixed-column sprite sheet.

    When the input is a single directory the sheet defaults to a PNG named
    after that directory, written beside it, the same place an export puts it.
    """

    name = "atlas_packer"
    display_name = "Atlas Packer"
    description = "Pack frame images into a fixed-column sprite sheet"
    version = "0.1.0"

    def __init__(self, event_bus: EventBus | None = None) -> None:
        """Initialise the atlas packer tool.

        Args:
            event_bus: Shared event bus for progress reporting.
        """
        super().__init__(event_bus=event_bus)

    def define_parameters(self) -> list[ToolParameter]:
        """Return the parameter schema for atlas packing."""
        return [
            ToolParameter(
                name="inputs",
                label="Input files/directories",
                type=list,
                required=True,
                help="Frame images or directories of frames, packed in name order.",
            ),
            ToolParameter(
                name="output",
                label="Output file",
                type=Path,
                default=None,
                help="Sprite sheet path (default: <directory>.png next to a single input directory).",
            ),
            ToolParameter(
                name="columns",
                label="Columns",
                type=int,
                default=DEFAULT_COLUMNS,
                min_value=1,
                help="Number of columns in the grid.",
            ),
            ToolParameter(
                name="metadata_format",
                label="Metadata format",
                type=str,
                default=None,
                choices=sorted(VALID_METADATA_FORMATS),
                help="Optional frame table written next to the sheet (json, css, xml).",
            ),
            ToolParameter(
                name="delete_frames",
                label="Delete frames",
                type=bool,
                default=False,
                help="Remove the input directory after the sheet is written.",
            ),
        ]

    def validate(self, params: dict[str, Any]) -> None:
        """Validate parameters with packer-specific rules.

        Raises:
            ValidationError: If parameters are invalid.
        """
        super().validate(params)

        inputs = [Path(p) for p in params["inputs"]]
        if params.get("output") is None and not (len(inputs) == 1 and inputs[0].is_dir()):
            msg = "Parameter 'output' is required unless the input is a single directory"
            raise ValidationError(msg)
        if params.get("delete_frames") and not (len(inputs) == 1 and inputs[0].is_dir()):
            msg = "'delete_frames' needs a single input directory"
            raise ValidationError(msg)

    def _do_execute(self, params: dict[str, Any]) -> AtlasResult:
        """Run the packing logic.

        Returns:
            An ``AtlasResult`` describing the written sheet.
        """
        inputs = [Path(p) for p in params["inputs"]]
        frame_paths = collect_frame_paths(inputs)

        raw_output: Path | None = params.get("output")
        if raw_output is None:
            directory = inputs[0].resolve()
            output = directory.parent / f"{directory.name}.png"
        else:
            output = Path(raw_output)

        result = pack_atlas(
            frame_paths,
            output,
            columns=params.get("columns") or DEFAULT_COLUMNS,
            metadata_format=params.get("metadata_format"),
            event_bus=self.event_bus,
        )

        if params.get("delete_frames"):
            remove_directory(inputs[0].resolve())
            self.event_bus.emit(LOG, tool=self.name, message=f"Deleted frame directory {inputs[0]}")

        return result
