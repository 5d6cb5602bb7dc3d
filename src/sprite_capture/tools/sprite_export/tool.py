"""SpriteExportTool — BaseTool wrapper that runs a full two-pass export."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sprite_capture.core.base_tool import BaseTool, ToolParameter
from sprite_capture.core.datatypes import Anchor, ExportRequest, ExportResult
from sprite_capture.core.events import EventBus
from sprite_capture.core.exceptions import ValidationError
from sprite_capture.tools.atlas_packer.logic import DEFAULT_COLUMNS, VALID_METADATA_FORMATS
from sprite_capture.tools.sprite_export.logic import CaptureSession, run_to_completion
from sprite_capture.tools.sprite_export.sources import AnimationSource, FrameRenderer, ImageSequenceSource


class SpriteExportTool(BaseTool):
    """Capture an animation clip frame by frame and pack it into a sprite sheet.

    By default frames come from an ``ImageSequenceSource`` rooted at the
    ``source`` parameter.  A host application passes its own renderer and
    animation source instead.
    """

    name = "sprite_export"
    display_name = "Sprite Export"
    description = "Render an animation clip and pack its cropped frames into a sprite sheet"
    version = "0.1.0"

    def __init__(
        self,
        event_bus: EventBus | None = None,
        *,
        renderer: FrameRenderer | None = None,
        animation_source: AnimationSource | None = None,
    ) -> None:
        """Initialise the export tool.

        Args:
            event_bus: Shared event bus for progress reporting.
            renderer: Frame renderer; built from ``source`` when omitted.
            animation_source: Clip lookup; built from ``source`` when omitted.
        """
        super().__init__(event_bus=event_bus)
        self._renderer = renderer
        self._animation_source = animation_source

    def define_parameters(self) -> list[ToolParameter]:
        """Return the parameter schema for an export."""
        return [
            ToolParameter(
                name="source",
                label="Image sequence root",
                type=Path,
                default=None,
                help="Directory with one sub-directory of pre-rendered frames per animation.",
            ),
            ToolParameter(
                name="source_fps",
                label="Source frame rate",
                type=float,
                default=30.0,
                min_value=0.001,
                help="Frame rate the image sequences were rendered at.",
            ),
            ToolParameter(
                name="subject",
                label="Subject",
                type=str,
                required=True,
                help="Name of the animated subject; becomes the output sub-folder.",
            ),
            ToolParameter(
                name="animation",
                label="Animation",
                type=str,
                required=True,
                help="Animation clip to export.",
            ),
            ToolParameter(
                name="frames_per_second",
                label="Frames per second",
                type=float,
                default=20.0,
                min_value=0.001,
                help="Capture rate; the clip yields ceil(duration * fps) frames.",
            ),
            ToolParameter(
                name="export_path",
                label="Export folder",
                type=Path,
                default=Path("SpriteSheets"),
                help="Root folder; the sheet is written to <export>/<subject>/<animation>.png.",
            ),
            ToolParameter(
                name="columns",
                label="Columns",
                type=int,
                default=DEFAULT_COLUMNS,
                min_value=1,
                help="Number of columns in the sprite sheet grid.",
            ),
            ToolParameter(
                name="anchor",
                label="Uniform crop anchor",
                type=str,
                default=Anchor.TOP_LEFT.value,
                choices=[a.value for a in Anchor],
                help="Point of each frame's tight bounds the uniform crop is pinned to.",
            ),
            ToolParameter(
                name="metadata_format",
                label="Metadata format",
                type=str,
                default=None,
                choices=sorted(VALID_METADATA_FORMATS),
                help="Optional frame table written next to the sheet.",
            ),
            ToolParameter(
                name="camera",
                label="Capture camera",
                type=object,
                default="default",
                help="Camera handle passed to the renderer.",
            ),
        ]

    def _build_sources(self, params: dict[str, Any]) -> tuple[FrameRenderer, AnimationSource]:
        if self._renderer is not None and self._animation_source is not None:
            return self._renderer, self._animation_source
        sequence = ImageSequenceSource(Path(params["source"]), source_fps=params.get("source_fps") or 30.0)
        return self._renderer or sequence, self._animation_source or sequence

    def validate(self, params: dict[str, Any]) -> None:
        """Validate parameters — an image sequence root is needed unless sources were injected.

        Raises:
            ValidationError: If parameters are invalid.
        """
        super().validate(params)

        if (self._renderer is None or self._animation_source is None) and params.get("source") is None:
            msg = "Parameter 'source' is required when no renderer is supplied"
            raise ValidationError(msg)

    def _do_execute(self, params: dict[str, Any]) -> ExportResult:
        """Run one export to completion.

        Returns:
            The ``ExportResult`` of the finished session.
        """
        renderer, animation_source = self._build_sources(params)
        request = ExportRequest(
            subject_name=params["subject"],
            animation_name=params["animation"],
            frames_per_second=float(params.get("frames_per_second") or 20.0),
            export_path=Path(params.get("export_path") or "SpriteSheets"),
            camera=params.get("camera", "default"),
            columns=int(params.get("columns") or DEFAULT_COLUMNS),
            anchor=Anchor(params.get("anchor") or Anchor.TOP_LEFT.value),
            metadata_format=params.get("metadata_format"),
        )
        session = CaptureSession(renderer, animation_source, event_bus=self.event_bus)
        return run_to_completion(session, request)
