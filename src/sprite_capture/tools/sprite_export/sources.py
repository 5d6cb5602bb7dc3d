"""Renderer and animation-source interfaces, plus an image-sequence implementation."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from PIL import Image

from sprite_capture.core.datatypes import RasterFrame
from sprite_capture.core.exceptions import ConfigurationError, RenderFailure

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS: frozenset[str] = frozenset({".png", ".webp", ".tif", ".tiff", ".bmp"})


class FrameRenderer(ABC):
    """Produces one full-viewport RGBA raster per host tick."""

    @abstractmethod
    def render_frame(self, camera: Any, time_s: float) -> RasterFrame | None:
        """Render what *camera* sees with the subject posed at *time_s*.

        Returns ``None`` when nothing could be rendered.
        """
        ...


class AnimationSource(ABC):
    """Knows the clips of one animated subject and can pose it at a point in time."""

    @abstractmethod
    def animation_names(self) -> list[str]:
        """Return the clip names available on the subject."""
        ...

    @abstractmethod
    def duration(self, animation_name: str) -> float:
        """Return the length of *animation_name* in seconds.

        Raises:
            RenderFailure: If the clip does not exist.
        """
        ...

    @abstractmethod
    def advance_to(self, animation_name: str, time_s: float) -> None:
        """Pose the subject at *time_s* on *animation_name*."""
        ...


def _sequence_files(directory: Path) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS)


class ImageSequenceSource(FrameRenderer, AnimationSource):
    """Serves pre-rendered frames from disk as if a renderer produced them.

    Each sub-directory of *root* is one clip; its image files, in sorted
    order, are the clip's frames sampled at *source_fps*.  Rendering at time
    ``t`` returns the frame shown at ``t``, that is frame ``floor(t * source_fps)``
    clamped to the clip.  The camera handle is accepted and ignored.

    Args:
        root: Directory holding one sub-directory per clip.
        source_fps: Frame rate the sequences were rendered at.
    """

    def __init__(self, root: Path, source_fps: float = 30.0) -> None:
        if source_fps <= 0:
            msg = f"Source frame rate must be > 0, got {source_fps}"
            raise ConfigurationError(msg)
        if not root.is_dir():
            msg = f"Image sequence root '{root}' is not a directory"
            raise ConfigurationError(msg)
        self.root = root
        self.source_fps = source_fps
        self._files: dict[str, list[Path]] = {}
        self._current: tuple[str, float] | None = None

    def animation_names(self) -> list[str]:
        """Return the names of sub-directories that contain at least one image."""
        return sorted(d.name for d in self.root.iterdir() if d.is_dir() and _sequence_files(d))

    def _clip(self, animation_name: str) -> list[Path]:
        if animation_name not in self._files:
            directory = self.root / animation_name
            files = _sequence_files(directory) if directory.is_dir() else []
            if not files:
                msg = f"Animation '{animation_name}' not found under '{self.root}'"
                raise RenderFailure(msg)
            self._files[animation_name] = files
        return self._files[animation_name]

    def duration(self, animation_name: str) -> float:
        """Return ``frame_count / source_fps`` for the clip."""
        return len(self._clip(animation_name)) / self.source_fps

    def advance_to(self, animation_name: str, time_s: float) -> None:
        """Remember the clip and time to render on the next ``render_frame``."""
        self._clip(animation_name)
        self._current = (animation_name, time_s)

    def render_frame(self, camera: Any, time_s: float) -> RasterFrame | None:
        """Load the sequence image visible at *time_s*.

        Raises:
            RenderFailure: If no clip has been selected or the image cannot be read.
        """
        if self._current is None:
            msg = "No animation selected; call advance_to() before render_frame()"
            raise RenderFailure(msg)
        files = self._clip(self._current[0])
        # Round before flooring so 0.1 * 30 lands on frame 3, not 2.
        index = min(len(files) - 1, max(0, math.floor(round(time_s * self.source_fps, 6))))
        path = files[index]
        try:
            with Image.open(path) as img:
                return RasterFrame.from_image(img)
        except OSError as exc:
            msg = f"Sequence frame '{path}' could not be opened"
            raise RenderFailure(msg) from exc
