"""Shared value objects used across the capture, crop and pack stages."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image


@dataclass(frozen=True, eq=False)
class RasterFrame:
    """An immutable RGBA raster.

    Pixels are held as a ``(height, width, 4)`` ``uint8`` array whose rows run
    top-down, the same order Pillow uses.  The array is copied on construction
    and flagged read-only.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        """Copy, validate and freeze the pixel buffer."""
        pixels = np.array(self.pixels, dtype=np.uint8, copy=True)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            msg = f"RGBA pixel buffer must have shape (height, width, 4), got {pixels.shape}"
            raise ValueError(msg)
        if pixels.shape[0] < 1 or pixels.shape[1] < 1:
            msg = f"Raster dimensions must be positive, got {pixels.shape[1]}x{pixels.shape[0]}"
            raise ValueError(msg)
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @property
    def width(self) -> int:
        """Return the raster width in pixels."""
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        """Return the raster height in pixels."""
        return int(self.pixels.shape[0])

    @property
    def size(self) -> FrameSize:
        """Return the raster dimensions."""
        return FrameSize(width=self.width, height=self.height)

    @classmethod
    def blank(cls, width: int, height: int) -> RasterFrame:
        """Create a fully transparent raster."""
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def from_image(cls, image: Image.Image) -> RasterFrame:
        """Build a raster from a Pillow image, converting it to RGBA."""
        return cls(np.asarray(image.convert("RGBA")))

    @classmethod
    def from_bottom_up(cls, pixels: Any) -> RasterFrame:
        """Build a raster from a buffer whose first row is the bottom of the image.

        Render targets commonly read back with a bottom-left origin; flipping
        here keeps every later stage in top-down coordinates.
        """
        return cls(np.flipud(np.asarray(pixels)))

    def to_image(self) -> Image.Image:
        """Return a Pillow RGBA image with the same pixels."""
        return Image.fromarray(np.array(self.pixels))

    def same_pixels(self, other: RasterFrame) -> bool:
        """Return ``True`` if *other* has identical dimensions and pixel values."""
        return self.pixels.shape == other.pixels.shape and bool(np.array_equal(self.pixels, other.pixels))


@dataclass(frozen=True)
class FrameSize:
    """Width and height of a frame or atlas cell."""

    width: int
    height: int

    def union(self, other: FrameSize) -> FrameSize:
        """Return the component-wise maximum of two sizes."""
        return FrameSize(width=max(self.width, other.width), height=max(self.height, other.height))

    def fits_within(self, other: FrameSize) -> bool:
        """Return ``True`` if neither dimension exceeds *other*."""
        return self.width <= other.width and self.height <= other.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class CropRect:
    """A crop rectangle in top-down raster coordinates.

    ``left`` and ``top`` may lie outside the source raster; the cropper pads
    any uncovered area with transparent pixels.
    """

    left: int
    top: int
    width: int
    height: int

    def __post_init__(self) -> None:
        """Reject degenerate rectangles."""
        if self.width < 1 or self.height < 1:
            msg = f"Crop rect must be at least 1x1, got {self.width}x{self.height}"
            raise ValueError(msg)

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.left + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.top + self.height

    @property
    def size(self) -> FrameSize:
        """Return the rectangle dimensions."""
        return FrameSize(width=self.width, height=self.height)


class Anchor(Enum):
    """Which corner of a frame's tight bounds a uniform crop rect is pinned to."""

    TOP_LEFT = "top-left"
    BOTTOM_LEFT = "bottom-left"
    CENTER = "center"


class CapturePass(Enum):
    """The two sweeps of a capture session."""

    TIGHT = "tight"
    UNIFORM = "uniform"


class SessionState(Enum):
    """Lifecycle states of a ``CaptureSession``."""

    IDLE = "idle"
    CAPTURING_TIGHT = "capturing_tight"
    CAPTURING_UNIFORM = "capturing_uniform"
    PACKING = "packing"


@dataclass(frozen=True)
class AtlasLayout:
    """Grid geometry of a sprite sheet, derived from the frames it holds."""

    columns: int
    rows: int
    cell_width: int
    cell_height: int
    frame_count: int

    @classmethod
    def for_sizes(cls, sizes: list[FrameSize], columns: int) -> AtlasLayout:
        """Derive the layout for a list of frame sizes.

        Args:
            sizes: Dimensions of each frame in playback order.
            columns: Fixed number of grid columns.

        Returns:
            The layout with ``rows = ceil(len(sizes) / columns)`` and the cell
            size set to the largest frame width and height.
        """
        if columns < 1:
            msg = f"Columns must be >= 1, got {columns}"
            raise ValueError(msg)
        if not sizes:
            msg = "An atlas needs at least one frame"
            raise ValueError(msg)
        return cls(
            columns=columns,
            rows=math.ceil(len(sizes) / columns),
            cell_width=max(s.width for s in sizes),
            cell_height=max(s.height for s in sizes),
            frame_count=len(sizes),
        )

    @property
    def width(self) -> int:
        """Atlas width in pixels."""
        return self.columns * self.cell_width

    @property
    def height(self) -> int:
        """Atlas height in pixels."""
        return self.rows * self.cell_height

    @property
    def cell_size(self) -> FrameSize:
        """Size of a single grid cell."""
        return FrameSize(width=self.cell_width, height=self.cell_height)

    def cell_of(self, index: int) -> tuple[int, int]:
        """Return ``(column, row)`` of frame *index*; row 0 is the top row."""
        return index % self.columns, index // self.columns

    def cell_origin(self, index: int) -> tuple[int, int]:
        """Return the top-left pixel ``(x, y)`` of frame *index*'s cell."""
        col, row = self.cell_of(index)
        return col * self.cell_width, row * self.cell_height


@dataclass(frozen=True)
class ImageData:
    """Reference to an image file with metadata."""

    path: Path
    width: int
    height: int
    format: str


@dataclass(frozen=True)
class SpriteFrame:
    """Position and size of a single frame within a sprite sheet."""

    name: str
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class AtlasResult:
    """Result of packing a frame set into a sprite sheet."""

    atlas: ImageData
    layout: AtlasLayout
    frames: tuple[SpriteFrame, ...]
    metadata_path: Path | None = None


@dataclass(frozen=True)
class ExportRequest:
    """Everything the operator selects to start an export."""

    subject_name: str
    animation_name: str
    frames_per_second: float
    export_path: Path
    camera: Any = None
    columns: int = 6
    anchor: Anchor = Anchor.TOP_LEFT
    metadata_format: str | None = None


@dataclass
class CaptureProgress:
    """Mutable bookkeeping of one running capture session."""

    subject_name: str
    animation_name: str
    frames_per_second: float
    total_frame_count: int
    current_frame_index: int = 0
    capture_pass: CapturePass = CapturePass.TIGHT
    uniform_size: FrameSize | None = None
    tight_rects: list[CropRect] = field(default_factory=list)
    uniform_rects: list[CropRect] = field(default_factory=list)

    @property
    def fraction(self) -> float:
        """Completion of the whole export in ``[0, 1]``, both passes combined."""
        done = self.current_frame_index
        if self.capture_pass is CapturePass.UNIFORM:
            done += self.total_frame_count
        return done / (2 * self.total_frame_count)


@dataclass(frozen=True)
class ExportResult:
    """Outcome of a completed two-pass export."""

    atlas: AtlasResult
    total_frame_count: int
    uniform_size: FrameSize
    tight_rects: tuple[CropRect, ...]
    uniform_rects: tuple[CropRect, ...]
