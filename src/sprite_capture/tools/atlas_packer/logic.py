"""Pure atlas packing logic — fixed-column grid, transparent empty cells."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any
from xml.etree.ElementTree import Element, SubElement, tostring

from PIL import Image

from sprite_capture.core.datatypes import AtlasLayout, AtlasResult, FrameSize, ImageData, SpriteFrame
from sprite_capture.core.events import COMPLETED, PROGRESS, EventBus
from sprite_capture.core.exceptions import InvariantViolation, StorageFailure, ValidationError
from sprite_capture.core.storage import write_png

logger = logging.getLogger(__name__)

# ── Constants ─────────────────────────────────────────────────────────────

DEFAULT_COLUMNS = 6

VALID_METADATA_FORMATS: frozenset[str] = frozenset({"json", "css", "xml"})


# ── Validation ────────────────────────────────────────────────────────────


def validate_pack_params(*, columns: int, metadata_format: str | None, input_count: int) -> None:
    """Validate packing parameters before any file is read.

    Raises:
        ValidationError: If any parameter is out of range or unsupported.
    """
    if input_count < 1:
        msg = "At least 1 frame is required to pack an atlas"
        raise ValidationError(msg)

    if columns < 1:
        msg = f"Columns must be >= 1, got {columns}"
        raise ValidationError(msg)

    if metadata_format is not None and metadata_format not in VALID_METADATA_FORMATS:
        msg = f"Metadata format must be one of {sorted(VALID_METADATA_FORMATS)}, got '{metadata_format}'"
        raise ValidationError(msg)


# ── Metadata generation ──────────────────────────────────────────────────


def _cell_entries(frames: list[SpriteFrame], layout: AtlasLayout) -> list[dict[str, Any]]:
    """Describe each frame by its grid cell and pixel rectangle."""
    entries: list[dict[str, Any]] = []
    for index, frame in enumerate(frames):
        column, row = layout.cell_of(index)
        entries.append(
            {
                "index": index,
                "name": frame.name,
                "column": column,
                "row": row,
                "x": frame.x,
                "y": frame.y,
                "width": frame.width,
                "height": frame.height,
            }
        )
    return entries


def _grid_attributes(atlas_path: Path, layout: AtlasLayout) -> dict[str, Any]:
    return {
        "image": atlas_path.name,
        "width": layout.width,
        "height": layout.height,
        "columns": layout.columns,
        "rows": layout.rows,
        "cell_width": layout.cell_width,
        "cell_height": layout.cell_height,
        "frame_count": layout.frame_count,
    }


def _json_metadata(atlas_path: Path, frames: list[SpriteFrame], layout: AtlasLayout) -> str:
    data = _grid_attributes(atlas_path, layout)
    data["frames"] = _cell_entries(frames, layout)
    return json.dumps(data, indent=2)


def _css_metadata(atlas_path: Path, frames: list[SpriteFrame], layout: AtlasLayout) -> str:
    # One rule sizes every cell; frames only override the size when they differ from it.
    base = f".{atlas_path.stem}"
    lines = [
        f"{base} {{ background-image: url('{atlas_path.name}'); "
        f"width: {layout.cell_width}px; height: {layout.cell_height}px; }}"
    ]
    for entry in _cell_entries(frames, layout):
        rule = f"background-position: -{entry['x']}px -{entry['y']}px;"
        if (entry["width"], entry["height"]) != (layout.cell_width, layout.cell_height):
            rule += f" width: {entry['width']}px; height: {entry['height']}px;"
        lines.append(f"{base}.{entry['name']} {{ {rule} }}")
    return "\n".join(lines)


def _xml_metadata(atlas_path: Path, frames: list[SpriteFrame], layout: AtlasLayout) -> str:
    root = Element("atlas", {key: str(value) for key, value in _grid_attributes(atlas_path, layout).items()})
    for entry in _cell_entries(frames, layout):
        SubElement(root, "frame", {key: str(value) for key, value in entry.items()})
    return tostring(root, encoding="unicode")


def write_metadata(
    metadata_path: Path,
    atlas_path: Path,
    frames: list[SpriteFrame],
    layout: AtlasLayout,
    metadata_format: str,
) -> Path:
    """Write the frame table of a packed atlas next to it.

    Returns:
        *metadata_path*.

    Raises:
        StorageFailure: If the file cannot be written.
    """
    match metadata_format:
        case "json":
            content = _json_metadata(atlas_path, frames, layout)
        case "css":
            content = _css_metadata(atlas_path, frames, layout)
        case "xml":
            content = _xml_metadata(atlas_path, frames, layout)
        case _:  # pragma: no cover
            msg = f"Unsupported metadata format: {metadata_format}"
            raise ValidationError(msg)

    try:
        metadata_path.write_text(content, encoding="utf-8")
    except OSError as exc:
        msg = f"Failed to write metadata to '{metadata_path}'"
        raise StorageFailure(msg) from exc
    return metadata_path


# ── Core logic ────────────────────────────────────────────────────────────


def _load_frames(frame_paths: list[Path], event_bus: EventBus | None) -> list[Image.Image]:
    images: list[Image.Image] = []
    for path in frame_paths:
        try:
            with Image.open(path) as img:
                images.append(img.convert("RGBA"))
        except OSError as exc:
            msg = f"Frame '{path}' could not be opened"
            raise StorageFailure(msg) from exc

        if event_bus is not None:
            event_bus.emit(
                PROGRESS,
                tool="atlas_packer",
                current=len(images),
                total=len(frame_paths),
                message=f"Loaded {path.name} ({len(images)}/{len(frame_paths)})",
            )
    return images


def pack_atlas(
    frame_paths: list[Path],
    atlas_path: Path,
    *,
    columns: int = DEFAULT_COLUMNS,
    strict: bool = False,
    metadata_format: str | None = None,
    metadata_path: Path | None = None,
    event_bus: EventBus | None = None,
) -> AtlasResult:
    """Pack frames, in the given order, into one fixed-column sprite sheet.

    Frame ``i`` occupies cell ``(i % columns, i // columns)``; row 0 is the
    top row and holds the first *columns* frames.  Every cell is as large as
    the widest and tallest frame.  Frames are copied into the top-left of
    their cell without blending, and cells past the last frame stay fully
    transparent.

    Args:
        frame_paths: Frame images in playback order.
        atlas_path: Where to write the PNG atlas.
        columns: Number of grid columns.
        strict: Require every frame to have the same size (the uniform
            capture pass guarantees this).
        metadata_format: Optional sidecar format (json, css, xml).
        metadata_path: Sidecar location; defaults to *atlas_path* with the
            format's suffix.
        event_bus: Optional event bus for progress events.

    Returns:
        An ``AtlasResult`` describing the atlas and every cell.

    Raises:
        ValidationError: If parameters are invalid.
        InvariantViolation: If *strict* and frame sizes differ.
        StorageFailure: If a frame cannot be read or the atlas cannot be written.
    """
    validate_pack_params(columns=columns, metadata_format=metadata_format, input_count=len(frame_paths))

    images = _load_frames(frame_paths, event_bus)
    sizes = [FrameSize(width=img.width, height=img.height) for img in images]

    if strict and len(set(sizes)) > 1:
        msg = f"Uniform frames expected, found sizes {sorted({str(s) for s in sizes})}"
        raise InvariantViolation(msg)

    layout = AtlasLayout.for_sizes(sizes, columns)
    canvas = Image.new("RGBA", (layout.width, layout.height), (0, 0, 0, 0))

    frames: list[SpriteFrame] = []
    for idx, img in enumerate(images):
        x, y = layout.cell_origin(idx)
        canvas.paste(img, (x, y))
        frames.append(SpriteFrame(name=frame_paths[idx].stem, x=x, y=y, width=img.width, height=img.height))

    try:
        atlas_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"Could not create atlas directory '{atlas_path.parent}'"
        raise StorageFailure(msg) from exc
    write_png(canvas, atlas_path)
    logger.info("Sprite sheet written to %s (%dx%d)", atlas_path, layout.width, layout.height)

    written_meta: Path | None = None
    if metadata_format is not None:
        target = metadata_path or atlas_path.with_suffix(f".{metadata_format}")
        written_meta = write_metadata(target, atlas_path, frames, layout, metadata_format)

    if event_bus is not None:
        event_bus.emit(
            COMPLETED,
            tool="atlas_packer",
            message=f"Done — {layout.frame_count} frames packed into {layout.columns}x{layout.rows} sheet",
        )

    return AtlasResult(
        atlas=ImageData(path=atlas_path, width=layout.width, height=layout.height, format="png"),
        layout=layout,
        frames=tuple(frames),
        metadata_path=written_meta,
    )


# ── Input collection ──────────────────────────────────────────────────────

FRAME_EXTENSIONS: frozenset[str] = frozenset({".png", ".webp", ".tif", ".tiff", ".bmp"})


def collect_frame_paths(inputs: list[Path]) -> list[Path]:
    """Collect frame images from a mix of files and directories.

    Files are taken as given (if they have a lossless image extension);
    directories are scanned non-recursively.  The result is sorted
    lexicographically, which is playback order for zero-padded names.

    Raises:
        ValidationError: If no frame images are found.
    """
    found: set[Path] = set()
    for entry in inputs:
        entry = entry.resolve()
        if entry.is_file():
            if entry.suffix.lower() in FRAME_EXTENSIONS:
                found.add(entry)
        elif entry.is_dir():
            for child in entry.iterdir():
                if child.is_file() and child.suffix.lower() in FRAME_EXTENSIONS:
                    found.add(child)

    if not found:
        msg = "No frame images found in the provided inputs"
        raise ValidationError(msg)

    return sorted(found)
