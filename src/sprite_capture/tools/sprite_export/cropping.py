"""Alpha bounds scanning and raster cropping — pure numpy, no I/O."""

from __future__ import annotations

import numpy as np

from sprite_capture.core.datatypes import Anchor, CropRect, FrameSize, RasterFrame

# ── Bounding box analysis ────────────────────────────────────────────────


def scan_alpha_bounds(frame: RasterFrame) -> CropRect | None:
    """Compute the tightest rectangle around every pixel with non-zero alpha.

    Rows and columns containing any visible pixel are located with
    ``np.any`` along each axis, which gives the same bounds as visiting every
    pixel.

    Args:
        frame: The raster to scan.

    Returns:
        The inclusive bounding box as a ``CropRect``, or ``None`` when the
        frame is fully transparent.
    """
    visible = frame.pixels[:, :, 3] > 0

    rows_with_content = np.any(visible, axis=1)
    if not np.any(rows_with_content):
        return None
    cols_with_content = np.any(visible, axis=0)

    row_indices = np.flatnonzero(rows_with_content)
    col_indices = np.flatnonzero(cols_with_content)

    top = int(row_indices[0])
    bottom = int(row_indices[-1])
    left = int(col_indices[0])
    right = int(col_indices[-1])

    return CropRect(left=left, top=top, width=right - left + 1, height=bottom - top + 1)


def tight_crop_rect(frame: RasterFrame) -> CropRect:
    """Return the tight bounds of *frame*, or a 1x1 rect at the origin for an empty frame."""
    bounds = scan_alpha_bounds(frame)
    if bounds is None:
        return CropRect(left=0, top=0, width=1, height=1)
    return bounds


def anchored_rect(tight: CropRect, size: FrameSize, anchor: Anchor) -> CropRect:
    """Place a rect of *size* relative to a frame's tight bounds.

    Args:
        tight: The frame's tight bounds.
        size: Extent of the resulting rect.
        anchor: Which point of *tight* the result shares.

    Returns:
        A ``CropRect`` of exactly *size*.
    """
    match anchor:
        case Anchor.TOP_LEFT:
            left, top = tight.left, tight.top
        case Anchor.BOTTOM_LEFT:
            left, top = tight.left, tight.bottom - size.height
        case Anchor.CENTER:
            left = tight.left + (tight.width - size.width) // 2
            top = tight.top + (tight.height - size.height) // 2
    return CropRect(left=left, top=top, width=size.width, height=size.height)


# ── Crop operations ──────────────────────────────────────────────────────


def crop_frame(frame: RasterFrame, rect: CropRect) -> RasterFrame:
    """Copy *rect* out of *frame*.

    The result is always exactly ``rect.width x rect.height``.  Any part of
    the rect outside the source reads as transparent ``(0, 0, 0, 0)``.

    Args:
        frame: Source raster.
        rect: Region to extract, in the source's top-down coordinates.

    Returns:
        A new ``RasterFrame``.
    """
    canvas = np.zeros((rect.height, rect.width, 4), dtype=np.uint8)

    # Intersection of the rect with the source.
    src_left = max(0, rect.left)
    src_top = max(0, rect.top)
    src_right = min(frame.width, rect.right)
    src_bottom = min(frame.height, rect.bottom)

    if src_right > src_left and src_bottom > src_top:
        dst_left = src_left - rect.left
        dst_top = src_top - rect.top
        canvas[
            dst_top : dst_top + (src_bottom - src_top),
            dst_left : dst_left + (src_right - src_left),
        ] = frame.pixels[src_top:src_bottom, src_left:src_right]

    return RasterFrame(canvas)
