"""Atomic PNG writes and verified directory removal, shared by the frame store and the atlas packer."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from PIL import Image

from sprite_capture.core.exceptions import StorageFailure

PARTIAL_SUFFIX = ".partial"


def write_png(image: Image.Image, path: Path) -> None:
    """Encode *image* as PNG at *path* via a temporary file and an atomic rename.

    Readers never observe a half-written file: either the previous content
    or the complete new image is at *path*.

    Raises:
        StorageFailure: If encoding, writing or renaming fails.
    """
    tmp_path = path.with_name(path.name + PARTIAL_SUFFIX)
    try:
        image.save(str(tmp_path), format="PNG")
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        msg = f"Failed to write '{path}'"
        raise StorageFailure(msg) from exc


def remove_directory(directory: Path) -> None:
    """Delete *directory* and everything in it, then confirm it is gone.

    A missing directory is not an error.

    Raises:
        StorageFailure: If deletion fails or leaves the directory behind.
    """
    if not directory.exists():
        return
    try:
        shutil.rmtree(directory)
    except OSError as exc:
        msg = f"Could not delete directory '{directory}'"
        raise StorageFailure(msg) from exc

    if directory.exists():
        msg = f"Directory '{directory}' still exists after deletion"
        raise StorageFailure(msg)
