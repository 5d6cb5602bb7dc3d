"""FrameStore — the per-(subject, animation) directory of intermediate frame files."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image

from sprite_capture.core.datatypes import RasterFrame
from sprite_capture.core.exceptions import StorageFailure
from sprite_capture.core.storage import remove_directory, write_png

logger = logging.getLogger(__name__)

FRAME_PREFIX = "Frame_"
FRAME_SUFFIX = ".png"
MIN_INDEX_DIGITS = 4


def index_digits(frame_count: int) -> int:
    """Return the zero-padding width needed so *frame_count* names sort numerically."""
    return max(MIN_INDEX_DIGITS, len(str(max(frame_count - 1, 0))))


class FrameStore:
    """Owns ``<export_path>/<subject>/<animation>/`` for the length of a session.

    Frames are lossless PNGs named ``Frame_<index>.png`` with a fixed-width,
    zero-padded index, so lexicographic order is playback order.  The packed
    atlas lives next to the directory, at ``<export_path>/<subject>/<animation>.png``.

    Args:
        export_path: Root export folder.
        subject_name: Name of the animated subject.
        animation_name: Name of the animation clip.
        digits: Zero-padding width of frame indices.
    """

    def __init__(
        self,
        export_path: Path,
        subject_name: str,
        animation_name: str,
        *,
        digits: int = MIN_INDEX_DIGITS,
    ) -> None:
        self.subject_dir = Path(export_path) / subject_name
        self.directory = self.subject_dir / animation_name
        self.animation_name = animation_name
        self.digits = digits

    @property
    def atlas_path(self) -> Path:
        """Path of the packed sprite sheet, adjacent to the frame directory."""
        return self.subject_dir / f"{self.animation_name}.png"

    def metadata_path(self, metadata_format: str) -> Path:
        """Path of a metadata sidecar for the packed sprite sheet."""
        return self.subject_dir / f"{self.animation_name}.{metadata_format}"

    def frame_path(self, index: int) -> Path:
        """Return the deterministic path of frame *index*."""
        return self.directory / f"{FRAME_PREFIX}{index:0{self.digits}d}{FRAME_SUFFIX}"

    # ── lifecycle ──────────────────────────────────────────────

    def prepare(self) -> None:
        """Start a pass with an empty frame directory.

        Frames left by a previous run or pass are deleted; the directory
        (and the subject directory above it) is created if missing.

        Raises:
            StorageFailure: If old frames cannot be removed or the directory
                cannot be created.
        """
        if self.directory.exists():
            self.delete_all()
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Could not create frame directory '{self.directory}'"
            raise StorageFailure(msg) from exc
        logger.debug("Prepared frame directory %s", self.directory)

    def write_frame(self, index: int, frame: RasterFrame) -> Path:
        """Encode *frame* as PNG at the path for *index*, replacing any existing file.

        Returns:
            The written path.

        Raises:
            StorageFailure: If the file cannot be written.
        """
        if index < 0:
            msg = f"Frame index must be >= 0, got {index}"
            raise ValueError(msg)
        path = self.frame_path(index)
        write_png(frame.to_image(), path)
        logger.debug("Wrote %s (%dx%d)", path.name, frame.width, frame.height)
        return path

    def list_frames(self) -> list[Path]:
        """Return stored frame paths in lexicographic (= playback) order."""
        if not self.directory.is_dir():
            return []
        return sorted(
            p for p in self.directory.iterdir() if p.is_file() and p.name.startswith(FRAME_PREFIX) and p.suffix == FRAME_SUFFIX
        )

    @staticmethod
    def read_frame(path: Path) -> RasterFrame:
        """Decode a stored frame.

        Raises:
            StorageFailure: If the file cannot be opened or decoded.
        """
        try:
            with Image.open(path) as img:
                return RasterFrame.from_image(img)
        except OSError as exc:
            msg = f"Frame '{path}' could not be opened"
            raise StorageFailure(msg) from exc

    def delete_all(self) -> None:
        """Remove every stored file and the frame directory itself.

        The directory's absence is re-checked afterwards.

        Raises:
            StorageFailure: If anything is left behind.
        """
        if not self.directory.exists():
            return
        remove_directory(self.directory)
        logger.info("Deleted frame directory %s", self.directory)
