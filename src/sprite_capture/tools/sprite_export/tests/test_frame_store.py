"""Tests for the intermediate frame directory."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from sprite_capture.core.datatypes import RasterFrame
from sprite_capture.core.exceptions import StorageFailure
from sprite_capture.core.storage import PARTIAL_SUFFIX
from sprite_capture.tools.sprite_export.frame_store import FrameStore, index_digits

# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def store(tmp_path: Path) -> FrameStore:
    """A prepared store for Hero/Walk under a temporary export folder."""
    frame_store = FrameStore(tmp_path / "SpriteSheets", "Hero", "Walk")
    frame_store.prepare()
    return frame_store


def _noise(width: int, height: int, seed: int = 0) -> RasterFrame:
    rng = np.random.default_rng(seed)
    return RasterFrame(rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8))


# ── TestIndexDigits ────────────────────────────────────────────────────────


class TestIndexDigits:
    """Tests for the ``index_digits`` function."""

    @pytest.mark.parametrize(
        ("frame_count", "expected"),
        [(1, 4), (10, 4), (10_000, 4), (10_001, 5), (123_456, 6)],
    )
    def test_width(self, frame_count: int, expected: int) -> None:
        """Four digits cover indices up to 9999; wider counts grow the padding."""
        assert index_digits(frame_count) == expected


# ── TestFrameStorePaths ────────────────────────────────────────────────────


class TestFrameStorePaths:
    """Tests for the deterministic layout of the export folder."""

    def test_layout(self, tmp_path: Path) -> None:
        """Frames, atlas and sidecar live under <export>/<subject>/."""
        frame_store = FrameStore(tmp_path, "Hero", "Walk")
        assert frame_store.directory == tmp_path / "Hero" / "Walk"
        assert frame_store.atlas_path == tmp_path / "Hero" / "Walk.png"
        assert frame_store.metadata_path("json") == tmp_path / "Hero" / "Walk.json"

    def test_frame_names_are_zero_padded(self, tmp_path: Path) -> None:
        """Frame indices are padded to four digits by default."""
        frame_store = FrameStore(tmp_path, "Hero", "Walk")
        assert frame_store.frame_path(0).name == "Frame_0000.png"
        assert frame_store.frame_path(7).name == "Frame_0007.png"
        assert frame_store.frame_path(123).name == "Frame_0123.png"

    def test_wider_padding(self, tmp_path: Path) -> None:
        """A wider digit count keeps names sortable past 9999."""
        frame_store = FrameStore(tmp_path, "Hero", "Walk", digits=5)
        assert frame_store.frame_path(10_000).name == "Frame_10000.png"
        assert frame_store.frame_path(9).name == "Frame_00009.png"


# ── TestFrameStoreIO ───────────────────────────────────────────────────────


class TestFrameStoreIO:
    """Tests for writing, listing and reading frames."""

    def test_round_trip_is_lossless(self, store: FrameStore) -> None:
        """A written frame decodes to identical pixels."""
        frame = _noise(23, 31, seed=3)
        path = store.write_frame(0, frame)
        assert FrameStore.read_frame(path).same_pixels(frame)

    def test_rewrite_replaces(self, store: FrameStore) -> None:
        """Writing an index twice keeps only the latest frame."""
        store.write_frame(2, _noise(4, 4, seed=1))
        second = _noise(6, 5, seed=2)
        store.write_frame(2, second)

        assert store.list_frames() == [store.frame_path(2)]
        assert FrameStore.read_frame(store.frame_path(2)).same_pixels(second)

    def test_list_is_playback_order(self, store: FrameStore) -> None:
        """Frames are listed by index regardless of write order."""
        for index in (3, 0, 11, 1):
            store.write_frame(index, _noise(2, 2, seed=index))
        assert [p.name for p in store.list_frames()] == [
            "Frame_0000.png",
            "Frame_0001.png",
            "Frame_0003.png",
            "Frame_0011.png",
        ]

    def test_list_ignores_other_files(self, store: FrameStore) -> None:
        """Stray files in the directory are not frames."""
        store.write_frame(0, _noise(2, 2))
        (store.directory / "notes.txt").write_text("x")
        (store.directory / "Frame_0001.png.partial").write_bytes(b"")
        assert store.list_frames() == [store.frame_path(0)]

    def test_no_partial_files_remain(self, store: FrameStore) -> None:
        """Successful writes leave no temporary files behind."""
        for index in range(5):
            store.write_frame(index, _noise(8, 8, seed=index))
        assert not list(store.directory.glob(f"*{PARTIAL_SUFFIX}"))

    def test_list_missing_directory(self, tmp_path: Path) -> None:
        """A store whose directory was never created lists nothing."""
        assert FrameStore(tmp_path, "Hero", "Walk").list_frames() == []

    def test_negative_index_rejected(self, store: FrameStore) -> None:
        """Negative frame indices are a programming error."""
        with pytest.raises(ValueError, match=">= 0"):
            store.write_frame(-1, _noise(2, 2))

    def test_read_corrupt_frame(self, store: FrameStore) -> None:
        """Undecodable files raise a ``StorageFailure``."""
        bad = store.frame_path(0)
        bad.write_bytes(b"not a png")
        with pytest.raises(StorageFailure, match="could not be opened"):
            FrameStore.read_frame(bad)

    def test_write_into_missing_directory(self, tmp_path: Path) -> None:
        """Writing without a prepared directory raises a ``StorageFailure``."""
        frame_store = FrameStore(tmp_path, "Hero", "Walk")
        with pytest.raises(StorageFailure, match="Failed to write"):
            frame_store.write_frame(0, _noise(2, 2))


# ── TestFrameStoreLifecycle ────────────────────────────────────────────────


class TestFrameStoreLifecycle:
    """Tests for preparing and deleting the frame directory."""

    def test_prepare_creates_directory(self, tmp_path: Path) -> None:
        """Preparing creates the subject and animation folders."""
        frame_store = FrameStore(tmp_path / "out", "Hero", "Walk")
        frame_store.prepare()
        assert frame_store.directory.is_dir()

    def test_prepare_clears_stale_frames(self, store: FrameStore) -> None:
        """Frames from a previous run are removed by ``prepare``."""
        store.write_frame(0, _noise(2, 2))
        store.write_frame(1, _noise(2, 2))
        store.prepare()
        assert store.directory.is_dir()
        assert store.list_frames() == []

    def test_delete_all_removes_directory(self, store: FrameStore) -> None:
        """``delete_all`` removes the files and the folder itself."""
        store.write_frame(0, _noise(2, 2))
        store.delete_all()
        assert not store.directory.exists()
        assert store.subject_dir.is_dir()

    def test_delete_all_is_idempotent(self, store: FrameStore) -> None:
        """Deleting an absent directory is not an error."""
        store.delete_all()
        store.delete_all()
        assert not store.directory.exists()

    def test_delete_all_keeps_atlas(self, store: FrameStore) -> None:
        """The sheet next to the frame folder survives deletion."""
        store.atlas_path.write_bytes(b"atlas")
        store.delete_all()
        assert store.atlas_path.read_bytes() == b"atlas"
