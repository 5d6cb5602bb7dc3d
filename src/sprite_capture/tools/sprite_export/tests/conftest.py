"""Shared fixtures for sprite export tests: a scripted renderer standing in for a host engine."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterator
from typing import Any

import numpy as np
import pytest

from sprite_capture.core.datatypes import RasterFrame
from sprite_capture.core.exceptions import RenderFailure
from sprite_capture.core.registry import SessionRegistry
from sprite_capture.tools.sprite_export.sources import AnimationSource, FrameRenderer

# (left, top, width, height) of the opaque block, or None for an empty frame.
Shape = tuple[int, int, int, int] | None
ShapeFn = Callable[[int, int], Shape]

# Hero/Walk: 10 frames whose tight sizes vary between 40..42 x 48..50.
WALK_WIDTHS = [40, 42, 41, 40, 42, 41, 40, 42, 41, 40]
WALK_HEIGHTS = [50, 48, 50, 49, 50, 48, 50, 49, 50, 48]


def walk_shape(index: int, _render: int) -> Shape:
    """Block drifting right by one pixel per frame."""
    return (10 + index, 5, WALK_WIDTHS[index], WALK_HEIGHTS[index])


def frame_colour(index: int) -> tuple[int, int, int, int]:
    """Distinct opaque colour per frame index."""
    return ((index * 23) % 256, 100, 200, 255)


class ScriptedRig(FrameRenderer, AnimationSource):
    """Renders a single coloured block whose geometry is scripted per frame index.

    Args:
        durations: Clip name to duration in seconds.
        fps: Rate used to map render times back to frame indices.
        shape: ``shape(index, render_number)`` returning the block geometry;
            ``render_number`` is 1 for the first render of an index, 2 for the next.
        canvas: ``(width, height)`` of every rendered frame.
    """

    colour = staticmethod(frame_colour)

    def __init__(
        self,
        durations: dict[str, float],
        fps: float,
        shape: ShapeFn = walk_shape,
        canvas: tuple[int, int] = (100, 80),
    ) -> None:
        self.durations = durations
        self.fps = fps
        self.shape = shape
        self.canvas = canvas
        self.renders: Counter[int] = Counter()
        self.render_times: list[float] = []
        self.posed: list[tuple[str, float]] = []
        self.fail_on_render: int | None = None
        self.return_none_on_render: int | None = None

    def animation_names(self) -> list[str]:
        return sorted(self.durations)

    def duration(self, animation_name: str) -> float:
        if animation_name not in self.durations:
            msg = f"Unknown animation '{animation_name}'"
            raise RenderFailure(msg)
        return self.durations[animation_name]

    def advance_to(self, animation_name: str, time_s: float) -> None:
        self.posed.append((animation_name, time_s))

    def render_frame(self, camera: Any, time_s: float) -> RasterFrame | None:
        self.render_times.append(time_s)
        call = len(self.render_times)
        if self.fail_on_render == call:
            msg = "GPU device lost"
            raise RuntimeError(msg)
        if self.return_none_on_render == call:
            return None

        index = round(time_s * self.fps)
        self.renders[index] += 1
        width, height = self.canvas
        pixels = np.zeros((height, width, 4), dtype=np.uint8)
        geometry = self.shape(index, self.renders[index])
        if geometry is not None:
            left, top, w, h = geometry
            pixels[top : top + h, left : left + w] = frame_colour(index)
        return RasterFrame(pixels)


@pytest.fixture(autouse=True)
def _fresh_registry() -> Iterator[None]:
    """Reset the session registry singleton around every test."""
    SessionRegistry.reset()
    yield
    SessionRegistry.reset()


@pytest.fixture()
def walk_rig() -> ScriptedRig:
    """Rig with a 0.5 s 'Walk' clip captured at 20 fps."""
    return ScriptedRig({"Walk": 0.5, "Idle": 1.0}, fps=20)


@pytest.fixture()
def make_rig() -> type[ScriptedRig]:
    """Return the rig class for tests that script their own geometry."""
    return ScriptedRig
