"""Two-pass capture session — pure logic, driven one frame per host tick."""

from __future__ import annotations

import logging
import math

from sprite_capture.core.datatypes import (
    CapturePass,
    CaptureProgress,
    CropRect,
    ExportRequest,
    ExportResult,
    FrameSize,
    SessionState,
)
from sprite_capture.core.events import ERROR, LOG, PROGRESS, STATE, EventBus
from sprite_capture.core.exceptions import (
    CaptureError,
    ConfigurationError,
    InvariantViolation,
    RenderFailure,
)
from sprite_capture.core.registry import SessionRegistry
from sprite_capture.tools.atlas_packer.logic import VALID_METADATA_FORMATS, pack_atlas
from sprite_capture.tools.sprite_export.cropping import anchored_rect, crop_frame, tight_crop_rect
from sprite_capture.tools.sprite_export.frame_store import FrameStore, index_digits
from sprite_capture.tools.sprite_export.sources import AnimationSource, FrameRenderer

logger = logging.getLogger(__name__)

TOOL_NAME = "sprite_export"


def compute_frame_count(duration_s: float, frames_per_second: float) -> int:
    """Return ``ceil(duration * fps)``, at least 1.

    The product is rounded to 6 decimals first so float noise such as
    ``0.3 * 10 == 3.0000000000000004`` does not add a frame.
    """
    return max(1, math.ceil(round(duration_s * frames_per_second, 6)))


class CaptureSession:
    """State machine that renders, crops and stores an animation twice, then packs it.

    ``IDLE -> CAPTURING_TIGHT -> CAPTURING_UNIFORM -> PACKING -> IDLE``

    The tight pass crops every frame to its own alpha bounds and records the
    largest size seen.  The uniform pass re-renders every frame and crops it
    to that size, anchored on the frame's tight bounds, so the packed atlas
    has equal cells.  The host calls ``advance()`` once per tick; each call
    captures exactly one frame.

    Failures during ``advance()`` abort the session: the error is logged,
    emitted as an ``error`` event and kept in ``error``, and the session
    returns to ``IDLE``.  ``advance()`` itself does not raise them.

    Args:
        renderer: Produces one raster per call.
        animation_source: Looks up clip durations and poses the subject.
        event_bus: Receives ``state``, ``progress``, ``log`` and ``error`` events.
        registry: Claims the (subject, animation) pair while the session runs.
    """

    def __init__(
        self,
        renderer: FrameRenderer,
        animation_source: AnimationSource,
        *,
        event_bus: EventBus | None = None,
        registry: SessionRegistry | None = None,
    ) -> None:
        self.renderer = renderer
        self.animation_source = animation_source
        self.event_bus = event_bus or EventBus()
        self.registry = registry or SessionRegistry()

        self._state = SessionState.IDLE
        self._request: ExportRequest | None = None
        self._progress: CaptureProgress | None = None
        self._store: FrameStore | None = None
        self._tight_sizes: list[FrameSize] = []

        self.result: ExportResult | None = None
        self.error: CaptureError | None = None

    # ── introspection ──────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def progress(self) -> CaptureProgress | None:
        """Bookkeeping of the running capture, ``None`` while idle."""
        return self._progress

    @property
    def is_active(self) -> bool:
        """``True`` between ``start()`` and the return to ``IDLE``."""
        return self._state is not SessionState.IDLE

    # ── operator actions ───────────────────────────────────────

    def start(self, request: ExportRequest) -> None:
        """Begin the tight pass for *request*.

        Raises:
            ConfigurationError: If the request is incomplete, out of range, or
                this session is already running; the state is unchanged.
            SessionConflictError: If another session owns the pair.
            RenderFailure: If the clip cannot be found or its duration is not
                a finite, non-negative number.
            StorageFailure: If stale frames cannot be cleared.
        """
        try:
            self._validate(request)
            self.registry.claim(request.subject_name, request.animation_name)
        except ConfigurationError as exc:
            self._report(exc)
            raise

        try:
            duration = self._clip_duration(request.animation_name)
            total = compute_frame_count(duration, request.frames_per_second)
            store = FrameStore(
                request.export_path,
                request.subject_name,
                request.animation_name,
                digits=index_digits(total),
            )
            store.prepare()
        except CaptureError as exc:
            self.registry.release(request.subject_name, request.animation_name)
            self._report(exc)
            raise
        except BaseException:
            self.registry.release(request.subject_name, request.animation_name)
            raise

        self._request = request
        self._store = store
        self._tight_sizes = []
        self._progress = CaptureProgress(
            subject_name=request.subject_name,
            animation_name=request.animation_name,
            frames_per_second=request.frames_per_second,
            total_frame_count=total,
        )
        self.result = None
        self.error = None
        logger.info(
            "Export of %s/%s started: %.3fs at %g fps -> %d frames",
            request.subject_name,
            request.animation_name,
            duration,
            request.frames_per_second,
            total,
        )
        self._set_state(SessionState.CAPTURING_TIGHT)

    def advance(self) -> SessionState:
        """Capture one frame; the host calls this once per tick.

        Returns:
            The state after this tick.  Calling while idle is a no-op.
        """
        if self._state not in (SessionState.CAPTURING_TIGHT, SessionState.CAPTURING_UNIFORM):
            return self._state

        try:
            self._capture_current_frame()
            if self._progress is not None and self._progress.current_frame_index >= self._progress.total_frame_count:
                self._finish_pass()
        except CaptureError as exc:
            self._abort(exc)
        return self._state

    def cancel(self) -> None:
        """Stop between frames, delete the frame directory and return to ``IDLE``."""
        if not self.is_active:
            return
        assert self._store is not None
        logger.info("Export of %s cancelled", self._store.directory)
        try:
            self._store.delete_all()
        finally:
            self._reset()

    # ── per-frame work ─────────────────────────────────────────

    def _capture_current_frame(self) -> None:
        progress, request, store = self._require_running()
        index = progress.current_frame_index
        time_s = index / progress.frames_per_second

        try:
            self.animation_source.advance_to(request.animation_name, time_s)
            frame = self.renderer.render_frame(request.camera, time_s)
        except CaptureError:
            raise
        except Exception as exc:
            msg = f"Renderer failed at {time_s:.3f}s of '{request.animation_name}'"
            raise RenderFailure(msg) from exc
        if frame is None:
            msg = f"Renderer returned no frame at {time_s:.3f}s of '{request.animation_name}'"
            raise RenderFailure(msg)

        tight = tight_crop_rect(frame)
        if progress.capture_pass is CapturePass.TIGHT:
            rect = tight
            self._tight_sizes.append(tight.size)
            progress.tight_rects.append(rect)
        else:
            rect = self._uniform_rect(index, tight)
            progress.uniform_rects.append(rect)

        store.write_frame(index, crop_frame(frame, rect))
        progress.current_frame_index = index + 1

        self.event_bus.emit(
            PROGRESS,
            tool=TOOL_NAME,
            current=progress.current_frame_index
            + (progress.total_frame_count if progress.capture_pass is CapturePass.UNIFORM else 0),
            total=2 * progress.total_frame_count,
            message=(
                f"{progress.capture_pass.value.capitalize()} pass: frame "
                f"{progress.current_frame_index}/{progress.total_frame_count} ({rect.width}x{rect.height})"
            ),
        )

    def _uniform_rect(self, index: int, tight: CropRect) -> CropRect:
        progress, request, _store = self._require_running()
        uniform = progress.uniform_size
        assert uniform is not None
        if not tight.size.fits_within(uniform):
            msg = (
                f"Frame {index} re-rendered with bounds {tight.size}, larger than the "
                f"recorded maximum {uniform}; the renderer is not deterministic"
            )
            raise InvariantViolation(msg)
        return anchored_rect(tight, uniform, request.anchor)

    # ── pass transitions ───────────────────────────────────────

    def _finish_pass(self) -> None:
        progress, request, store = self._require_running()

        if progress.capture_pass is CapturePass.TIGHT:
            uniform = self._tight_sizes[0]
            for size in self._tight_sizes[1:]:
                uniform = uniform.union(size)
            progress.uniform_size = uniform
            logger.info("Tight pass complete: uniform frame size %s", uniform)
            self.event_bus.emit(LOG, tool=TOOL_NAME, message=f"Tight pass complete, uniform frame size {uniform}")

            store.prepare()
            progress.capture_pass = CapturePass.UNIFORM
            progress.current_frame_index = 0
            self._set_state(SessionState.CAPTURING_UNIFORM)
            return

        self._set_state(SessionState.PACKING)
        atlas = pack_atlas(
            store.list_frames(),
            store.atlas_path,
            columns=request.columns,
            strict=True,
            metadata_format=request.metadata_format,
            metadata_path=store.metadata_path(request.metadata_format) if request.metadata_format else None,
            event_bus=self.event_bus,
        )
        store.delete_all()

        assert progress.uniform_size is not None
        self.result = ExportResult(
            atlas=atlas,
            total_frame_count=progress.total_frame_count,
            uniform_size=progress.uniform_size,
            tight_rects=tuple(progress.tight_rects),
            uniform_rects=tuple(progress.uniform_rects),
        )
        logger.info("Sprite sheet generated at %s", atlas.atlas.path)
        self._reset()

    # ── helpers ────────────────────────────────────────────────

    def _clip_duration(self, animation_name: str) -> float:
        try:
            duration = float(self.animation_source.duration(animation_name))
        except CaptureError:
            raise
        except Exception as exc:
            msg = f"Could not look up the duration of '{animation_name}'"
            raise RenderFailure(msg) from exc
        if not math.isfinite(duration) or duration < 0:
            msg = f"Animation '{animation_name}' has an invalid duration of {duration}s"
            raise RenderFailure(msg)
        return duration

    def _validate(self, request: ExportRequest) -> None:
        if self.is_active:
            msg = "This session is already running; cancel it or wait for it to finish"
            raise ConfigurationError(msg)
        if not request.subject_name:
            msg = "Please select a subject with an animation"
            raise ConfigurationError(msg)
        if not request.animation_name:
            msg = "Please select an animation to export frames"
            raise ConfigurationError(msg)
        if request.camera is None:
            msg = "Please select a capture camera"
            raise ConfigurationError(msg)
        if request.frames_per_second <= 0:
            msg = f"Frames per second must be > 0, got {request.frames_per_second}"
            raise ConfigurationError(msg)
        if request.columns < 1:
            msg = f"Columns must be >= 1, got {request.columns}"
            raise ConfigurationError(msg)
        if request.metadata_format is not None and request.metadata_format not in VALID_METADATA_FORMATS:
            msg = (
                f"Metadata format must be one of {sorted(VALID_METADATA_FORMATS)}, "
                f"got '{request.metadata_format}'"
            )
            raise ConfigurationError(msg)

    def _require_running(self) -> tuple[CaptureProgress, ExportRequest, FrameStore]:
        if self._progress is None or self._request is None or self._store is None:
            msg = f"No capture running (state {self._state.value})"
            raise InvariantViolation(msg)
        return self._progress, self._request, self._store

    def _set_state(self, state: SessionState) -> None:
        previous, self._state = self._state, state
        logger.debug("Session state %s -> %s", previous.value, state.value)
        self.event_bus.emit(STATE, tool=TOOL_NAME, state=state, previous=previous)

    def _report(self, exc: CaptureError) -> None:
        logger.error("%s: %s", type(exc).__name__, exc)
        self.event_bus.emit(ERROR, tool=TOOL_NAME, error=exc, message=str(exc))

    def _abort(self, exc: CaptureError) -> None:
        # Frames already on disk are left alone; the next export clears them.
        self.error = exc
        self._report(exc)
        self._reset()

    def _reset(self) -> None:
        if self._request is not None:
            self.registry.release(self._request.subject_name, self._request.animation_name)
        self._request = None
        self._progress = None
        self._store = None
        self._tight_sizes = []
        if self._state is not SessionState.IDLE:
            self._set_state(SessionState.IDLE)


def run_to_completion(session: CaptureSession, request: ExportRequest) -> ExportResult:
    """Start *session* and call ``advance()`` until it is idle again.

    Useful when frames can be rendered back to back, e.g. from an image
    sequence; inside a host editor call ``advance()`` from its tick instead.

    Raises:
        CaptureError: Whatever aborted the session.
    """
    session.start(request)
    while session.is_active:
        session.advance()
    if session.error is not None:
        raise session.error
    assert session.result is not None
    return session.result
