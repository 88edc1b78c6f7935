# libs/domain/scanner/scheduler.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Final

from ports.detection import DetectedCode
from ports.drawing import SurfacePort
from ports.events import ScanEventsPort
from ports.vision import FrameSourcePort, Point

from .engine import DetectionEngineSelector
from .errors import PipelineError, ScannerError, SurfaceUnavailableError
from .geometry import compute_roi, render_overlay
from .model import OverlayStyle, ROIConfig
from .smoothing import DEFAULT_ALPHA, PolygonSmoother, centroid

LOG: Final = logging.getLogger("scanner.scheduler")

# returned by _process when the session was stopped while detection was in flight
_DISCARDED: Final[list[DetectedCode]] = []


def _consume_result(fut: asyncio.Future[list[DetectedCode]]) -> None:
    # a stalled detection may fail after nobody awaits it any more
    if not fut.cancelled() and fut.exception() is not None:
        LOG.debug("Abandoned detection ended with %r", fut.exception())


@dataclass
class SchedulerOptions:
    frame_skip: int = 1  # process one tick in every N
    refresh_hz: float = 30.0
    crop_to_roi: bool = False
    roi_only: bool = False
    emit: bool = True
    stop_after_detection: bool = False
    mirror: bool = False
    stall_timeout_ms: int = 500
    smoothing_alpha: float = DEFAULT_ALPHA


@dataclass
class FrameSession:
    """Per-run state; recreated on every start()."""

    smoother: PolygonSmoother
    ticks: int = 0
    processed: int = 0
    polygon: list[Point] | None = None
    active: bool = False
    codes: list[DetectedCode] = field(default_factory=list)


class FrameScheduler:
    """Drives the per-frame cycle: grab, crop, detect, filter, smooth, emit, draw."""

    def __init__(
        self,
        source: FrameSourcePort,
        selector: DetectionEngineSelector,
        surface: SurfacePort,
        events: ScanEventsPort,
        roi: ROIConfig | None = None,
        style: OverlayStyle | None = None,
        options: SchedulerOptions | None = None,
    ) -> None:
        self._source: Final = source
        self._selector: Final = selector
        self._surface: Final = surface
        self._events: Final = events
        self.roi = roi or ROIConfig()
        self.style = style or OverlayStyle()
        self.options = options or SchedulerOptions()
        self._stopped_callbacks: list[Callable[[], None]] = []
        self._session = self._new_session()
        self._epoch = 0
        self._running = False
        self._wake = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._inflight: asyncio.Future[list[DetectedCode]] | None = None

    # --- public control -----------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def session(self) -> FrameSession:
        return self._session

    def subscribe_stopped(self, callback: Callable[[], None]) -> None:
        """Called once when a detection ends a scan-once run."""
        self._stopped_callbacks.append(callback)

    def set_mirror(self, value: bool) -> None:
        self.options.mirror = bool(value)

    def start(self) -> None:
        if self._running:
            return
        self._session = self._new_session()
        self._running = True
        self._epoch += 1
        self._wake = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._epoch), name="frame-scheduler"
        )

    def stop(self) -> None:
        """Cancel scheduling. An in-flight detection finishes but its result is dropped."""
        self._halt()

    async def aclose(self) -> None:
        self._halt()
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            await asyncio.gather(task, return_exceptions=True)

    # --- loop ---------------------------------------------------------------------

    async def _run(self, epoch: int) -> None:
        period = 1.0 / max(0.1, self.options.refresh_hz)
        while self._epoch == epoch:
            try:
                if not await self.tick():
                    break
            except Exception as ex:
                LOG.exception("Frame loop crashed.")
                self._halt()
                self._events.on_error(ex, fatal=True)
                break
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=period)
            except TimeoutError:
                pass

    async def tick(self) -> bool:
        """One scheduled tick. Returns False when nothing should be rescheduled."""
        session, epoch = self._session, self._epoch
        session.ticks += 1
        skip = max(1, int(self.options.frame_skip))
        if (session.ticks - 1) % skip != 0:
            return self._draw(session)

        session.processed += 1
        try:
            codes = await self._process(session, epoch)
        except Exception as ex:
            if epoch != self._epoch:
                LOG.debug("Dropping error from a cancelled frame: %r", ex)
                return False
            LOG.warning("Frame %d failed: %r", session.processed, ex)
            self._events.on_error(self._as_frame_error(ex, session.processed))
            codes = []
            session.smoother.reset()
            session.polygon, session.active, session.codes = None, False, []
        else:
            if codes is _DISCARDED:
                return False
            if codes is None:
                # stalled; keep what is on screen
                return epoch == self._epoch and self._draw(session)

        if codes and self.options.emit:
            self._events.on_detect(list(codes))

        if not self._draw(session):
            return False

        if codes and self.options.stop_after_detection:
            self._halt()
            for cb in list(self._stopped_callbacks):
                cb()
            self._draw(session)
            return False
        return True

    async def _process(self, session: FrameSession, epoch: int) -> list[DetectedCode] | None:
        if self._inflight is not None and not self._inflight.done():
            LOG.warning(
                "Previous detection still running; skipping frame %d.", session.processed
            )
            return None

        frame = self._source.grab()
        roi = compute_roi(frame.width, frame.height, self.roi)
        if self.options.crop_to_roi:
            region, dx, dy = frame.crop(roi), roi.x, roi.y
        else:
            region, dx, dy = frame, 0, 0

        # shielded so a stall leaves the task tracking the backend call until it ends
        self._inflight = asyncio.ensure_future(self._selector.detect(region))
        self._inflight.add_done_callback(_consume_result)
        budget = self.options.stall_timeout_ms / 1000.0 if self.options.stall_timeout_ms else None
        try:
            found = await asyncio.wait_for(asyncio.shield(self._inflight), timeout=budget)
        except TimeoutError:
            LOG.warning(
                "Detection stalled past %d ms; skipping frame %d.",
                self.options.stall_timeout_ms,
                session.processed,
            )
            return None
        if epoch != self._epoch:
            LOG.debug("Discarding result that arrived after stop.")
            return _DISCARDED

        codes = [c.translated(dx, dy) for c in found]
        if codes and self.options.roi_only:
            top = codes[0].polygon
            if top is None or not roi.contains(centroid(top)):
                codes = []

        top_polygon = codes[0].polygon if codes else None
        if top_polygon is not None:
            session.polygon = session.smoother.update(top_polygon)
        else:
            session.smoother.reset()
            session.polygon = None
        session.active = bool(codes)
        session.codes = codes
        return codes

    # --- helpers ------------------------------------------------------------------

    def _draw(self, session: FrameSession) -> bool:
        width, height = self._source.size()
        try:
            render_overlay(
                self._surface,
                compute_roi(width, height, self.roi),
                (width, height),
                self.roi,
                self.style,
                active=session.active,
                polygon=session.polygon,
                mirror=self.options.mirror,
            )
        except SurfaceUnavailableError as ex:
            LOG.error("Overlay surface unavailable; stopping: %r", ex)
            self._halt()
            self._events.on_error(ex, fatal=True)
            return False
        return True

    def _halt(self) -> None:
        self._epoch += 1
        self._running = False
        self._wake.set()

    @staticmethod
    def _as_frame_error(ex: Exception, frame_no: int) -> ScannerError:
        if isinstance(ex, ScannerError):
            return ex
        err = PipelineError(f"frame processing failed: {ex!r}", frame_no=frame_no)
        err.__cause__ = ex
        return err

    def _new_session(self) -> FrameSession:
        return FrameSession(smoother=PolygonSmoother(self.options.smoothing_alpha))
