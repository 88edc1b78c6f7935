# libs/domain/scanner/playback.py
from __future__ import annotations

import logging
from typing import Final

from domain.types import ScannerState
from ports.events import ScanEventsPort
from ports.vision import CameraPort, Facing

from .engine import DetectionEngineSelector
from .errors import CameraError, EngineUnavailableError
from .model import PlaybackState
from .scheduler import FrameScheduler

LOG: Final = logging.getLogger("scanner.playback")


class PlaybackController:
    """Pause / resume / scan-once state machine and camera lifecycle.

    The camera handle is open in RUNNING and PAUSED_RETAINED (and in
    STOPPED_AFTER_DETECTION with the retain policy); it is released in
    PAUSED_RELEASED and on close().
    """

    def __init__(
        self,
        camera: CameraPort,
        selector: DetectionEngineSelector,
        scheduler: FrameScheduler,
        events: ScanEventsPort,
        *,
        release_on_pause: bool = False,
        mirror_when_user: bool = True,
        facing: Facing = "environment",
    ) -> None:
        self._camera: Final = camera
        self._selector: Final = selector
        self._scheduler: Final = scheduler
        self._events: Final = events
        self.release_on_pause = release_on_pause
        self.mirror_when_user = mirror_when_user
        self._facing: Facing = facing
        self._torch = False
        self._state = PlaybackState.IDLE
        scheduler.subscribe_stopped(self._on_scan_complete)

    # --- queries ----------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def facing(self) -> Facing:
        return self._facing

    def snapshot(self) -> ScannerState:
        return ScannerState(
            running=self._state is PlaybackState.RUNNING,
            using_back=self._facing == "environment",
            torch=self._torch,
        )

    # --- transitions ------------------------------------------------------------

    async def start(self) -> None:
        if self._state is not PlaybackState.IDLE:
            LOG.debug("start() ignored in state %s", self._state.value)
            return
        self._acquire()
        self._init_engine()
        self._run()

    async def pause(self) -> None:
        if self._state is not PlaybackState.RUNNING:
            LOG.debug("pause() ignored in state %s", self._state.value)
            return
        self._scheduler.stop()
        self._state = self._park()

    async def resume(self) -> None:
        if self._state is PlaybackState.PAUSED_RETAINED:
            self._run()
        elif self._state is PlaybackState.PAUSED_RELEASED:
            self._acquire()
            self._init_engine()
            self._run()
        elif self._state is PlaybackState.STOPPED_AFTER_DETECTION:
            LOG.info("Scan finished; call restart() to scan again.")
        else:
            LOG.debug("resume() ignored in state %s", self._state.value)

    async def set_paused(self, paused: bool) -> None:
        if paused:
            await self.pause()
        else:
            await self.resume()

    async def restart(self) -> None:
        """Explicit restart, the only way out of STOPPED_AFTER_DETECTION."""
        if self._state is PlaybackState.RUNNING:
            return
        if self._state is PlaybackState.IDLE:
            await self.start()
            return
        if not self._camera.is_open:
            self._acquire()
            self._init_engine()
        self._run()

    async def switch_camera(self) -> None:
        was_running = self._state is PlaybackState.RUNNING
        self._scheduler.stop()
        self._camera.release()
        self._torch = False
        self._facing = "user" if self._facing == "environment" else "environment"
        LOG.info("Switching camera to %s", self._facing)

        if self._state is PlaybackState.IDLE:
            return
        if not was_running:
            # resume() / restart() reacquire and re-evaluate the engine
            self._selector.dispose()
            if self._state is PlaybackState.PAUSED_RETAINED:
                self._state = PlaybackState.PAUSED_RELEASED
            return
        try:
            self._acquire()
        except CameraError:
            self._selector.dispose()
            self._state = PlaybackState.PAUSED_RELEASED
            raise
        self._init_engine()
        self._run()

    async def set_torch(self, on: bool) -> bool:
        """Returns False (and does nothing) when the camera has no torch."""
        if not self._camera.is_open or not self._camera.supports_torch():
            LOG.debug("Torch not supported; ignoring.")
            return False
        self._camera.apply_torch(on)
        self._torch = bool(on)
        return True

    async def close(self) -> None:
        await self._scheduler.aclose()
        self._camera.release()
        self._selector.dispose()
        self._torch = False
        self._state = PlaybackState.IDLE

    # --- internals --------------------------------------------------------------

    def _on_scan_complete(self) -> None:
        # scheduler has already stopped itself
        if self._state is not PlaybackState.RUNNING:
            return
        self._park()
        self._state = PlaybackState.STOPPED_AFTER_DETECTION
        LOG.info("Code detected; scan-once stop.")

    def _park(self) -> PlaybackState:
        self._camera.pause()
        if not self.release_on_pause:
            return PlaybackState.PAUSED_RETAINED
        self._camera.release()
        self._selector.dispose()
        self._torch = False
        return PlaybackState.PAUSED_RELEASED

    def _acquire(self) -> None:
        try:
            self._camera.open(self._facing)
        except CameraError as ex:
            self._events.on_error(ex, fatal=True)
            raise
        except Exception as ex:
            err = CameraError(f"camera open failed: {ex}")
            err.__cause__ = ex
            self._events.on_error(err, fatal=True)
            raise err from ex
        self._scheduler.set_mirror(self.mirror_when_user and self._facing == "user")

    def _init_engine(self) -> None:
        try:
            self._selector.initialize()
        except EngineUnavailableError as ex:
            self._camera.release()
            self._state = PlaybackState.IDLE
            self._events.on_error(ex, fatal=True)
            raise

    def _run(self) -> None:
        self._camera.play()
        self._scheduler.start()
        self._state = PlaybackState.RUNNING
