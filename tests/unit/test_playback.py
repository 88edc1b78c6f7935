from __future__ import annotations

import asyncio

import pytest
from adapters.capture import FakeCamera
from adapters.detectors import ScriptedDetector
from adapters.drawing import RecordingSurface
from adapters.events import RecordingEventsPort
from adapters.time import FakeClockPort
from domain.scanner import (
    CameraError,
    DetectionEngineSelector,
    EngineUnavailableError,
    FrameScheduler,
    PlaybackController,
    PlaybackState,
    SchedulerOptions,
)
from ports.detection import DetectedCode
from ports.vision import Point

HIT = [
    DetectedCode(
        raw_value="4006381333931",
        format="ean_13",
        corners=(Point(300, 220), Point(340, 220), Point(340, 260), Point(300, 260)),
    )
]


class Rig:
    def __init__(
        self,
        *,
        camera=None,
        native=None,
        fallback=None,
        scan_once=False,
        release_on_pause=False,
    ):
        self.camera = camera or FakeCamera()
        self.native = native or ScriptedDetector("native")
        self.fallback = fallback or ScriptedDetector("fallback")
        self.events = RecordingEventsPort()
        self.surface = RecordingSurface()
        self.selector = DetectionEngineSelector(
            self.native, self.fallback, FakeClockPort(), on_change=self.events.on_engine
        )
        self.scheduler = FrameScheduler(
            self.camera,
            self.selector,
            self.surface,
            self.events,
            options=SchedulerOptions(refresh_hz=500, stop_after_detection=scan_once),
        )
        self.ctl = PlaybackController(
            self.camera,
            self.selector,
            self.scheduler,
            self.events,
            release_on_pause=release_on_pause,
        )


def run(coro_fn):
    return asyncio.run(coro_fn())


def test_start_acquires_camera_and_engine():
    rig = Rig()

    async def go():
        await rig.ctl.start()
        assert rig.ctl.state is PlaybackState.RUNNING
        assert rig.camera.is_open and rig.camera.playing
        assert rig.scheduler.running
        await rig.ctl.close()

    run(go)
    assert rig.native.initialized == 1
    assert rig.events.engines == ["native"]
    assert rig.ctl.state is PlaybackState.IDLE
    assert not rig.camera.is_open


def test_pause_retained_keeps_device():
    rig = Rig()

    async def go():
        await rig.ctl.start()
        await rig.ctl.pause()
        assert rig.ctl.state is PlaybackState.PAUSED_RETAINED
        assert rig.camera.is_open and not rig.camera.playing
        assert not rig.scheduler.running

        await rig.ctl.resume()
        assert rig.ctl.state is PlaybackState.RUNNING
        assert rig.scheduler.running
        await rig.ctl.close()

    run(go)
    assert rig.camera.opens == 1
    assert rig.camera.releases == 1  # only on close
    assert rig.native.initialized == 1


def test_release_on_pause_reacquires_fresh_handle_and_engine():
    rig = Rig(release_on_pause=True)

    async def go():
        await rig.ctl.start()
        first_handle = rig.camera.handle

        await rig.ctl.pause()
        assert rig.ctl.state is PlaybackState.PAUSED_RELEASED
        assert not rig.camera.is_open
        assert rig.selector.kind is None

        await rig.ctl.resume()
        assert rig.ctl.state is PlaybackState.RUNNING
        assert rig.camera.handle != first_handle
        await rig.ctl.close()

    run(go)
    assert rig.camera.opens == 2
    assert rig.native.initialized == 2
    assert rig.events.engines == ["native", "native"]


def test_set_paused_toggles():
    rig = Rig()

    async def go():
        await rig.ctl.start()
        await rig.ctl.set_paused(True)
        assert rig.ctl.state.is_paused
        await rig.ctl.set_paused(False)
        assert rig.ctl.state is PlaybackState.RUNNING
        await rig.ctl.close()

    run(go)


def test_scan_once_stops_and_is_not_resumable():
    rig = Rig(native=ScriptedDetector("native", default=HIT), scan_once=True)

    async def go():
        await rig.ctl.start()
        await asyncio.sleep(0.05)
        assert rig.ctl.state is PlaybackState.STOPPED_AFTER_DETECTION
        assert not rig.scheduler.running
        assert rig.camera.is_open and not rig.camera.playing

        await rig.ctl.resume()
        await rig.ctl.set_paused(False)
        assert rig.ctl.state is PlaybackState.STOPPED_AFTER_DETECTION

        await rig.ctl.restart()
        assert rig.ctl.state is PlaybackState.RUNNING
        await asyncio.sleep(0.05)
        assert rig.ctl.state is PlaybackState.STOPPED_AFTER_DETECTION
        await rig.ctl.close()

    run(go)
    assert len(rig.events.detections) == 2


def test_scan_once_with_release_policy_frees_the_device():
    rig = Rig(
        native=ScriptedDetector("native", default=HIT), scan_once=True, release_on_pause=True
    )

    async def go():
        await rig.ctl.start()
        await asyncio.sleep(0.05)
        assert rig.ctl.state is PlaybackState.STOPPED_AFTER_DETECTION
        assert not rig.camera.is_open

        await rig.ctl.restart()
        assert rig.camera.is_open
        await rig.ctl.close()

    run(go)
    assert rig.camera.opens == 2


def test_switch_camera_while_running():
    rig = Rig()

    async def go():
        await rig.ctl.start()
        await rig.ctl.switch_camera()
        assert rig.ctl.state is PlaybackState.RUNNING
        assert rig.ctl.facing == "user"
        assert rig.camera.facing == "user"
        assert rig.scheduler.options.mirror
        await rig.ctl.switch_camera()
        assert rig.camera.facing == "environment"
        assert not rig.scheduler.options.mirror
        await rig.ctl.close()

    run(go)
    assert rig.camera.opens == 3
    assert rig.native.initialized == 3
    assert rig.events.engines == ["native"] * 3


def test_switch_camera_reevaluates_engine_after_demotion():
    native = ScriptedDetector("native", script=[RuntimeError("lost context")])
    rig = Rig(native=native)

    async def go():
        await rig.ctl.start()
        await asyncio.sleep(0.02)
        assert rig.selector.kind == "fallback"
        await rig.ctl.switch_camera()
        assert rig.selector.kind == "native"
        await rig.ctl.close()

    run(go)
    assert rig.events.engines[:3] == ["native", "fallback", "native"]


def test_switch_camera_while_paused_leaves_device_released():
    rig = Rig()

    async def go():
        await rig.ctl.start()
        await rig.ctl.pause()
        await rig.ctl.switch_camera()
        assert rig.ctl.state is PlaybackState.PAUSED_RELEASED
        assert not rig.camera.is_open

        await rig.ctl.resume()
        assert rig.ctl.state is PlaybackState.RUNNING
        assert rig.camera.facing == "user"
        await rig.ctl.close()

    run(go)
    # one engine evaluation per acquisition: start, then resume
    assert rig.native.initialized == 2
    assert rig.events.engines == ["native", "native"]


def test_torch_is_a_noop_when_unsupported():
    rig = Rig(camera=FakeCamera(torch=False))

    async def go():
        await rig.ctl.start()
        assert await rig.ctl.set_torch(True) is False
        assert rig.ctl.snapshot().torch is False
        await rig.ctl.close()

    run(go)
    assert rig.camera.torch_calls == []
    assert rig.events.errors == []


def test_torch_applies_and_resets_on_switch():
    rig = Rig(camera=FakeCamera(torch=True))

    async def go():
        await rig.ctl.start()
        assert await rig.ctl.set_torch(True) is True
        snap = rig.ctl.snapshot()
        assert snap.torch and snap.running and snap.using_back
        await rig.ctl.switch_camera()
        assert rig.ctl.snapshot().torch is False
        assert rig.ctl.snapshot().using_back is False
        await rig.ctl.close()

    run(go)
    assert rig.camera.torch_calls == [True]


def test_camera_failure_is_fatal_and_not_retried():
    rig = Rig(camera=FakeCamera(fail_open=True))

    async def go():
        with pytest.raises(CameraError):
            await rig.ctl.start()

    run(go)
    assert rig.ctl.state is PlaybackState.IDLE
    assert len(rig.events.fatal_errors) == 1
    assert isinstance(rig.events.fatal_errors[0], CameraError)
    assert rig.native.initialized == 0


def test_no_backend_at_all_is_fatal_once():
    rig = Rig(
        native=ScriptedDetector("native", fail_init=True),
        fallback=ScriptedDetector("fallback", fail_init=True),
    )

    async def go():
        with pytest.raises(EngineUnavailableError):
            await rig.ctl.start()

    run(go)
    assert rig.ctl.state is PlaybackState.IDLE
    assert not rig.camera.is_open
    assert rig.camera.releases == 1
    assert [type(e) for e in rig.events.fatal_errors] == [EngineUnavailableError]
    assert not rig.scheduler.running


def test_detection_finishing_after_release_pause_changes_nothing():
    native = ScriptedDetector("native", default=RuntimeError("context lost"), delay=0.05)
    rig = Rig(native=native, release_on_pause=True)

    async def go():
        await rig.ctl.start()
        await asyncio.sleep(0.01)
        assert native.calls == 1
        await rig.ctl.pause()
        await asyncio.sleep(0.08)
        assert rig.ctl.state is PlaybackState.PAUSED_RELEASED
        assert rig.selector.kind is None
        await rig.ctl.close()

    run(go)
    assert rig.fallback.initialized == 0
    assert rig.events.engines == ["native"]
    assert rig.events.errors == []
    assert rig.events.detections == []


def test_failed_reopen_on_switch_parks_released():
    rig = Rig()

    async def go():
        await rig.ctl.start()
        rig.camera.fail_open = True
        with pytest.raises(CameraError):
            await rig.ctl.switch_camera()
        assert rig.ctl.state is PlaybackState.PAUSED_RELEASED
        assert not rig.ctl.snapshot().running
        assert rig.selector.kind is None
        assert not rig.scheduler.running

        await rig.ctl.pause()
        rig.camera.fail_open = False
        await rig.ctl.resume()
        assert rig.ctl.state is PlaybackState.RUNNING
        assert rig.camera.facing == "user"
        await rig.ctl.close()

    run(go)
    assert rig.camera.pauses == 0
    assert [type(e) for e in rig.events.fatal_errors] == [CameraError]
    assert rig.native.initialized == 2
    assert rig.events.engines == ["native", "native"]
