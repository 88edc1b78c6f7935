from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Final

from adapters.events import ConsoleEventsPort, FanoutEventsPort, PublishingEventsPort
from adapters.time import MonotonicClockPort
from domain.scanner import (
    DetectionEngineSelector,
    FrameScheduler,
    OverlayStyle,
    PlaybackController,
    ROIConfig,
    SchedulerOptions,
)
from ports.detection import DetectorPort
from ports.drawing import SurfacePort
from ports.events import ScanEventsPort
from ports.ipc import CommandServerPort, EventPubPort
from ports.time import ClockPort
from ports.vision import CameraPort

from apps.scanner.commands import ScannerCommandDispatcher
from apps.scanner.settings import ScannerSettings

LOG: Final = logging.getLogger("scanner")


def build_ipc(settings: ScannerSettings) -> tuple[CommandServerPort, EventPubPort]:
    cmd_server: CommandServerPort
    event_pub: EventPubPort

    if settings.ipc_impl == "zmq":
        from adapters.ipc_zmq.zmq import ZmqEventPubPort, ZmqScannerCommandPort

        cmd_server = ZmqScannerCommandPort.bind_rep(settings.cmd_bind)
        event_pub = ZmqEventPubPort.bind_pub(settings.event_bind)
    else:
        from adapters.ipc_inproc import InprocCommandServerPort, InprocEventPubPort

        cmd_server = InprocCommandServerPort.create()
        event_pub = InprocEventPubPort.create()

    return cmd_server, event_pub


def build_camera(settings: ScannerSettings) -> CameraPort:
    cap = settings.capture
    if cap.adapter == "opencv":
        from adapters.capture.opencv import OpenCVCamera

        return OpenCVCamera(
            back_index=cap.back_index,
            front_index=cap.front_index,
            width=cap.width,
            height=cap.height,
            target_fps=cap.target_fps,
        )
    if cap.adapter == "mss":
        from adapters.capture.mss import MSSCamera

        return MSSCamera(monitor=cap.monitor)
    raise ValueError(f"Unknown capture adapter: {cap.adapter}")


def build_detectors(settings: ScannerSettings) -> tuple[DetectorPort, DetectorPort]:
    from adapters.detectors.opencv import OpenCVDetector
    from adapters.detectors.zbar import ZBarDetector

    formats = settings.engine.formats
    return OpenCVDetector(formats), ZBarDetector(formats)


def build_surface() -> SurfacePort:
    from adapters.drawing.opencv import OpenCVSurface

    return OpenCVSurface()


def scheduler_options(settings: ScannerSettings) -> SchedulerOptions:
    return SchedulerOptions(
        frame_skip=max(1, settings.frame_skip),
        refresh_hz=settings.refresh_hz,
        crop_to_roi=settings.crop_to_roi,
        roi_only=settings.roi_only,
        emit=settings.emit,
        stop_after_detection=settings.scan_once,
        stall_timeout_ms=settings.stall_timeout_ms,
        smoothing_alpha=settings.smoothing_alpha,
    )


@dataclass
class ScannerApp:
    settings: ScannerSettings
    camera: CameraPort
    surface: SurfacePort
    events: ScanEventsPort
    selector: DetectionEngineSelector
    scheduler: FrameScheduler
    controller: PlaybackController
    cmd_server: CommandServerPort
    event_pub: EventPubPort
    dispatcher: ScannerCommandDispatcher = field(init=False)

    def __post_init__(self) -> None:
        self.dispatcher = ScannerCommandDispatcher(self.controller)

    async def start(self) -> None:
        await self.controller.start()
        if self.settings.paused:
            await self.controller.pause()

    def poll_commands_once(self) -> bool:
        return self.cmd_server.poll_once(self.dispatcher.handle, timeout_ms=0)

    async def close(self) -> None:
        await self.dispatcher.drain()
        await self.controller.close()
        try:
            self.cmd_server.close()
        except Exception as ex:
            LOG.warning("Closing command server raised %r", ex)


def build_scanner(
    settings: ScannerSettings,
    *,
    camera: CameraPort | None = None,
    native: DetectorPort | None = None,
    fallback: DetectorPort | None = None,
    surface: SurfacePort | None = None,
    events: ScanEventsPort | None = None,
    clock: ClockPort | None = None,
    console: bool = False,
) -> ScannerApp:
    """Wire a scanner. Any adapter can be injected; the rest come from settings."""
    clock = clock or MonotonicClockPort()
    cmd_server, event_pub = build_ipc(settings)

    sinks: list[ScanEventsPort] = [PublishingEventsPort(event_pub, settings.scanner_id, clock)]
    if events is not None:
        sinks.append(events)
    if console:
        sinks.append(ConsoleEventsPort(scanner_id=settings.scanner_id))
    fanout = FanoutEventsPort(sinks)

    camera = camera or build_camera(settings)
    if native is None or fallback is None:
        default_native, default_fallback = build_detectors(settings)
        native = native or default_native
        fallback = fallback or default_fallback
    surface = surface or build_surface()

    selector = DetectionEngineSelector(
        native,
        fallback,
        clock,
        force_fallback=settings.engine.force_fallback,
        timeout_ms=settings.engine.native_timeout_ms,
        max_zero_frames=settings.engine.native_max_zero_frames,
        on_change=fanout.on_engine,
    )
    scheduler = FrameScheduler(
        camera,
        selector,
        surface,
        fanout,
        roi=ROIConfig(**settings.roi.model_dump()),
        style=OverlayStyle(**settings.overlay.model_dump()),
        options=scheduler_options(settings),
    )
    controller = PlaybackController(
        camera,
        selector,
        scheduler,
        fanout,
        release_on_pause=settings.release_on_pause,
        mirror_when_user=settings.mirror_when_user,
        facing=settings.facing,
    )
    return ScannerApp(
        settings=settings,
        camera=camera,
        surface=surface,
        events=fanout,
        selector=selector,
        scheduler=scheduler,
        controller=controller,
        cmd_server=cmd_server,
        event_pub=event_pub,
    )
