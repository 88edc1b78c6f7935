from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Final, Literal

from domain.scanner.errors import (
    BackendError,
    CameraError,
    SurfaceUnavailableError,
)
from ports.detection import DetectedCode
from ports.events import EngineKind, ScanEventsPort
from ports.ipc import EventPubPort
from ports.time import ClockPort
from shared.contracts.v1.events import CodeModel, DetectEvent, EngineEvent, ErrorEvent

LOG: Final = logging.getLogger("adapters.events")

ErrorKind = Literal["device", "backend", "pipeline", "surface", "internal"]


def error_kind(error: BaseException) -> ErrorKind:
    if isinstance(error, CameraError):
        return "device"
    if isinstance(error, BackendError):
        return "backend"
    if isinstance(error, SurfaceUnavailableError):
        return "surface"
    if isinstance(error, Exception):
        return "pipeline"
    return "internal"


def code_model(code: DetectedCode) -> CodeModel:
    return CodeModel(
        raw_value=code.raw_value,
        format=code.format,
        corners=[(p.x, p.y) for p in code.corners] if code.corners else None,
    )


class PublishingEventsPort(ScanEventsPort):
    """Turns scanner notifications into v1 wire events on an EventPubPort."""

    def __init__(self, pub: EventPubPort, scanner_id: str, clock: ClockPort) -> None:
        self._pub: Final = pub
        self._clock: Final = clock
        self.scanner_id = scanner_id

    def on_detect(self, codes: Sequence[DetectedCode]) -> None:
        evt = DetectEvent(
            scanner_id=self.scanner_id,
            ts=self._clock.now(),
            codes=[code_model(c) for c in codes],
        )
        self._publish("detect", evt.model_dump(mode="json"))

    def on_error(self, error: BaseException, fatal: bool = False) -> None:
        evt = ErrorEvent(
            scanner_id=self.scanner_id,
            ts=self._clock.now(),
            kind=error_kind(error),
            message=str(error) or type(error).__name__,
            fatal=fatal,
        )
        self._publish("error", evt.model_dump(mode="json"))

    def on_engine(self, kind: EngineKind) -> None:
        evt = EngineEvent(scanner_id=self.scanner_id, ts=self._clock.now(), engine=kind)
        self._publish("engine", evt.model_dump(mode="json"))

    def _publish(self, topic: str, payload: dict) -> None:
        # a dead transport must not take the frame loop down with it
        try:
            self._pub.publish(topic, payload)
        except Exception as ex:
            LOG.warning("Publishing %s event failed: %r", topic, ex)


class FanoutEventsPort(ScanEventsPort):
    def __init__(self, sinks: Iterable[ScanEventsPort]) -> None:
        self.sinks = list(sinks)

    def on_detect(self, codes: Sequence[DetectedCode]) -> None:
        for s in self.sinks:
            s.on_detect(codes)

    def on_error(self, error: BaseException, fatal: bool = False) -> None:
        for s in self.sinks:
            s.on_error(error, fatal)

    def on_engine(self, kind: EngineKind) -> None:
        for s in self.sinks:
            s.on_engine(kind)
