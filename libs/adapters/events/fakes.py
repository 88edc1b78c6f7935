from __future__ import annotations

from collections.abc import Sequence

from ports.detection import DetectedCode
from ports.events import EngineKind, ScanEventsPort


class RecordingEventsPort(ScanEventsPort):
    def __init__(self) -> None:
        self.detections: list[list[DetectedCode]] = []
        self.errors: list[tuple[BaseException, bool]] = []
        self.engines: list[EngineKind] = []

    def on_detect(self, codes: Sequence[DetectedCode]) -> None:
        self.detections.append(list(codes))

    def on_error(self, error: BaseException, fatal: bool = False) -> None:
        self.errors.append((error, fatal))

    def on_engine(self, kind: EngineKind) -> None:
        self.engines.append(kind)

    @property
    def fatal_errors(self) -> list[BaseException]:
        return [e for e, fatal in self.errors if fatal]
