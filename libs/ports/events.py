from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Literal

from .detection import DetectedCode

# Keep this in ports so it's shared (no domain dependency)
EngineKind = Literal["native", "fallback"]


class ScanEventsPort(ABC):
    """Outbound notifications from one scanner session."""

    @abstractmethod
    def on_detect(self, codes: Sequence[DetectedCode]) -> None: ...

    @abstractmethod
    def on_error(self, error: BaseException, fatal: bool = False) -> None: ...

    @abstractmethod
    def on_engine(self, kind: EngineKind) -> None: ...
