from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Literal

from ports.drawing import Color
from ports.events import EngineKind

RoiShape = Literal["square", "rect"]
BorderStyle = Literal["full", "corner"]


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class ROIConfig:
    shape: RoiShape = "square"
    aspect: float = 1.0  # width / height, rect only
    size_ratio: float = 0.6  # of the frame's shorter side
    padding: int = 0
    radius: int = 12
    border_style: BorderStyle = "corner"
    border_width: int = 2
    corner_length: int = 28
    corner_width: int = 4
    fill_opacity: float = 0.0

    def clamped(self) -> ROIConfig:
        """Same config with every numeric field forced into its valid range."""
        return ROIConfig(
            shape=self.shape if self.shape in ("square", "rect") else "square",
            aspect=max(0.01, float(self.aspect)),
            size_ratio=_clamp(float(self.size_ratio), 0.0, 1.0),
            padding=max(0, int(self.padding)),
            radius=max(0, int(self.radius)),
            border_style=self.border_style if self.border_style in ("full", "corner") else "full",
            border_width=max(0, int(self.border_width)),
            corner_length=max(0, int(self.corner_length)),
            corner_width=max(0, int(self.corner_width)),
            fill_opacity=_clamp(float(self.fill_opacity), 0.0, 1.0),
        )


@dataclass(frozen=True)
class OverlayStyle:
    show_mask: bool = True
    mask_color: Color = (0, 0, 0, 0.45)
    idle_color: Color = (255, 255, 255, 0.9)
    active_color: Color = (0, 200, 83, 1.0)
    outline_color: Color = (0, 200, 83, 1.0)
    outline_width: int = 3


@dataclass(frozen=True)
class EngineState:
    kind: EngineKind
    zero_streak: int = 0
    active_since: float = 0.0


class PlaybackState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED_RETAINED = "paused_retained"
    PAUSED_RELEASED = "paused_released"
    STOPPED_AFTER_DETECTION = "stopped_after_detection"

    @property
    def is_paused(self) -> bool:
        return self in (PlaybackState.PAUSED_RETAINED, PlaybackState.PAUSED_RELEASED)
