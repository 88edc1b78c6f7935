from __future__ import annotations

from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class CaptureSettings(BaseModel):
    adapter: Literal["opencv", "mss"] = "opencv"
    back_index: int = 0
    front_index: int = 1
    width: int | None = None
    height: int | None = None
    monitor: int = 1  # mss only
    target_fps: float | None = None


class RoiSettings(BaseModel):
    shape: Literal["square", "rect"] = "square"
    aspect: float = 1.0
    size_ratio: float = 0.6
    padding: int = 0
    radius: int = 12
    border_style: Literal["full", "corner"] = "corner"
    border_width: int = 2
    corner_length: int = 28
    corner_width: int = 4
    fill_opacity: float = 0.0


class OverlaySettings(BaseModel):
    show_mask: bool = True
    mask_color: tuple[int, int, int, float] = (0, 0, 0, 0.45)
    idle_color: tuple[int, int, int, float] = (255, 255, 255, 0.9)
    active_color: tuple[int, int, int, float] = (0, 200, 83, 1.0)
    outline_color: tuple[int, int, int, float] = (0, 200, 83, 1.0)
    outline_width: int = 3


class EngineSettings(BaseModel):
    force_fallback: bool = False
    native_timeout_ms: int = 0  # 0 = disabled
    native_max_zero_frames: int = 0  # 0 = disabled
    formats: list[str] = []  # preferred formats, empty = all


class ScannerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SCL_", extra="ignore")

    scanner_id: str = "scan1"

    capture: CaptureSettings = CaptureSettings()
    roi: RoiSettings = RoiSettings()
    overlay: OverlaySettings = OverlaySettings()
    engine: EngineSettings = EngineSettings()

    # frame loop
    frame_skip: int = 1
    refresh_hz: float = 30.0
    crop_to_roi: bool = False
    roi_only: bool = False
    stall_timeout_ms: int = 500
    smoothing_alpha: float = 0.35

    # playback
    facing: Literal["environment", "user"] = "environment"
    mirror_when_user: bool = True
    paused: bool = False
    release_on_pause: bool = False
    emit: bool = True
    scan_once: bool = False

    # choose transport impl
    ipc_impl: Literal["inproc", "zmq"] = "inproc"
    event_bind: str = "tcp://127.0.0.1:7789"
    cmd_bind: str = "tcp://127.0.0.1:7788"
