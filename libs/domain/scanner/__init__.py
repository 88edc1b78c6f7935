from .engine import DetectionEngineSelector
from .errors import (
    BackendError,
    CameraError,
    EngineUnavailableError,
    PipelineError,
    ScannerError,
    SurfaceUnavailableError,
)
from .geometry import compute_roi, corner_bracket_paths, render_overlay, rounded_rect_path
from .model import EngineState, OverlayStyle, PlaybackState, ROIConfig
from .playback import PlaybackController
from .scheduler import FrameScheduler, SchedulerOptions
from .smoothing import PolygonSmoother, centroid, smooth

__all__ = [
    "DetectionEngineSelector",
    "FrameScheduler",
    "SchedulerOptions",
    "PlaybackController",
    "PlaybackState",
    "EngineState",
    "ROIConfig",
    "OverlayStyle",
    "compute_roi",
    "render_overlay",
    "rounded_rect_path",
    "corner_bracket_paths",
    "smooth",
    "centroid",
    "PolygonSmoother",
    "ScannerError",
    "CameraError",
    "BackendError",
    "EngineUnavailableError",
    "PipelineError",
    "SurfaceUnavailableError",
]
