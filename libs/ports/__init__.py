from .detection import DetectedCode, DetectorPort
from .drawing import Color, Path, SurfacePort
from .events import EngineKind, ScanEventsPort
from .ipc import CommandServerPort, EventPubPort, EventSubPort, ScannerCommandPort
from .time import ClockPort
from .vision import CameraPort, Facing, Frame, FrameSourcePort, Point, Rect

__all__ = [
    "CameraPort",
    "Facing",
    "Frame",
    "FrameSourcePort",
    "Point",
    "Rect",
    "DetectedCode",
    "DetectorPort",
    "Color",
    "Path",
    "SurfacePort",
    "EngineKind",
    "ScanEventsPort",
    "ScannerCommandPort",
    "EventPubPort",
    "EventSubPort",
    "CommandServerPort",
    "ClockPort",
]
