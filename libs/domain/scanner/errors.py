from __future__ import annotations


class ScannerError(Exception):
    """Base for every error the scanner pipeline reports."""


class CameraError(ScannerError):
    """Camera could not be acquired (missing device, permission denied, ...)."""


class BackendError(ScannerError):
    """A detection backend failed and there is nothing left to fall back to."""


class EngineUnavailableError(BackendError):
    """Neither detection backend could be initialized."""


class PipelineError(ScannerError):
    """One frame failed to process; the loop keeps going."""

    def __init__(self, message: str, frame_no: int | None = None) -> None:
        super().__init__(message)
        self.frame_no = frame_no


class SurfaceUnavailableError(ScannerError):
    """The overlay surface is gone; scheduling cannot continue."""
