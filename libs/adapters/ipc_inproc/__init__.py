from .inproc import (
    InprocCommandServerPort,
    InprocEventBus,
    InprocEventPubPort,
    InprocEventSubPort,
    InprocScannerCommandPort,
)

__all__ = [
    "InprocScannerCommandPort",
    "InprocEventBus",
    "InprocEventPubPort",
    "InprocEventSubPort",
    "InprocCommandServerPort",
]
