from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ScannerState:
    running: bool
    using_back: bool
    torch: bool
