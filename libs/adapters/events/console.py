from __future__ import annotations

from collections.abc import Sequence

from ports.detection import DetectedCode
from ports.events import EngineKind, ScanEventsPort
from rich.console import Console
from rich.text import Text


class ConsoleEventsPort(ScanEventsPort):
    """Prints scanner events to the terminal."""

    def __init__(self, console: Console | None = None, scanner_id: str = "scanner") -> None:
        self.console = console or Console(stderr=True)
        self.scanner_id = scanner_id

    def on_detect(self, codes: Sequence[DetectedCode]) -> None:
        for code in codes:
            line = Text(f"[{self.scanner_id}] ")
            line.append(code.format or "?", style="cyan")
            line.append("  ")
            line.append(code.raw_value, style="bold green")
            self.console.print(line)

    def on_error(self, error: BaseException, fatal: bool = False) -> None:
        style = "bold red" if fatal else "yellow"
        label = "FATAL" if fatal else "error"
        self.console.print(Text(f"[{self.scanner_id}] {label}: {error}", style=style))

    def on_engine(self, kind: EngineKind) -> None:
        self.console.print(Text(f"[{self.scanner_id}] engine -> {kind}", style="magenta"))
