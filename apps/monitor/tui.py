from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, cast

from rich.text import Text
from shared.config.loader import load_monitor_settings
from textual.app import App, ComposeResult
from textual.reactive import reactive
from textual.widgets import DataTable, Footer, Header, Static

from apps.monitor.compose import build_ipc
from apps.monitor.settings import MonitorSettings


def _utc_now_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


@dataclass
class ScannerRow:
    name: str
    cmd_ep: str
    last_seen: str = "-"
    engine: str = "-"
    last_code: str = "-"
    detections: int = 0
    errors: int = 0
    state: str = "-"
    torch: bool = False
    last_seen_ts: datetime | None = None


def apply_event(rows: dict[str, ScannerRow], msg: dict[str, Any]) -> ScannerRow | None:
    """Fold one {"topic", "data"} event into the matching row. Unknown scanners are ignored."""
    data = msg.get("data") or {}
    row = rows.get(str(data.get("scanner_id")))
    if row is None:
        return None

    row.last_seen = _utc_now_iso()
    row.last_seen_ts = datetime.now(UTC)
    topic = msg.get("topic")
    if topic == "detect":
        codes = data.get("codes") or []
        row.detections += 1
        if codes:
            row.last_code = str(codes[0].get("raw_value", "-"))
        if row.state in {"-", "FAILED"}:
            row.state = "RUNNING"
    elif topic == "engine":
        row.engine = str(data.get("engine") or "-")
    elif topic == "error":
        row.errors += 1
        if data.get("fatal"):
            row.state = "FAILED"
    return row


class ScannerMonitorTUI(App):
    CSS_PATH = None
    BINDINGS = [
        ("q", "quit", "Quit"),
        ("p", "pause", "Pause"),
        ("r", "resume", "Resume"),
        ("R", "restart", "Restart"),
        ("c", "switch_camera", "Camera"),
        ("t", "torch", "Torch"),
        ("g", "ping", "Ping"),
        ("?", "help", "Help"),
    ]

    rows: reactive[dict[str, ScannerRow]] = reactive(dict)

    def __init__(self, settings: MonitorSettings | None = None) -> None:
        super().__init__()
        self.settings = settings or load_monitor_settings()
        self.cmd_port, self.sub_port = build_ipc(self.settings)
        self._sub_thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._table: DataTable | None = None
        self._status: Static | None = None
        self._last_msg_ts: datetime | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        names = ", ".join(self.settings.scanners_cmd.keys())
        yield Static(f"[b]ipc_impl[/b]= {self.settings.ipc_impl} • scanners: {names}")
        table = DataTable(zebra_stripes=True)
        table.add_columns(
            "Scanner", "Last Seen (UTC)", "State", "Engine", "Last Code", "Detections", "Errors"
        )
        self._table = table
        self._status = Static("")
        yield table
        yield self._status
        yield Footer()

    def on_mount(self) -> None:
        self.rows = {
            name: ScannerRow(name=name, cmd_ep=ep)
            for name, ep in self.settings.scanners_cmd.items()
        }
        self._refresh_table()

        self._stop.clear()
        self._sub_thread = threading.Thread(target=self._event_loop, daemon=True)
        self._sub_thread.start()

    def on_unmount(self) -> None:
        self._stop.set()
        if self._sub_thread and self._sub_thread.is_alive():
            self._sub_thread.join(timeout=1.0)

    # ----- Actions (key bindings) -----

    def action_quit(self) -> None:
        self.exit()

    def action_ping(self) -> None:
        self._send_command({"type": "PING"})

    def action_pause(self) -> None:
        self._send_command({"type": "PAUSE"})

    def action_resume(self) -> None:
        self._send_command({"type": "RESUME"})

    def action_restart(self) -> None:
        self._send_command({"type": "RESTART"})

    def action_switch_camera(self) -> None:
        self._send_command({"type": "SWITCH_CAMERA"})

    def action_torch(self) -> None:
        row = self._selected_scanner()
        if row is None:
            self.notify("No scanner selected", severity="warning")
            return
        if self._send_command({"type": "TORCH", "on": not row.torch}):
            row.torch = not row.torch

    def action_help(self) -> None:
        self.notify(
            "Keys: q quit • g ping • p pause • r resume • R restart • c camera • t torch\n"
            "Rows turn red on a fatal error; DOWN until the first event arrives.",
            severity="information",
        )

    def _selected_scanner(self) -> ScannerRow | None:
        if not self._table or not self.rows:
            return None
        keys = sorted(self.rows)
        idx = self._table.cursor_row
        if 0 <= idx < len(keys):
            return cast(ScannerRow, self.rows[keys[idx]])
        return None

    def _send_command(self, cmd: dict[str, Any]) -> bool:
        row = self._selected_scanner()
        if not row:
            self.notify("No scanner selected", severity="warning")
            return False
        ctype = cmd["type"]
        try:
            t0 = time.perf_counter()
            resp = self.cmd_port.send(row.cmd_ep, cmd)
            dt_ms = int((time.perf_counter() - t0) * 1000)
        except Exception as ex:
            self.notify(f"{ctype} failed: {ex!r}", severity="error")
            return False
        ok = bool(resp.get("ok"))
        if ok and ctype == "PING":
            row.state = str((resp.get("data") or {}).get("state", row.state)).upper()
            self._refresh_table()
        err_code = (resp.get("error") or {}).get("code", "timeout" if not ok else "")
        self.notify(
            f"{ctype} → {row.name}: {'✓ ' + str(dt_ms) + 'ms' if ok else '✕ ' + err_code}",
            severity=("information" if ok else "error"),
        )
        return ok

    # ----- Event loop -----

    def _event_loop(self) -> None:
        while not self._stop.is_set():
            try:
                msg = self.sub_port.recv(timeout_ms=250)
            except Exception:
                msg = None
            if not msg:
                continue
            if apply_event(self.rows, msg) is None:
                continue
            self._last_msg_ts = datetime.now(UTC)
            self.call_from_thread(self._refresh_table)

    # ----- Table rendering -----

    def _refresh_table(self) -> None:
        if not self._table:
            return
        self._table.clear()
        for name in sorted(self.rows):
            row = self.rows[name]
            if row.last_seen_ts is None and row.state == "-":
                state_cell = Text("DOWN", style="red")
            elif row.state == "FAILED":
                state_cell = Text("FAILED", style="bold red")
            else:
                state_cell = Text(row.state, style="green" if row.state == "RUNNING" else "")
            self._table.add_row(
                row.name,
                row.last_seen,
                state_cell,
                row.engine,
                row.last_code,
                str(row.detections),
                Text(str(row.errors), style="yellow" if row.errors else ""),
            )
        if self._status:
            self._status.update(self._status_text())

    def _status_text(self) -> str:
        seen = sum(1 for r in self.rows.values() if r.last_seen_ts)
        last_ts = self._last_msg_ts.isoformat(timespec="seconds") if self._last_msg_ts else "—"
        return f"Scanners: {seen}/{len(self.rows)} • Last event: {last_ts} • Q quit  ? help"
