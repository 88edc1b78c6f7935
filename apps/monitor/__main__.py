from __future__ import annotations

import argparse
import time

from shared.config.loader import load_monitor_settings

from apps.monitor.compose import build_ipc

VERBS = {
    "ping": "PING",
    "pause": "PAUSE",
    "resume": "RESUME",
    "restart": "RESTART",
    "switch_camera": "SWITCH_CAMERA",
}


def main() -> int:
    ap = argparse.ArgumentParser(prog="scanline-monitor")
    ap.add_argument("--watch", action="store_true", help="Print scanner events until Ctrl+C.")
    ap.add_argument("--quiet", action="store_true", help="Reduce console output.")
    ap.add_argument(
        "--connect-wait-ms", type=int, default=100, help="PUB/SUB settle time before first recv."
    )
    ap.add_argument(
        "--topics", default="", help="Comma-separated topic filters (detect,error,engine)."
    )
    for flag in VERBS:
        ap.add_argument(
            f"--{flag.replace('_', '-')}",
            metavar="SCANNER",
            help=f"Send {VERBS[flag]} to a scanner and exit.",
        )
    ap.add_argument("--torch", nargs=2, metavar=("SCANNER", "on|off"), help="Toggle the torch.")
    ap.add_argument("--profile", help="Config profile (configs/profiles/<name>.toml).")
    ap.add_argument("--tui", action="store_true", help="Run the Textual TUI.")
    args = ap.parse_args()
    topics = {t.strip() for t in args.topics.split(",") if t.strip()}

    settings = load_monitor_settings(profile=args.profile)

    if args.tui:
        from apps.monitor.tui import ScannerMonitorTUI

        ScannerMonitorTUI(settings).run()
        return 0

    cmd_port, event_sub = build_ipc(settings)
    if not args.quiet:
        print(
            f"[monitor] ipc_impl={settings.ipc_impl} "
            f"scanners_cmd={settings.scanners_cmd} event_subs={settings.event_subs}"
        )

    time.sleep(max(args.connect_wait_ms, 0) / 1000.0)

    def _one_shot(cmd: dict, scanner: str) -> int:
        ep = settings.scanners_cmd.get(scanner)
        if not ep:
            known = sorted(settings.scanners_cmd.keys())
            print(f"[monitor] unknown scanner '{scanner}'. Known: {known}")
            return 2
        resp = cmd_port.send(ep, cmd)
        print(f"[monitor] {cmd['type']}->{scanner} @ {ep} :: {resp}")
        return 0 if resp.get("ok") else 1

    for flag, verb in VERBS.items():
        scanner = getattr(args, flag)
        if scanner:
            rc = _one_shot({"type": verb}, scanner)
            if rc or not args.watch:
                return rc
    if args.torch:
        scanner, value = args.torch
        return _one_shot({"type": "TORCH", "on": value.lower() in {"on", "1", "true"}}, scanner)

    if args.watch:
        try:
            while True:
                msg = event_sub.recv(timeout_ms=250)
                if not msg:
                    continue
                if topics and msg.get("topic") not in topics:
                    continue
                if not args.quiet:
                    print(f"[monitor] {msg.get('topic')} <- {msg.get('data')}")
        except KeyboardInterrupt:
            if not args.quiet:
                print("\n[monitor] exiting.")
            return 0

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
