from __future__ import annotations

import argparse
import asyncio
import logging

from shared.config.loader import load_scanner_settings

from apps.scanner.compose import ScannerApp, build_camera, build_scanner
from apps.scanner.settings import ScannerSettings


async def _serve(app: ScannerApp, stop: asyncio.Event, tick_s: float) -> None:
    while not stop.is_set():
        try:
            app.poll_commands_once()
        except Exception as ex:
            logging.getLogger("scanner").warning("command handler error: %r", ex)
        await asyncio.sleep(tick_s)


async def _run(settings: ScannerSettings, args: argparse.Namespace) -> int:
    tap = None
    camera = build_camera(settings)
    if args.preview:
        from apps.scanner.preview import TapCamera

        tap = TapCamera(camera)
        camera = tap

    app = build_scanner(settings, camera=camera, console=not args.quiet)
    stop = asyncio.Event()
    try:
        await app.start()
    except Exception as ex:
        print(f"[scanner] failed to start: {ex}")
        await app.close()
        return 1

    if not args.quiet:
        print(
            f"[scanner] id={settings.scanner_id} ipc_impl={settings.ipc_impl} "
            f"events={settings.event_bind} cmd={settings.cmd_bind} "
            f"engine={app.selector.kind}"
        )

    tasks = [asyncio.create_task(_serve(app, stop, max(args.tick_ms, 1) / 1000.0))]
    if tap is not None:
        from apps.scanner.preview import preview_loop

        tasks.append(asyncio.create_task(preview_loop(app, tap, stop)))
    try:
        await stop.wait()
    finally:
        stop.set()
        await asyncio.gather(*tasks, return_exceptions=True)
        await app.close()
    return 0


def main() -> int:
    ap = argparse.ArgumentParser(prog="scanline-scanner")
    ap.add_argument("--profile", help="Config profile (configs/profiles/<name>.toml).")
    ap.add_argument("--preview", action="store_true", help="Show frames and overlay in a window.")
    ap.add_argument("--scan-once", action="store_true", help="Stop after the first detection.")
    ap.add_argument("--force-fallback", action="store_true", help="Skip the native detector.")
    ap.add_argument("--frame-skip", type=int, help="Process one frame in every N.")
    ap.add_argument("--tick-ms", type=int, default=20, help="Command poll interval.")
    ap.add_argument("--log-level", default="WARNING", help="Python logging level.")
    ap.add_argument("--quiet", action="store_true", help="Reduce console output.")
    args = ap.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_scanner_settings(profile=args.profile)
    overrides: dict = {}
    if args.scan_once:
        overrides["scan_once"] = True
    if args.frame_skip is not None:
        overrides["frame_skip"] = args.frame_skip
    if args.force_fallback:
        overrides["engine"] = settings.engine.model_copy(update={"force_fallback": True})
    if overrides:
        settings = settings.model_copy(update=overrides)

    try:
        return asyncio.run(_run(settings, args))
    except KeyboardInterrupt:
        if not args.quiet:
            print("\n[scanner] shutting down...")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
