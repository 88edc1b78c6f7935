from __future__ import annotations

import asyncio

import pytest
from adapters.capture import FakeCamera
from adapters.detectors import ScriptedDetector
from adapters.drawing import RecordingSurface
from adapters.time import FakeClockPort
from domain.scanner import PlaybackState
from pydantic import ValidationError

from apps.scanner.compose import build_scanner
from apps.scanner.settings import ScannerSettings


def _app(camera=None):
    return build_scanner(
        ScannerSettings(ipc_impl="inproc"),
        camera=camera or FakeCamera(),
        native=ScriptedDetector("native"),
        fallback=ScriptedDetector("fallback"),
        surface=RecordingSurface(),
        clock=FakeClockPort(),
    )


def test_ping_reports_state():
    app = _app()

    async def go() -> dict:
        await app.start()
        try:
            return app.dispatcher.handle({"type": "ping"})
        finally:
            await app.close()

    resp = asyncio.run(go())
    assert resp == {
        "pong": True,
        "state": "running",
        "running": True,
        "using_back": True,
        "torch": False,
    }


def test_commands_are_queued_onto_the_controller():
    app = _app(camera=FakeCamera(torch=True))

    async def go() -> None:
        await app.start()
        assert app.dispatcher.handle({"type": "PAUSE"}) == {"queued": "PAUSE"}
        await app.dispatcher.drain()
        assert app.controller.state is PlaybackState.PAUSED_RETAINED

        app.dispatcher.handle({"type": "RESUME"})
        await app.dispatcher.drain()
        assert app.controller.state is PlaybackState.RUNNING

        app.dispatcher.handle({"type": "TORCH", "on": True})
        await app.dispatcher.drain()
        assert app.controller.snapshot().torch

        app.dispatcher.handle({"type": "SWITCH_CAMERA"})
        await app.dispatcher.drain()
        assert app.controller.facing == "user"
        await app.close()

    asyncio.run(go())


def test_unknown_command_is_a_value_error():
    app = _app()
    with pytest.raises(ValidationError):
        app.dispatcher.handle({"type": "SELF_DESTRUCT"})
    with pytest.raises(ValueError):
        app.dispatcher.handle({})
