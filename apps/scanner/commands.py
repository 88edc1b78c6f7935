from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Final

from domain.scanner import PlaybackController
from shared.contracts.v1.commands import Cmd

LOG: Final = logging.getLogger("scanner.commands")

Route = Callable[[Cmd], Awaitable[Any] | None]


class ScannerCommandDispatcher:
    """Maps v1 commands onto the playback controller.

    Runs on the event loop thread: transitions are scheduled as tasks and
    the reply only acknowledges that the command was queued.
    """

    def __init__(self, controller: PlaybackController) -> None:
        self.controller = controller
        self._routes: dict[str, Route] = {}
        self._pending: set[asyncio.Task[Any]] = set()

        self.route("PAUSE")(lambda _c: controller.pause())
        self.route("RESUME")(lambda _c: controller.resume())
        self.route("RESTART")(lambda _c: controller.restart())
        self.route("SWITCH_CAMERA")(lambda _c: controller.switch_camera())
        self.route("TORCH")(lambda c: controller.set_torch(bool(c.on)))

    def route(self, cmd_type: str):
        def deco(fn: Route) -> Route:
            self._routes[cmd_type.upper()] = fn
            return fn

        return deco

    def handle(self, cmd: dict[str, Any]) -> dict[str, Any]:
        # ValidationError is a ValueError: the REP server answers "bad-command"
        cmd = dict(cmd or {})
        cmd["type"] = str(cmd.get("type", "")).upper()
        parsed = Cmd.model_validate(cmd)
        state = self.controller.snapshot()
        if parsed.type == "PING":
            return {
                "pong": True,
                "state": self.controller.state.value,
                "running": state.running,
                "using_back": state.using_back,
                "torch": state.torch,
            }
        fn = self._routes[parsed.type]
        result = fn(parsed)
        if result is not None:
            task = asyncio.ensure_future(result)
            self._pending.add(task)
            task.add_done_callback(self._done)
        return {"queued": parsed.type}

    def _done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            LOG.warning("Command failed: %r", task.exception())

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
