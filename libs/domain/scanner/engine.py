# libs/domain/scanner/engine.py
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Final

from ports.detection import DetectedCode, DetectorPort
from ports.events import EngineKind
from ports.time import ClockPort
from ports.vision import Frame

from .errors import BackendError, EngineUnavailableError
from .model import EngineState

LOG: Final = logging.getLogger("scanner.engine")


class DetectionEngineSelector:
    """Owns the native and fallback backends and decides which one runs.

    native -> fallback happens on timeout, on too many empty frames in a row,
    or when native raises. There is no way back short of `initialize()`.
    """

    def __init__(
        self,
        native: DetectorPort,
        fallback: DetectorPort,
        clock: ClockPort,
        *,
        force_fallback: bool = False,
        timeout_ms: int = 0,
        max_zero_frames: int = 0,
        on_change: Callable[[EngineKind], None] | None = None,
    ) -> None:
        self._backends: Final[dict[EngineKind, DetectorPort]] = {
            "native": native,
            "fallback": fallback,
        }
        self._clock: Final = clock
        self.force_fallback = force_fallback
        self.timeout_ms = max(0, int(timeout_ms))
        self.max_zero_frames = max(0, int(max_zero_frames))
        self._on_change = on_change
        self._state: EngineState | None = None
        # bumped on every dispose(); detections started under an older value are stale
        self._generation = 0

    # --- queries ----------------------------------------------------------------

    @property
    def state(self) -> EngineState | None:
        return self._state

    @property
    def kind(self) -> EngineKind | None:
        return self._state.kind if self._state else None

    # --- lifecycle --------------------------------------------------------------

    def initialize(self) -> EngineKind:
        """(Re)evaluate backend preference from scratch."""
        self.dispose()

        native = self._backends["native"]
        if self.force_fallback:
            LOG.info("Fallback engine forced by configuration.")
        elif not native.available():
            LOG.info("Native detector %s not available on this host.", native.name)
        else:
            try:
                native.initialize()
            except Exception as ex:
                LOG.warning("Native detector %s failed to initialize: %r", native.name, ex)
            else:
                return self._enter("native")

        fallback = self._backends["fallback"]
        try:
            fallback.initialize()
        except Exception as ex:
            raise EngineUnavailableError(
                f"no detection backend could be initialized ({fallback.name}: {ex!r})"
            ) from ex
        return self._enter("fallback")

    def dispose(self) -> None:
        self._generation += 1
        if self._state is None:
            return
        backend = self._backends[self._state.kind]
        self._state = None
        try:
            backend.dispose()
        except Exception as ex:
            LOG.warning("Disposing %s raised %r", backend.name, ex)

    # --- detection --------------------------------------------------------------

    async def detect(self, frame: Frame) -> list[DetectedCode]:
        """Decode one frame on the active backend.

        A detection that outlives a dispose() returns [] and leaves the
        (new) engine state untouched.
        """
        if self._state is None:
            raise BackendError("detection engine is not initialized")
        generation = self._generation

        if self._state.kind == "native":
            if self._timed_out():
                self._demote("timeout")
            else:
                try:
                    codes = await self._backends["native"].detect(frame)
                except Exception as ex:
                    if self._stale(generation):
                        LOG.debug("Ignoring native failure after dispose: %r", ex)
                        return []
                    LOG.warning("Native detector raised %r; switching to fallback.", ex)
                    self._demote("error")
                else:
                    if self._stale(generation):
                        return []
                    self._record(codes)
                    return codes

        fallback = self._backends["fallback"]
        try:
            codes = await fallback.detect(frame)
        except Exception as ex:
            if self._stale(generation):
                LOG.debug("Ignoring fallback failure after dispose: %r", ex)
                return []
            raise BackendError(f"{fallback.name} detection failed: {ex!r}") from ex
        return [] if self._stale(generation) else codes

    # --- transitions ------------------------------------------------------------

    def _timed_out(self) -> bool:
        if not self.timeout_ms or self._state is None:
            return False
        elapsed_ms = (self._clock.now() - self._state.active_since) * 1000.0
        return elapsed_ms >= self.timeout_ms

    def _stale(self, generation: int) -> bool:
        return generation != self._generation or self._state is None

    def _record(self, codes: list[DetectedCode]) -> None:
        if self._state is None:
            return
        if codes:
            self._state = replace(self._state, zero_streak=0)
            return
        self._state = replace(self._state, zero_streak=self._state.zero_streak + 1)
        if self.max_zero_frames and self._state.zero_streak >= self.max_zero_frames:
            self._demote("zero-streak")

    def _demote(self, reason: str) -> None:
        LOG.info("Native detector demoted (%s).", reason)
        native, fallback = self._backends["native"], self._backends["fallback"]
        self._state = None
        try:
            native.dispose()
        except Exception as ex:
            LOG.warning("Disposing %s raised %r", native.name, ex)
        try:
            fallback.initialize()
        except Exception as ex:
            raise BackendError(f"fallback detector {fallback.name} failed to start") from ex
        self._enter("fallback")

    def _enter(self, kind: EngineKind) -> EngineKind:
        self._state = EngineState(kind=kind, zero_streak=0, active_since=self._clock.now())
        LOG.info("Detection engine: %s (%s)", kind, self._backends[kind].name)
        if self._on_change is not None:
            self._on_change(kind)
        return kind
