from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class CodeModel(BaseModel):
    raw_value: str
    format: str | None = None
    corners: list[tuple[float, float]] | None = None


class DetectEvent(BaseModel):
    api: Literal["v1"] = "v1"
    scanner_id: str
    ts: float
    codes: list[CodeModel] = Field(min_length=1)


class ErrorEvent(BaseModel):
    api: Literal["v1"] = "v1"
    scanner_id: str
    ts: float
    kind: Literal["device", "backend", "pipeline", "surface", "internal"]
    message: str
    fatal: bool = False


class EngineEvent(BaseModel):
    api: Literal["v1"] = "v1"
    scanner_id: str
    ts: float
    engine: Literal["native", "fallback"]
