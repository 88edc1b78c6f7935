from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

CommandType = Literal["PING", "PAUSE", "RESUME", "RESTART", "SWITCH_CAMERA", "TORCH"]


class Cmd(BaseModel):
    api: Literal["v1"] = "v1"
    type: CommandType
    on: bool | None = None  # TORCH only
