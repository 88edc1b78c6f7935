from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class MonitorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SCL_", extra="ignore")

    refresh_hz: float = 5.0

    # choose transport impl
    ipc_impl: Literal["inproc", "zmq"] = "inproc"

    scanners_cmd: dict[str, str] = {}  # scanner id -> REQ endpoint
    event_subs: list[str] = []  # list of SUB endpoints
