from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from apps.monitor.settings import MonitorSettings
from apps.scanner.settings import ScannerSettings

# --- paths --------------------------------------------------------------------


def _repo_root() -> Path:
    """Heuristic: walk up from this file until we find pyproject.toml."""
    p = Path(__file__).resolve()
    for ancestor in [p, *p.parents]:
        if (ancestor / "pyproject.toml").exists():
            return ancestor
    return Path.cwd()


def _profiles_dir(env: Mapping[str, str]) -> Path:
    # Allow override (useful for tests): SCL_CONFIG_DIR points *at* profiles/
    override = env.get("SCL_CONFIG_DIR")
    if override:
        return Path(override)
    return _repo_root() / "configs" / "profiles"


def _load_profile_table(env: Mapping[str, str], profile: str) -> dict[str, Any]:
    f = _profiles_dir(env) / f"{profile}.toml"
    if not f.exists():
        return {}
    text = f.read_text("utf-8")
    try:
        return tomllib.loads(text)
    except Exception as e:
        raise RuntimeError(f"Failed to parse profile TOML: {f}") from e


# --- env overlay helpers ------------------------------------------------------


def _coerce_env_value(raw: str) -> Any:
    """
    Try to parse JSON first (so lists/dicts/numbers/bools work),
    then fall back to the original string.
    """
    try:
        return json.loads(raw)
    except Exception:
        return raw


def _collect_env_for(
    fields: set[str], env: Mapping[str, str], prefix: str = "SCL_"
) -> dict[str, Any]:
    """
    Collect overrides like SCL_SCANNER_ID, SCL_FRAME_SKIP -> {"scanner_id": "...", ...}.
    Case-insensitive; underscores only.
    """
    out: dict[str, Any] = {}
    upper_to_field = {f.upper(): f for f in fields}
    plen = len(prefix)
    for k, v in env.items():
        if not k.startswith(prefix):
            continue
        key = k[plen:].upper()
        if key in upper_to_field:
            out[upper_to_field[key]] = _coerce_env_value(v)
    return out


# --- merge -------------------------------------------------------------------


def _merge(base: dict[str, Any], over: Mapping[str, Any]) -> dict[str, Any]:
    """Recursive dict update so a partial [scanner.roi] table keeps the other defaults."""
    for k, v in over.items():
        if isinstance(v, Mapping) and isinstance(base.get(k), dict):
            base[k] = _merge(dict(base[k]), v)
        else:
            base[k] = v
    return base


def _load(
    model: type[ScannerSettings] | type[MonitorSettings],
    table: str,
    env: Mapping[str, str] | None,
    profile: str | None,
) -> dict[str, Any]:
    env = os.environ if env is None else env
    profile = (profile or env.get("SCL_PROFILE") or "dev").strip()

    # start from defaults exposed by the model
    base = model().model_dump()

    # TOML overlay
    toml_table = _load_profile_table(env, profile)
    section = toml_table.get(table, {}) if isinstance(toml_table, dict) else {}
    if isinstance(section, dict):
        _merge(base, section)

    # env overlay
    _merge(base, _collect_env_for(set(base.keys()), env))
    return base


# --- public API ---------------------------------------------------------------


def load_scanner_settings(
    env: Mapping[str, str] | None = None, profile: str | None = None
) -> ScannerSettings:
    """
    Merge defaults (ScannerSettings) <- TOML [scanner] <- env SCL_*.
    Env examples: SCL_SCANNER_ID=dock2, SCL_FRAME_SKIP=3, SCL_ROI={"shape":"rect"}
    """
    return ScannerSettings.model_validate(_load(ScannerSettings, "scanner", env, profile))


def load_monitor_settings(
    env: Mapping[str, str] | None = None, profile: str | None = None
) -> MonitorSettings:
    """
    Merge defaults (MonitorSettings) <- TOML [monitor] <- env SCL_*.
    Env examples: SCL_REFRESH_HZ=5, SCL_SCANNERS_CMD={"scan1":"tcp://..."},
    SCL_EVENT_SUBS=["tcp://...","tcp://..."]
    """
    return MonitorSettings.model_validate(_load(MonitorSettings, "monitor", env, profile))
