from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from shared.config.loader import load_monitor_settings, load_scanner_settings


def _write_profile(dirpath: Path, name: str, text: str) -> Path:
    dirpath.mkdir(parents=True, exist_ok=True)
    p = dirpath / f"{name}.toml"
    p.write_text(text, encoding="utf-8")
    return p


def _empty_env(tmp_path: Path) -> dict[str, str]:
    # point at an empty profiles dir so the repo's own profiles don't leak in
    empty = tmp_path / "none"
    empty.mkdir()
    return {"SCL_CONFIG_DIR": str(empty)}


def test_scanner_defaults_when_no_profile_and_no_env(tmp_path: Path):
    s = load_scanner_settings(env=_empty_env(tmp_path), profile="dev")
    assert s.scanner_id == "scan1"
    assert s.frame_skip == 1
    assert s.ipc_impl == "inproc"
    assert s.roi.shape == "square"
    assert s.engine.native_timeout_ms == 0
    assert s.capture.adapter == "opencv"


def test_scanner_toml_overlay_keeps_nested_defaults(tmp_path: Path):
    profiles = tmp_path / "profiles"
    _write_profile(
        profiles,
        "dev",
        """
        [scanner]
        scanner_id = "dock2"
        frame_skip = 3
        crop_to_roi = true

        [scanner.roi]
        shape = "rect"
        aspect = 2.5

        [scanner.engine]
        native_max_zero_frames = 30
        """,
    )

    env = {"SCL_CONFIG_DIR": str(profiles), "SCL_PROFILE": "dev"}
    s = load_scanner_settings(env=env)
    assert s.scanner_id == "dock2"
    assert s.frame_skip == 3
    assert s.crop_to_roi is True
    assert s.roi.shape == "rect"
    assert s.roi.aspect == 2.5
    assert s.roi.size_ratio == 0.6  # untouched default
    assert s.engine.native_max_zero_frames == 30
    assert s.engine.force_fallback is False


def test_scanner_env_overrides_toml(tmp_path: Path):
    profiles = tmp_path / "profiles"
    _write_profile(
        profiles,
        "dev",
        """
        [scanner]
        scanner_id = "from_toml"
        frame_skip = 2
        [scanner.roi]
        padding = 4
        """,
    )

    env = {
        "SCL_CONFIG_DIR": str(profiles),
        "SCL_PROFILE": "dev",
        "SCL_SCANNER_ID": "from_env",
        "SCL_FRAME_SKIP": "5",
        "SCL_ROI": '{"radius": 0}',
        "SCL_scan_once": "true",
    }
    s = load_scanner_settings(env=env)
    assert s.scanner_id == "from_env"
    assert s.frame_skip == 5
    assert s.roi.radius == 0
    assert s.roi.padding == 4  # nested env value merges into the TOML table
    assert s.scan_once is True


def test_monitor_toml_overlay_and_env_json(tmp_path: Path):
    profiles = tmp_path / "profiles"
    _write_profile(
        profiles,
        "dev",
        """
        [monitor]
        refresh_hz = 2.0
        ipc_impl = "zmq"
        scanners_cmd = { scan1 = "tcp://127.0.0.1:7788" }
        event_subs = ["tcp://127.0.0.1:7789"]
        """,
    )

    env: dict[str, Any] = {
        "SCL_CONFIG_DIR": str(profiles),
        "SCL_PROFILE": "dev",
        "SCL_event_subs": '["tcp://127.0.0.1:9910","tcp://127.0.0.1:9911"]',
        "SCL_REFRESH_HZ": "3",
    }

    s = load_monitor_settings(env=env)
    assert s.refresh_hz == 3
    assert s.ipc_impl == "zmq"
    assert s.scanners_cmd == {"scan1": "tcp://127.0.0.1:7788"}
    assert s.event_subs == ["tcp://127.0.0.1:9910", "tcp://127.0.0.1:9911"]


def test_profile_argument_beats_env_profile(tmp_path: Path):
    profiles = tmp_path / "custom_profiles"
    _write_profile(profiles, "bench", '[scanner]\nscanner_id = "bench"\n')
    _write_profile(profiles, "dev", '[scanner]\nscanner_id = "dev"\n')

    env = {"SCL_CONFIG_DIR": str(profiles), "SCL_PROFILE": "dev"}
    assert load_scanner_settings(env=env).scanner_id == "dev"
    assert load_scanner_settings(env=env, profile="bench").scanner_id == "bench"


def test_shipped_dev_profile_loads():
    s = load_scanner_settings(env={}, profile="dev")
    assert s.frame_skip >= 1
    m = load_monitor_settings(env={}, profile="dev")
    assert "scan1" in m.scanners_cmd


def test_bad_toml_raises_runtime_error(tmp_path: Path):
    profiles = tmp_path / "profiles"
    _write_profile(profiles, "dev", "[scanner]\nthis = not_valid\n")

    env = {"SCL_CONFIG_DIR": str(profiles), "SCL_PROFILE": "dev"}
    with pytest.raises(RuntimeError):
        load_scanner_settings(env=env)


def test_wrong_type_is_a_validation_error(tmp_path: Path):
    from pydantic import ValidationError

    env = {**_empty_env(tmp_path), "SCL_FRAME_SKIP": "lots"}
    with pytest.raises(ValidationError):
        load_scanner_settings(env=env)
