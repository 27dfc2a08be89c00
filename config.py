#!/usr/bin/env python3
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Iterable


def parse_env_lines(lines: Iterable[str]) -> Dict[str, str]:
    """Parse bash-style KEY=VALUE lines; `export` prefix and quotes allowed."""
    out: Dict[str, str] = {}
    for line in lines:
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        if s.lower().startswith("export "):
            s = s[7:].strip()
        if "=" not in s:
            continue
        k, v = s.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            continue
        if (len(v) >= 2) and ((v[0] == v[-1]) and v[0] in ('"', "'")):
            v = v[1:-1]
        out[k] = v
    return out


def _maybe_load_env_file(path: str) -> None:
    """Best-effort loader for bash-style KEY=VALUE files (e.g. ~/.boatdash).

    Variables already present in the environment win over the file, so an
    explicit `export` always overrides what is written there.
    """
    p = os.path.expanduser(path)
    if not os.path.isfile(p):
        return
    try:
        with open(p, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError:
        return

    for k, v in parse_env_lines(lines).items():
        if os.getenv(k) is None:
            os.environ[k] = v


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return int(float(v.strip()))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v.strip())
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


@dataclass(frozen=True)
class Settings:
    # On-boat device (same network)
    device_host: str = "127.0.0.1"
    device_port: int = 9001
    device_path: str = "/data.json"
    device_timeout_sec: float = 3.0

    # AirVantage fallback
    av_system: str = ""
    av_server: str = "eu.airvantage.net"
    av_client_id: str = ""
    av_client_secret: str = ""
    av_timeout_sec: float = 12.0
    av_verify_ssl: bool = True
    av_auth_file: str = "~/.airvantage"

    # Refresh cadence; 0 disables the background poller / page polling
    refresh_period_sec: float = 5.0
    ui_refresh_sec: int = 5
    ui_host: str = "0.0.0.0"
    ui_port: int = 8000

    debug: bool = False

    @classmethod
    def from_env(cls, env_file: str = "~/.boatdash") -> "Settings":
        _maybe_load_env_file(env_file)
        return cls(
            device_host=_env("DEVICE_HOST", cls.device_host).strip() or cls.device_host,
            device_port=_env_int("DEVICE_PORT", cls.device_port),
            device_path=_env("DEVICE_PATH", cls.device_path),
            device_timeout_sec=_env_float("DEVICE_TIMEOUT_SEC", cls.device_timeout_sec),
            av_system=_env("AV_SYSTEM").strip(),
            av_server=_env("AV_SERVER", cls.av_server).strip() or cls.av_server,
            av_client_id=_env("AV_CLIENT_ID").strip(),
            av_client_secret=_env("AV_CLIENT_SECRET").strip(),
            av_timeout_sec=_env_float("AV_TIMEOUT_SEC", cls.av_timeout_sec),
            av_verify_ssl=_env_bool("AV_VERIFY_SSL", cls.av_verify_ssl),
            av_auth_file=_env("AV_AUTH_FILE", cls.av_auth_file),
            refresh_period_sec=_env_float("REFRESH_PERIOD_SEC", cls.refresh_period_sec),
            ui_refresh_sec=max(0, min(3600, _env_int("UI_REFRESH_SEC", cls.ui_refresh_sec))),
            ui_host=_env("UI_HOST", cls.ui_host),
            ui_port=_env_int("UI_PORT", cls.ui_port),
            debug=_env_bool("DEBUG", False),
        )

    @property
    def cloud_configured(self) -> bool:
        return bool(self.av_system and self.av_client_id and self.av_client_secret)
