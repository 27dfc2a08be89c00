#!/usr/bin/env python3
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import requests

from errors import NetworkError

logger = logging.getLogger("local_device")

LOCAL_ORIGIN = "Raspberry"
DEFAULT_PORT = 9001
DEFAULT_PATH = "/data.json"


def local_device_url(host: str, port: int = DEFAULT_PORT, path: str = DEFAULT_PATH) -> str:
    h = str(host or "").strip() or "127.0.0.1"
    if ":" in h and not h.startswith("["):
        h = f"[{h}]"
    return f"http://{h}:{int(port)}/{str(path or '').lstrip('/')}"


def tag_local_record(payload: Dict[str, Any], now: Optional[float] = None) -> Dict[str, Any]:
    record = dict(payload)
    record["origin"] = LOCAL_ORIGIN
    record["timestamp"] = time.time() if now is None else float(now)
    return record


class LocalDeviceClient:
    """Reads the flat path -> value JSON the on-boat device serves on the LAN."""

    def __init__(self, url: str, session: Optional[requests.Session] = None, timeout_sec: float = 3.0):
        self.url = str(url)
        self.timeout_sec = float(timeout_sec)
        self._session = session or requests.Session()

    def get_record(self) -> Dict[str, Any]:
        try:
            r = self._session.get(self.url, timeout=self.timeout_sec)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise NetworkError(f"local device {self.url}: {e}") from e

        if not isinstance(data, dict):
            raise NetworkError(f"local device {self.url}: expected a JSON object, got {type(data).__name__}")
        return data

    def close(self) -> None:
        self._session.close()
