#!/usr/bin/env python3
from __future__ import annotations

import threading
import time
from typing import Any, Dict, Mapping, Optional

PLACEHOLDER = "-"


def render_values(record: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Display strings per key; missing values become a placeholder."""
    out: Dict[str, str] = {}
    for k, v in (record or {}).items():
        out[str(k)] = PLACEHOLDER if v is None else str(v)
    return out


class DisplayBoard:
    """Latest DisplayRecord plus whether the last refresh delivered one.

    A failed cycle keeps the previous record on screen but flags it as
    "data unavailable" together with the reason.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._record: Optional[Dict[str, Any]] = None
        self._status = "waiting"
        self._error: Optional[str] = None
        self._updated_ts: Optional[float] = None

    def fill(self, record: Mapping[str, Any]) -> None:
        with self._lock:
            self._record = dict(record)
            self._status = "ok"
            self._error = None
            self._updated_ts = time.time()

    def fail(self, message: str) -> None:
        with self._lock:
            self._status = "data unavailable"
            self._error = str(message)
            self._updated_ts = time.time()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "record": dict(self._record) if self._record is not None else None,
                "status": self._status,
                "error": self._error,
                "updated_ts": self._updated_ts,
            }
