#!/usr/bin/env python3
"""Raw telemetry path -> display key table.

Each known source path maps to exactly one rule:

  Rename(key)            value passed through unchanged
  Transform(key, fn)     value replaced by fn(value)
  RoundTo(key, places)   value formatted as a fixed-decimal string

The table is built once at import time and is read-only afterwards.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Context, Decimal
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

logger = logging.getLogger("field_map")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class Rename:
    key: str


@dataclass(frozen=True)
class Transform:
    key: str
    fn: Callable[[Any], Any]


@dataclass(frozen=True)
class RoundTo:
    key: str
    places: int

    def __post_init__(self) -> None:
        if int(self.places) < 0:
            raise ValueError(f"places must be >= 0 (got {self.places})")


FieldMapping = Union[Rename, Transform, RoundTo]


def to_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        f = float(x)
    except (TypeError, ValueError):
        return None
    # NaN/inf never make it to the display
    return f if math.isfinite(f) else None


def round_half_up(x: float, places: int) -> Decimal:
    """Round halves away from zero (12.25 -> 12.3, -2.5 -> -3)."""
    d = Decimal(repr(x))
    # quantize needs enough precision for every integer digit plus the places
    ctx = Context(prec=max(28, d.adjusted() + int(places) + 2))
    return d.quantize(Decimal(1).scaleb(-int(places)), rounding=ROUND_HALF_UP, context=ctx)


def format_timestamp(seconds: Any) -> Optional[str]:
    """Epoch seconds -> local date-time string ("1970-01-01 00:00:00" in UTC)."""
    s = to_float(seconds)
    if s is None:
        return None
    return datetime.fromtimestamp(s).strftime(TIMESTAMP_FORMAT)


def _identity(x: Any) -> Any:
    return x


FIELD_MAP: Mapping[str, FieldMapping] = MappingProxyType(
    {
        # Battery monitor (BMV)
        "boat.bmv.voltage": RoundTo("voltage_battery", 1),
        "boat.bmv.current": Rename("current_battery"),
        "boat.bmv.consumed_energy": Rename("consumed_energy"),
        "boat.bmv.state_of_charge": Rename("state_of_charge"),
        "boat.bmv.time_to_go": Rename("time_to_go"),
        # Solar charge controller (MPPT)
        "boat.mppt.power_panels": RoundTo("power_panels", 0),
        "boat.mppt.voltage_panels": RoundTo("voltage_panels", 1),
        "boat.mppt.current_battery": Rename("mppt_ibatt"),  # solar power input
        "boat.mppt.voltage_battery": Rename("mppt_vbatt"),  # solar power input
        # GPS
        "_LATITUDE": Rename("latitude"),
        "_LONGITUDE": Rename("longitude"),
        "_ALTITUDE": Rename("altitude"),
        # Tags added at ingestion
        "timestamp": Transform("timestamp", format_timestamp),
        "origin": Transform("origin", _identity),
    }
)


def lookup(path: str) -> Optional[FieldMapping]:
    return FIELD_MAP.get(path)


def is_index_path(path: str) -> bool:
    """True for bare array-index paths ("0", "12") some payloads carry along."""
    return str(path).strip().isdigit()


def apply(mapping: FieldMapping, value: Any) -> Any:
    if isinstance(mapping, Rename):
        return value
    if isinstance(mapping, Transform):
        return mapping.fn(value)
    if isinstance(mapping, RoundTo):
        x = to_float(value)
        if x is None:
            logger.warning("not a number for %s: %r", mapping.key, value)
            return None
        return f"{round_half_up(x, mapping.places):f}"
    raise TypeError(f"unknown field mapping {mapping!r}")
