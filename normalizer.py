#!/usr/bin/env python3
from __future__ import annotations

import logging
import warnings
from typing import Any, Dict, Mapping, Optional

import field_map
from errors import MappingWarning

logger = logging.getLogger("normalizer")

DisplayRecord = Dict[str, Any]

DERIVED_KEYS = ("solar_power_battery", "out_power_battery")


def _num(record: Mapping[str, Any], key: str) -> Optional[float]:
    # Rounded fields arrive as strings ("12.6"), so parse them back.
    return field_map.to_float(record.get(key))


def _derive(record: DisplayRecord) -> None:
    ibatt = _num(record, "mppt_ibatt")
    vbatt = _num(record, "mppt_vbatt")
    solar_w: Optional[int] = None
    if ibatt is not None and vbatt is not None:
        solar_w = int(field_map.round_half_up(ibatt * vbatt, 0))

    volts = _num(record, "voltage_battery")
    amps = _num(record, "current_battery")
    out_w: Optional[int] = None
    if solar_w is not None and volts is not None and amps is not None:
        out_w = int(field_map.round_half_up(solar_w - volts * amps, 0))

    record["solar_power_battery"] = solar_w
    record["out_power_battery"] = out_w


def normalize(raw: Mapping[str, Any]) -> DisplayRecord:
    """Map a flat raw record onto display keys and add the derived power values.

    Unknown paths are dropped. `solar_power_battery` and `out_power_battery`
    are always present; they are None when one of their inputs is missing.
    """
    record: DisplayRecord = {}
    for path, raw_value in raw.items():
        mapping = field_map.lookup(path)
        if mapping is None:
            if field_map.is_index_path(path):
                logger.debug("skipping index path %r", path)
            else:
                # Routed to the log by logging.captureWarnings(); once per path.
                warnings.warn(f"can't parse {path}", MappingWarning, stacklevel=2)
            continue
        value = field_map.apply(mapping, raw_value)
        record[mapping.key] = value
        logger.debug("%s = %r", mapping.key, value)

    _derive(record)
    return record
