import copy
import warnings

import pytest

from conftest import LOCAL_PAYLOAD
from errors import MappingWarning
from field_map import FIELD_MAP
from normalizer import DERIVED_KEYS, normalize


def test_known_paths_map_to_display_keys_plus_derived():
    raw = {path: 1.0 for path in FIELD_MAP if path not in ("timestamp", "origin")}
    raw["timestamp"] = 0
    raw["origin"] = "Raspberry"

    record = normalize(raw)

    assert set(record) == {m.key for m in FIELD_MAP.values()} | set(DERIVED_KEYS)


def test_unknown_paths_are_dropped_with_warning():
    with pytest.warns(MappingWarning, match="boat.engine.rpm"):
        record = normalize({"boat.engine.rpm": 2400, "boat.bmv.current": 1.5})
    assert "boat.engine.rpm" not in record
    assert 2400 not in record.values()
    assert record["current_battery"] == 1.5


def test_index_paths_are_dropped_silently():
    with warnings.catch_warnings():
        warnings.simplefilter("error", MappingWarning)
        record = normalize({"0": "junk", "17": 5, "boat.bmv.current": 1.0})
    assert "0" not in record and "17" not in record


def test_solar_power_from_mppt_current_and_voltage():
    record = normalize({"boat.mppt.current_battery": 10, "boat.mppt.voltage_battery": 12})
    assert record["solar_power_battery"] == 120


def test_out_power_is_solar_minus_battery_power():
    record = normalize(
        {
            "boat.mppt.current_battery": 10,
            "boat.mppt.voltage_battery": 12,
            "boat.bmv.voltage": 12,
            "boat.bmv.current": 5,
        }
    )
    assert record["voltage_battery"] == "12.0"
    assert record["solar_power_battery"] == 120
    assert record["out_power_battery"] == 60


def test_derived_power_rounds_halves_away_from_zero():
    record = normalize({"boat.mppt.current_battery": 0.5, "boat.mppt.voltage_battery": 5})
    assert record["solar_power_battery"] == 3

    record = normalize(
        {
            "boat.mppt.current_battery": 0.5,
            "boat.mppt.voltage_battery": 5,
            "boat.bmv.voltage": 5.5,
            "boat.bmv.current": 1,
        }
    )
    # 3 - 5.5 * 1 = -2.5 -> -3
    assert record["out_power_battery"] == -3


def test_exponent_like_paths_are_not_index_paths():
    with pytest.warns(MappingWarning, match="1e3"):
        record = normalize({"1e3": 1, "boat.bmv.current": 1.0})
    assert "1e3" not in record


def test_out_power_uses_rounded_battery_voltage():
    record = normalize(
        {
            "boat.mppt.current_battery": 4.5,
            "boat.mppt.voltage_battery": 12.7,
            "boat.bmv.voltage": 12.64,
            "boat.bmv.current": -3.2,
        }
    )
    # 4.5 * 12.7 = 57.15 -> 57; 57 - 12.6 * -3.2 = 97.32 -> 97
    assert record["solar_power_battery"] == 57
    assert record["out_power_battery"] == 97


def test_derived_keys_present_but_empty_without_inputs():
    record = normalize({"_LATITUDE": 43.0})
    assert record["solar_power_battery"] is None
    assert record["out_power_battery"] is None


def test_out_power_empty_when_battery_reading_missing():
    record = normalize({"boat.mppt.current_battery": 2, "boat.mppt.voltage_battery": 13})
    assert record["solar_power_battery"] == 26
    assert record["out_power_battery"] is None


def test_rounding_applied_to_configured_fields():
    record = normalize(LOCAL_PAYLOAD)
    assert record["voltage_battery"] == "12.6"
    assert record["power_panels"] == "62"
    assert record["voltage_panels"] == "35.5"
    assert record["state_of_charge"] == 87.3


def test_normalize_is_idempotent_and_does_not_mutate_input():
    raw = dict(LOCAL_PAYLOAD, timestamp=1500000000, origin="Raspberry")
    before = copy.deepcopy(raw)
    assert normalize(raw) == normalize(raw)
    assert raw == before
