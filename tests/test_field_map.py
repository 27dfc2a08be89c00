from datetime import datetime

import pytest

import field_map
from field_map import FIELD_MAP, Rename, RoundTo, Transform, apply, format_timestamp, is_index_path, lookup


def test_table_has_one_entry_per_channel():
    assert len(FIELD_MAP) == 14
    keys = [m.key for m in FIELD_MAP.values()]
    assert len(keys) == len(set(keys))
    assert lookup("boat.mppt.current_battery") == Rename("mppt_ibatt")
    assert lookup("boat.mppt.voltage_battery") == Rename("mppt_vbatt")
    assert lookup("boat.bmv.voltage") == RoundTo("voltage_battery", 1)


def test_table_is_read_only():
    with pytest.raises(TypeError):
        FIELD_MAP["boat.new"] = Rename("new")  # type: ignore[index]


def test_unknown_path_is_absent():
    assert lookup("boat.engine.rpm") is None


def test_round_to_produces_fixed_decimal_string():
    assert apply(RoundTo("x", 1), 3.14159) == "3.1"
    assert apply(RoundTo("x", 0), 61.7) == "62"
    assert apply(RoundTo("x", 2), "12") == "12.00"


def test_round_to_rounds_halves_up():
    assert apply(RoundTo("voltage_battery", 1), 12.25) == "12.3"
    assert apply(RoundTo("power_panels", 0), 0.5) == "1"
    assert apply(RoundTo("power_panels", 0), 2.5) == "3"
    assert apply(RoundTo("x", 0), -2.5) == "-3"


def test_round_to_large_values():
    assert apply(RoundTo("x", 1), 1e30) == "1" + "0" * 30 + ".0"


def test_round_to_non_numeric_gives_none(caplog):
    assert apply(RoundTo("voltage_battery", 1), "n/a") is None
    assert "voltage_battery" in caplog.text


def test_round_to_rejects_negative_places():
    with pytest.raises(ValueError):
        RoundTo("x", -1)


def test_rename_passes_value_through():
    marker = object()
    assert apply(Rename("x"), marker) is marker


def test_transform_applies_function():
    assert apply(Transform("x", lambda v: v * 2), 21) == 42


def test_timestamp_transform_epoch_zero():
    expected = datetime.fromtimestamp(0).strftime(field_map.TIMESTAMP_FORMAT)
    assert format_timestamp(0) == expected
    assert apply(lookup("timestamp"), 0) == expected
    assert expected.startswith(("1970-01-01", "1969-12-31"))


def test_timestamp_transform_non_numeric():
    assert format_timestamp(None) is None
    assert format_timestamp("soon") is None


def test_origin_is_identity():
    assert apply(lookup("origin"), "Raspberry") == "Raspberry"


@pytest.mark.parametrize("path, expected", [("0", True), ("12", True), (" 3 ", True), ("boat.x", False), ("_LATITUDE", False), ("1e3", False), ("nan", False), ("inf", False), ("-1", False)])
def test_index_paths(path, expected):
    assert is_index_path(path) is expected
