"""Tests for the variable catalog and VariableBag."""

import pytest

from gree_udp_protocol import InvalidValue, InvalidVariable, VariableBag, VariableSlot
from gree_udp_protocol.variables import (
    ALL_VARS,
    DEFAULT_VARS,
    FanSpeed,
    Mode,
    OnOff,
    check_value,
    name_of,
    parse_value,
)


def test_catalog_contains_documented_variables():
    for name in ("Pow", "Mod", "SetTem", "TemUn", "WdSpd", "SwUpDn", "TemSen", "time"):
        assert name in ALL_VARS
    assert set(DEFAULT_VARS) <= set(ALL_VARS)


def test_name_of_unknown_is_none():
    assert name_of("Pow") == "Pow"
    assert name_of("pow") is None


@pytest.mark.parametrize(
    ("name", "literal", "expected"),
    [
        ("Pow", "1", 1),
        ("Pow", "0", 0),
        ("SetTem", "255", 255),
        ("Mod", "4", 4),
        ("time", "2018-05-11 19:42:01", "2018-05-11 19:42:01"),
    ],
)
def test_parse_value_accepts_domain(name, literal, expected):
    assert parse_value(name, literal) == expected


@pytest.mark.parametrize(
    ("name", "literal"),
    [("Pow", "2"), ("SetTem", "256"), ("SetTem", "-1"), ("Mod", "cool"),
     ("SetTem", "2_4"), ("SetTem", "+24"), ("SetTem", " 24 "), ("SetTem", "\u0662\u0664"), ("SetTem", "")],
)
def test_parse_value_rejects_out_of_domain(name, literal):
    with pytest.raises(InvalidValue) as exc_info:
        parse_value(name, literal)
    assert exc_info.value.var_name == name
    assert exc_info.value.literal == literal


def test_parse_value_rejects_unknown_variable():
    with pytest.raises(InvalidVariable):
        parse_value("Bogus", "1")


def test_check_value_accepts_enum_members():
    assert check_value("Mod", Mode.HEAT) == 4
    assert check_value("WdSpd", FanSpeed.HIGH) == 5
    assert check_value("Pow", OnOff.ON) == 1


def test_check_value_rejects_bool_and_float():
    with pytest.raises(InvalidValue):
        check_value("Pow", True)
    with pytest.raises(InvalidValue):
        check_value("SetTem", 24.5)


def test_from_names_marks_slots_read_pending():
    bag = VariableBag.from_names(["Pow", "Mod"])
    assert list(bag) == ["Pow", "Mod"]
    assert bag["Pow"] == VariableSlot(None, read_pending=True)
    assert bag.pending_reads() == ["Pow", "Mod"]
    assert bag.pending_writes() == []


def test_from_names_rejects_unknown_variable():
    with pytest.raises(InvalidVariable):
        VariableBag.from_names(["Pow", "Bogus"])


def test_from_name_value_pairs_marks_slots_write_pending():
    bag = VariableBag.from_name_value_pairs([("Pow", "1"), ("SetTem", "24")])
    assert bag.pending_writes() == [("Pow", 1), ("SetTem", 24)]
    assert bag.pending_reads() == []


def test_from_name_value_pairs_rejects_bad_literal():
    with pytest.raises(InvalidValue):
        VariableBag.from_name_value_pairs([("Pow", "2")])


def test_from_json_data_checks_values():
    bag = VariableBag.from_json_data({"Pow": 1, "Mod": "3"})
    assert bag.pending_writes() == [("Pow", 1), ("Mod", 3)]
    with pytest.raises(InvalidValue):
        VariableBag.from_json_data({"SetTem": 300})


def test_apply_read_result_updates_existing_slot_only():
    bag = VariableBag.from_names(["Pow", "Mod"])
    assert bag.apply_read_result("Pow", 1)
    assert not bag.apply_read_result("SetTem", 24)
    assert bag["Pow"] == VariableSlot(1)
    assert bag.pending_reads() == ["Mod"]
    assert "SetTem" not in bag
    assert len(bag) == 2


def test_apply_write_result_clears_pending_flags():
    bag = VariableBag.from_name_value_pairs([("SetTem", "24")])
    assert bag.apply_write_result("SetTem", 23)
    assert bag["SetTem"] == VariableSlot(23)
    assert bag.pending_writes() == []


def test_user_set_marks_slot_write_pending():
    bag = VariableBag.from_names(["Pow"])
    bag.apply_read_result("Pow", 0)
    bag.user_set("Pow", 1)
    assert bag.pending_writes() == [("Pow", 1)]
    with pytest.raises(KeyError):
        bag.user_set("Mod", 1)


def test_report_map():
    bag = VariableBag.from_names(["Pow", "SetTem"])
    bag.apply_read_result("SetTem", 24)
    assert bag.to_report_map() == {"Pow": None, "SetTem": 24}


def test_name_of_non_string_is_none():
    assert name_of(["Pow"]) is None
