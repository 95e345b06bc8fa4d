#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
The catalog of Gree device variables, their value domains, and enumerations of
their documented values.

See https://github.com/tomikaa87/gree-remote for the protocol description.
"""

from __future__ import annotations

from enum import Enum, IntEnum

from .internal_types import *
from .exceptions import InvalidVariable, InvalidValue

VarName = str

class OnOff(IntEnum):
    OFF = 0
    ON = 1

class Mode(IntEnum):
    AUTO = 0
    COOL = 1
    DRY = 2
    FAN = 3
    HEAT = 4

class TemperatureUnit(IntEnum):
    CELSIUS = 0
    FAHRENHEIT = 1

class FanSpeed(IntEnum):
    AUTO = 0
    LOW = 1
    MEDIUM_LOW = 2
    """Not available on 3-speed units"""
    MEDIUM = 3
    MEDIUM_HIGH = 4
    """Not available on 3-speed units"""
    HIGH = 5

class HorizontalSwing(IntEnum):
    DEFAULT = 0
    FULL = 1
    POS_0 = 2
    POS_1 = 3
    POS_2 = 4
    POS_3 = 5
    POS_4 = 6

class VerticalSwing(IntEnum):
    DEFAULT = 0
    FULL = 1
    FIXED_1 = 2
    FIXED_2 = 3
    FIXED_3 = 4
    FIXED_4 = 5
    FIXED_5 = 6
    SWING_5 = 7
    SWING_4 = 8
    SWING_3 = 9
    SWING_2 = 10
    SWING_1 = 11

class ValueDomain(Enum):
    """The set of values a variable accepts when written."""
    BOOLEAN = "boolean"
    """0 or 1"""
    SMALL_INT = "small_int"
    """An unsigned 8-bit integer"""
    STRING = "string"
    """Free-form, unchecked"""

POW: VarName = "Pow"
"""Power state of the device (OnOff)"""

MOD: VarName = "Mod"
"""Mode of operation (Mode)"""

SET_TEM: VarName = "SetTem"
"""Set temperature, in the unit selected by TemUn"""

TEM_UN: VarName = "TemUn"
"""Temperature unit (TemperatureUnit)"""

WD_SPD: VarName = "WdSpd"
"""Fan speed (FanSpeed)"""

AIR: VarName = "Air"
"""Fresh air valve, not available on all units (OnOff)"""

BLO: VarName = "Blo"
""""Blow" or "X-Fan": keeps the fan running for a while after shutdown, Dry and Cool mode only (OnOff)"""

HEALTH: VarName = "Health"
"""Health ("cold plasma") mode, units with an anion generator only (OnOff)"""

SWH_SLP: VarName = "SwhSlp"
"""Sleep mode, gradually changes the temperature in Cool, Heat and Dry mode (OnOff)"""

LIG: VarName = "Lig"
"""Display and indicator lights (OnOff)"""

SWING_LF_RIG: VarName = "SwingLfRig"
"""Horizontal swing of the air blades, limited set of units (HorizontalSwing)"""

SW_UP_DN: VarName = "SwUpDn"
"""Vertical swing of the air blades (VerticalSwing)"""

QUIET: VarName = "Quiet"
"""Quiet mode, not available in Dry and Fan mode (OnOff)"""

TUR: VarName = "Tur"
"""Turbo: maximum fan speed, Dry and Cool mode only (OnOff)"""

ST_HT: VarName = "StHt"
"""Keeps the room at 8 degrees Celsius to prevent freezing (OnOff)"""

HEAT_COOL_TYPE: VarName = "HeatCoolType"
"""Unknown"""

TEM_REC: VarName = "TemRec"
"""Distinguishes between two Fahrenheit values that map to the same Celsius value"""

SV_ST: VarName = "SvSt"
"""Energy saving mode (OnOff)"""

TEM_SEN: VarName = "TemSen"
"""Internal temperature sensor, read only. Celsius with an offset of +40."""

TIME: VarName = "time"
"""Device time, formatted as "2018-05-11 19:42:01". Must be used separately from other variables."""

VAR_DOMAINS: Dict[VarName, ValueDomain] = {
    POW: ValueDomain.BOOLEAN,
    MOD: ValueDomain.SMALL_INT,
    SET_TEM: ValueDomain.SMALL_INT,
    TEM_UN: ValueDomain.BOOLEAN,
    WD_SPD: ValueDomain.SMALL_INT,
    AIR: ValueDomain.BOOLEAN,
    BLO: ValueDomain.BOOLEAN,
    HEALTH: ValueDomain.BOOLEAN,
    SWH_SLP: ValueDomain.BOOLEAN,
    LIG: ValueDomain.BOOLEAN,
    SWING_LF_RIG: ValueDomain.SMALL_INT,
    SW_UP_DN: ValueDomain.SMALL_INT,
    QUIET: ValueDomain.BOOLEAN,
    TUR: ValueDomain.BOOLEAN,
    ST_HT: ValueDomain.BOOLEAN,
    HEAT_COOL_TYPE: ValueDomain.STRING,
    TEM_REC: ValueDomain.SMALL_INT,
    SV_ST: ValueDomain.BOOLEAN,
    TEM_SEN: ValueDomain.STRING,
    TIME: ValueDomain.STRING,
}
"""The value domain of every variable in the catalog."""

ALL_VARS: List[VarName] = list(VAR_DOMAINS.keys())
"""All variable names in the catalog, in protocol documentation order."""

DEFAULT_VARS: List[VarName] = [POW, MOD, SET_TEM, TEM_UN, WD_SPD]
"""The variables most commonly polled from a device."""

def name_of(name: str) -> Optional[VarName]:
    """Returns the catalog name for `name`, or None if it is not a known variable."""
    return name if isinstance(name, str) and name in VAR_DOMAINS else None

def checked_name(name: str) -> VarName:
    """Returns the catalog name for `name`. Raises InvalidVariable if it is unknown."""
    result = name_of(name)
    if result is None:
        raise InvalidVariable(name)
    return result

def _check_int(name: VarName, value: int, literal: str) -> int:
    upper = 1 if VAR_DOMAINS[name] == ValueDomain.BOOLEAN else 255
    if value < 0 or value > upper:
        raise InvalidValue(name, literal)
    return value

def parse_value(name: VarName, literal: str) -> Jsonable:
    """Parses a string literal into the JSON value sent to the device for variable `name`.

       Boolean variables accept 0 or 1, small integer variables accept 0..255, and
       string variables accept anything.

       Raises InvalidVariable or InvalidValue.
    """
    name = checked_name(name)
    if VAR_DOMAINS[name] == ValueDomain.STRING:
        return literal
    # ASCII decimal digits only
    if not (literal.isascii() and literal.isdigit()):
        raise InvalidValue(name, literal)
    return _check_int(name, int(literal), literal)

def check_value(name: VarName, value: Jsonable) -> Jsonable:
    """Validates an already-typed JSON value for variable `name`.

       Strings are parsed as literals; integers (including IntEnum members) are range checked.
    """
    name = checked_name(name)
    if isinstance(value, str):
        return parse_value(name, value)
    if VAR_DOMAINS[name] == ValueDomain.STRING:
        return value
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidValue(name, repr(value))
    return _check_int(name, int(value), repr(value))
