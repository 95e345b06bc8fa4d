# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
VariableBag -- a caller-owned collection of device variables to read from or write to a device.

Each slot tracks whether it still needs to be read from the network, and whether it holds a
locally set value that still needs to be written. Gree.net_read() and Gree.net_write() update
slot contents but never add or remove slots.

Usage:
    bag = VariableBag.from_names(["Pow", "SetTem"])
    await gree.net_read("living-room", bag)
    print(bag.to_report_map())     # {"Pow": 1, "SetTem": 24}
"""

from __future__ import annotations

from .internal_types import *
from .variables import VarName, checked_name, parse_value, check_value

class VariableSlot:
    value: Jsonable
    """The last known value; None until read or set"""

    read_pending: bool
    """True until a network read populates the value"""

    write_pending: bool
    """True while a locally set value has not been committed to the device"""

    def __init__(self, value: Jsonable=None, read_pending: bool=False, write_pending: bool=False):
        self.value = value
        self.read_pending = read_pending
        self.write_pending = write_pending

    def __str__(self) -> str:
        return f"VariableSlot({self.value!r}, read_pending={self.read_pending}, write_pending={self.write_pending})"

    def __repr__(self) -> str:
        return str(self)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, VariableSlot):
            return False
        return (self.value == other.value and
                self.read_pending == other.read_pending and
                self.write_pending == other.write_pending)

class VariableBag(Mapping[VarName, VariableSlot]):
    """A read-only mapping of variable name to VariableSlot, with operations to update slot contents."""

    _slots: Dict[VarName, VariableSlot]

    def __init__(self, slots: Optional[Mapping[VarName, VariableSlot]]=None):
        self._slots = {} if slots is None else dict(slots)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> VariableBag:
        """Creates a bag for reading: one read-pending slot per name.

        Raises InvalidVariable if a name is not in the catalog.
        """
        return cls({ checked_name(name): VariableSlot(read_pending=True) for name in names })

    @classmethod
    def from_name_value_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> VariableBag:
        """Creates a bag for writing from (name, literal) pairs: one write-pending slot per pair.

        Raises InvalidVariable, or InvalidValue if a literal is outside its variable's domain.
        """
        slots: Dict[VarName, VariableSlot] = {}
        for name, literal in pairs:
            var_name = checked_name(name)
            slots[var_name] = VariableSlot(parse_value(var_name, literal), write_pending=True)
        return cls(slots)

    @classmethod
    def from_json_data(cls, json_data: Mapping[str, Jsonable]) -> VariableBag:
        """Creates a bag for writing from a mapping of name to already-typed JSON value."""
        slots: Dict[VarName, VariableSlot] = {}
        for name, value in json_data.items():
            var_name = checked_name(name)
            slots[var_name] = VariableSlot(check_value(var_name, value), write_pending=True)
        return cls(slots)

    def __getitem__(self, name: VarName) -> VariableSlot:
        return self._slots[name]

    def __iter__(self) -> Iterator[VarName]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __str__(self) -> str:
        return f"VariableBag({self._slots})"

    def __repr__(self) -> str:
        return str(self)

    def user_set(self, name: VarName, value: Jsonable) -> None:
        """Sets a slot's value locally and marks it write-pending. The slot must exist."""
        slot = self._slots[name]
        slot.value = check_value(name, value)
        slot.write_pending = True

    def pending_reads(self) -> List[VarName]:
        return [ name for name, slot in self._slots.items() if slot.read_pending ]

    def pending_writes(self) -> List[Tuple[VarName, Jsonable]]:
        return [ (name, slot.value) for name, slot in self._slots.items() if slot.write_pending ]

    def apply_read_result(self, name: VarName, value: Jsonable) -> bool:
        """Stores a value read from the device. Names without a slot are ignored.
           Returns True if a slot was updated."""
        slot = self._slots.get(name)
        if slot is None:
            return False
        slot.value = value
        slot.read_pending = False
        return True

    def apply_write_result(self, name: VarName, value: Jsonable) -> bool:
        """Stores a value the device reported as applied. Names without a slot are ignored.
           Returns True if a slot was updated."""
        slot = self._slots.get(name)
        if slot is None:
            return False
        slot.value = value
        slot.write_pending = False
        slot.read_pending = False
        return True

    def to_report_map(self) -> Dict[VarName, Jsonable]:
        """A snapshot of name -> value, for reporting."""
        return { name: slot.value for name, slot in self._slots.items() }
