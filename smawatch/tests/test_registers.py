"""
Unit tests for the SMA string register map.

Tests verify:
- Each string position exposes current, voltage, power at consecutive
  even addresses, two words each.
- Positions are read in A, B, C order.
- Register names are unique and quantities are validated.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import pytest
from smawatch.src.registers import (
    ALL_REGISTERS,
    QUANTITIES,
    STRING_A,
    STRING_B,
    STRING_C,
    STRING_POSITIONS,
    RegisterDef,
)


class TestStringMap:
    """Documented SMA addresses per string position."""

    @pytest.mark.parametrize(
        ("string", "current", "voltage", "power"),
        [
            (STRING_A, 30769, 30771, 30773),
            (STRING_B, 30957, 30959, 30961),
            (STRING_C, 30963, 30965, 30967),
        ],
    )
    def test_addresses(self, string, current: int, voltage: int, power: int) -> None:
        assert string.current.address == current
        assert string.voltage.address == voltage
        assert string.power.address == power

    def test_current_register_is_not_voltage_register(self) -> None:
        for string in STRING_POSITIONS:
            assert string.current.quantity == "current"
            assert string.current.unit == "A"
            assert string.voltage.quantity == "voltage"
            assert string.voltage.unit == "V"

    def test_positions_in_read_order(self) -> None:
        assert [s.position for s in STRING_POSITIONS] == ["A", "B", "C"]

    def test_read_order_within_string(self) -> None:
        for string in STRING_POSITIONS:
            assert tuple(r.quantity for r in string.in_read_order()) == QUANTITIES

    def test_every_register_is_u32(self) -> None:
        assert all(reg.word_count == 2 for reg in ALL_REGISTERS)

    def test_register_names_unique(self) -> None:
        names = [reg.name for reg in ALL_REGISTERS]
        assert len(names) == len(set(names)) == 9


class TestRegisterDef:
    """RegisterDef validation."""

    def test_unknown_quantity_rejected(self) -> None:
        with pytest.raises(ValueError, match="unknown quantity"):
            RegisterDef(40000, "bogus", "energy", "Wh")
