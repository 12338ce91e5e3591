"""
SMA Sunny Boy DC string register map -- single source of truth.

Defines the Modbus input register addresses for the DC current, voltage and
power of each string input (positions A, B, C) on an SMA Sunny Boy inverter
(slave ID 3, function code 0x04). Every value is a U32 spanning two 16-bit
words, high word first.

The addresses follow the SMA Modbus register list for the SB3.0-5.0-1AV-40:
each input exposes current, voltage and power at consecutive even offsets
(e.g. 30769 / 30771 / 30773 for input A). Scale factors are not stored here;
they are configuration (see ``WatchSettings.scale_decimals``). The
addresses themselves can be overridden per site with ``STRING_REGISTERS``
for firmware that assigns current and voltage differently.

References:
    - SMA MODBUS-HTML_SB30-50-1AV-40_V10, modbuslist_en.html

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: Build string triplets from explicit addresses

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass

QUANTITIES: tuple[str, ...] = ("current", "voltage", "power")
"""Read order of the quantities within one string position."""


@dataclass(frozen=True, slots=True)
class RegisterDef:
    """Definition of a single string register.

    Attributes:
        address: Modbus input register start address.
        name: Unique human-readable identifier (e.g. ``"a_current"``).
        quantity: One of :data:`QUANTITIES`; selects the scale factor.
        unit: Engineering unit string (``"A"``, ``"V"``, ``"W"``).
        word_count: Number of 16-bit Modbus words this register occupies.
    """

    address: int
    name: str
    quantity: str
    unit: str
    word_count: int = 2

    def __post_init__(self) -> None:  # noqa: D105
        if self.quantity not in QUANTITIES:
            msg = f"Register '{self.name}': unknown quantity '{self.quantity}'"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class StringRegisters:
    """The current/voltage/power register triplet of one string position.

    Attributes:
        position: String position label (``"A"``, ``"B"`` or ``"C"``).
        current: DC current register.
        voltage: DC voltage register.
        power: DC power register.
    """

    position: str
    current: RegisterDef
    voltage: RegisterDef
    power: RegisterDef

    def in_read_order(self) -> tuple[RegisterDef, RegisterDef, RegisterDef]:
        """Return the registers in :data:`QUANTITIES` order."""
        return (self.current, self.voltage, self.power)


def string_registers(position: str, current: int, voltage: int, power: int) -> StringRegisters:
    """Build the register triplet of one string position from its addresses."""
    prefix = position.lower()
    return StringRegisters(
        position=position,
        current=RegisterDef(current, f"{prefix}_current", "current", "A"),
        voltage=RegisterDef(voltage, f"{prefix}_voltage", "voltage", "V"),
        power=RegisterDef(power, f"{prefix}_power", "power", "W"),
    )


POSITION_LABELS: tuple[str, ...] = ("A", "B", "C")

STRING_A = string_registers("A", 30769, 30771, 30773)
STRING_B = string_registers("B", 30957, 30959, 30961)
STRING_C = string_registers("C", 30963, 30965, 30967)

STRING_POSITIONS: tuple[StringRegisters, ...] = (STRING_A, STRING_B, STRING_C)
"""String positions in read order. Index i feeds the group's i-th source."""

ALL_REGISTERS: list[RegisterDef] = [
    reg for string in STRING_POSITIONS for reg in string.in_read_order()
]
