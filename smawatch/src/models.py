"""
Pydantic models for string measurements and snapshot copies.

Defines the Measurement model (one string's current, voltage and power in
engineering units) and the SnapshotView model, an immutable copy of every
source's latest Measurement plus the total power recomputed at copy time.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Measurement(BaseModel):
    """The latest valid reading of one string.

    All values are non-negative finite floats after scaling. A source that
    has never been read holds the all-zero default.

    Attributes:
        current: DC current in amperes.
        voltage: DC voltage in volts.
        power: DC power in watts.
    """

    model_config = ConfigDict(frozen=True)

    current: float = Field(default=0.0, ge=0.0, allow_inf_nan=False)
    voltage: float = Field(default=0.0, ge=0.0, allow_inf_nan=False)
    power: float = Field(default=0.0, ge=0.0, allow_inf_nan=False)


class SnapshotView(BaseModel):
    """Point-in-time copy of the shared snapshot.

    Attributes:
        names: Source names in fixed source order.
        measurements: One Measurement per source, same order as *names*.
        total_power: Sum of every source's power, computed when the copy
            was taken. Never stored in the snapshot itself.
    """

    model_config = ConfigDict(frozen=True)

    names: tuple[str, ...]
    measurements: tuple[Measurement, ...]
    total_power: float

    def items(self) -> list[tuple[str, Measurement]]:
        """Return ``(name, measurement)`` pairs in source order."""
        return list(zip(self.names, self.measurements))
