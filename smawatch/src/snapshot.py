"""
Shared snapshot of the latest Measurement for every source.

The snapshot is the only mutable state shared between the acquisition loop
and the API thread. One lock guards it:

- ``update()`` writes a whole device group (three strings, or the gateway's
  two) while holding the lock once, so a reader never sees half a group.
- ``read_all()`` copies every value and recomputes the total under the same
  lock, then releases it.

Callers do their I/O before calling ``update()``; nothing inside the lock
blocks on a device.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import threading
from collections.abc import Sequence

from smawatch.src.models import Measurement, SnapshotView


class Snapshot:
    """Fixed-size, lock-guarded array of Measurements indexed by source.

    Args:
        source_names: Ordered source names. The snapshot holds one
            Measurement per name, initialised to zero.
    """

    def __init__(self, source_names: Sequence[str]) -> None:
        self._names = tuple(source_names)
        self._values: list[Measurement] = [Measurement() for _ in self._names]
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._names)

    @property
    def source_names(self) -> tuple[str, ...]:
        """Source names in fixed source order."""
        return self._names

    def update(self, source_indices: Sequence[int], values: Sequence[Measurement]) -> None:
        """Replace the Measurements of several sources as one atomic unit.

        Args:
            source_indices: Snapshot indices to write.
            values: New Measurements, one per index, same order.

        Raises:
            ValueError: If the lengths differ or an index is out of range.
                Nothing is written in that case.
        """
        if len(source_indices) != len(values):
            raise ValueError(
                f"got {len(values)} values for {len(source_indices)} sources"
            )
        for index in source_indices:
            if index < 0 or index >= len(self._names):
                raise ValueError(f"source index {index} out of range")

        with self._lock:
            for index, value in zip(source_indices, values):
                self._values[index] = value

    def read_all(self) -> SnapshotView:
        """Copy every Measurement and recompute the total power.

        Measurements are immutable, so copying the list is a full copy.
        """
        with self._lock:
            values = tuple(self._values)
            total = sum(m.power for m in values)
        return SnapshotView(names=self._names, measurements=values, total_power=total)
