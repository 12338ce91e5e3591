"""
Fixed-cadence acquisition scheduler.

On every tick the scheduler polls each inverter slot in turn and writes the
slot's triplet into the snapshot. Every ``flush_every_n_ticks`` ticks it then
queries the gateway for its two strings (resolving the gateway device first
if it could not be listed earlier) and writes the full snapshot to the
sink, in that order.

Failure semantics: a failed slot, gateway query or sink write degrades only
that data point and is logged; ``tick()`` never raises for a collaborator
error. Slots are independent, so one unreachable inverter never stops the
others from being polled in the same tick.

The health file is rewritten when a slot connects or disconnects and on
every flush tick, not on every tick.

The cadence is anchored to the event loop clock. A tick that overruns its
period skips the missed slots instead of queueing them.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: Resolve an unresolved gateway on flush ticks; write health
  only on connection changes and flush ticks

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from smawatch.src.exceptions import DeviceConnectionError, QueryError, SinkError

if TYPE_CHECKING:
    from smawatch.src.gateway import GatewayPath
    from smawatch.src.health import HealthWriter
    from smawatch.src.sink import ProductionSink
    from smawatch.src.slot import ConnectionSlot
    from smawatch.src.snapshot import Snapshot

logger = logging.getLogger(__name__)


class Scheduler:
    """Drives the tick loop over slots, gateway and sink.

    Args:
        slots: Inverter connection slots, polled in this order.
        snapshot: The shared snapshot written by every tick.
        sink: Production log sink written every flush period.
        gateway: Gateway path, or None when the gateway is not configured.
        tick_interval_s: Seconds between ticks.
        flush_every_n_ticks: Ticks between gateway query + sink write.
        health: HealthWriter instance, or None to skip health writes.
    """

    def __init__(
        self,
        *,
        slots: Sequence[ConnectionSlot],
        snapshot: Snapshot,
        sink: ProductionSink,
        gateway: GatewayPath | None = None,
        tick_interval_s: float = 1.0,
        flush_every_n_ticks: int = 15,
        health: HealthWriter | None = None,
    ) -> None:
        if flush_every_n_ticks < 1:
            raise ValueError("flush_every_n_ticks must be >= 1")
        self._slots = tuple(slots)
        self._snapshot = snapshot
        self._sink = sink
        self._gateway = gateway
        self._tick_interval_s = tick_interval_s
        self._flush_every = flush_every_n_ticks
        self._health = health
        self._cycle = 0
        self._last_connected: dict[str, bool] | None = None

    @property
    def cycle(self) -> int:
        """Ticks since the last flush (0 right after a flush)."""
        return self._cycle

    # ------------------------------------------------------------------
    # Single tick
    # ------------------------------------------------------------------

    async def tick(self) -> None:
        """Run one tick: poll every slot, then flush if the period is due."""
        for slot in self._slots:
            await self._poll_slot(slot)

        self._cycle += 1
        flushed = self._cycle >= self._flush_every
        if flushed:
            self._cycle = 0
            await self._fetch_gateway()
            await self._flush()

        self._record_tick(flushed)

    def _record_tick(self, flushed: bool) -> None:
        """Rewrite the health file on a flush tick or a connection change."""
        if self._health is None:
            return
        connected = {slot.name: slot.connected for slot in self._slots}
        if not flushed and connected == self._last_connected:
            return
        try:
            self._health.record_tick(connected)
        except OSError:
            logger.warning("Failed to write health file", exc_info=True)
            return
        self._last_connected = connected

    async def _poll_slot(self, slot: ConnectionSlot) -> None:
        try:
            values = await slot.poll()
        except DeviceConnectionError as exc:
            logger.debug("Slot %s skipped this tick: %s", slot.name, exc)
            return
        self._snapshot.update(slot.source_indices, values)
        logger.debug(
            "%s: %s",
            slot.name,
            " | ".join(f"{m.current:5.3f} A {m.voltage:6.2f} V {m.power:5.0f} W" for m in values),
        )

    async def _fetch_gateway(self) -> None:
        if self._gateway is None:
            return
        if not self._gateway.resolved:
            enabled = await self._gateway.resolve()
            if self._health is not None:
                try:
                    self._health.set_gateway_enabled(enabled)
                except OSError:
                    logger.warning("Failed to write health file", exc_info=True)
        if not self._gateway.enabled:
            return
        try:
            values = await self._gateway.fetch()
        except QueryError as exc:
            logger.warning("Gateway query failed, keeping previous values: %s", exc)
            return
        self._snapshot.update(self._gateway.source_indices, values)

    async def _flush(self) -> None:
        view = self._snapshot.read_all()
        try:
            rows = await self._sink.write(view)
        except SinkError as exc:
            logger.error("Sink write failed, snapshot for this cycle lost: %s", exc)
            return
        logger.info("Snapshot logged (%d rows, total %.0f W)", rows, view.total_power)
        if self._health is not None:
            try:
                self._health.record_flush()
            except OSError:
                logger.warning("Failed to write health file", exc_info=True)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Tick at a fixed period until *shutdown_event* is set.

        Slots are closed when the loop exits, so a restarted loop
        reconnects every inverter from scratch.
        """
        loop = asyncio.get_running_loop()
        logger.info(
            "Acquisition loop started (interval=%ss, flush every %d ticks)",
            self._tick_interval_s,
            self._flush_every,
        )
        next_tick = loop.time()
        try:
            while not shutdown_event.is_set():
                await self.tick()

                next_tick += self._tick_interval_s
                now = loop.time()
                if next_tick <= now:
                    missed = int((now - next_tick) // self._tick_interval_s) + 1
                    logger.debug("Tick overran, skipping %d tick(s)", missed)
                    next_tick += missed * self._tick_interval_s

                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(shutdown_event.wait(), timeout=next_tick - now)
        finally:
            for slot in self._slots:
                slot.close()
        logger.info("Acquisition loop stopped")
