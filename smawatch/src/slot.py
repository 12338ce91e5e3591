"""
Connection slot for one Modbus string inverter.

A slot owns the lifecycle of one AsyncModbusTcpClient and reads the three
string triplets (positions A, B, C) of its inverter each tick:

- Disconnected: ``poll()`` first tries to connect. A failed connect is not
  fatal; it is logged once per failure streak and retried next tick.
- Connected: the triplets are read in order A, B, C. Any failed read aborts
  the rest of the tick, closes the client and returns the slot to
  Disconnected. No partially read values are ever returned.

The connection handle is a tagged variant (``Disconnected`` / ``Connected``)
rather than a nullable client so every transition is explicit.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pymodbus.client import AsyncModbusTcpClient
from pymodbus.exceptions import ModbusException

from smawatch.src.decoder import DEFAULT_SANITY_CEILING, decode_scaled
from smawatch.src.exceptions import DeviceConnectionError, RegisterReadError
from smawatch.src.models import Measurement
from smawatch.src.registers import STRING_POSITIONS, RegisterDef, StringRegisters

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS: dict[str, int] = {"current": 3, "voltage": 2, "power": 0}
"""SMA FIX3 current, FIX2 voltage, FIX0 power."""


# ---------------------------------------------------------------------------
# Connection state
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Disconnected:
    """No live client; the next poll attempts a fresh connect."""


@dataclass(frozen=True, slots=True)
class Connected:
    """A connected client ready for register reads."""

    client: Any


ConnectionState = Disconnected | Connected


# ---------------------------------------------------------------------------
# Slot
# ---------------------------------------------------------------------------


class ConnectionSlot:
    """Connect/read/disconnect state machine for one inverter.

    Args:
        name: Identifier used in log messages.
        host: Inverter IP address or hostname.
        port: Modbus TCP port.
        source_indices: Snapshot indices fed by string positions A, B, C.
        slave_id: Modbus unit ID.
        timeout_s: Per-request Modbus timeout in seconds.
        decimals: Decimal exponent per quantity (``current``, ``voltage``,
            ``power``).
        sanity_ceiling: Raw values at or above this decode as zero.
        strings: String register triplets in read order.
        client_factory: Callable building an unconnected Modbus client;
            defaults to :class:`AsyncModbusTcpClient`.
    """

    def __init__(
        self,
        *,
        name: str,
        host: str,
        port: int = 502,
        source_indices: Sequence[int] = (0, 1, 2),
        slave_id: int = 3,
        timeout_s: float = 3.0,
        decimals: Mapping[str, int] | None = None,
        sanity_ceiling: int = DEFAULT_SANITY_CEILING,
        strings: Sequence[StringRegisters] = STRING_POSITIONS,
        client_factory: Callable[..., Any] = AsyncModbusTcpClient,
    ) -> None:
        if len(source_indices) != len(strings):
            raise ValueError(
                f"slot '{name}' has {len(strings)} strings but "
                f"{len(source_indices)} source indices"
            )
        self.name = name
        self._host = host
        self._port = port
        self._source_indices = tuple(source_indices)
        self._slave_id = slave_id
        self._timeout_s = timeout_s
        self._decimals = dict(decimals or DEFAULT_DECIMALS)
        self._sanity_ceiling = sanity_ceiling
        self._strings = tuple(strings)
        self._client_factory = client_factory
        self._state: ConnectionState = Disconnected()
        self._connect_failures: int = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def connected(self) -> bool:
        """True when a live client is held."""
        return isinstance(self._state, Connected)

    @property
    def source_indices(self) -> tuple[int, ...]:
        """Snapshot indices fed by this slot, in string order."""
        return self._source_indices

    async def connect(self) -> bool:
        """Try to establish a connection if none is held.

        Returns:
            True if the slot is Connected afterwards.
        """
        if isinstance(self._state, Connected):
            return True

        client = self._client_factory(self._host, port=self._port, timeout=self._timeout_s)
        try:
            ok = await client.connect()
        except (ModbusException, OSError, TimeoutError) as exc:
            ok = False
            reason: str = str(exc)
        else:
            reason = "connect returned False"

        if not ok:
            client.close()
            self._connect_failures += 1
            if self._connect_failures == 1:
                logger.warning(
                    "%s: cannot connect to %s:%d (%s), retrying every tick",
                    self.name,
                    self._host,
                    self._port,
                    reason,
                )
            else:
                logger.debug(
                    "%s: connect attempt %d failed (%s)",
                    self.name,
                    self._connect_failures,
                    reason,
                )
            return False

        if self._connect_failures:
            logger.info(
                "%s: connected to %s:%d after %d failed attempts",
                self.name,
                self._host,
                self._port,
                self._connect_failures,
            )
        else:
            logger.info("%s: connected to %s:%d", self.name, self._host, self._port)
        self._connect_failures = 0
        self._state = Connected(client)
        return True

    async def poll(self) -> tuple[Measurement, ...]:
        """Read every string triplet of the inverter.

        Connects first when Disconnected.

        Returns:
            One Measurement per string position, in A, B, C order.

        Raises:
            DeviceConnectionError: If the connect or any register read
                failed. The slot is Disconnected afterwards.
        """
        if not await self.connect():
            raise DeviceConnectionError(
                f"{self.name}: not connected", host=self._host, port=self._port
            )

        assert isinstance(self._state, Connected)
        client = self._state.client
        try:
            return tuple([await self._read_string(client, string) for string in self._strings])
        except RegisterReadError as exc:
            logger.warning("%s: %s, disconnecting", self.name, exc)
            self.close()
            raise DeviceConnectionError(
                f"{self.name}: read failed", host=self._host, port=self._port
            ) from exc

    def close(self) -> None:
        """Close the client, if any, and return to Disconnected."""
        state = self._state
        self._state = Disconnected()
        if isinstance(state, Connected):
            try:
                state.client.close()
            except Exception:
                logger.debug("%s: error while closing client", self.name, exc_info=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _read_string(self, client: Any, string: StringRegisters) -> Measurement:
        """Read one current/voltage/power triplet."""
        current, voltage, power = [
            await self._read_value(client, reg) for reg in string.in_read_order()
        ]
        return Measurement(current=current, voltage=voltage, power=power)

    async def _read_value(self, client: Any, reg: RegisterDef) -> float:
        """Read and decode one register.

        Raises:
            RegisterReadError: On transport error, error response or a
                payload shorter than the register.
        """
        try:
            response = await client.read_input_registers(
                reg.address,
                count=reg.word_count,
                device_id=self._slave_id,
            )
        except (ModbusException, OSError, TimeoutError) as exc:
            raise RegisterReadError(
                f"register {reg.address} ({reg.name}) transport error: {exc}",
                address=reg.address,
            ) from exc

        if response.isError():
            raise RegisterReadError(
                f"register {reg.address} ({reg.name}) error response",
                address=reg.address,
            )

        words = list(response.registers)
        if len(words) < reg.word_count:
            raise RegisterReadError(
                f"register {reg.address} ({reg.name}) short payload: "
                f"{len(words)} of {reg.word_count} words",
                address=reg.address,
            )

        return decode_scaled(
            words[: reg.word_count],
            self._decimals[reg.quantity],
            self._sanity_ceiling,
        )
