"""
Shared test fixtures for watcher tests.

Cleans every WatchSettings environment variable before each test so settings
tests are isolated, and provides small builders for Modbus responses and
clients used across the slot and scheduler tests.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

# All WatchSettings environment variable names, used for cleanup.
_ALL_WATCH_ENV_VARS = (
    "INVERTER_HOSTS",
    "INVERTER_PORT",
    "INVERTER_SLAVE_ID",
    "MODBUS_TIMEOUT_S",
    "REGISTER_GROUP_INDICES",
    "STRING_REGISTERS",
    "SOURCE_NAMES",
    "GATEWAY_URL",
    "GATEWAY_DEVICE_MATCH",
    "GATEWAY_SOURCE_INDICES",
    "GATEWAY_TIMEOUT_S",
    "DATABASE_URL",
    "API_HOST",
    "API_PORT",
    "TICK_INTERVAL_S",
    "FLUSH_EVERY_N_TICKS",
    "CURRENT_DECIMALS",
    "VOLTAGE_DECIMALS",
    "POWER_DECIMALS",
    "SANITY_CEILING",
    "VERBOSE",
    "HEALTH_PATH",
)


@pytest.fixture(autouse=True)
def _clean_watch_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all watcher env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_WATCH_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


def make_response(registers: list[int], is_error: bool = False) -> MagicMock:
    """Create a mock pymodbus response PDU.

    Args:
        registers: The list of 16-bit register values to return.
        is_error: If True, simulate a Modbus error response.
    """
    resp = MagicMock()
    resp.isError.return_value = is_error
    resp.registers = registers
    return resp


def u32_words(value: int) -> list[int]:
    """Split an unsigned 32-bit value into [high, low] words."""
    return [(value >> 16) & 0xFFFF, value & 0xFFFF]


def make_modbus_client(
    values: dict[int, int] | None = None,
    connect_ok: bool = True,
    fail_at: int | None = None,
) -> AsyncMock:
    """Create a mocked AsyncModbusTcpClient.

    Args:
        values: Raw U32 value per register address; unknown addresses read 0.
        connect_ok: Whether connect() should return True.
        fail_at: Register address whose read returns a Modbus error.
    """
    values = values or {}
    client = AsyncMock()
    client.connect = AsyncMock(return_value=connect_ok)
    client.close = MagicMock()

    async def _read_input_registers(
        address: int, *, count: int = 1, device_id: int = 1
    ) -> MagicMock:
        if address == fail_at:
            return make_response([], is_error=True)
        return make_response(u32_words(values.get(address, 0)))

    client.read_input_registers = AsyncMock(side_effect=_read_input_registers)
    return client
