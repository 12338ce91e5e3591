"""
Exception hierarchy for the watcher.

Every error raised by a collaborator (inverter, gateway, sink) is converted
into one of these at the point of use, so the scheduler only has to catch
``WatchError`` subclasses at its tick boundary.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations


class WatchError(Exception):
    """Base exception for all watcher errors."""


class DeviceConnectionError(WatchError):
    """Modbus connection or read failure for one inverter group.

    The owning slot is Disconnected when this is raised and reconnects on
    the next tick.
    """

    def __init__(self, message: str, host: str | None = None, port: int | None = None):
        self.host = host
        self.port = port
        super().__init__(message)


class RegisterReadError(WatchError):
    """A single register read failed or returned an unusable payload."""

    def __init__(self, message: str, address: int | None = None):
        self.address = address
        super().__init__(message)


class QueryError(WatchError):
    """Gateway unreachable or returned a malformed response."""


class SinkError(WatchError):
    """Writing the snapshot row to the production log failed."""
