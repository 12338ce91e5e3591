"""
SMA WebBox gateway client and the low-frequency gateway query path.

The WebBox exposes a JSON-RPC interface at ``{base_url}/rpc``. Each request
is a form POST whose ``RPC`` field holds the JSON envelope::

    {"version": "1.0", "proc": "GetDevices", "id": "1", "format": "JSON"}

Two procedures are used:

- ``GetDevices``: lists the devices behind the gateway (name + key).
- ``GetProcessData``: returns the live channels of one device as a list of
  ``{"meta": "A.Ms.Amp", "value": "1.234", ...}`` records.

The gateway device is resolved by name match, first at startup. If the
device list is read but nothing matches, the path stays disabled for the
process lifetime. If the list cannot be read, resolution is retried on the
next low-frequency query. A fetch that fails raises :class:`QueryError`;
the caller keeps the previous values.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-19: Retry device resolution after a failed GetDevices call

TODO:
- None
"""

from __future__ import annotations

import itertools
import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from smawatch.src.exceptions import QueryError
from smawatch.src.models import Measurement

logger = logging.getLogger(__name__)

CHANNEL_GROUPS: tuple[str, str] = ("A", "B")
"""Gateway channel groups, in the order of the configured source indices."""

_CURRENT_SUFFIX = "Ms.Amp"
_VOLTAGE_SUFFIX = "Ms.Vol"
_POWER_SUFFIX = "Ms.Watt"


@dataclass(frozen=True, slots=True)
class GatewayDevice:
    """A device listed by the gateway."""

    name: str
    key: str


# ---------------------------------------------------------------------------
# RPC client
# ---------------------------------------------------------------------------


class WebBoxClient:
    """Minimal async client for the WebBox JSON-RPC interface.

    Args:
        base_url: Gateway base URL, e.g. ``http://192.168.10.22:80``.
        timeout_s: Request timeout in seconds.
        client: Optional shared ``httpx.AsyncClient``. When omitted, the
            client creates and owns one; close it with :meth:`aclose`.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def list_devices(self) -> list[GatewayDevice]:
        """Return every device known to the gateway.

        Raises:
            QueryError: On transport failure or a malformed response.
        """
        result = await self._rpc("GetDevices")
        try:
            return [
                GatewayDevice(name=str(d["name"]), key=str(d["key"]))
                for d in result.get("devices") or []
            ]
        except (KeyError, TypeError, AttributeError) as exc:
            raise QueryError(f"malformed GetDevices result: {exc}") from exc

    async def get_channels(self, key: str) -> dict[str, str]:
        """Return the live channel map of one device keyed by channel meta.

        Raises:
            QueryError: On transport failure or a malformed response.
        """
        result = await self._rpc("GetProcessData", {"devices": [{"key": key}]})
        try:
            devices = result["devices"]
            if not devices:
                raise QueryError(f"GetProcessData returned no device for key {key}")
            channels = devices[0].get("channels") or []
            return {str(c["meta"]): str(c.get("value") or "") for c in channels}
        except (KeyError, TypeError, AttributeError, IndexError) as exc:
            raise QueryError(f"malformed GetProcessData result: {exc}") from exc

    async def _rpc(self, proc: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Issue one RPC call and return its ``result`` member."""
        envelope: dict[str, Any] = {
            "version": "1.0",
            "proc": proc,
            "id": str(next(self._ids)),
            "format": "JSON",
        }
        if params is not None:
            envelope["params"] = params

        try:
            response = await self._client.post(
                f"{self._base_url}/rpc",
                data={"RPC": json.dumps(envelope)},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise QueryError(f"{proc} request failed: {exc}") from exc
        except ValueError as exc:
            raise QueryError(f"{proc} returned invalid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise QueryError(f"{proc} returned a non-object payload")
        if payload.get("error"):
            raise QueryError(f"{proc} RPC error: {payload['error']}")
        result = payload.get("result")
        if not isinstance(result, dict):
            raise QueryError(f"{proc} response has no result")
        return result


# ---------------------------------------------------------------------------
# Channel decoding
# ---------------------------------------------------------------------------


def _channel_float(channels: Mapping[str, str], meta: str) -> float:
    """Parse one channel value; missing or unusable values decode as 0.0."""
    raw = channels.get(meta, "").strip()
    if not raw:
        return 0.0
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Gateway channel %s has non-numeric value %r, using 0", meta, raw)
        return 0.0
    if not math.isfinite(value) or value < 0:
        logger.warning("Gateway channel %s has out-of-range value %r, using 0", meta, raw)
        return 0.0
    return value


def measurement_from_channels(channels: Mapping[str, str], group: str) -> Measurement:
    """Build the Measurement of one channel group (``"A"`` or ``"B"``)."""
    return Measurement(
        current=_channel_float(channels, f"{group}.{_CURRENT_SUFFIX}"),
        voltage=_channel_float(channels, f"{group}.{_VOLTAGE_SUFFIX}"),
        power=_channel_float(channels, f"{group}.{_POWER_SUFFIX}"),
    )


# ---------------------------------------------------------------------------
# Gateway path
# ---------------------------------------------------------------------------


class GatewayPath:
    """Resolves the gateway device once and fetches its two strings.

    Args:
        client: The WebBox RPC client (or any object with async
            ``list_devices()`` and ``get_channels(key)``).
        device_match: Substring that identifies the device by name.
        source_indices: Snapshot indices for channel groups A and B.
    """

    def __init__(
        self,
        client: Any,
        *,
        device_match: str = "WRTU",
        source_indices: tuple[int, int] = (9, 10),
    ) -> None:
        self._client = client
        self._device_match = device_match
        self.source_indices = source_indices
        self._device_key: str | None = None
        self._resolved = False

    @property
    def enabled(self) -> bool:
        """True once a device key has been resolved."""
        return self._device_key is not None

    @property
    def resolved(self) -> bool:
        """True once the device list has been read, whether or not it matched."""
        return self._resolved

    @property
    def device_key(self) -> str | None:
        """Resolved device key, or None when disabled."""
        return self._device_key

    async def resolve(self) -> bool:
        """Find the gateway device by name.

        A device list that was read but holds no match disables the path for
        good. A failed query leaves the path unresolved so the next call
        tries again.

        Returns:
            True if a device was found.
        """
        if self._resolved:
            return self.enabled

        try:
            devices = await self._client.list_devices()
        except QueryError as exc:
            logger.warning("Gateway device list unavailable, will retry: %s", exc)
            return False
        self._resolved = True

        for device in devices:
            if self._device_match in device.name:
                self._device_key = device.key
                logger.info("Gateway device resolved: name=%s key=%s", device.name, device.key)
                return True

        logger.error(
            "No gateway device matching '%s' among %d devices, gateway disabled",
            self._device_match,
            len(devices),
        )
        return False

    async def fetch(self) -> tuple[Measurement, Measurement]:
        """Fetch the current Measurements of channel groups A and B.

        Raises:
            QueryError: If the path is disabled or the query failed.
        """
        if self._device_key is None:
            raise QueryError("gateway path is disabled")
        channels = await self._client.get_channels(self._device_key)
        a, b = (measurement_from_channels(channels, group) for group in CHANNEL_GROUPS)
        return a, b
