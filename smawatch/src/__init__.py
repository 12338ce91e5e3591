"""
SMA string telemetry watcher.

Polls DC string current, voltage and power from SMA Sunny Boy inverters over
Modbus TCP and from an SMA WebBox gateway over HTTP, keeps the latest values in
one shared snapshot, logs the snapshot to SQL and serves it as JSON.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""
