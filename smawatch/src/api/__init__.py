"""
Read-only HTTP API over the shared snapshot.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""
