"""
GET / endpoint returning the current snapshot.

Copies the shared snapshot, recomputes the total power and returns every
string's watts, volts and amps in source order. Always answers 200 with the
best-known values, which may be stale for an unreachable inverter; device
errors are never surfaced here. A 500 is returned only if the snapshot
cannot be serialised.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ValidationError

from smawatch.src.models import SnapshotView

logger = logging.getLogger(__name__)

router = APIRouter(tags=["values"])


class StringValues(BaseModel):
    """One string's readings as served by the API."""

    name: str
    watts: float
    volts: float
    amps: float


class SnapshotResponse(BaseModel):
    """All strings plus the total power computed at read time."""

    strings: list[StringValues]
    total: float


def _view_to_response(view: SnapshotView) -> SnapshotResponse:
    """Convert a snapshot copy to the API response model."""
    return SnapshotResponse(
        strings=[
            StringValues(name=name, watts=m.power, volts=m.voltage, amps=m.current)
            for name, m in view.items()
        ],
        total=view.total_power,
    )


@router.get("/")
async def get_values(request: Request) -> dict:
    """Return the current snapshot as JSON.

    Args:
        request: The incoming FastAPI request; the snapshot is read from
            ``app.state.snapshot``.

    Returns:
        dict: ``{"strings": [{"name", "watts", "volts", "amps"}, ...],
        "total": float}``.

    Raises:
        HTTPException: 500 if the snapshot cannot be serialised.
    """
    view = request.app.state.snapshot.read_all()
    try:
        return _view_to_response(view).model_dump(mode="json")
    except (ValidationError, ValueError, TypeError) as exc:
        logger.error("Snapshot serialisation failed", exc_info=True)
        raise HTTPException(status_code=500, detail="Solar panels: snapshot unavailable") from exc
