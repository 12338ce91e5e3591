"""
Tests for the production log sink.

Tests verify:
- The row holds amps/volts/watts for every source, in source order.
- init_schema creates the production table and is idempotent.
- write() inserts exactly one row and reports one affected row.
- The total power is never persisted.
- Database failures and layout mismatches raise SinkError.

Uses a temporary SQLite database through aiosqlite.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from pathlib import Path

import pytest
from smawatch.src.exceptions import SinkError
from smawatch.src.models import Measurement, SnapshotView
from smawatch.src.sink import ProductionSink, column_names, snapshot_to_row
from sqlalchemy import inspect, select

NAMES = list("abcdefghijk")


def _view(names: list[str] = NAMES) -> SnapshotView:
    measurements = tuple(
        Measurement(current=i + 0.5, voltage=200 + i, power=100 * (i + 1))
        for i in range(len(names))
    )
    return SnapshotView(
        names=tuple(names),
        measurements=measurements,
        total_power=sum(m.power for m in measurements),
    )


def _sink(tmp_path: Path, names: list[str] = NAMES) -> ProductionSink:
    return ProductionSink(f"sqlite+aiosqlite:///{tmp_path / 'production.db'}", names)


class TestRowMapping:
    """Snapshot to row conversion."""

    def test_column_order(self) -> None:
        assert column_names(["a", "b"]) == [
            "amps_a", "volts_a", "watts_a",
            "amps_b", "volts_b", "watts_b",
        ]

    def test_full_row_has_three_columns_per_source(self) -> None:
        row = snapshot_to_row(_view())
        assert len(row) == 33
        assert list(row) == column_names(NAMES)

    def test_values_follow_sources(self) -> None:
        row = snapshot_to_row(_view())
        assert row["amps_a"] == 0.5
        assert row["volts_a"] == 200
        assert row["watts_a"] == 100
        assert row["watts_k"] == 1100

    def test_total_not_in_row(self) -> None:
        row = snapshot_to_row(_view())
        assert not any("total" in column for column in row)


class TestSchema:
    """Table creation."""

    def test_table_columns(self, tmp_path: Path) -> None:
        sink = _sink(tmp_path)
        names = [c.name for c in sink.table.columns]
        assert names[:2] == ["id", "logged_at"]
        assert names[2:] == column_names(NAMES)

    @pytest.mark.asyncio
    async def test_init_schema_creates_table(self, tmp_path: Path) -> None:
        sink = _sink(tmp_path)
        try:
            await sink.init_schema()
            await sink.init_schema()
            async with sink._engine.connect() as conn:
                tables = await conn.run_sync(lambda c: inspect(c).get_table_names())
            assert "solar_production" in tables
        finally:
            await sink.close()

    @pytest.mark.asyncio
    async def test_init_schema_unreachable_database(self, tmp_path: Path) -> None:
        missing = tmp_path / "no" / "such" / "dir" / "db.sqlite"
        sink = ProductionSink(f"sqlite+aiosqlite:///{missing}", NAMES)
        try:
            with pytest.raises(SinkError, match="cannot create"):
                await sink.init_schema()
        finally:
            await sink.close()


class TestWrite:
    """Row inserts."""

    @pytest.mark.asyncio
    async def test_write_inserts_one_row(self, tmp_path: Path) -> None:
        sink = _sink(tmp_path)
        try:
            await sink.init_schema()
            assert await sink.write(_view()) == 1

            async with sink._engine.connect() as conn:
                rows = (await conn.execute(select(sink.table))).mappings().all()
            assert len(rows) == 1
            assert rows[0]["amps_a"] == pytest.approx(0.5)
            assert rows[0]["volts_c"] == pytest.approx(202)
            assert rows[0]["watts_k"] == pytest.approx(1100)
            assert rows[0]["logged_at"] is not None
        finally:
            await sink.close()

    @pytest.mark.asyncio
    async def test_each_write_adds_a_row(self, tmp_path: Path) -> None:
        sink = _sink(tmp_path)
        try:
            await sink.init_schema()
            await sink.write(_view())
            await sink.write(_view())
            async with sink._engine.connect() as conn:
                rows = (await conn.execute(select(sink.table.c.id))).all()
            assert [r.id for r in rows] == [1, 2]
        finally:
            await sink.close()

    @pytest.mark.asyncio
    async def test_write_without_table_raises(self, tmp_path: Path) -> None:
        sink = _sink(tmp_path)
        try:
            with pytest.raises(SinkError, match="insert into solar_production failed"):
                await sink.write(_view())
        finally:
            await sink.close()

    @pytest.mark.asyncio
    async def test_layout_mismatch_raises(self, tmp_path: Path) -> None:
        sink = _sink(tmp_path)
        try:
            await sink.init_schema()
            with pytest.raises(SinkError, match="do not match"):
                await sink.write(_view(["a", "b"]))
        finally:
            await sink.close()
