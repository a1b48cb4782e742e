import pytest

from app.config import AtpConfig
from app.engines.atp import AtpEngine, allocate, pool_stock
from app.engines.filters import SnapshotFilters
from app.errors import SourceUnavailable
from app.schemas.command_center import CoverageStatus

from tests.factories import FakeDataSource, line, order, stock


def test_partial_order_scenario():
    orders, _ = allocate([order("O-100", line("SKU-1", 50))], [stock("SKU-1", 30)])

    assert len(orders) == 1
    o = orders[0]
    assert o.remaining_qty == 50
    assert o.coverable_qty == 30
    assert o.shortage_qty == 20
    assert o.covered_percent == 60
    assert o.coverage_status == CoverageStatus.PARTIAL
    assert o.lines[0].line_key == "SKU-1#1"


def test_oldest_order_is_served_first():
    orders, remaining = allocate(
        [
            order("O-2", line("SKU-1", 10), day=1),
            order("O-1", line("SKU-1", 10), day=0),
        ],
        [stock("SKU-1", 15)],
    )

    assert [o.mikro_order_number for o in orders] == ["O-1", "O-2"]
    assert orders[0].coverage_status == CoverageStatus.FULL
    assert orders[1].coverable_qty == 5
    assert orders[1].coverage_status == CoverageStatus.PARTIAL
    assert remaining["SKU-1"] == 0


def test_same_date_ties_broken_by_order_number():
    orders, _ = allocate(
        [order("O-20", line("SKU-1", 10)), order("O-10", line("SKU-1", 10))],
        [stock("SKU-1", 10)],
    )

    assert orders[0].mikro_order_number == "O-10"
    assert orders[0].coverage_status == CoverageStatus.FULL
    assert orders[1].coverage_status == CoverageStatus.NONE


def test_lines_within_order_consume_in_row_order():
    orders, _ = allocate(
        [order("O-1", line("SKU-1", 8, row=2), line("SKU-1", 8, row=1))],
        [stock("SKU-1", 10)],
    )

    first, second = orders[0].lines
    assert first.row_number == 1 and first.coverable_qty == 8
    assert second.row_number == 2 and second.coverable_qty == 2


def test_missing_stock_is_full_shortage():
    orders, _ = allocate([order("O-1", line("SKU-X", 7))], [])

    assert orders[0].shortage_qty == 7
    assert orders[0].covered_percent == 0
    assert orders[0].coverage_status == CoverageStatus.NONE


def test_fully_shipped_orders_are_excluded():
    orders, _ = allocate(
        [
            order("O-1", line("SKU-1", 10, delivered=10)),
            order("O-2", line("SKU-1", 5)),
        ],
        [stock("SKU-1", 5)],
    )

    assert [o.mikro_order_number for o in orders] == ["O-2"]


def test_negative_stock_counts_as_zero():
    pool = pool_stock([stock("SKU-1", -5, "DEPO1"), stock("SKU-1", 8, "MERKEZ")])
    assert pool == {"SKU-1": 8}


def test_line_quantities_stay_within_bounds():
    orders, _ = allocate(
        [
            order("O-1", line("A", 10, row=1), line("B", 3, row=2)),
            order("O-2", line("A", 6, row=1), line("B", 9, row=2, delivered=4), day=1),
            order("O-3", line("C", 1), day=2),
        ],
        [stock("A", 12), stock("B", 4)],
    )

    for o in orders:
        for ln in o.lines:
            assert 0 <= ln.shortage_qty <= ln.remaining_qty
            if ln.shortage_qty == 0:
                assert ln.coverage_status == CoverageStatus.FULL
            elif ln.coverable_qty == 0:
                assert ln.coverage_status == CoverageStatus.NONE
            else:
                assert ln.coverage_status == CoverageStatus.PARTIAL
        assert 0 <= o.covered_percent <= 100


async def test_engine_pools_only_included_warehouses():
    source = FakeDataSource(
        orders=[order("O-100", line("SKU-1", 50))],
        stock=[stock("SKU-1", 20, "DEPO1"), stock("SKU-1", 10, "MERKEZ"), stock("SKU-1", 500, "IADE")],
    )
    engine = AtpEngine(source, AtpConfig(included_warehouses=["DEPO1", "MERKEZ"]))

    run = await engine.run(SnapshotFilters())

    assert run.section.orders[0].lines[0].stock_qty == 30
    assert run.section.orders[0].shortage_qty == 20
    assert run.remaining_stock["SKU-1"] == 0


async def test_series_filter_applied_after_allocation():
    source = FakeDataSource(
        orders=[
            order("B-1", line("SKU-1", 10), series="B", day=0),
            order("A-1", line("SKU-1", 10), series="A", day=1),
        ],
        stock=[stock("SKU-1", 10)],
    )
    engine = AtpEngine(source, AtpConfig())

    run = await engine.run(SnapshotFilters(series=("A",)))

    assert [o.mikro_order_number for o in run.section.orders] == ["A-1"]
    # 더 오래된 B-1이 재고를 이미 가져갔다
    assert run.section.orders[0].coverage_status == CoverageStatus.NONE
    assert run.section.summary.total_orders == 1
    assert run.section.summary.none_orders == 1


async def test_order_limit_truncates_in_fcfs_order():
    source = FakeDataSource(
        orders=[order(f"O-{i}", line("SKU-1", 1), day=i) for i in range(5)],
        stock=[stock("SKU-1", 100)],
    )
    engine = AtpEngine(source, AtpConfig())

    run = await engine.run(SnapshotFilters(order_limit=2))

    assert [o.mikro_order_number for o in run.section.orders] == ["O-0", "O-1"]
    assert run.section.summary.covered_percent == 100


async def test_missing_warehouse_configuration_returns_warning():
    source = FakeDataSource(orders=[order("O-1", line("SKU-1", 1))], stock=[stock("SKU-1", 5)])
    engine = AtpEngine(source, AtpConfig(included_warehouses=[]))

    run = await engine.run(SnapshotFilters())

    assert run.section.status == "ok"
    assert run.section.orders == []
    assert len(run.section.warnings) == 1
    assert "CONFIGURATION_MISSING" in run.section.warnings[0]
    assert source.calls == []


async def test_inventory_failure_propagates():
    source = FakeDataSource(orders=[order("O-1", line("SKU-1", 1))])
    source.failing.add("fetch_stock")
    engine = AtpEngine(source, AtpConfig())

    with pytest.raises(SourceUnavailable):
        await engine.run(SnapshotFilters())
