"""
ATP / 할당 엔진 — 미출하 주문 라인별로 현재 재고로 충족 가능한 수량을 계산한다.

알고리즘:
  1. 포함 창고(included_warehouses)의 재고를 상품 코드별로 합산 (음수 재고는 0으로 간주)
  2. 전체 미출하 주문을 오래된 주문 → 주문번호 순, 주문 내에서는 라인 번호 순으로 정렬
  3. 상품 풀에서 선착순(FCFS)으로 재고를 차감 — 요청 간 예약은 유지하지 않는다 (권고용)
  4. series 필터와 orderLimit은 할당이 끝난 뒤 결과에 적용한다
     (다른 시리즈의 더 오래된 주문이 이미 가져간 재고를 중복 약속하지 않기 위함)
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from app.config import AtpConfig
from app.engines.common import clamp, coverage_status, read_source, round_half_up
from app.engines.filters import SnapshotFilters
from app.errors import ConfigurationMissing
from app.schemas.command_center import AtpLine, AtpOrder, AtpSection, AtpSummary, CoverageStatus
from app.sources.base import OpenOrder, OperationsDataSource, StockPosition

logger = logging.getLogger(__name__)


@dataclass
class AllocationRun:
    """ATP 결과 + 할당 후 남은 재고 풀 (대체 상품 엔진 입력)"""
    section: AtpSection
    remaining_stock: dict[str, float] = field(default_factory=dict)


def pool_stock(positions: Iterable[StockPosition]) -> dict[str, float]:
    """상품 코드별 포함 창고 재고 합계"""
    pool: dict[str, float] = defaultdict(float)
    for position in positions:
        pool[position.product_code] += max(position.available_qty, 0.0)
    return dict(pool)


def fcfs_order(orders: Iterable[OpenOrder]) -> list[OpenOrder]:
    """선착순 처리 순서: 주문일 오름차순, 동률이면 주문번호 문자열 비교"""
    return sorted(orders, key=lambda o: (o.order_date, o.mikro_order_number))


def allocate(orders: Sequence[OpenOrder], stock: Sequence[StockPosition]) -> tuple[list[AtpOrder], dict[str, float]]:
    """
    전체 주문에 재고를 선착순 할당한다.
    Returns: (잔량이 남은 주문의 할당 결과 — FCFS 순, 할당 후 남은 재고 풀)
    """
    pooled = pool_stock(stock)
    remaining_pool = dict(pooled)
    results: list[AtpOrder] = []

    for order in fcfs_order(orders):
        lines: list[AtpLine] = []
        for line in sorted(order.lines, key=lambda l: l.row_number):
            remaining_qty = line.remaining_qty
            if remaining_qty <= 0:
                continue

            available = remaining_pool.get(line.product_code, 0.0)
            coverable_qty = min(available, remaining_qty)
            if coverable_qty > 0:
                remaining_pool[line.product_code] = available - coverable_qty
            shortage_qty = max(remaining_qty - coverable_qty, 0.0)

            lines.append(AtpLine(
                line_key=line.line_key,
                row_number=line.row_number,
                product_code=line.product_code,
                product_name=line.product_name,
                unit=line.unit,
                remaining_qty=remaining_qty,
                stock_qty=pooled.get(line.product_code, 0.0),
                coverable_qty=coverable_qty,
                shortage_qty=shortage_qty,
                coverage_status=coverage_status(remaining_qty, coverable_qty),
            ))

        remaining_qty = sum(line.remaining_qty for line in lines)
        # 남은 수량이 없는 주문은 할당 대상이 아니다
        if remaining_qty <= 0:
            continue

        coverable_qty = sum(line.coverable_qty for line in lines)
        shortage_qty = sum(line.shortage_qty for line in lines)
        covered_percent = int(clamp(round_half_up(100 * (remaining_qty - shortage_qty) / remaining_qty), 0, 100))

        results.append(AtpOrder(
            mikro_order_number=order.mikro_order_number,
            order_series=order.order_series,
            customer_code=order.customer_code,
            customer_name=order.customer_name,
            order_date=order.order_date,
            line_count=len(lines),
            remaining_qty=remaining_qty,
            coverable_qty=coverable_qty,
            shortage_qty=shortage_qty,
            covered_percent=covered_percent,
            coverage_status=coverage_status(remaining_qty, coverable_qty),
            lines=lines,
        ))

    return results, remaining_pool


def summarize(orders: Sequence[AtpOrder]) -> AtpSummary:
    total_remaining = sum(o.remaining_qty for o in orders)
    total_coverable = sum(o.coverable_qty for o in orders)
    total_shortage = sum(o.shortage_qty for o in orders)
    return AtpSummary(
        total_orders=len(orders),
        full_orders=sum(1 for o in orders if o.coverage_status == CoverageStatus.FULL),
        partial_orders=sum(1 for o in orders if o.coverage_status == CoverageStatus.PARTIAL),
        none_orders=sum(1 for o in orders if o.coverage_status == CoverageStatus.NONE),
        total_remaining_qty=total_remaining,
        total_coverable_qty=total_coverable,
        total_shortage_qty=total_shortage,
        covered_percent=round_half_up(100 * total_coverable / total_remaining) if total_remaining > 0 else 100,
    )


def select_orders(orders: Sequence[AtpOrder], filters: SnapshotFilters) -> list[AtpOrder]:
    """할당 이후 series 필터와 orderLimit 적용"""
    selected = [o for o in orders if not filters.series or o.order_series in filters.series]
    return selected[:filters.order_limit]


class AtpEngine:
    """ATP / 할당 엔진"""

    def __init__(self, source: OperationsDataSource, config: AtpConfig):
        self.source = source
        self.config = config

    def _check_configuration(self):
        if not self.config.included_warehouses:
            raise ConfigurationMissing(
                "Stok havuzu için dahil edilen depo tanımlı değil",
                details={"setting": "COMMAND_CENTER__ATP__INCLUDED_WAREHOUSES"},
            )

    async def run(self, filters: SnapshotFilters) -> AllocationRun:
        start = time.monotonic()

        try:
            self._check_configuration()
        except ConfigurationMissing as e:
            # 창고를 추측하지 않고 빈 할당 + 경고를 반환한다
            logger.warning(f"[ATP] {e}")
            return AllocationRun(section=AtpSection(warnings=[str(e)]))

        orders = await read_source(self.source.fetch_open_orders)
        stock = await read_source(self.source.fetch_stock, list(self.config.included_warehouses))

        allocations, remaining_pool = allocate(orders, stock)
        selected = select_orders(allocations, filters)

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[ATP] 할당 완료: 미출하 주문 {len(allocations)}건 중 {len(selected)}건 반환, "
            f"재고 레코드 {len(stock)}건 ({duration_ms}ms)"
        )

        return AllocationRun(
            section=AtpSection(summary=summarize(selected), orders=selected),
            remaining_stock=remaining_pool,
        )
