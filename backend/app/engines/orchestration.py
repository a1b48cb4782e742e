"""
창고 오케스트레이션 엔진 — ATP 결과로 피킹 웨이브를 계획하고 현재 피커 부하를 보고한다.

웨이브 계획:
  - 주문 시리즈별로 묶는다 (빈 시리즈는 DIGER)
  - 시리즈 내에서 FULL → PARTIAL → NONE, 그다음 주문일/주문번호 순
  - 라인 수 상한 또는 주문 수 상한을 넘기게 되면 현재 웨이브를 닫고 새 웨이브 시작
  - 상한보다 라인이 많은 주문도 쪼개지 않고 단독 웨이브로 배정

피커 부하는 계산하지 않고 피킹 세션 저장소에서 읽어 그대로 집계한다.
웨이브 계획에 피드백되지 않으며, 재조정은 다음 새로고침에서 일어난다.
"""

import logging
import math
import time
from collections import defaultdict
from typing import Sequence

from app.config import WaveConfig
from app.engines.common import read_source
from app.models.picking import IDLE_STATUSES, PickingStatus
from app.schemas.command_center import (
    AtpOrder, CoverageStatus, OrchestrationSection, OrchestrationSummary,
    PickerWorkload, QueueStatusCount, Wave, WaveOrder,
)
from app.sources.base import OperationsDataSource, PickingSessionInfo

logger = logging.getLogger(__name__)

DEFAULT_SERIES = "DIGER"
UNASSIGNED_PICKER_NAME = "Atanmadı"

COVERAGE_RANK = {
    CoverageStatus.FULL: 0,
    CoverageStatus.PARTIAL: 1,
    CoverageStatus.NONE: 2,
}

IDLE_STATUS_VALUES = {status.value for status in IDLE_STATUSES}


def _series_of(order: AtpOrder) -> str:
    return (order.order_series or "").strip() or DEFAULT_SERIES


def _wave_sort_key(order: AtpOrder):
    return (COVERAGE_RANK[order.coverage_status], order.order_date, order.mikro_order_number)


def _build_wave(series: str, index: int, orders: list[AtpOrder], config: WaveConfig) -> Wave:
    line_count = sum(o.line_count for o in orders)
    estimated_minutes = round(config.setup_minutes + config.minutes_per_line * line_count, 1)
    picker_count = max(1, math.ceil(estimated_minutes / config.target_wave_minutes))
    return Wave(
        wave_id=f"{series}-{index}",
        order_series=series,
        order_count=len(orders),
        line_count=line_count,
        total_remaining_qty=sum(o.remaining_qty for o in orders),
        shortage_qty=sum(o.shortage_qty for o in orders),
        estimated_minutes=estimated_minutes,
        recommended_picker_count=picker_count,
        orders=[
            WaveOrder(
                mikro_order_number=o.mikro_order_number,
                customer_code=o.customer_code,
                customer_name=o.customer_name,
                line_count=o.line_count,
                remaining_qty=o.remaining_qty,
                shortage_qty=o.shortage_qty,
                coverage_status=o.coverage_status,
            )
            for o in orders
        ],
    )


def plan_waves(orders: Sequence[AtpOrder], config: WaveConfig) -> list[Wave]:
    """각 주문은 정확히 하나의 웨이브에 배정된다."""
    by_series: dict[str, list[AtpOrder]] = defaultdict(list)
    for order in orders:
        by_series[_series_of(order)].append(order)

    waves: list[Wave] = []
    for series in sorted(by_series):
        bucket: list[AtpOrder] = []
        bucket_lines = 0
        index = 1
        for order in sorted(by_series[series], key=_wave_sort_key):
            if bucket and (
                len(bucket) >= config.max_orders_per_wave
                or bucket_lines + order.line_count > config.max_lines_per_wave
            ):
                waves.append(_build_wave(series, index, bucket, config))
                index += 1
                bucket, bucket_lines = [], 0
            bucket.append(order)
            bucket_lines += order.line_count
        if bucket:
            waves.append(_build_wave(series, index, bucket, config))
    return waves


def picker_workload(sessions: Sequence[PickingSessionInfo]) -> list[PickerWorkload]:
    """진행 중인 세션을 피커별로 집계 (피커 미지정 세션은 미배정 행으로)"""
    rows: dict[str | None, dict] = {}
    for session in sessions:
        if session.status in IDLE_STATUS_VALUES:
            continue
        key = session.picker_user_id
        row = rows.setdefault(key, {
            "picker_name": session.picker_name or (key if key else UNASSIGNED_PICKER_NAME),
            "active_orders": 0,
            "open_lines": 0,
            "remaining_qty": 0.0,
            "last_action_at": None,
        })
        row["active_orders"] += 1
        row["open_lines"] += session.open_lines
        row["remaining_qty"] += session.remaining_qty
        if session.last_action_at and (row["last_action_at"] is None or session.last_action_at > row["last_action_at"]):
            row["last_action_at"] = session.last_action_at

    workload = [PickerWorkload(picker_user_id=key, **row) for key, row in rows.items()]
    workload.sort(key=lambda w: (-w.active_orders, -w.open_lines, w.picker_user_id is None, w.picker_user_id or ""))
    return workload


def queue_by_status(orders: Sequence[AtpOrder], sessions: Sequence[PickingSessionInfo]) -> list[QueueStatusCount]:
    """계획 대상 주문의 피킹 세션 상태별 건수 (세션 없음 = PENDING)"""
    status_by_order = {s.mikro_order_number: s.status for s in sessions}
    counts = {status.value: 0 for status in PickingStatus}
    for order in orders:
        status = status_by_order.get(order.mikro_order_number, PickingStatus.PENDING.value)
        counts[status] = counts.get(status, 0) + 1
    return [QueueStatusCount(status=status, count=count) for status, count in counts.items()]


class OrchestrationEngine:
    """창고 오케스트레이션 엔진"""

    def __init__(self, source: OperationsDataSource, config: WaveConfig):
        self.source = source
        self.config = config

    async def run(self, atp_orders: Sequence[AtpOrder]) -> OrchestrationSection:
        start = time.monotonic()

        order_numbers = [o.mikro_order_number for o in atp_orders]
        sessions = await read_source(self.source.fetch_picking_sessions, order_numbers)

        waves = plan_waves(atp_orders, self.config)
        workload = picker_workload(sessions)

        summary = OrchestrationSummary(
            open_orders=len(atp_orders),
            backlog_lines=sum(o.line_count for o in atp_orders),
            backlog_qty=sum(o.remaining_qty for o in atp_orders),
            shortage_orders=sum(1 for o in atp_orders if o.shortage_qty > 0),
            active_pickers=sum(1 for w in workload if w.picker_user_id),
            wave_count=len(waves),
        )

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[Waves] 주문 {summary.open_orders}건 → 웨이브 {summary.wave_count}개, "
            f"활성 피커 {summary.active_pickers}명 ({duration_ms}ms)"
        )

        return OrchestrationSection(
            summary=summary,
            queue_by_status=queue_by_status(atp_orders, sessions),
            picker_workload=workload,
            waves=waves,
        )
