"""
운영 커맨드 센터 API
- GET /api/admin/operations/command-center: 전체 스냅샷 (섹션별 degraded 허용)
- GET /api/admin/operations/{atp|orchestration|customer-intent|risk|substitution|data-quality}:
  단일 섹션 (원천 실패 시 503)

공통 쿼리 파라미터: series (CSV), orderLimit, customerLimit
잘못된 파라미터는 엔진 실행 전에 400으로 거절된다.
"""

import logging

from fastapi import APIRouter, Depends, Query

from app.config import settings
from app.engines.aggregator import CommandCenterAggregator
from app.engines.cache import SnapshotCache
from app.engines.filters import SnapshotFilters, parse_filters
from app.schemas.command_center import (
    AtpResponse, CommandCenterResponse, CustomerIntentResponse, DataQualityResponse,
    OrchestrationResponse, RiskResponse, SubstitutionResponse,
)
from app.sources import SqlOperationsDataSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/operations", tags=["operations"])

# main.py lifespan에서 설정
_aggregator: CommandCenterAggregator | None = None
_snapshot_cache: SnapshotCache | None = None


def set_aggregator(aggregator: CommandCenterAggregator):
    global _aggregator
    _aggregator = aggregator


def set_snapshot_cache(cache: SnapshotCache | None):
    global _snapshot_cache
    _snapshot_cache = cache


def get_aggregator() -> CommandCenterAggregator:
    global _aggregator
    if _aggregator is None:
        _aggregator = CommandCenterAggregator(SqlOperationsDataSource(), settings.COMMAND_CENTER)
    return _aggregator


def get_snapshot_cache() -> SnapshotCache | None:
    return _snapshot_cache


def get_filters(
    series: str | None = Query(None, description="Sipariş serileri (CSV), örn. A,B"),
    order_limit: int | None = Query(None, alias="orderLimit", ge=1, le=settings.MAX_ORDER_LIMIT),
    customer_limit: int | None = Query(None, alias="customerLimit", ge=1, le=settings.MAX_CUSTOMER_LIMIT),
) -> SnapshotFilters:
    """쿼리 파라미터 검증 — 실패 시 400 (INVALID_FILTER)"""
    return parse_filters(
        series,
        order_limit,
        customer_limit,
        default_order_limit=settings.DEFAULT_ORDER_LIMIT,
        default_customer_limit=settings.DEFAULT_CUSTOMER_LIMIT,
    )


@router.get("/command-center", response_model=CommandCenterResponse)
async def get_command_center(
    refresh: bool = Query(False, description="캐시를 무시하고 새로 계산"),
    filters: SnapshotFilters = Depends(get_filters),
    aggregator: CommandCenterAggregator = Depends(get_aggregator),
    cache: SnapshotCache | None = Depends(get_snapshot_cache),
):
    """전체 커맨드 센터 스냅샷"""
    if cache is not None and not refresh:
        cached = await cache.get(filters)
        if cached is not None:
            logger.debug(f"[API] 캐시 적중: {filters.cache_key}")
            return CommandCenterResponse(data=cached)

    snapshot = await aggregator.build_snapshot(filters)
    # degraded 스냅샷은 캐시하지 않음 (원천 복구 즉시 반영)
    if cache is not None and not snapshot.degraded_sections:
        await cache.set(filters, snapshot)
    return CommandCenterResponse(data=snapshot)


@router.get("/atp", response_model=AtpResponse)
async def get_atp(
    filters: SnapshotFilters = Depends(get_filters),
    aggregator: CommandCenterAggregator = Depends(get_aggregator),
):
    return AtpResponse(data=await aggregator.atp_section(filters))


@router.get("/orchestration", response_model=OrchestrationResponse)
async def get_orchestration(
    filters: SnapshotFilters = Depends(get_filters),
    aggregator: CommandCenterAggregator = Depends(get_aggregator),
):
    return OrchestrationResponse(data=await aggregator.orchestration_section(filters))


@router.get("/customer-intent", response_model=CustomerIntentResponse)
async def get_customer_intent(
    filters: SnapshotFilters = Depends(get_filters),
    aggregator: CommandCenterAggregator = Depends(get_aggregator),
):
    return CustomerIntentResponse(data=await aggregator.customer_intent_section(filters))


@router.get("/risk", response_model=RiskResponse)
async def get_risk(
    filters: SnapshotFilters = Depends(get_filters),
    aggregator: CommandCenterAggregator = Depends(get_aggregator),
):
    return RiskResponse(data=await aggregator.risk_section(filters))


@router.get("/substitution", response_model=SubstitutionResponse)
async def get_substitution(
    filters: SnapshotFilters = Depends(get_filters),
    aggregator: CommandCenterAggregator = Depends(get_aggregator),
):
    return SubstitutionResponse(data=await aggregator.substitution_section(filters))


@router.get("/data-quality", response_model=DataQualityResponse)
async def get_data_quality(
    aggregator: CommandCenterAggregator = Depends(get_aggregator),
):
    return DataQualityResponse(data=await aggregator.data_quality_section())
