"""
커맨드 센터 Aggregator — 6개 엔진을 병렬 실행해 하나의 스냅샷으로 합친다.

실행 그래프:
  {ATP → {Orchestration, Substitution}} ∥ Risk ∥ CustomerIntent ∥ DataQuality

- 각 엔진 호출은 섹션 제한 시간과 요청 전체 마감 시각 중 짧은 쪽으로 제한된다.
- 엔진 실패/타임아웃은 해당 섹션만 degraded로 표시하고 나머지는 그대로 반환한다.
- ATP가 degraded이면 Orchestration/Substitution은 실행하지 않고 degraded 처리한다.
- 모든 섹션이 degraded이면 AggregationFailed.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from app.config import CommandCenterConfig
from app.engines.atp import AllocationRun, AtpEngine
from app.engines.data_quality import DataQualityFirewall
from app.engines.filters import SnapshotFilters
from app.engines.intent import CustomerIntentEngine
from app.engines.orchestration import OrchestrationEngine
from app.engines.risk import RiskEngine
from app.engines.substitution import SubstitutionEngine
from app.errors import AggregationFailed, CommandCenterError
from app.schemas.command_center import (
    AtpSection, CommandCenterSnapshot, CommandCenterSummary, CustomerIntentSection,
    DataQualitySection, DegradedSection, OrchestrationSection, RiskSection,
    SectionError, SubstitutionSection,
)
from app.sources.base import OperationsDataSource

logger = logging.getLogger(__name__)

SECTION_NAMES = ("atp", "orchestration", "customerIntent", "risk", "substitution", "dataQuality")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _degraded(code: str, message: str) -> DegradedSection:
    return DegradedSection(error=SectionError(code=code, message=message))


def build_summary(
    atp: AtpSection | DegradedSection,
    orchestration: OrchestrationSection | DegradedSection,
    customer_intent: CustomerIntentSection | DegradedSection,
    risk: RiskSection | DegradedSection,
    substitution: SubstitutionSection | DegradedSection,
    data_quality: DataQualitySection | DegradedSection,
) -> CommandCenterSummary:
    """degraded 섹션에서 나오는 카운터는 None"""
    values = {}
    if isinstance(atp, AtpSection):
        values["open_order_count"] = atp.summary.total_orders
        values["low_coverage_order_count"] = atp.summary.partial_orders + atp.summary.none_orders
        values["shortage_qty"] = atp.summary.total_shortage_qty
    if isinstance(orchestration, OrchestrationSection):
        values["active_picker_count"] = orchestration.summary.active_pickers
    if isinstance(customer_intent, CustomerIntentSection):
        values["hot_customer_count"] = customer_intent.summary.hot_customers
    if isinstance(risk, RiskSection):
        values["high_risk_order_count"] = risk.summary.reject_count + risk.summary.manual_review_count
    if isinstance(substitution, SubstitutionSection):
        values["substitution_need_count"] = substitution.summary.lines_needing_substitution
    if isinstance(data_quality, DataQualitySection):
        values["blocked_data_checks"] = data_quality.summary.blocked_checks
    return CommandCenterSummary(**values)


class CommandCenterAggregator:
    """엔진 생성 + 병렬 fan-out + 부분 실패 조정"""

    def __init__(
        self,
        source: OperationsDataSource,
        config: CommandCenterConfig,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.config = config
        self.clock = clock
        self.atp = AtpEngine(source, config.atp)
        self.orchestration = OrchestrationEngine(source, config.waves)
        self.customer_intent = CustomerIntentEngine(source, config.intent)
        self.risk = RiskEngine(source, config.risk)
        self.substitution = SubstitutionEngine(source, config.substitution)
        self.data_quality = DataQualityFirewall(source, config.data_quality)

    def _now(self) -> datetime:
        """DB 비교용 naive UTC 시각"""
        return self.clock().astimezone(timezone.utc).replace(tzinfo=None)

    async def _guarded(self, section: str, coro: Awaitable, deadline: float):
        """
        엔진 호출을 제한 시간 안에서 실행한다.
        Returns: 엔진 결과 또는 DegradedSection
        """
        loop = asyncio.get_event_loop()
        time_limit = min(self.config.timeouts.section_seconds, deadline - loop.time())
        if time_limit <= 0:
            coro.close()
            logger.warning(f"[Aggregator] {section}: 요청 마감 시각 초과, 실행하지 않음")
            return _degraded("TIMEOUT", "İstek süresi doldu")

        try:
            return await asyncio.wait_for(coro, timeout=time_limit)
        except asyncio.TimeoutError:
            logger.warning(f"[Aggregator] {section}: {time_limit:.1f}s 제한 시간 초과")
            return _degraded("TIMEOUT", f"{section} bölümü {time_limit:.1f} saniyede tamamlanamadı")
        except CommandCenterError as e:
            logger.warning(f"[Aggregator] {section} degraded: {e}")
            return _degraded(e.code, e.message)
        except Exception as e:
            logger.error(f"[Aggregator] {section} 엔진 오류: {e}", exc_info=True)
            return _degraded("ENGINE_ERROR", f"{section} bölümü hesaplanamadı")

    async def _atp_branch(self, filters: SnapshotFilters, deadline: float):
        run = await self._guarded("atp", self.atp.run(filters), deadline)
        if isinstance(run, DegradedSection):
            dependency = _degraded("DEPENDENCY_DEGRADED", "ATP bölümü alınamadığı için hesaplanmadı")
            return run, dependency, dependency

        orchestration, substitution = await asyncio.gather(
            self._guarded("orchestration", self.orchestration.run(run.section.orders), deadline),
            self._guarded("substitution", self.substitution.run(run), deadline),
        )
        return run.section, orchestration, substitution

    async def build_snapshot(self, filters: SnapshotFilters) -> CommandCenterSnapshot:
        start = time.monotonic()
        loop = asyncio.get_event_loop()
        deadline = loop.time() + self.config.timeouts.request_seconds

        generated_at = self.clock()
        now = self._now()

        (atp, orchestration, substitution), risk, customer_intent, data_quality = await asyncio.gather(
            self._atp_branch(filters, deadline),
            self._guarded("risk", self.risk.run(filters, now), deadline),
            self._guarded("customerIntent", self.customer_intent.run(filters, now), deadline),
            self._guarded("dataQuality", self.data_quality.run(), deadline),
        )

        sections = {
            "atp": atp,
            "orchestration": orchestration,
            "customerIntent": customer_intent,
            "risk": risk,
            "substitution": substitution,
            "dataQuality": data_quality,
        }
        degraded = [name for name in SECTION_NAMES if isinstance(sections[name], DegradedSection)]

        if len(degraded) == len(SECTION_NAMES):
            logger.error("[Aggregator] 모든 섹션 실패")
            raise AggregationFailed(details={
                "sections": {name: sections[name].error.model_dump() for name in SECTION_NAMES},
            })

        snapshot = CommandCenterSnapshot(
            generated_at=generated_at,
            summary=build_summary(
                sections["atp"], sections["orchestration"], sections["customerIntent"],
                sections["risk"], sections["substitution"], sections["dataQuality"],
            ),
            degraded_sections=degraded,
            atp=sections["atp"],
            orchestration=sections["orchestration"],
            customer_intent=sections["customerIntent"],
            risk=sections["risk"],
            substitution=sections["substitution"],
            data_quality=sections["dataQuality"],
        )

        duration_ms = int((time.monotonic() - start) * 1000)
        if degraded:
            logger.warning(f"[Aggregator] 스냅샷 생성 (degraded: {', '.join(degraded)}) ({duration_ms}ms)")
        else:
            logger.info(f"[Aggregator] 스냅샷 생성 완료 ({duration_ms}ms)")
        return snapshot

    # ── 단일 섹션 조회 (에러는 그대로 전파 → API에서 503) ──────────

    async def atp_section(self, filters: SnapshotFilters) -> AtpSection:
        run = await self.atp.run(filters)
        return run.section

    async def orchestration_section(self, filters: SnapshotFilters) -> OrchestrationSection:
        run = await self.atp.run(filters)
        return await self.orchestration.run(run.section.orders)

    async def substitution_section(self, filters: SnapshotFilters) -> SubstitutionSection:
        run: AllocationRun = await self.atp.run(filters)
        return await self.substitution.run(run)

    async def customer_intent_section(self, filters: SnapshotFilters) -> CustomerIntentSection:
        return await self.customer_intent.run(filters, self._now())

    async def risk_section(self, filters: SnapshotFilters) -> RiskSection:
        return await self.risk.run(filters, self._now())

    async def data_quality_section(self) -> DataQualitySection:
        return await self.data_quality.run()
