"""
커맨드 센터 Pydantic 스키마
- 각 섹션은 status 필드로 구분되는 태그드 유니온이다:
  정상(ok) 섹션은 데이터를, degraded 섹션은 에러 정보만 가진다.
- 필드명은 운영 대시보드 계약(camelCase)을 그대로 따른다.
"""

import enum
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import Field

from app.schemas.common import CamelModel


class CoverageStatus(str, enum.Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"
    NONE = "NONE"


class IntentSegment(str, enum.Enum):
    HOT = "HOT"
    WARM = "WARM"
    COLD = "COLD"


class ChurnRisk(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RiskDecision(str, enum.Enum):
    AUTO_APPROVE = "AUTO_APPROVE"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    REJECT = "REJECT"


class Severity(str, enum.Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# ── degraded 섹션 ────────────────────────────────────────


class SectionError(CamelModel):
    code: str
    message: str


class DegradedSection(CamelModel):
    status: Literal["degraded"] = "degraded"
    error: SectionError


# ── ATP ─────────────────────────────────────────────────


class AtpLine(CamelModel):
    line_key: str  # "<productCode>#<rowNumber>"
    row_number: int
    product_code: str
    product_name: str
    unit: str
    remaining_qty: float
    stock_qty: float  # 포함 창고 합산 재고 (할당 전)
    coverable_qty: float
    shortage_qty: float
    coverage_status: CoverageStatus


class AtpOrder(CamelModel):
    mikro_order_number: str
    order_series: str
    customer_code: str
    customer_name: str
    order_date: datetime
    line_count: int
    remaining_qty: float
    coverable_qty: float
    shortage_qty: float
    covered_percent: int
    coverage_status: CoverageStatus
    lines: list[AtpLine] = []


class AtpSummary(CamelModel):
    total_orders: int = 0
    full_orders: int = 0
    partial_orders: int = 0
    none_orders: int = 0
    total_remaining_qty: float = 0
    total_coverable_qty: float = 0
    total_shortage_qty: float = 0
    covered_percent: int = 100


class AtpSection(CamelModel):
    status: Literal["ok"] = "ok"
    summary: AtpSummary = AtpSummary()
    orders: list[AtpOrder] = []
    warnings: list[str] = []


# ── 창고 오케스트레이션 ───────────────────────────────────


class WaveOrder(CamelModel):
    mikro_order_number: str
    customer_code: str
    customer_name: str
    line_count: int
    remaining_qty: float
    shortage_qty: float
    coverage_status: CoverageStatus


class Wave(CamelModel):
    wave_id: str  # "<series>-<n>"
    order_series: str
    order_count: int
    line_count: int
    total_remaining_qty: float
    shortage_qty: float
    estimated_minutes: float
    recommended_picker_count: int
    orders: list[WaveOrder] = []


class PickerWorkload(CamelModel):
    picker_user_id: str | None  # None = 미배정 세션
    picker_name: str
    active_orders: int
    open_lines: int
    remaining_qty: float
    last_action_at: datetime | None = None


class QueueStatusCount(CamelModel):
    status: str
    count: int


class OrchestrationSummary(CamelModel):
    open_orders: int = 0
    backlog_lines: int = 0
    backlog_qty: float = 0
    shortage_orders: int = 0
    active_pickers: int = 0
    wave_count: int = 0


class OrchestrationSection(CamelModel):
    status: Literal["ok"] = "ok"
    summary: OrchestrationSummary = OrchestrationSummary()
    queue_by_status: list[QueueStatusCount] = []
    picker_workload: list[PickerWorkload] = []
    waves: list[Wave] = []


# ── 고객 구매 의도 ────────────────────────────────────────


class CustomerIntent(CamelModel):
    customer_id: int
    customer_code: str
    customer_name: str
    intent_score: int
    intent_segment: IntentSegment
    churn_risk: ChurnRisk
    recency_days: int | None
    cart_items: float
    cart_amount: float
    order_count_90d: int = Field(alias="orderCount90d")
    average_order_value: float
    next_best_action: str


class CustomerIntentSummary(CamelModel):
    total_customers: int = 0
    hot_customers: int = 0
    warm_customers: int = 0
    cold_customers: int = 0
    high_churn_risk_customers: int = 0


class CustomerIntentSection(CamelModel):
    status: Literal["ok"] = "ok"
    summary: CustomerIntentSummary = CustomerIntentSummary()
    customers: list[CustomerIntent] = []


# ── 여신/결제 리스크 ──────────────────────────────────────


class RiskOrder(CamelModel):
    order_id: int
    order_number: str
    customer_id: int
    customer_code: str
    customer_name: str
    created_at: datetime
    pending_days: int = 0
    order_amount: float
    past_due_balance: float
    total_balance: float
    delay_count_6m: int = Field(alias="delayCount6m")
    classification: str | None
    manual_risk_score: int | None = None
    risk_score: int
    decision: RiskDecision
    reasons: list[str] = []


class RiskSummary(CamelModel):
    total_pending_orders: int = 0
    total_pending_amount: float = 0
    auto_approve_count: int = 0
    manual_review_count: int = 0
    reject_count: int = 0


class RiskSection(CamelModel):
    status: Literal["ok"] = "ok"
    summary: RiskSummary = RiskSummary()
    orders: list[RiskOrder] = []


# ── 대체 상품 ────────────────────────────────────────────


class SubstitutionCandidate(CamelModel):
    product_code: str
    product_name: str
    unit: str
    stock_qty: float
    score: float
    reason: str


class SubstitutionSuggestion(CamelModel):
    mikro_order_number: str
    customer_name: str
    line_key: str
    source_product_code: str
    source_product_name: str
    shortage_qty: float
    needed_qty: float
    # 빈 리스트 = "대체 상품 없음" (계산되지 않음과 구분)
    candidates: list[SubstitutionCandidate] = []


class SubstitutionSummary(CamelModel):
    lines_needing_substitution: int = 0
    lines_with_suggestion: int = 0
    unresolved_lines: int = 0


class SubstitutionSection(CamelModel):
    status: Literal["ok"] = "ok"
    summary: SubstitutionSummary = SubstitutionSummary()
    suggestions: list[SubstitutionSuggestion] = []


# ── 데이터 품질 ──────────────────────────────────────────


class DataQualitySample(CamelModel):
    code: str
    name: str
    detail: str


class DataQualityCheck(CamelModel):
    code: str
    title: str
    description: str
    severity: Severity
    count: int
    blocked: bool
    sample: list[DataQualitySample] = []


class DataQualitySummary(CamelModel):
    total_issues: int = 0
    blocked_checks: int = 0
    health_score: int = 100


class DataQualitySection(CamelModel):
    status: Literal["ok"] = "ok"
    summary: DataQualitySummary = DataQualitySummary()
    checks: list[DataQualityCheck] = []


# ── 섹션 결과 (정상 | degraded) ──────────────────────────

AtpResult = Annotated[Union[AtpSection, DegradedSection], Field(discriminator="status")]
OrchestrationResult = Annotated[Union[OrchestrationSection, DegradedSection], Field(discriminator="status")]
CustomerIntentResult = Annotated[Union[CustomerIntentSection, DegradedSection], Field(discriminator="status")]
RiskResult = Annotated[Union[RiskSection, DegradedSection], Field(discriminator="status")]
SubstitutionResult = Annotated[Union[SubstitutionSection, DegradedSection], Field(discriminator="status")]
DataQualityResult = Annotated[Union[DataQualitySection, DegradedSection], Field(discriminator="status")]


class CommandCenterSummary(CamelModel):
    # degraded 섹션에서 나오는 카운터는 None (0과 구분)
    low_coverage_order_count: int | None = None
    open_order_count: int | None = None
    high_risk_order_count: int | None = None
    shortage_qty: float | None = None
    hot_customer_count: int | None = None
    active_picker_count: int | None = None
    substitution_need_count: int | None = None
    blocked_data_checks: int | None = None


class CommandCenterSnapshot(CamelModel):
    generated_at: datetime
    summary: CommandCenterSummary
    degraded_sections: list[str] = []
    atp: AtpResult
    orchestration: OrchestrationResult
    customer_intent: CustomerIntentResult
    risk: RiskResult
    substitution: SubstitutionResult
    data_quality: DataQualityResult


# ── API 응답 래퍼 ────────────────────────────────────────


class CommandCenterResponse(CamelModel):
    success: bool = True
    data: CommandCenterSnapshot


class AtpResponse(CamelModel):
    success: bool = True
    data: AtpSection


class OrchestrationResponse(CamelModel):
    success: bool = True
    data: OrchestrationSection


class CustomerIntentResponse(CamelModel):
    success: bool = True
    data: CustomerIntentSection


class RiskResponse(CamelModel):
    success: bool = True
    data: RiskSection


class SubstitutionResponse(CamelModel):
    success: bool = True
    data: SubstitutionSection


class DataQualityResponse(CamelModel):
    success: bool = True
    data: DataQualitySection
