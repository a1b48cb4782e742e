"""
여신/결제 리스크 엔진 — 승인 대기 주문마다 리스크 점수와 승인 권고를 산출한다.

점수 구성 (가중치/임계치는 RiskConfig):
  - 연체 비중: 연체 잔액 / 총 잔액                       (가장 높은 가중치)
  - 주문 금액: 주문액 / 기준 금액 (여신 한도, 없으면 평균 주문액 × 배수)
  - 지연 이력: 최근 6개월 결제 지연 건수 / delay_saturation
  - 여신 분류 가산점: BLOCK/BLOK/STOP, RISK/KRITIK/TAKIP
  - 승인 대기 일수: pending_grace_days 초과 시 일당 1점 (상한 max_pending_age_points)

보수적 하한:
  잔액 이력이 없거나 결제 플랜이 없으면 점수를 수동 검토 임계치 이상으로 올린다.
  운영자가 지정한 수동 리스크 점수가 있으면 그 값을 하한으로 적용한다.
  결정은 점수만의 함수로 유지되어 점수 순서와 결정 순서가 뒤집히지 않는다.
"""

import logging
import time
from datetime import datetime
from typing import Sequence

from app.config import RiskConfig
from app.engines.common import clamp, read_source, round_half_up
from app.engines.filters import SnapshotFilters
from app.schemas.command_center import RiskDecision, RiskOrder, RiskSection, RiskSummary
from app.sources.base import OperationsDataSource, PendingApproval

logger = logging.getLogger(__name__)

BLOCKED_MARKERS = ("BLOCK", "BLOK", "STOP")
WATCH_MARKERS = ("RISK", "KRITIK", "TAKIP")
DAY_SECONDS = 86400


def decide(score: int, config: RiskConfig) -> RiskDecision:
    if score >= config.reject_threshold:
        return RiskDecision.REJECT
    if score >= config.manual_review_threshold:
        return RiskDecision.MANUAL_REVIEW
    return RiskDecision.AUTO_APPROVE


def classification_penalty(classification: str | None, config: RiskConfig) -> float:
    if not classification:
        return 0.0
    upper = classification.upper()
    if any(marker in upper for marker in BLOCKED_MARKERS):
        return config.blocked_classification_penalty
    if any(marker in upper for marker in WATCH_MARKERS):
        return config.watch_classification_penalty
    return 0.0


def pending_days(created_at: datetime, now: datetime) -> int:
    return max(round_half_up((now - created_at).total_seconds() / DAY_SECONDS), 0)


def pending_age_points(days: int, config: RiskConfig) -> float:
    if days <= config.pending_grace_days:
        return 0.0
    return min(config.max_pending_age_points, float(days))


def amount_signal(approval: PendingApproval, config: RiskConfig) -> float:
    """주문액 / 기준 금액 (기준 금액을 알 수 없으면 unknown_amount_signal)"""
    if approval.credit_limit and approval.credit_limit > 0:
        reference = approval.credit_limit
    else:
        reference = approval.average_order_value * config.average_order_multiplier
    if reference <= 0:
        return config.unknown_amount_signal
    return min(1.0, approval.order_amount / reference)


def assess(approval: PendingApproval, config: RiskConfig, now: datetime) -> RiskOrder:
    balance = approval.balance
    reasons: list[str] = []
    waiting_days = pending_days(approval.created_at, now)

    amount = amount_signal(approval, config)
    if amount >= 1.0:
        reasons.append(f"Sipariş tutarı referans limiti aşıyor: {approval.order_amount:.2f} TL")

    if balance is None:
        # 잔액 이력이 없으면 금액 신호만으로 점수화
        raw = 100 * amount
        reasons.append("Vade bakiyesi yok, manuel kontrol gerekir")
    else:
        past_due_signal = balance.past_due_balance / balance.total_balance if balance.total_balance > 0 else 0.0
        delay_signal = 0.0
        if config.delay_saturation > 0:
            delay_signal = min(1.0, approval.delay_count_6m / config.delay_saturation)

        raw = 100 * (
            config.past_due_weight * clamp(past_due_signal, 0.0, 1.0)
            + config.amount_weight * amount
            + config.delay_weight * delay_signal
        )
        raw += classification_penalty(balance.classification, config)

        if balance.past_due_balance > 0:
            reasons.append(f"Vadesi geçmiş bakiye: {balance.past_due_balance:.2f} TL")
        if approval.delay_count_6m > 0:
            reasons.append(f"Son 6 ayda {approval.delay_count_6m} ödeme gecikmesi")
        if balance.classification:
            reasons.append(f"Sınıflandırma: {balance.classification}")

    raw += pending_age_points(waiting_days, config)
    if waiting_days > config.pending_grace_days:
        reasons.append(f"Bekleme süresi: {waiting_days} gün")

    if not approval.payment_plan_code:
        reasons.append("Ödeme planı tanımlı değil")

    score = int(clamp(round_half_up(raw), 0, 100))
    if balance is None or not approval.payment_plan_code:
        score = max(score, config.manual_review_threshold)

    manual_score = balance.manual_risk_score if balance else None
    if manual_score is not None and config.apply_manual_risk_score:
        floor = int(clamp(manual_score, 0, 100))
        if floor > score:
            score = floor
            reasons.append(f"Manuel risk skoru: {floor}")

    if not reasons:
        reasons.append("Risk sinyali düşük")

    return RiskOrder(
        order_id=approval.order_id,
        order_number=approval.order_number,
        customer_id=approval.customer_id,
        customer_code=approval.customer_code,
        customer_name=approval.customer_name,
        created_at=approval.created_at,
        pending_days=waiting_days,
        order_amount=round(approval.order_amount, 2),
        past_due_balance=round(balance.past_due_balance, 2) if balance else 0.0,
        total_balance=round(balance.total_balance, 2) if balance else 0.0,
        delay_count_6m=approval.delay_count_6m,
        classification=balance.classification if balance else None,
        manual_risk_score=manual_score,
        risk_score=score,
        decision=decide(score, config),
        reasons=reasons,
    )


def summarize(rows: Sequence[RiskOrder]) -> RiskSummary:
    return RiskSummary(
        total_pending_orders=len(rows),
        total_pending_amount=round(sum(r.order_amount for r in rows), 2),
        auto_approve_count=sum(1 for r in rows if r.decision == RiskDecision.AUTO_APPROVE),
        manual_review_count=sum(1 for r in rows if r.decision == RiskDecision.MANUAL_REVIEW),
        reject_count=sum(1 for r in rows if r.decision == RiskDecision.REJECT),
    )


class RiskEngine:
    """여신/결제 리스크 엔진"""

    def __init__(self, source: OperationsDataSource, config: RiskConfig):
        self.source = source
        self.config = config

    async def run(self, filters: SnapshotFilters, now: datetime) -> RiskSection:
        start = time.monotonic()

        approvals = await read_source(self.source.fetch_pending_approvals, filters.order_limit, now)
        rows = [assess(a, self.config, now) for a in approvals]
        rows.sort(key=lambda r: (-r.risk_score, r.created_at, r.order_number))

        summary = summarize(rows)
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[Risk] 승인 대기 {summary.total_pending_orders}건: "
            f"자동승인 {summary.auto_approve_count}, 검토 {summary.manual_review_count}, "
            f"거절 {summary.reject_count} ({duration_ms}ms)"
        )

        return RiskSection(summary=summary, orders=rows)
