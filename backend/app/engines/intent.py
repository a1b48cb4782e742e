"""
고객 구매 의도 엔진 — 장바구니/주문 활동으로 긴급도 점수와 다음 행동을 산출한다.

점수 = 100 × (W_CART × 장바구니 신호 + W_RECENCY × 최근성 신호 + W_FREQUENCY × 빈도 신호)
  - 장바구니 신호: 장바구니 금액 / 평균 주문액 (최대 1, 주문 이력 없으면 0)
  - 최근성 신호: 마지막 장바구니 갱신 후 경과일이 recency_window_days에 걸쳐 선형 감소
  - 빈도 신호: 90일 주문 수 / frequency_target_orders (최대 1)
"""

import logging
import time
from datetime import datetime
from typing import Sequence

from app.config import IntentConfig
from app.engines.common import clamp, read_source, round_half_up
from app.engines.filters import SnapshotFilters
from app.schemas.command_center import (
    ChurnRisk, CustomerIntent, CustomerIntentSection, CustomerIntentSummary, IntentSegment,
)
from app.sources.base import CustomerActivity, OperationsDataSource

logger = logging.getLogger(__name__)

DAY_SECONDS = 86400

CHURN_HIGH_DAYS = 21
CHURN_MEDIUM_DAYS = 14

# (세그먼트, 장바구니 있음) → 다음 행동
NEXT_BEST_ACTIONS = {
    (IntentSegment.HOT, True): "sepeti tamamlamaya yönlendir",
    (IntentSegment.HOT, False): "Aynı gün satış temsilcisi geri dönüşü planla",
    (IntentSegment.WARM, True): "Sepete özel teklif gönder",
    (IntentSegment.WARM, False): "İkame ve tamamlayıcı ürün önerisi çıkar",
    (IntentSegment.COLD, True): "Terk edilen sepet hatırlatması gönder",
    (IntentSegment.COLD, False): "yeniden etkileşim kampanyası",
}


def _days_between(earlier: datetime, now: datetime) -> float:
    return max((now - earlier).total_seconds() / DAY_SECONDS, 0.0)


def _last_activity(activity: CustomerActivity) -> datetime | None:
    events = [e for e in (activity.cart_updated_at, activity.last_order_at) if e is not None]
    return max(events) if events else None


def segment_for(score: int, config: IntentConfig) -> IntentSegment:
    if score >= config.hot_threshold:
        return IntentSegment.HOT
    if score >= config.warm_threshold:
        return IntentSegment.WARM
    return IntentSegment.COLD


def churn_risk_for(recency_days: int | None, order_count_30d: int) -> ChurnRisk:
    if recency_days is None:
        return ChurnRisk.HIGH
    if recency_days > CHURN_HIGH_DAYS and order_count_30d == 0:
        return ChurnRisk.HIGH
    if recency_days > CHURN_MEDIUM_DAYS:
        return ChurnRisk.MEDIUM
    return ChurnRisk.LOW


def score_customer(activity: CustomerActivity, now: datetime, config: IntentConfig) -> CustomerIntent:
    has_cart = activity.cart_amount > 0 or activity.cart_items > 0

    cart_signal = 0.0
    if activity.average_order_value > 0:
        cart_signal = min(1.0, activity.cart_amount / activity.average_order_value)

    recency_signal = 0.0
    if has_cart and activity.cart_updated_at is not None and config.recency_window_days > 0:
        cart_age = _days_between(activity.cart_updated_at, now)
        recency_signal = max(0.0, 1.0 - cart_age / config.recency_window_days)

    frequency_signal = 0.0
    if config.frequency_target_orders > 0:
        frequency_signal = min(1.0, activity.order_count_90d / config.frequency_target_orders)

    weighted = (
        config.cart_value_weight * cart_signal
        + config.recency_weight * recency_signal
        + config.frequency_weight * frequency_signal
    )
    score = int(clamp(round_half_up(100 * weighted), 0, 100))
    segment = segment_for(score, config)

    last_activity = _last_activity(activity)
    recency_days = round_half_up(_days_between(last_activity, now)) if last_activity else None

    return CustomerIntent(
        customer_id=activity.customer_id,
        customer_code=activity.customer_code,
        customer_name=activity.customer_name,
        intent_score=score,
        intent_segment=segment,
        churn_risk=churn_risk_for(recency_days, activity.order_count_30d),
        recency_days=recency_days,
        cart_items=activity.cart_items,
        cart_amount=round(activity.cart_amount, 2),
        order_count_90d=activity.order_count_90d,
        average_order_value=round(activity.average_order_value, 2),
        next_best_action=NEXT_BEST_ACTIONS[(segment, has_cart)],
    )


def summarize(rows: Sequence[CustomerIntent]) -> CustomerIntentSummary:
    return CustomerIntentSummary(
        total_customers=len(rows),
        hot_customers=sum(1 for r in rows if r.intent_segment == IntentSegment.HOT),
        warm_customers=sum(1 for r in rows if r.intent_segment == IntentSegment.WARM),
        cold_customers=sum(1 for r in rows if r.intent_segment == IntentSegment.COLD),
        high_churn_risk_customers=sum(1 for r in rows if r.churn_risk == ChurnRisk.HIGH),
    )


class CustomerIntentEngine:
    """고객 구매 의도 엔진"""

    def __init__(self, source: OperationsDataSource, config: IntentConfig):
        self.source = source
        self.config = config

    async def run(self, filters: SnapshotFilters, now: datetime) -> CustomerIntentSection:
        start = time.monotonic()

        activities = await read_source(self.source.fetch_customer_activity, now)
        rows = [score_customer(a, now, self.config) for a in activities]
        rows.sort(key=lambda r: (-r.intent_score, -r.cart_amount, r.customer_id))

        # 요약은 잘라내기 전 전체 고객 기준
        summary = summarize(rows)

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[Intent] 고객 {summary.total_customers}명 점수화 "
            f"(HOT {summary.hot_customers}, WARM {summary.warm_customers}) ({duration_ms}ms)"
        )

        return CustomerIntentSection(summary=summary, customers=rows[:filters.customer_limit])
