from app.config import IntentConfig
from app.engines.filters import SnapshotFilters
from app.engines.intent import CustomerIntentEngine, churn_risk_for, score_customer
from app.schemas.command_center import ChurnRisk, IntentSegment

from tests.factories import NOW, FakeDataSource, activity


def test_inactive_customer_is_cold_with_reengagement_action():
    result = score_customer(activity(9, code="C-9"), NOW, IntentConfig())

    assert result.intent_score == 0
    assert result.intent_segment == IntentSegment.COLD
    assert result.next_best_action == "yeniden etkileşim kampanyası"
    assert result.churn_risk == ChurnRisk.HIGH
    assert result.recency_days is None


def test_fresh_full_cart_with_frequent_orders_is_hot():
    result = score_customer(
        activity(1, cart_amount=1200, cart_items=4, cart_days_ago=0, average_order_value=1000,
                 order_count_90d=6, order_count_30d=2, last_order_days_ago=2),
        NOW,
        IntentConfig(),
    )

    assert result.intent_score == 100
    assert result.intent_segment == IntentSegment.HOT
    assert result.next_best_action == "sepeti tamamlamaya yönlendir"
    assert result.churn_risk == ChurnRisk.LOW


def test_no_order_history_scores_from_remaining_signals():
    # 평균 주문액이 없으면 장바구니 신호는 0, 최근성만 반영
    result = score_customer(
        activity(2, cart_amount=500, cart_items=1, cart_days_ago=0),
        NOW,
        IntentConfig(),
    )

    assert result.intent_score == 30
    assert result.intent_segment == IntentSegment.COLD
    assert result.next_best_action == "Terk edilen sepet hatırlatması gönder"


def test_recency_decays_over_window():
    config = IntentConfig()
    fresh = score_customer(activity(3, cart_amount=10, cart_items=1, cart_days_ago=0), NOW, config)
    week = score_customer(activity(3, cart_amount=10, cart_items=1, cart_days_ago=7), NOW, config)
    stale = score_customer(activity(3, cart_amount=10, cart_items=1, cart_days_ago=20), NOW, config)

    assert fresh.intent_score == 30
    assert week.intent_score == 15
    assert stale.intent_score == 0


def test_churn_risk_levels():
    assert churn_risk_for(None, 0) == ChurnRisk.HIGH
    assert churn_risk_for(30, 0) == ChurnRisk.HIGH
    assert churn_risk_for(30, 1) == ChurnRisk.MEDIUM
    assert churn_risk_for(15, 0) == ChurnRisk.MEDIUM
    assert churn_risk_for(3, 0) == ChurnRisk.LOW


async def test_engine_sorts_truncates_and_summarizes_all_customers():
    source = FakeDataSource(activities=[
        activity(1),
        activity(2, cart_amount=800, cart_items=2, cart_days_ago=1, average_order_value=1000, order_count_90d=3),
        activity(3, cart_amount=2000, cart_items=5, cart_days_ago=0, average_order_value=1000, order_count_90d=6),
        activity(4, order_count_90d=3, last_order_days_ago=40),
    ])
    engine = CustomerIntentEngine(source, IntentConfig())

    section = await engine.run(SnapshotFilters(customer_limit=2), NOW)

    assert [c.customer_id for c in section.customers] == [3, 2]
    assert section.summary.total_customers == 4
    assert section.summary.hot_customers == 2
    assert section.summary.cold_customers == 2
    scores = [c.intent_score for c in section.customers]
    assert scores == sorted(scores, reverse=True)
    assert all(0 <= s <= 100 for s in scores)
