import pytest

from app.config import RiskConfig
from app.engines.filters import SnapshotFilters
from app.engines.risk import RiskEngine, assess, classification_penalty, decide
from app.schemas.command_center import RiskDecision

from tests.factories import NOW, FakeDataSource, approval


def test_healthy_customer_is_auto_approved():
    result = assess(approval(1, amount=1000, credit_limit=100000, total=5000), RiskConfig(), NOW)

    assert result.risk_score == 0
    assert result.decision == RiskDecision.AUTO_APPROVE
    assert result.reasons == ["Risk sinyali düşük"]


def test_weighted_score_components():
    # 연체 50% → 25점, 주문액/한도 50% → 15점, 지연 3건 → 20점
    result = assess(
        approval(1, amount=50000, credit_limit=100000, past_due=5000, total=10000, delays=3),
        RiskConfig(),
        NOW,
    )

    assert result.risk_score == 60
    assert result.decision == RiskDecision.MANUAL_REVIEW
    assert result.delay_count_6m == 3


def test_average_order_value_used_when_no_credit_limit():
    result = assess(approval(1, amount=3000, credit_limit=None, average=1000, total=0), RiskConfig(), NOW)

    # 3000 / (1000 × 3) = 1.0 → 30점
    assert result.risk_score == 30
    assert result.decision == RiskDecision.MANUAL_REVIEW


def test_blocked_classification_pushes_to_reject():
    result = assess(
        approval(1, amount=50000, credit_limit=100000, past_due=5000, total=10000, classification="BLOKE"),
        RiskConfig(),
        NOW,
    )

    assert result.risk_score == 80
    assert result.decision == RiskDecision.REJECT
    assert "Sınıflandırma: BLOKE" in result.reasons


def test_classification_penalties():
    config = RiskConfig()
    assert classification_penalty("Bloke", config) == 40
    assert classification_penalty("STOP LIST", config) == 40
    assert classification_penalty("takip", config) == 20
    assert classification_penalty("RISKLI", config) == 20
    assert classification_penalty("NORMAL", config) == 0
    assert classification_penalty(None, config) == 0


@pytest.mark.parametrize("amount", [1.0, 100.0, 5000.0, 250000.0])
def test_missing_payment_plan_never_auto_approves(amount):
    result = assess(approval(1, amount=amount, payment_plan=None, total=5000), RiskConfig(), NOW)

    assert result.decision != RiskDecision.AUTO_APPROVE
    assert result.risk_score >= RiskConfig().manual_review_threshold
    assert "Ödeme planı tanımlı değil" in result.reasons


def test_missing_balance_history_uses_amount_signal_and_never_auto_approves():
    low = assess(approval(1, amount=100, credit_limit=100000, has_balance=False), RiskConfig(), NOW)
    high = assess(approval(2, amount=90000, credit_limit=100000, has_balance=False), RiskConfig(), NOW)

    assert low.risk_score == 30
    assert low.decision == RiskDecision.MANUAL_REVIEW
    assert high.risk_score == 90
    assert high.decision == RiskDecision.REJECT
    assert low.past_due_balance == 0 and low.classification is None


def test_decision_is_monotonic_in_score():
    config = RiskConfig()
    rank = {RiskDecision.AUTO_APPROVE: 0, RiskDecision.MANUAL_REVIEW: 1, RiskDecision.REJECT: 2}
    decisions = [rank[decide(score, config)] for score in range(0, 101)]

    assert decisions == sorted(decisions)
    assert decide(29, config) == RiskDecision.AUTO_APPROVE
    assert decide(30, config) == RiskDecision.MANUAL_REVIEW
    assert decide(70, config) == RiskDecision.REJECT


def test_thresholds_come_from_configuration():
    config = RiskConfig(manual_review_threshold=10, reject_threshold=20)
    low = assess(approval(1, amount=20000, credit_limit=100000, total=5000), config, NOW)
    mid = assess(approval(2, amount=50000, credit_limit=100000, total=5000), config, NOW)

    assert low.risk_score == 6
    assert low.decision == RiskDecision.AUTO_APPROVE
    assert mid.risk_score == 15
    assert mid.decision == RiskDecision.MANUAL_REVIEW


async def test_engine_sorts_by_score_then_age():
    source = FakeDataSource(approvals=[
        approval(1, hours_ago=1),
        approval(2, payment_plan=None, hours_ago=5),
        approval(3, payment_plan=None, hours_ago=2),
        approval(4, amount=50000, credit_limit=100000, past_due=5000, total=10000, classification="BLOKE"),
    ])
    section = await RiskEngine(source, RiskConfig()).run(SnapshotFilters(), NOW)

    assert [o.order_id for o in section.orders] == [4, 2, 3, 1]
    assert section.summary.total_pending_orders == 4
    assert section.summary.reject_count == 1
    assert section.summary.manual_review_count == 2
    assert section.summary.auto_approve_count == 1
    assert section.summary.total_pending_amount == 53000


async def test_engine_respects_order_limit():
    source = FakeDataSource(approvals=[approval(i, hours_ago=10 - i) for i in range(1, 6)])
    section = await RiskEngine(source, RiskConfig()).run(SnapshotFilters(order_limit=3), NOW)

    assert len(section.orders) == 3


@pytest.mark.parametrize("hours_ago, days, points", [
    (1, 0, 0),
    (48, 2, 0),
    (72, 3, 3),
    (24 * 7, 7, 7),
    (24 * 30, 30, 10),
])
def test_pending_age_adds_points_after_grace(hours_ago, days, points):
    result = assess(approval(1, amount=1000, credit_limit=100000, total=5000, hours_ago=hours_ago), RiskConfig(), NOW)

    assert result.pending_days == days
    assert result.risk_score == points
    assert (f"Bekleme süresi: {days} gün" in result.reasons) == (points > 0)


def test_pending_age_thresholds_come_from_configuration():
    config = RiskConfig(pending_grace_days=5, max_pending_age_points=4)
    fresh = assess(approval(1, amount=1000, credit_limit=100000, total=5000, hours_ago=24 * 4), config, NOW)
    stale = assess(approval(2, amount=1000, credit_limit=100000, total=5000, hours_ago=24 * 9), config, NOW)

    assert fresh.risk_score == 0
    assert stale.risk_score == 4


def test_manual_risk_score_is_a_floor():
    result = assess(approval(1, amount=1000, credit_limit=100000, total=5000, manual_score=85), RiskConfig(), NOW)

    assert result.manual_risk_score == 85
    assert result.risk_score == 85
    assert result.decision == RiskDecision.REJECT
    assert "Manuel risk skoru: 85" in result.reasons


def test_manual_risk_score_never_lowers_computed_score():
    result = assess(
        approval(1, amount=50000, credit_limit=100000, past_due=5000, total=10000, classification="BLOKE",
                 manual_score=10),
        RiskConfig(),
        NOW,
    )

    assert result.risk_score == 80
    assert result.manual_risk_score == 10
    assert not any(r.startswith("Manuel risk skoru") for r in result.reasons)


def test_manual_risk_score_can_be_ignored():
    config = RiskConfig(apply_manual_risk_score=False)
    result = assess(approval(1, amount=1000, credit_limit=100000, total=5000, manual_score=85), config, NOW)

    assert result.risk_score == 0
    assert result.decision == RiskDecision.AUTO_APPROVE
    assert result.manual_risk_score == 85
