"""
커맨드 센터 엔진 패키지
- AtpEngine: 재고 → 미출하 주문 선착순 할당
- OrchestrationEngine: 피킹 웨이브 계획 + 피커 부하
- CustomerIntentEngine: 고객 긴급도 점수
- RiskEngine: 여신/결제 리스크 및 승인 권고
- SubstitutionEngine: 부족 라인 대체 상품 제안
- DataQualityFirewall: 마스터 데이터 무결성 점검
- CommandCenterAggregator: 병렬 fan-out + 부분 실패 조정
"""

from app.engines.atp import AtpEngine
from app.engines.orchestration import OrchestrationEngine
from app.engines.intent import CustomerIntentEngine
from app.engines.risk import RiskEngine
from app.engines.substitution import SubstitutionEngine
from app.engines.data_quality import DataQualityFirewall
from app.engines.aggregator import CommandCenterAggregator
from app.engines.cache import SnapshotCache

__all__ = [
    "AtpEngine",
    "OrchestrationEngine",
    "CustomerIntentEngine",
    "RiskEngine",
    "SubstitutionEngine",
    "DataQualityFirewall",
    "CommandCenterAggregator",
    "SnapshotCache",
]
