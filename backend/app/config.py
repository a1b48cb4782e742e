"""
애플리케이션 설정
- DB, Redis(스냅샷 캐시), 커맨드 센터 엔진 파라미터를 관리한다.
- 엔진별 가중치/임계치는 COMMAND_CENTER 블록으로 분리되어 각 엔진 생성 시 주입된다.
  예: COMMAND_CENTER__RISK__REJECT_THRESHOLD=75
"""

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class AtpConfig(BaseModel):
    # 가용 재고로 합산할 창고 코드 (비어 있으면 할당하지 않고 경고만 반환)
    included_warehouses: list[str] = ["DEPO1", "MERKEZ"]


class WaveConfig(BaseModel):
    max_lines_per_wave: int = 40
    max_orders_per_wave: int = 8
    minutes_per_line: float = 1.2
    setup_minutes: float = 5.0
    target_wave_minutes: float = 30.0


class IntentConfig(BaseModel):
    cart_value_weight: float = 0.4
    recency_weight: float = 0.3
    frequency_weight: float = 0.3
    recency_window_days: int = 14
    # 90일 내 이 건수 이상 주문하면 빈도 신호가 최대(1.0)
    frequency_target_orders: int = 6
    hot_threshold: int = 70
    warm_threshold: int = 40


class RiskConfig(BaseModel):
    past_due_weight: float = 0.5
    amount_weight: float = 0.3
    delay_weight: float = 0.2
    # 여신 한도가 없을 때 평균 주문액 × 배수를 기준 금액으로 사용
    average_order_multiplier: float = 3.0
    # 6개월 내 이 건수 이상 지연이면 지연 신호가 최대(1.0)
    delay_saturation: int = 3
    # 기준 금액을 전혀 알 수 없을 때의 금액 신호
    unknown_amount_signal: float = 0.5
    blocked_classification_penalty: float = 40.0
    watch_classification_penalty: float = 20.0
    # 승인 대기 일수가 grace를 넘으면 일당 1점 (최대 max_pending_age_points)
    pending_grace_days: int = 2
    max_pending_age_points: float = 10.0
    # 운영자가 지정한 수동 리스크 점수를 하한으로 적용
    apply_manual_risk_score: bool = True
    manual_review_threshold: int = 30
    reject_threshold: int = 70


class SubstitutionConfig(BaseModel):
    price_weight: float = 0.35
    stock_weight: float = 0.40
    co_occurrence_weight: float = 0.25
    same_brand_bonus: float = 5.0
    use_product_families: bool = True
    max_candidates: int = 3
    max_lines: int = 80


class DataQualityConfig(BaseModel):
    severity_weights: dict[str, float] = {
        "CRITICAL": 25.0,
        "HIGH": 15.0,
        "MEDIUM": 5.0,
        "LOW": 2.0,
    }
    sample_size: int = 8


class TimeoutConfig(BaseModel):
    # 요청 전체 제한 시간과 섹션별 제한 시간 (초)
    request_seconds: float = 8.0
    section_seconds: float = 5.0


class CommandCenterConfig(BaseModel):
    atp: AtpConfig = AtpConfig()
    waves: WaveConfig = WaveConfig()
    intent: IntentConfig = IntentConfig()
    risk: RiskConfig = RiskConfig()
    substitution: SubstitutionConfig = SubstitutionConfig()
    data_quality: DataQualityConfig = DataQualityConfig()
    timeouts: TimeoutConfig = TimeoutConfig()


class Settings(BaseSettings):
    # 데이터베이스
    DATABASE_URL: str = "sqlite:///command_center.db"

    # Redis (없으면 인메모리 캐시로 fallback)
    REDIS_URL: str = "redis://localhost:6379"

    # 스냅샷 캐시 TTL (초) — 0이면 캐시 비활성화
    SNAPSHOT_CACHE_TTL_SECONDS: int = 0

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # 요청 파라미터 기본값/상한
    DEFAULT_ORDER_LIMIT: int = 150
    DEFAULT_CUSTOMER_LIMIT: int = 80
    MAX_ORDER_LIMIT: int = 300
    MAX_CUSTOMER_LIMIT: int = 300

    # 엔진 파라미터
    COMMAND_CENTER: CommandCenterConfig = CommandCenterConfig()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"


settings = Settings()
