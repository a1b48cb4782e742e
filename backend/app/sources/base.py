"""
데이터 원천 계약 — 커맨드 센터가 읽는 외부 저장소의 읽기 전용 뷰.

엔진은 ORM 객체가 아니라 이 모듈의 불변 레코드만 다룬다.
조회 메서드는 모두 블로킹이며 (executor에서 실행),
저장소 장애 시 SourceUnavailable을 던진다.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, Sequence


@dataclass(frozen=True)
class OpenOrderLine:
    """ERP 미출하 주문 라인"""
    row_number: int
    product_code: str
    product_name: str
    unit: str
    quantity: float
    delivered_qty: float = 0.0
    reserved_qty: float = 0.0

    @property
    def remaining_qty(self) -> float:
        return max(self.quantity - self.delivered_qty, 0.0)

    @property
    def line_key(self) -> str:
        return f"{self.product_code}#{self.row_number}"


@dataclass(frozen=True)
class OpenOrder:
    """ERP 미출하 주문 (주문 추적 저장소)"""
    mikro_order_number: str
    order_series: str
    customer_code: str
    customer_name: str
    order_date: datetime
    lines: tuple[OpenOrderLine, ...] = ()


@dataclass(frozen=True)
class StockPosition:
    """창고별 판매 가능 재고"""
    product_code: str
    warehouse_code: str
    available_qty: float


@dataclass(frozen=True)
class CatalogProduct:
    """대체 상품 탐색용 카탈로그 레코드 (활성 상품만)"""
    product_code: str
    name: str
    unit: str
    category_id: int | None
    family_code: str | None
    brand_code: str | None
    price: float | None


@dataclass(frozen=True)
class PickingSessionInfo:
    """주문 1건의 피킹 세션 (라인은 열린 라인 수/잔량으로 집계됨)"""
    mikro_order_number: str
    status: str
    picker_user_id: str | None
    picker_name: str | None
    last_action_at: datetime | None
    open_lines: int
    remaining_qty: float


@dataclass(frozen=True)
class CustomerActivity:
    """고객 1명의 장바구니/주문 활동 요약"""
    customer_id: int
    customer_code: str
    customer_name: str
    cart_items: float = 0.0
    cart_amount: float = 0.0
    cart_updated_at: datetime | None = None
    average_order_value: float = 0.0  # 과거 주문 이력이 없으면 0
    order_count_90d: int = 0
    order_count_30d: int = 0
    last_order_at: datetime | None = None


@dataclass(frozen=True)
class BalanceInfo:
    """고객 잔액 (여신 저장소)"""
    past_due_balance: float
    not_due_balance: float
    total_balance: float
    classification: str | None = None
    manual_risk_score: int | None = None  # 운영자 지정 점수 (0~100)


@dataclass(frozen=True)
class PendingApproval:
    """승인 대기 중인 포털 주문 + 고객 여신 정보"""
    order_id: int
    order_number: str
    created_at: datetime
    order_amount: float
    customer_id: int
    customer_code: str
    customer_name: str
    payment_plan_code: str | None
    credit_limit: float | None
    average_order_value: float
    balance: BalanceInfo | None  # None = 잔액 이력 없음
    delay_count_6m: int = 0


@dataclass(frozen=True)
class MasterProduct:
    product_code: str
    name: str
    unit: str | None
    unit2: str | None
    unit2_factor: float | None
    vat_rate: float | None
    cost_price: float | None
    has_image: bool


@dataclass(frozen=True)
class MasterCustomer:
    customer_code: str
    name: str
    payment_plan_code: str | None


@dataclass
class MasterData:
    """데이터 품질 점검 입력 — 전체 창고 재고(음수 포함)를 그대로 담는다."""
    products: list[MasterProduct] = field(default_factory=list)
    customers: list[MasterCustomer] = field(default_factory=list)
    stock: list[StockPosition] = field(default_factory=list)
    shelf_product_codes: set[str] = field(default_factory=set)
    pending_lines: list[tuple[str, OpenOrderLine]] = field(default_factory=list)


class OperationsDataSource(Protocol):
    """커맨드 센터 데이터 원천 프로토콜"""

    def fetch_open_orders(self) -> list[OpenOrder]: ...

    def fetch_stock(self, warehouse_codes: Sequence[str]) -> list[StockPosition]: ...

    def fetch_catalog(self) -> list[CatalogProduct]: ...

    def fetch_co_occurrence(self, product_codes: Sequence[str]) -> dict[tuple[str, str], int]: ...

    def fetch_picking_sessions(self, order_numbers: Sequence[str]) -> list[PickingSessionInfo]: ...

    def fetch_customer_activity(self, now: datetime) -> list[CustomerActivity]: ...

    def fetch_pending_approvals(self, limit: int, now: datetime) -> list[PendingApproval]: ...

    def fetch_master_data(self) -> MasterData: ...
