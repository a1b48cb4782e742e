"""
SQLAlchemy 기반 데이터 원천
- 요청마다 새 세션을 열고 닫는다 (요청 간 공유 상태 없음).
- SQLAlchemyError는 SourceUnavailable로 변환된다.
"""

import logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Sequence

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased

from app.database import SessionLocal
from app.errors import SourceUnavailable
from app.models import (
    Cart, Customer, Order, OrderItem, PaymentDelay, PendingOrder,
    PickingSession, Product, ShelfLocation, WarehouseStock,
)
from app.models.order import OrderStatus
from app.models.picking import IDLE_STATUSES
from app.sources.base import (
    BalanceInfo, CatalogProduct, CustomerActivity, MasterCustomer, MasterData,
    MasterProduct, OpenOrder, OpenOrderLine, PendingApproval, PickingSessionInfo,
    StockPosition,
)

logger = logging.getLogger(__name__)

# 평균 주문액/주문 빈도 계산에 포함하는 주문 상태
COUNTED_ORDER_STATUSES = (OrderStatus.PENDING, OrderStatus.APPROVED)

DELAY_WINDOW_DAYS = 180


def _to_line(line) -> OpenOrderLine:
    return OpenOrderLine(
        row_number=line.row_number,
        product_code=(line.product_code or "").strip(),
        product_name=(line.product_name or "").strip() or line.product_code,
        unit=(line.unit or "").strip() or "ADET",
        quantity=max(line.quantity or 0.0, 0.0),
        delivered_qty=max(line.delivered_qty or 0.0, 0.0),
        reserved_qty=max(line.reserved_qty or 0.0, 0.0),
    )


class SqlOperationsDataSource:
    """OperationsDataSource의 SQLAlchemy 구현"""

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, source: str):
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            logger.error(f"[Source] {source} 조회 실패: {e}")
            raise SourceUnavailable(source, details={"reason": str(e)}) from e
        finally:
            db.close()

    # ── 주문 추적 ─────────────────────────────────────────

    def fetch_open_orders(self) -> list[OpenOrder]:
        with self._session("order-tracking") as db:
            rows = (
                db.query(PendingOrder)
                .order_by(PendingOrder.order_date, PendingOrder.mikro_order_number)
                .all()
            )
            return [
                OpenOrder(
                    mikro_order_number=row.mikro_order_number,
                    order_series=(row.order_series or "").strip(),
                    customer_code=row.customer_code,
                    customer_name=row.customer_name,
                    order_date=row.order_date,
                    lines=tuple(_to_line(line) for line in sorted(row.lines, key=lambda l: l.row_number)),
                )
                for row in rows
            ]

    # ── 재고 ──────────────────────────────────────────────

    def fetch_stock(self, warehouse_codes: Sequence[str]) -> list[StockPosition]:
        if not warehouse_codes:
            return []
        with self._session("inventory") as db:
            rows = (
                db.query(WarehouseStock)
                .filter(WarehouseStock.warehouse_code.in_(list(warehouse_codes)))
                .all()
            )
            return [
                StockPosition(
                    product_code=row.product_code,
                    warehouse_code=row.warehouse_code,
                    available_qty=row.available_qty or 0.0,
                )
                for row in rows
            ]

    # ── 카탈로그 ──────────────────────────────────────────

    def fetch_catalog(self) -> list[CatalogProduct]:
        with self._session("catalog") as db:
            rows = db.query(Product).filter(Product.active.is_(True)).all()
            return [
                CatalogProduct(
                    product_code=row.product_code,
                    name=row.name,
                    unit=row.unit or "ADET",
                    category_id=row.category_id,
                    family_code=row.family_code or None,
                    brand_code=row.brand_code or None,
                    price=row.list_price,
                )
                for row in rows
            ]

    def fetch_co_occurrence(self, product_codes: Sequence[str]) -> dict[tuple[str, str], int]:
        """동일 포털 주문에 함께 담긴 SKU 쌍의 주문 수"""
        if not product_codes:
            return {}
        with self._session("catalog") as db:
            a = aliased(OrderItem)
            b = aliased(OrderItem)
            rows = (
                db.query(a.product_code, b.product_code, func.count(func.distinct(a.order_id)))
                .join(b, and_(b.order_id == a.order_id, b.product_code != a.product_code))
                .join(Order, Order.id == a.order_id)
                .filter(
                    a.product_code.in_(list(product_codes)),
                    Order.status != OrderStatus.CANCELLED,
                )
                .group_by(a.product_code, b.product_code)
                .all()
            )
            return {(source, other): int(count) for source, other, count in rows}

    # ── 피킹 세션 ─────────────────────────────────────────

    def fetch_picking_sessions(self, order_numbers: Sequence[str]) -> list[PickingSessionInfo]:
        """진행 중인 세션 전체 + 계획 대상 주문의 세션"""
        with self._session("picking-sessions") as db:
            rows = (
                db.query(PickingSession)
                .filter(or_(
                    PickingSession.status.notin_(IDLE_STATUSES),
                    PickingSession.mikro_order_number.in_(list(order_numbers)),
                ))
                .all()
            )
            result = []
            for row in rows:
                open_qty = [
                    max((line.remaining_qty or 0.0) - (line.picked_qty or 0.0), 0.0)
                    for line in row.lines
                ]
                result.append(PickingSessionInfo(
                    mikro_order_number=row.mikro_order_number,
                    status=row.status.value if hasattr(row.status, "value") else str(row.status),
                    picker_user_id=(row.picker_user_id or "").strip() or None,
                    picker_name=(row.picker_name or "").strip() or None,
                    last_action_at=row.last_action_at,
                    open_lines=sum(1 for qty in open_qty if qty > 0),
                    remaining_qty=sum(open_qty),
                ))
            return result

    # ── 고객 활동 ─────────────────────────────────────────

    def fetch_customer_activity(self, now: datetime) -> list[CustomerActivity]:
        since_90 = now - timedelta(days=90)
        since_30 = now - timedelta(days=30)

        with self._session("customer") as db:
            customers = db.query(Customer).filter(Customer.active.is_(True)).all()

            carts: dict[int, dict] = defaultdict(lambda: {"items": 0.0, "amount": 0.0, "updated_at": None})
            for cart in db.query(Cart).all():
                current = carts[cart.customer_id]
                for item in cart.items:
                    qty = max(item.quantity or 0.0, 0.0)
                    current["items"] += qty
                    current["amount"] += qty * max(item.unit_price or 0.0, 0.0)
                if cart.updated_at and (current["updated_at"] is None or cart.updated_at > current["updated_at"]):
                    current["updated_at"] = cart.updated_at

            order_rows = (
                db.query(Order.customer_id, Order.total_amount, Order.created_at)
                .filter(Order.status.in_(COUNTED_ORDER_STATUSES))
                .all()
            )
            orders: dict[int, dict] = defaultdict(
                lambda: {"count": 0, "amount": 0.0, "count_90": 0, "count_30": 0, "last": None}
            )
            for customer_id, total_amount, created_at in order_rows:
                current = orders[customer_id]
                current["count"] += 1
                current["amount"] += max(total_amount or 0.0, 0.0)
                if created_at and created_at >= since_90:
                    current["count_90"] += 1
                if created_at and created_at >= since_30:
                    current["count_30"] += 1
                if created_at and (current["last"] is None or created_at > current["last"]):
                    current["last"] = created_at

            result = []
            for customer in customers:
                cart = carts.get(customer.id, {"items": 0.0, "amount": 0.0, "updated_at": None})
                stats = orders.get(customer.id)
                result.append(CustomerActivity(
                    customer_id=customer.id,
                    customer_code=customer.customer_code,
                    customer_name=customer.name,
                    cart_items=cart["items"],
                    cart_amount=round(cart["amount"], 2),
                    cart_updated_at=cart["updated_at"],
                    average_order_value=round(stats["amount"] / stats["count"], 2) if stats else 0.0,
                    order_count_90d=stats["count_90"] if stats else 0,
                    order_count_30d=stats["count_30"] if stats else 0,
                    last_order_at=stats["last"] if stats else None,
                ))
            return result

    # ── 승인 대기 주문 / 여신 ──────────────────────────────

    def fetch_pending_approvals(self, limit: int, now: datetime) -> list[PendingApproval]:
        delay_since = (now - timedelta(days=DELAY_WINDOW_DAYS)).date()

        with self._session("customer-balance") as db:
            orders = (
                db.query(Order)
                .filter(Order.status == OrderStatus.PENDING)
                .order_by(Order.created_at, Order.order_number)
                .limit(limit)
                .all()
            )
            customer_ids = sorted({order.customer_id for order in orders})
            if not customer_ids:
                return []

            averages = dict(
                db.query(Order.customer_id, func.avg(Order.total_amount))
                .filter(Order.status == OrderStatus.APPROVED, Order.customer_id.in_(customer_ids))
                .group_by(Order.customer_id)
                .all()
            )
            delays = dict(
                db.query(PaymentDelay.customer_id, func.count(PaymentDelay.id))
                .filter(PaymentDelay.customer_id.in_(customer_ids), PaymentDelay.due_date >= delay_since)
                .group_by(PaymentDelay.customer_id)
                .all()
            )

            result = []
            for order in orders:
                customer = order.customer
                balance = customer.balance
                result.append(PendingApproval(
                    order_id=order.id,
                    order_number=order.order_number,
                    created_at=order.created_at,
                    order_amount=max(order.total_amount or 0.0, 0.0),
                    customer_id=customer.id,
                    customer_code=customer.customer_code,
                    customer_name=customer.name,
                    payment_plan_code=(customer.payment_plan_code or "").strip() or None,
                    credit_limit=customer.credit_limit,
                    average_order_value=float(averages.get(customer.id) or 0.0),
                    balance=BalanceInfo(
                        past_due_balance=max(balance.past_due_balance or 0.0, 0.0),
                        not_due_balance=max(balance.not_due_balance or 0.0, 0.0),
                        total_balance=max(balance.total_balance or 0.0, 0.0),
                        classification=(balance.classification or "").strip() or None,
                        manual_risk_score=balance.manual_risk_score,
                    ) if balance else None,
                    delay_count_6m=int(delays.get(customer.id, 0)),
                ))
            return result

    # ── 마스터 데이터 (데이터 품질) ─────────────────────────

    def fetch_master_data(self) -> MasterData:
        with self._session("master-data") as db:
            products = [
                MasterProduct(
                    product_code=row.product_code,
                    name=row.name or "",
                    unit=row.unit,
                    unit2=row.unit2,
                    unit2_factor=row.unit2_factor,
                    vat_rate=row.vat_rate,
                    cost_price=row.cost_price,
                    has_image=bool((row.image_url or "").strip()),
                )
                for row in db.query(Product)
                .filter(Product.active.is_(True))
                .order_by(Product.product_code)
                .all()
            ]
            customers = [
                MasterCustomer(
                    customer_code=row.customer_code,
                    name=row.name,
                    payment_plan_code=row.payment_plan_code,
                )
                for row in db.query(Customer)
                .filter(Customer.active.is_(True))
                .order_by(Customer.customer_code)
                .all()
            ]
            stock = [
                StockPosition(
                    product_code=row.product_code,
                    warehouse_code=row.warehouse_code,
                    available_qty=row.available_qty or 0.0,
                )
                for row in db.query(WarehouseStock)
                .order_by(WarehouseStock.product_code, WarehouseStock.warehouse_code)
                .all()
            ]
            shelf_codes = {
                (code or "").strip()
                for (code,) in db.query(ShelfLocation.product_code).distinct().all()
            }
            pending_lines = [
                (order.mikro_order_number, _to_line(line))
                for order in db.query(PendingOrder).order_by(PendingOrder.mikro_order_number).all()
                for line in sorted(order.lines, key=lambda l: l.row_number)
            ]
            return MasterData(
                products=products,
                customers=customers,
                stock=stock,
                shelf_product_codes={code for code in shelf_codes if code},
                pending_lines=pending_lines,
            )
