"""
테스트용 레코드 팩토리 + 인메모리 데이터 원천
"""

import time
from datetime import datetime, timedelta

from app.errors import SourceUnavailable
from app.sources.base import (
    BalanceInfo, CatalogProduct, CustomerActivity, MasterData, OpenOrder, OpenOrderLine,
    PendingApproval, PickingSessionInfo, StockPosition,
)

BASE_DATE = datetime(2026, 10, 1, 9, 0)
NOW = datetime(2026, 10, 19, 12, 0)


def line(product_code: str, quantity: float, row: int = 1, delivered: float = 0.0,
         reserved: float = 0.0, name: str | None = None) -> OpenOrderLine:
    return OpenOrderLine(
        row_number=row,
        product_code=product_code,
        product_name=name or f"Ürün {product_code}",
        unit="ADET",
        quantity=quantity,
        delivered_qty=delivered,
        reserved_qty=reserved,
    )


def order(number: str, *lines: OpenOrderLine, series: str = "A", day: int = 0,
          customer_code: str = "120.01.001", customer_name: str = "Anadolu Temizlik") -> OpenOrder:
    return OpenOrder(
        mikro_order_number=number,
        order_series=series,
        customer_code=customer_code,
        customer_name=customer_name,
        order_date=BASE_DATE + timedelta(days=day),
        lines=tuple(lines),
    )


def stock(product_code: str, qty: float, warehouse: str = "DEPO1") -> StockPosition:
    return StockPosition(product_code=product_code, warehouse_code=warehouse, available_qty=qty)


def product(code: str, category_id: int | None = 1, family: str | None = None, brand: str | None = None,
            price: float | None = 100.0, name: str | None = None) -> CatalogProduct:
    return CatalogProduct(
        product_code=code,
        name=name or f"Ürün {code}",
        unit="ADET",
        category_id=category_id,
        family_code=family,
        brand_code=brand,
        price=price,
    )


def session_info(order_number: str, status: str = "PICKING", picker_id: str | None = "u-1",
                 picker_name: str | None = "Mehmet", open_lines: int = 2, remaining: float = 10.0,
                 minutes_ago: int = 5) -> PickingSessionInfo:
    return PickingSessionInfo(
        mikro_order_number=order_number,
        status=status,
        picker_user_id=picker_id,
        picker_name=picker_name,
        last_action_at=NOW - timedelta(minutes=minutes_ago),
        open_lines=open_lines,
        remaining_qty=remaining,
    )


def activity(customer_id: int, code: str = None, cart_amount: float = 0.0, cart_items: float = 0.0,
             cart_days_ago: float | None = None, average_order_value: float = 0.0,
             order_count_90d: int = 0, order_count_30d: int = 0,
             last_order_days_ago: float | None = None) -> CustomerActivity:
    return CustomerActivity(
        customer_id=customer_id,
        customer_code=code or f"C-{customer_id}",
        customer_name=f"Müşteri {customer_id}",
        cart_items=cart_items,
        cart_amount=cart_amount,
        cart_updated_at=NOW - timedelta(days=cart_days_ago) if cart_days_ago is not None else None,
        average_order_value=average_order_value,
        order_count_90d=order_count_90d,
        order_count_30d=order_count_30d,
        last_order_at=NOW - timedelta(days=last_order_days_ago) if last_order_days_ago is not None else None,
    )


def approval(order_id: int, amount: float = 1000.0, payment_plan: str | None = "30G",
             credit_limit: float | None = 100000.0, average: float = 0.0,
             past_due: float = 0.0, total: float = 10000.0, classification: str | None = None,
             delays: int = 0, has_balance: bool = True, hours_ago: int = 1,
             manual_score: int | None = None) -> PendingApproval:
    return PendingApproval(
        order_id=order_id,
        order_number=f"B2B-{order_id:04d}",
        created_at=NOW - timedelta(hours=hours_ago),
        order_amount=amount,
        customer_id=order_id,
        customer_code=f"120.01.{order_id:03d}",
        customer_name=f"Müşteri {order_id}",
        payment_plan_code=payment_plan,
        credit_limit=credit_limit,
        average_order_value=average,
        balance=BalanceInfo(
            past_due_balance=past_due,
            not_due_balance=max(total - past_due, 0.0),
            total_balance=total,
            classification=classification,
            manual_risk_score=manual_score,
        ) if has_balance else None,
        delay_count_6m=delays,
    )


class FakeDataSource:
    """
    OperationsDataSource 인메모리 구현.
    failing에 메서드 이름을 넣으면 SourceUnavailable, delays에 넣으면 지정 초만큼 블로킹.
    """

    SOURCE_NAMES = {
        "fetch_open_orders": "order-tracking",
        "fetch_stock": "inventory",
        "fetch_catalog": "catalog",
        "fetch_co_occurrence": "catalog",
        "fetch_picking_sessions": "picking-sessions",
        "fetch_customer_activity": "customer",
        "fetch_pending_approvals": "customer-balance",
        "fetch_master_data": "master-data",
    }

    def __init__(self, orders=(), stock=(), catalog=(), co_occurrence=None, sessions=(),
                 activities=(), approvals=(), master=None):
        self.orders = list(orders)
        self.stock = list(stock)
        self.catalog = list(catalog)
        self.co_occurrence = dict(co_occurrence or {})
        self.sessions = list(sessions)
        self.activities = list(activities)
        self.approvals = list(approvals)
        self.master = master or MasterData()
        self.failing: set[str] = set()
        self.delays: dict[str, float] = {}
        self.calls: list[str] = []

    def _enter(self, method: str):
        self.calls.append(method)
        if method in self.delays:
            time.sleep(self.delays[method])
        if method in self.failing:
            raise SourceUnavailable(self.SOURCE_NAMES[method], details={"reason": "test"})

    def fetch_open_orders(self):
        self._enter("fetch_open_orders")
        return list(self.orders)

    def fetch_stock(self, warehouse_codes):
        self._enter("fetch_stock")
        return [s for s in self.stock if s.warehouse_code in set(warehouse_codes)]

    def fetch_catalog(self):
        self._enter("fetch_catalog")
        return list(self.catalog)

    def fetch_co_occurrence(self, product_codes):
        self._enter("fetch_co_occurrence")
        codes = set(product_codes)
        return {k: v for k, v in self.co_occurrence.items() if k[0] in codes}

    def fetch_picking_sessions(self, order_numbers):
        self._enter("fetch_picking_sessions")
        return list(self.sessions)

    def fetch_customer_activity(self, now):
        self._enter("fetch_customer_activity")
        return list(self.activities)

    def fetch_pending_approvals(self, limit, now):
        self._enter("fetch_pending_approvals")
        return sorted(self.approvals, key=lambda a: (a.created_at, a.order_number))[:limit]

    def fetch_master_data(self):
        self._enter("fetch_master_data")
        return self.master
