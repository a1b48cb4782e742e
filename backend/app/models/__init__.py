"""
SQLAlchemy ORM 모델 패키지
- 모든 모델을 여기서 import하여 Base.metadata에 등록한다.
- 커맨드 센터는 이 테이블들을 읽기만 한다.
"""

from app.models.product import Category, Product, ShelfLocation
from app.models.stock import WarehouseStock
from app.models.customer import Customer, CustomerBalance, PaymentDelay
from app.models.cart import Cart, CartItem
from app.models.order import Order, OrderItem
from app.models.pending_order import PendingOrder, PendingOrderLine
from app.models.picking import PickingSession, PickingSessionLine

__all__ = [
    "Category",
    "Product",
    "ShelfLocation",
    "WarehouseStock",
    "Customer",
    "CustomerBalance",
    "PaymentDelay",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "PendingOrder",
    "PendingOrderLine",
    "PickingSession",
    "PickingSessionLine",
]
