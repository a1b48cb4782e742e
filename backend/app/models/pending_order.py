"""
pending_erp_orders / pending_erp_order_lines 테이블 — ERP 주문 추적 (미출하 주문)
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class PendingOrder(Base):
    __tablename__ = "pending_erp_orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    mikro_order_number = Column(String(30), unique=True, nullable=False)  # 예: "B-1024"
    order_series = Column(String(20), nullable=False, default="")
    order_sequence = Column(Integer, nullable=False, default=0)
    customer_code = Column(String(30), nullable=False)
    customer_name = Column(String(200), nullable=False)
    order_date = Column(DateTime, nullable=False)
    delivery_date = Column(DateTime, nullable=True)

    lines = relationship("PendingOrderLine", back_populates="order", lazy="selectin")


class PendingOrderLine(Base):
    __tablename__ = "pending_erp_order_lines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pending_order_id = Column(Integer, ForeignKey("pending_erp_orders.id"), nullable=False)
    row_number = Column(Integer, nullable=False)
    product_code = Column(String(30), nullable=False)
    product_name = Column(String(200), nullable=False, default="")
    unit = Column(String(20), nullable=False, default="ADET")
    quantity = Column(Float, nullable=False)  # 주문 수량
    delivered_qty = Column(Float, nullable=False, default=0)  # 기출하 수량
    reserved_qty = Column(Float, nullable=False, default=0)
    warehouse_code = Column(String(20), nullable=True)

    order = relationship("PendingOrder", back_populates="lines")
