"""
warehouse_stocks 테이블 — 창고별 SKU 판매 가능 재고
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, DateTime, UniqueConstraint

from app.database import Base


class WarehouseStock(Base):
    __tablename__ = "warehouse_stocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    warehouse_code = Column(String(20), nullable=False)  # 예: "DEPO1", "MERKEZ"
    product_code = Column(String(30), nullable=False)
    available_qty = Column(Float, nullable=False, default=0)  # ERP 동기화 값 (음수 가능)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("warehouse_code", "product_code", name="uq_warehouse_product"),
    )
