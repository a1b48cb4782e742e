"""
categories / products / warehouse_shelf_locations 테이블 — 카탈로그 마스터 데이터
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(30), unique=True, nullable=False)
    name = Column(String(100), nullable=False)  # 예: "Temizlik Kağıtları"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_code = Column(String(30), unique=True, nullable=False)  # ERP stok kodu, 예: "B101234"
    name = Column(String(200), nullable=False)
    unit = Column(String(20))  # 예: "ADET", "KOLI"
    unit2 = Column(String(20), nullable=True)
    unit2_factor = Column(Float, nullable=True)  # 2. birim katsayısı (koli içi adet)
    vat_rate = Column(Float, nullable=False, default=0.2)  # 0.01 ~ 0.20
    cost_price = Column(Float, nullable=True)  # 원가 기준 (없으면 데이터 품질 위반)
    list_price = Column(Float, nullable=True)
    brand_code = Column(String(30), nullable=True)
    family_code = Column(String(30), nullable=True)  # 대체 상품 그룹
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    image_url = Column(String(300), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    category = relationship("Category", lazy="joined")


class ShelfLocation(Base):
    __tablename__ = "warehouse_shelf_locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    warehouse_code = Column(String(20), nullable=False)
    product_code = Column(String(30), nullable=False)
    shelf_code = Column(String(30), nullable=False)  # 예: "A-03-2"
