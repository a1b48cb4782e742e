"""
customers / customer_balances / payment_delays 테이블 — 고객 및 여신 정보
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Date, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_code = Column(String(30), unique=True, nullable=False)  # ERP cari kodu, 예: "120.01.005"
    name = Column(String(200), nullable=False)
    payment_plan_code = Column(String(20), nullable=True)  # 결제 조건 코드 (없으면 자동 승인 불가)
    credit_limit = Column(Float, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    balance = relationship("CustomerBalance", uselist=False, back_populates="customer", lazy="joined")


class CustomerBalance(Base):
    __tablename__ = "customer_balances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), unique=True, nullable=False)
    past_due_balance = Column(Float, nullable=False, default=0)  # 연체 잔액
    not_due_balance = Column(Float, nullable=False, default=0)  # 미도래 잔액
    total_balance = Column(Float, nullable=False, default=0)
    classification = Column(String(50), nullable=True)  # 예: "RISKLI", "BLOKE"
    manual_risk_score = Column(Integer, nullable=True)  # 운영자 지정 리스크 점수 (하한)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    customer = relationship("Customer", back_populates="balance")


class PaymentDelay(Base):
    __tablename__ = "payment_delays"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    due_date = Column(Date, nullable=False)
    days_late = Column(Integer, nullable=False)
    amount = Column(Float, nullable=False, default=0)
