"""
picking_sessions / picking_session_lines 테이블 — 창고 피킹 진행 현황
"""

import enum

from sqlalchemy import Column, Integer, String, Float, Enum, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class PickingStatus(str, enum.Enum):
    PENDING = "PENDING"
    PICKING = "PICKING"
    READY_FOR_LOADING = "READY_FOR_LOADING"
    PARTIALLY_LOADED = "PARTIALLY_LOADED"
    LOADED = "LOADED"
    DISPATCHED = "DISPATCHED"


# 피커 부하에 포함되지 않는 상태
IDLE_STATUSES = (PickingStatus.PENDING, PickingStatus.DISPATCHED)


class PickingSession(Base):
    __tablename__ = "picking_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    mikro_order_number = Column(String(30), unique=True, nullable=False)
    status = Column(Enum(PickingStatus), default=PickingStatus.PENDING, nullable=False)
    picker_user_id = Column(String(36), nullable=True)
    picker_name = Column(String(100), nullable=True)
    last_action_at = Column(DateTime, nullable=True)

    lines = relationship("PickingSessionLine", back_populates="session", lazy="selectin")


class PickingSessionLine(Base):
    __tablename__ = "picking_session_lines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("picking_sessions.id"), nullable=False)
    product_code = Column(String(30), nullable=False)
    remaining_qty = Column(Float, nullable=False, default=0)
    picked_qty = Column(Float, nullable=False, default=0)

    session = relationship("PickingSession", back_populates="lines")
