"""
엔진 공통 유틸리티
"""

import asyncio
import math
from functools import partial

from app.schemas.command_center import CoverageStatus


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """대시보드와 동일한 반올림 (0.5는 항상 올림)"""
    return int(math.floor(value + 0.5))


def coverage_status(remaining_qty: float, coverable_qty: float) -> CoverageStatus:
    """잔량 대비 충족 가능 수량으로 FULL/PARTIAL/NONE 판정"""
    if remaining_qty <= 0 or coverable_qty >= remaining_qty:
        return CoverageStatus.FULL
    if coverable_qty <= 0:
        return CoverageStatus.NONE
    return CoverageStatus.PARTIAL


async def read_source(fn, *args):
    """블로킹 원천 조회를 executor에서 실행한다."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, partial(fn, *args))
