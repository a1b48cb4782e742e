"""
데이터 품질 방화벽 — 마스터 데이터 무결성 점검.

각 점검은 DataQualityRule 프로토콜을 구현:
  code / title / description / severity / blocking
  evaluate(data) -> list[DataQualitySample]  (위반 행 전체)

blocking 규칙에 위반이 하나라도 있으면 blocked=True 이며,
healthScore = 100 - Σ(blocked 점검의 심각도 가중치), [0, 100]으로 제한.
"""

import logging
import re
import time
from collections import defaultdict
from typing import Protocol

from app.config import DataQualityConfig
from app.engines.common import clamp, read_source, round_half_up
from app.schemas.command_center import (
    DataQualityCheck, DataQualitySample, DataQualitySection, DataQualitySummary, Severity,
)
from app.sources.base import MasterData, OperationsDataSource

logger = logging.getLogger(__name__)

MAX_VAT_RATE = 0.3
MIN_PRODUCT_NAME_LENGTH = 4
MEANINGLESS_NAME = re.compile(r"^[0-9\s\-_.]+$")
RESERVE_TOLERANCE = 0.0001


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


class DataQualityRule(Protocol):
    """데이터 품질 점검 프로토콜"""
    code: str
    title: str
    description: str
    severity: Severity
    blocking: bool

    def evaluate(self, data: MasterData) -> list[DataQualitySample]: ...


class MissingCostBasisRule:
    """원가 없는 상품 — 마진 계산 불가"""

    code = "MISSING_COST_BASIS"
    title = "Maliyet bilgisi eksik ürün"
    description = "Maliyet fiyatı olmayan ürünlerde kâr marjı hesaplanamaz."
    severity = Severity.HIGH
    blocking = True

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        return [
            DataQualitySample(code=p.product_code, name=p.name, detail="Maliyet fiyatı tanımsız")
            for p in data.products
            if p.cost_price is None or p.cost_price <= 0
        ]


class MissingPaymentPlanRule:
    """결제 플랜 없는 고객 — 자동 승인 차단"""

    code = "MISSING_PAYMENT_PLAN"
    title = "Ödeme planı eksik cari"
    description = "Ödeme planı olmayan carilerde otomatik onay yapılamaz."
    severity = Severity.CRITICAL
    blocking = True

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        return [
            DataQualitySample(code=c.customer_code, name=c.name, detail="Ödeme planı kodu boş")
            for c in data.customers
            if _blank(c.payment_plan_code)
        ]


class NegativeStockRule:
    code = "NEGATIVE_STOCK"
    title = "Negatif stok kaydı"
    description = "Depo stok kaydı sıfırın altında; ATP hesabında sıfır kabul edilir."
    severity = Severity.HIGH
    blocking = True

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        names = {p.product_code: p.name for p in data.products}
        return [
            DataQualitySample(
                code=s.product_code,
                name=names.get(s.product_code, s.product_code),
                detail=f"Depo {s.warehouse_code}: {s.available_qty:g}",
            )
            for s in sorted(data.stock, key=lambda s: (s.product_code, s.warehouse_code))
            if s.available_qty < 0
        ]


class InvalidVatRateRule:
    code = "INVALID_VAT_RATE"
    title = "Geçersiz KDV oranı"
    description = "KDV oranları belge ve fiyat hesaplarını bozar."
    severity = Severity.CRITICAL
    blocking = True

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        return [
            DataQualitySample(code=p.product_code, name=p.name, detail=f"KDV: {p.vat_rate}")
            for p in data.products
            if p.vat_rate is None or p.vat_rate <= 0 or p.vat_rate > MAX_VAT_RATE
        ]


class MissingPrimaryUnitRule:
    code = "MISSING_PRIMARY_UNIT"
    title = "Ana birim eksik"
    description = "Ürün ana birimi boş."
    severity = Severity.HIGH
    blocking = True

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        return [
            DataQualitySample(code=p.product_code, name=p.name, detail="Birim alanı boş")
            for p in data.products
            if _blank(p.unit)
        ]


class InvalidUnit2FactorRule:
    """2차 단위가 있는데 환산 계수가 0 이하"""

    code = "INVALID_UNIT2_FACTOR"
    title = "2. birim katsayısı geçersiz"
    description = "Koli içi adet/katsayı verisi eksik."
    severity = Severity.HIGH
    blocking = True

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        return [
            DataQualitySample(
                code=p.product_code,
                name=p.name,
                detail=f"{p.unit2} katsayısı: {p.unit2_factor}",
            )
            for p in data.products
            if not _blank(p.unit2) and (p.unit2_factor is None or p.unit2_factor <= 0)
        ]


class UnknownPendingProductRule:
    code = "UNKNOWN_PENDING_PRODUCT"
    title = "Bekleyen siparişte ürün kartı yok"
    description = "Bekleyen sipariş satırı hiçbir aktif ürün kartıyla eşleşmiyor."
    severity = Severity.CRITICAL
    blocking = True

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        known = {p.product_code for p in data.products}
        return [
            DataQualitySample(
                code=line.product_code,
                name=line.product_name,
                detail=f"Sipariş: {order_number}",
            )
            for order_number, line in data.pending_lines
            if line.product_code not in known
        ]


class ReserveMismatchRule:
    """라인 예약 수량이 잔량보다 큼"""

    code = "RESERVE_MISMATCH"
    title = "Rezerve miktarı kalan siparişten fazla"
    description = "Rezerve muhasebesinde sapma var."
    severity = Severity.HIGH
    blocking = True

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        return [
            DataQualitySample(
                code=line.product_code,
                name=line.product_name,
                detail=f"Sipariş: {order_number} | Rezerve {line.reserved_qty:g} > Kalan {line.remaining_qty:g}",
            )
            for order_number, line in data.pending_lines
            if line.reserved_qty > line.remaining_qty + RESERVE_TOLERANCE
        ]


class MissingShelfWithStockRule:
    code = "MISSING_SHELF_WITH_STOCK"
    title = "Stoklu üründe raf kodu eksik"
    description = "Raf kodu olmayan stoklu ürünler depo toplama hızını düşürür."
    severity = Severity.MEDIUM
    blocking = False

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        stock: dict[str, float] = defaultdict(float)
        for position in data.stock:
            stock[position.product_code] += max(position.available_qty, 0.0)
        return [
            DataQualitySample(code=p.product_code, name=p.name, detail=f"Stok: {stock[p.product_code]:g}")
            for p in data.products
            if stock.get(p.product_code, 0.0) > 0 and p.product_code not in data.shelf_product_codes
        ]


class MissingImageRule:
    code = "MISSING_IMAGE"
    title = "Eksik ürün görseli"
    description = "Ürün kartında görsel yok."
    severity = Severity.MEDIUM
    blocking = False

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        return [
            DataQualitySample(code=p.product_code, name=p.name, detail="Görsel yüklenmemiş")
            for p in data.products
            if not p.has_image
        ]


class SuspiciousProductNameRule:
    code = "SUSPICIOUS_PRODUCT_NAME"
    title = "Şüpheli ürün adı"
    description = "Çok kısa ya da anlamsız ürün adı."
    severity = Severity.LOW
    blocking = False

    def evaluate(self, data: MasterData) -> list[DataQualitySample]:
        result = []
        for p in data.products:
            name = (p.name or "").strip()
            if not name or len(name) < MIN_PRODUCT_NAME_LENGTH or MEANINGLESS_NAME.match(name):
                result.append(DataQualitySample(
                    code=p.product_code, name=p.name, detail="Ana veri düzenlemesi önerilir",
                ))
        return result


# 등록된 전체 점검 (결과 순서 = 이 리스트 순서)
ALL_CHECKS: list[DataQualityRule] = [
    MissingPaymentPlanRule(),
    InvalidVatRateRule(),
    UnknownPendingProductRule(),
    MissingCostBasisRule(),
    NegativeStockRule(),
    MissingPrimaryUnitRule(),
    InvalidUnit2FactorRule(),
    ReserveMismatchRule(),
    MissingShelfWithStockRule(),
    MissingImageRule(),
    SuspiciousProductNameRule(),
]


def evaluate_checks(data: MasterData, config: DataQualityConfig, rules=None) -> DataQualitySection:
    checks: list[DataQualityCheck] = []
    penalty = 0.0

    for rule in rules if rules is not None else ALL_CHECKS:
        violations = rule.evaluate(data)
        blocked = rule.blocking and len(violations) > 0
        if blocked:
            penalty += config.severity_weights.get(rule.severity.value, 0.0)
        checks.append(DataQualityCheck(
            code=rule.code,
            title=rule.title,
            description=rule.description,
            severity=rule.severity,
            count=len(violations),
            blocked=blocked,
            sample=violations[:config.sample_size],
        ))

    summary = DataQualitySummary(
        total_issues=sum(c.count for c in checks),
        blocked_checks=sum(1 for c in checks if c.blocked),
        health_score=int(clamp(round_half_up(100 - penalty), 0, 100)),
    )
    return DataQualitySection(summary=summary, checks=checks)


class DataQualityFirewall:
    """데이터 품질 방화벽"""

    def __init__(self, source: OperationsDataSource, config: DataQualityConfig, rules=None):
        self.source = source
        self.config = config
        self.rules = rules

    async def run(self) -> DataQualitySection:
        start = time.monotonic()

        data = await read_source(self.source.fetch_master_data)
        section = evaluate_checks(data, self.config, self.rules)

        duration_ms = int((time.monotonic() - start) * 1000)
        for check in section.checks:
            if check.blocked:
                logger.warning(f"[DataQuality] {check.code}: {check.count}건 — 자동 처리 차단")
        logger.info(
            f"[DataQuality] 점검 {len(section.checks)}개, 차단 {section.summary.blocked_checks}개, "
            f"healthScore={section.summary.health_score} ({duration_ms}ms)"
        )
        return section
