"""
대체 상품 엔진 — ATP 부족 라인마다 재고가 남은 대체 상품을 순위화해 제안한다.

후보 풀: 같은 상품군(family_code, 설정 시) 또는 같은 카테고리의 활성 상품 중
        ATP 할당 후에도 포함 창고 재고가 남아 있는 상품
점수 = 100 × (W_PRICE × 가격 근접도 + W_STOCK × 재고 충분도 + W_CO × 동시 구매 빈도)
       + 같은 브랜드 가산점, [0, 100]으로 제한
후보가 없는 라인도 빈 candidates 리스트로 결과에 포함된다.
"""

import logging
import time
from typing import Sequence

from app.config import SubstitutionConfig
from app.engines.atp import AllocationRun
from app.engines.common import clamp, read_source
from app.schemas.command_center import (
    AtpLine, AtpOrder, SubstitutionCandidate, SubstitutionSection,
    SubstitutionSuggestion, SubstitutionSummary,
)
from app.sources.base import CatalogProduct, OperationsDataSource

logger = logging.getLogger(__name__)

# 가격 정보가 없을 때의 가격 근접도
UNKNOWN_PRICE_SIGNAL = 0.5


def shortage_lines(orders: Sequence[AtpOrder], max_lines: int) -> list[tuple[AtpOrder, AtpLine]]:
    """부족 수량이 있는 라인 (FCFS 순, 최대 max_lines)"""
    result = []
    for order in orders:
        for line in order.lines:
            if line.shortage_qty > 0:
                result.append((order, line))
    return result[:max_lines]


def price_proximity(source_price: float | None, candidate_price: float | None) -> float:
    if not source_price or source_price <= 0 or candidate_price is None:
        return UNKNOWN_PRICE_SIGNAL
    return 1.0 - min(1.0, abs(candidate_price - source_price) / source_price)


def stock_sufficiency(stock_qty: float, needed_qty: float) -> float:
    if needed_qty <= 0 or stock_qty >= needed_qty:
        return 1.0
    return (stock_qty / needed_qty) * 0.5


class SubstitutionEngine:
    """대체 상품 엔진"""

    def __init__(self, source: OperationsDataSource, config: SubstitutionConfig):
        self.source = source
        self.config = config

    def _candidate_pool(self, product: CatalogProduct, catalog: Sequence[CatalogProduct]) -> list[CatalogProduct]:
        if self.config.use_product_families and product.family_code:
            pool = [c for c in catalog if c.family_code == product.family_code]
        elif product.category_id is not None:
            pool = [c for c in catalog if c.category_id == product.category_id]
        else:
            pool = []
        return [c for c in pool if c.product_code != product.product_code]

    def _rank(
        self,
        product: CatalogProduct,
        needed_qty: float,
        pool: Sequence[CatalogProduct],
        remaining_stock: dict[str, float],
        co_occurrence: dict[tuple[str, str], int],
    ) -> list[SubstitutionCandidate]:
        in_stock = [c for c in pool if remaining_stock.get(c.product_code, 0.0) > 0]
        if not in_stock:
            return []

        counts = {c.product_code: co_occurrence.get((product.product_code, c.product_code), 0) for c in in_stock}
        max_count = max(counts.values())

        ranked = []
        for candidate in in_stock:
            stock_qty = remaining_stock[candidate.product_code]
            price = price_proximity(product.price, candidate.price)
            stock = stock_sufficiency(stock_qty, needed_qty)
            co = counts[candidate.product_code] / max_count if max_count > 0 else 0.0
            same_brand = bool(product.brand_code) and candidate.brand_code == product.brand_code

            weighted = (
                self.config.price_weight * price
                + self.config.stock_weight * stock
                + self.config.co_occurrence_weight * co
            )
            score = 100 * weighted + (self.config.same_brand_bonus if same_brand else 0.0)

            reason_parts = []
            if same_brand:
                reason_parts.append("Aynı marka")
            if counts[candidate.product_code] > 0:
                reason_parts.append(f"{counts[candidate.product_code]} siparişte birlikte alındı")
            reason_parts.append(f"Stok {round(stock_qty)} {candidate.unit}")

            ranked.append(SubstitutionCandidate(
                product_code=candidate.product_code,
                product_name=candidate.name,
                unit=candidate.unit,
                stock_qty=round(stock_qty, 2),
                score=round(clamp(score, 0.0, 100.0), 1),
                reason=" | ".join(reason_parts),
            ))

        ranked.sort(key=lambda c: (-c.score, c.product_code))
        return ranked[:self.config.max_candidates]

    async def run(self, allocation: AllocationRun) -> SubstitutionSection:
        start = time.monotonic()

        lines = shortage_lines(allocation.section.orders, self.config.max_lines)
        if not lines:
            return SubstitutionSection()

        catalog = await read_source(self.source.fetch_catalog)
        source_codes = sorted({line.product_code for _, line in lines})
        co_occurrence = await read_source(self.source.fetch_co_occurrence, source_codes)

        by_code = {p.product_code: p for p in catalog}
        suggestions: list[SubstitutionSuggestion] = []
        for order, line in lines:
            product = by_code.get(line.product_code)
            candidates: list[SubstitutionCandidate] = []
            if product is not None:
                pool = self._candidate_pool(product, catalog)
                candidates = self._rank(product, line.shortage_qty, pool, allocation.remaining_stock, co_occurrence)

            suggestions.append(SubstitutionSuggestion(
                mikro_order_number=order.mikro_order_number,
                customer_name=order.customer_name,
                line_key=line.line_key,
                source_product_code=line.product_code,
                source_product_name=line.product_name,
                shortage_qty=line.shortage_qty,
                needed_qty=line.shortage_qty,
                candidates=candidates,
            ))

        summary = SubstitutionSummary(
            lines_needing_substitution=len(suggestions),
            lines_with_suggestion=sum(1 for s in suggestions if s.candidates),
            unresolved_lines=sum(1 for s in suggestions if not s.candidates),
        )

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[Substitution] 부족 라인 {summary.lines_needing_substitution}건, "
            f"제안 {summary.lines_with_suggestion}건, 미해결 {summary.unresolved_lines}건 ({duration_ms}ms)"
        )

        return SubstitutionSection(summary=summary, suggestions=suggestions)
