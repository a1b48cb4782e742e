"""
커맨드 센터 요청 필터 — series CSV 파싱/검증과 캐시 키.
잘못된 series 토큰은 fan-out 전에 InvalidFilter로 거절한다.
orderLimit/customerLimit 범위는 라우터의 Query(ge, le)가 검증한다.
"""

import re
from dataclasses import dataclass

from app.errors import InvalidFilter

SERIES_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]{0,19}$")


@dataclass(frozen=True)
class SnapshotFilters:
    series: tuple[str, ...] = ()
    order_limit: int = 150
    customer_limit: int = 80

    @property
    def cache_key(self) -> str:
        return f"series={','.join(self.series)}|orders={self.order_limit}|customers={self.customer_limit}"


def parse_series(raw: str | None) -> tuple[str, ...]:
    """'A,B, C' → ('A', 'B', 'C'). 빈 토큰은 무시하고 중복은 제거한다."""
    if not raw:
        return ()
    result: list[str] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        if not SERIES_PATTERN.match(token):
            raise InvalidFilter(
                f"Geçersiz seri: {token!r}",
                details={"parameter": "series", "value": token},
            )
        if token not in result:
            result.append(token)
    return tuple(result)


def parse_filters(
    series: str | None = None,
    order_limit: int | None = None,
    customer_limit: int | None = None,
    *,
    default_order_limit: int = 150,
    default_customer_limit: int = 80,
) -> SnapshotFilters:
    """범위 검증이 끝난 limit 값과 series CSV로 필터 생성 (None이면 기본값)"""
    return SnapshotFilters(
        series=parse_series(series),
        order_limit=order_limit if order_limit is not None else default_order_limit,
        customer_limit=customer_limit if customer_limit is not None else default_customer_limit,
    )
