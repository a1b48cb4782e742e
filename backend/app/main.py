"""
FastAPI 앱 엔트리포인트
- CORS 설정
- 커맨드 센터 라우터 등록
- 커맨드 센터 예외 → HTTP 응답 매핑
- Aggregator + 스냅샷 캐시 생성/정리 (lifespan)
- 헬스체크 엔드포인트
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import engine, Base, SessionLocal, get_db
from app.api import command_center
from app.engines import CommandCenterAggregator, SnapshotCache
from app.errors import AggregationFailed, CommandCenterError, InvalidFilter, SourceUnavailable
from app.schemas.common import ErrorResponse, HealthResponse
from app.sources import SqlOperationsDataSource

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# 모듈 수준 참조 (lifespan 내에서 생성되어 shutdown에서 정리)
_snapshot_cache: SnapshotCache | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 시작/종료 시 커맨드 센터 컴포넌트 관리"""
    global _snapshot_cache

    # ── 1. DB 테이블 확인 ──
    Base.metadata.create_all(bind=engine)
    logger.info("데이터베이스 테이블 확인 완료")

    db = SessionLocal()
    try:
        from app.models import PendingOrder, Product, WarehouseStock
        counts = {
            "products": db.query(Product).count(),
            "stock": db.query(WarehouseStock).count(),
            "pending_orders": db.query(PendingOrder).count(),
        }
    finally:
        db.close()
    if counts["products"] == 0:
        logger.warning("카탈로그가 비어 있습니다. 데모 데이터는 python seed_data.py로 생성하세요.")
    else:
        logger.info(
            f"원천 데이터: 상품 {counts['products']}개, 재고 레코드 {counts['stock']}개, "
            f"미출하 주문 {counts['pending_orders']}건"
        )

    # ── 2. Aggregator 생성 (엔진별 설정 주입) ──
    warehouses = settings.COMMAND_CENTER.atp.included_warehouses
    if not warehouses:
        logger.warning("포함 창고가 설정되지 않았습니다 — ATP는 빈 할당과 경고를 반환합니다.")
    command_center.set_aggregator(
        CommandCenterAggregator(SqlOperationsDataSource(SessionLocal), settings.COMMAND_CENTER)
    )
    logger.info(f"커맨드 센터 Aggregator 준비 완료 (포함 창고: {', '.join(warehouses) or '-'})")

    # ── 3. 스냅샷 캐시 (TTL 0이면 비활성화) ──
    _snapshot_cache = SnapshotCache(settings.REDIS_URL, settings.SNAPSHOT_CACHE_TTL_SECONDS)
    await _snapshot_cache.connect()
    command_center.set_snapshot_cache(_snapshot_cache if _snapshot_cache.enabled else None)
    logger.info(f"스냅샷 캐시: {_snapshot_cache.backend}")

    yield

    # ── 종료 ──
    if _snapshot_cache:
        await _snapshot_cache.close()
        logger.info("스냅샷 캐시 정리 완료")


app = FastAPI(
    title="B2B 운영 커맨드 센터",
    description="ATP 할당, 피킹 웨이브, 고객 의도, 여신 리스크, 대체 상품, 데이터 품질 통합 스냅샷",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, exc: CommandCenterError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=exc.to_dict()).model_dump())


@app.exception_handler(InvalidFilter)
async def invalid_filter_handler(request: Request, exc: InvalidFilter):
    logger.info(f"[API] 잘못된 파라미터 {request.url.path}: {exc}")
    return _error_response(400, exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """쿼리 파라미터 타입/범위 오류 → InvalidFilter 응답 (400)"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    parameter = str(first.get("loc", ("-",))[-1])
    error = InvalidFilter(
        f"Geçersiz parametre {parameter}: {first.get('msg', '-')}",
        details={"parameter": parameter, "value": str(first.get("input"))},
    )
    return await invalid_filter_handler(request, error)


@app.exception_handler(AggregationFailed)
async def aggregation_failed_handler(request: Request, exc: AggregationFailed):
    return _error_response(503, exc)


@app.exception_handler(SourceUnavailable)
async def source_unavailable_handler(request: Request, exc: SourceUnavailable):
    logger.warning(f"[API] {request.url.path}: {exc}")
    return _error_response(503, exc)


@app.exception_handler(CommandCenterError)
async def command_center_error_handler(request: Request, exc: CommandCenterError):
    logger.error(f"[API] {request.url.path}: {exc}")
    return _error_response(500, exc)


# 라우터 등록
app.include_router(command_center.router)


@app.get("/api/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """시스템 상태 확인"""
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning(f"[Health] DB 연결 실패: {e}")

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        db_connected=db_ok,
        cache_backend=_snapshot_cache.backend if _snapshot_cache else "disabled",
        timestamp=datetime.now(timezone.utc),
    )
