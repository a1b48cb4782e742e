"""
공통 Pydantic 스키마
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """대시보드 계약에 맞춰 camelCase로 직렬화되는 불변 모델"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class HealthResponse(BaseModel):
    status: str
    db_connected: bool
    cache_backend: str  # "redis" | "memory" | "disabled"
    timestamp: datetime


class ErrorResponse(BaseModel):
    success: bool = False
    error: dict
