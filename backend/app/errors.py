"""
커맨드 센터 예외 계층
- SourceUnavailable: 원천 저장소 조회 실패 (섹션 degraded 처리, 치명적 아님)
- InvalidFilter: 잘못된 series/limit 파라미터 (fan-out 전에 400으로 거절)
- ConfigurationMissing: 필수 설정 누락 (예: 포함 창고 미설정)
- AggregationFailed: 모든 섹션이 동시에 실패
"""


class CommandCenterError(Exception):
    """커맨드 센터 예외 기본 클래스"""

    default_code = "COMMAND_CENTER_ERROR"
    default_message = "Operasyon komuta merkezi hatası"

    def __init__(self, message: str | None = None, code: str | None = None,
                 details: dict | None = None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        error_dict = {"code": self.code, "message": self.message}
        if self.details:
            error_dict["details"] = self.details
        return error_dict


class SourceUnavailable(CommandCenterError):
    default_code = "SOURCE_UNAVAILABLE"
    default_message = "Veri kaynağına erişilemedi"

    def __init__(self, source: str, message: str | None = None, details: dict | None = None):
        self.source = source
        super().__init__(
            message or f"{source} kaynağı okunamadı",
            details={"source": source, **(details or {})},
        )


class InvalidFilter(CommandCenterError):
    default_code = "INVALID_FILTER"
    default_message = "Geçersiz filtre parametresi"


class ConfigurationMissing(CommandCenterError):
    default_code = "CONFIGURATION_MISSING"
    default_message = "Zorunlu ayar eksik"


class AggregationFailed(CommandCenterError):
    default_code = "AGGREGATION_FAILED"
    default_message = "Komuta merkezi bölümlerinin hiçbiri alınamadı"
