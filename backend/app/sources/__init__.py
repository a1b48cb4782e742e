"""
데이터 원천 패키지
- OperationsDataSource 프로토콜과 SQLAlchemy 구현
"""

from app.sources.base import OperationsDataSource
from app.sources.sql_source import SqlOperationsDataSource

__all__ = ["OperationsDataSource", "SqlOperationsDataSource"]
