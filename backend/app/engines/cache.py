"""
스냅샷 캐시 — 짧은 TTL로 시간 제한된 선택적 캐시.
- Redis 연결 시도, 실패 시 인메모리 dict로 fallback
- 키는 정규화된 필터 (series/orderLimit/customerLimit)
- TTL 0이면 비활성화. 정확성은 캐시에 의존하지 않는다.
"""

import json
import logging
import time
from collections import OrderedDict
from typing import Callable

import redis.asyncio as aioredis

from app.engines.filters import SnapshotFilters
from app.schemas.command_center import CommandCenterSnapshot

logger = logging.getLogger(__name__)

KEY_PREFIX = "command-center:snapshot:"
MAX_MEMORY_ENTRIES = 64


class SnapshotCache:
    """
    사용법:
        cache = SnapshotCache(redis_url="redis://localhost:6379", ttl_seconds=15)
        await cache.connect()
        snapshot = await cache.get(filters)
        await cache.set(filters, snapshot)
    """

    def __init__(
        self,
        redis_url: str | None = None,
        ttl_seconds: int = 0,
        max_entries: int = MAX_MEMORY_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._redis_url = redis_url
        self._ttl = max(int(ttl_seconds), 0)
        self._redis = None
        self._use_redis = False

        # 인메모리 저장소: key → (만료 시각(monotonic), JSON 문자열), 오래된 순
        self._memory: OrderedDict[str, tuple[float, str]] = OrderedDict()
        self._max_entries = max(int(max_entries), 1)
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    @property
    def backend(self) -> str:
        if not self.enabled:
            return "disabled"
        return "redis" if self._use_redis else "memory"

    async def connect(self):
        """Redis 연결 시도"""
        if not self.enabled or not self._redis_url:
            return
        try:
            self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
            await self._redis.ping()
            self._use_redis = True
            logger.info("[Cache] Redis 연결 성공")
        except Exception as e:
            logger.warning(f"[Cache] Redis 연결 실패 ({e}) — 인메모리 모드")
            self._redis = None
            self._use_redis = False

    async def close(self):
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self._use_redis = False

    def _key(self, filters: SnapshotFilters) -> str:
        return KEY_PREFIX + filters.cache_key

    async def get(self, filters: SnapshotFilters) -> CommandCenterSnapshot | None:
        if not self.enabled:
            return None

        key = self._key(filters)
        raw = None
        if self._use_redis and self._redis:
            try:
                raw = await self._redis.get(key)
            except Exception as e:
                logger.error(f"[Cache] Redis get 실패: {e}")
        else:
            entry = self._memory.get(key)
            if entry is not None:
                expires_at, payload = entry
                if expires_at > self._clock():
                    raw = payload
                else:
                    self._memory.pop(key, None)

        if raw is None:
            return None
        return CommandCenterSnapshot.model_validate(json.loads(raw))

    async def set(self, filters: SnapshotFilters, snapshot: CommandCenterSnapshot):
        if not self.enabled:
            return

        key = self._key(filters)
        payload = json.dumps(snapshot.model_dump(by_alias=True, mode="json"))
        if self._use_redis and self._redis:
            try:
                await self._redis.set(key, payload, ex=self._ttl)
                return
            except Exception as e:
                logger.error(f"[Cache] Redis set 실패: {e}")
        self._store_in_memory(key, payload)

    def _store_in_memory(self, key: str, payload: str):
        """만료 항목을 정리한 뒤 저장. 상한 초과 시 가장 오래된 항목부터 제거"""
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._memory.items() if expires_at <= now]
        for k in expired:
            del self._memory[k]

        self._memory.pop(key, None)
        self._memory[key] = (now + self._ttl, payload)
        while len(self._memory) > self._max_entries:
            evicted, _ = self._memory.popitem(last=False)
            logger.debug(f"[Cache] 인메모리 상한 초과 — 제거: {evicted}")

    @property
    def memory_entries(self) -> int:
        return len(self._memory)
