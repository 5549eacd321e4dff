# mealplan/services/cache.py
# 후보 캐시 (TTL 48h): 성능 최적화일 뿐, 장애 시 항상 miss로 동작
# - 키: 파라미터 정규화 → JSON(sort_keys) → md5
# - 읽기 시점에 TTL 판정 (오래된 항목 = miss)
# - 쓰기는 항상 통째 교체 (부분 갱신 없음)

from __future__ import annotations
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorCollection

from mealplan.core.config import settings

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _as_aware(ts: datetime) -> datetime:
    # Mongo는 기본적으로 naive UTC datetime을 돌려준다
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

# ---------------------------------------------------------------------
# 키 계산
# ---------------------------------------------------------------------
def canonical_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    같은 의미의 쿼리가 같은 키가 되도록 정규화.
    - None/빈 값 제거, 문자열 trim+소문자
    - 리스트(또는 콤마 문자열 아님)는 정렬
    """
    out: Dict[str, Any] = {}
    for k, v in (params or {}).items():
        if v is None:
            continue
        if isinstance(v, str):
            v = v.strip().lower()
            if not v:
                continue
        elif isinstance(v, (list, tuple, set)):
            v = sorted({str(x).strip().lower() for x in v if x is not None and str(x).strip()})
            if not v:
                continue
        out[str(k)] = v
    return out

def compute_cache_key(params: Mapping[str, Any]) -> str:
    payload = json.dumps(canonical_params(params), sort_keys=True, separators=(",", ":"))
    return hashlib.md5(payload.encode("utf-8")).hexdigest()

# ---------------------------------------------------------------------
# 저장소 백엔드
# ---------------------------------------------------------------------
class CacheBackend(ABC):
    @abstractmethod
    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        """{'value': ..., 'timestamp': datetime} 또는 None"""

    @abstractmethod
    async def write(self, key: str, value: Any, timestamp: datetime) -> None:
        ...

class MongoCacheBackend(CacheBackend):
    def __init__(self, collection: AsyncIOMotorCollection):
        self.col = collection

    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        return await self.col.find_one({"_id": key}, {"value": 1, "timestamp": 1})

    async def write(self, key: str, value: Any, timestamp: datetime) -> None:
        # replace_one = 이전 내용 전체 교체
        await self.col.replace_one({"_id": key}, {"value": value, "timestamp": timestamp}, upsert=True)

class MemoryCacheBackend(CacheBackend):
    # DB 없이 돌릴 때(로컬/테스트) 쓰는 프로세스 내 저장소
    def __init__(self):
        self._docs: Dict[str, Dict[str, Any]] = {}

    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        doc = self._docs.get(key)
        return dict(doc) if doc else None

    async def write(self, key: str, value: Any, timestamp: datetime) -> None:
        self._docs[key] = {"value": value, "timestamp": timestamp}

# ---------------------------------------------------------------------
# 캐시 스토어
# ---------------------------------------------------------------------
class CacheStore:
    def __init__(
        self,
        backend: CacheBackend,
        ttl: Optional[timedelta] = None,
        clock: Clock = utcnow,
    ):
        self.backend = backend
        self.ttl = ttl if ttl is not None else timedelta(hours=settings.CACHE_TTL_HOURS)
        self.clock = clock

    async def get(self, key: str) -> Optional[Any]:
        try:
            doc = await self.backend.read(key)
        except Exception as e:
            log.warning("cache read failed key=%s: %s", key, e)
            return None
        if not doc or doc.get("timestamp") is None:
            return None
        try:
            age = self.clock() - _as_aware(doc["timestamp"])
        except (TypeError, AttributeError):
            log.warning("cache entry has bad timestamp key=%s", key)
            return None
        if age > self.ttl:
            log.debug("cache expired key=%s age=%s", key, age)
            return None
        return doc.get("value")

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.backend.write(key, value, self.clock())
        except Exception as e:
            log.warning("cache write failed key=%s: %s", key, e)
