# 공용 의존성/헬퍼 (익명 사용자 쿠키, 파이프라인 조립)
import uuid
from typing import Optional

from fastapi import Request, Response

from mealplan.core.config import settings
from mealplan.db.init import get_db_or_none
from mealplan.services.aggregator import CandidateAggregator
from mealplan.services.cache import CacheStore, MemoryCacheBackend, MongoCacheBackend
from mealplan.services.collaborators import HistoryReader, PreferenceReader
from mealplan.services.planner import MealPlanner
from mealplan.services.sources.first_party import FirstPartyAdapter, MongoRecipeCatalog
from mealplan.services.sources.spoonacular import SpoonacularAdapter, SpoonacularClient

COOKIE = "anon_id"
MAX_AGE = 60 * 60 * 24 * 365 * 2  # 2년

# DB 없이 돌 때 쓰는 프로세스 내 캐시 (요청 간 공유)
_memory_cache = MemoryCacheBackend()

def get_or_set_anon_id(request: Request, response: Response) -> str:
    # 쿠키 없으면 발급, 있으면 그대로 사용
    v = request.cookies.get(COOKIE)
    if not v:
        v = uuid.uuid4().hex
        response.set_cookie(COOKIE, v, max_age=MAX_AGE, httponly=True, samesite="lax")
    return v

def _db():
    return get_db_or_none() if settings.USE_MONGO else None

def get_cache_store() -> CacheStore:
    db = _db()
    backend = MongoCacheBackend(db[settings.CACHE_COLLECTION]) if db is not None else _memory_cache
    return CacheStore(backend)

def get_aggregator() -> CandidateAggregator:
    # 요청마다 새로 조립 (RNG/상태가 요청 간에 섞이지 않도록)
    return CandidateAggregator(
        first_party=FirstPartyAdapter(MongoRecipeCatalog(_db())),
        third_party=SpoonacularAdapter(SpoonacularClient(), get_cache_store()),
    )

def get_planner() -> MealPlanner:
    return MealPlanner(aggregator=get_aggregator())

def get_preference_reader() -> Optional[PreferenceReader]:
    db = _db()
    return PreferenceReader(db) if db is not None else None

def get_history_reader() -> Optional[HistoryReader]:
    db = _db()
    return HistoryReader(db) if db is not None else None
