# mealplan/services/sources/first_party.py
# 1st-party(tasty) 카탈로그 어댑터: Mongo recipes 컬렉션 읽기 전용
# 정렬: updatedAt desc → createdAt desc → 정렬 없음 (필드가 없거나 정렬 실패 시)

from __future__ import annotations
import logging
from typing import Any, Awaitable, Collection, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from mealplan.core.config import settings
from mealplan.models.recipe import RecipeSource, UnifiedRecipe
from mealplan.services.mappers import map_first_party_many
from mealplan.services.sources.base import RecipeSourceAdapter, SearchParams

log = logging.getLogger(__name__)

_ORDER_FIELDS = ("updatedAt", "createdAt")

class MongoRecipeCatalog:
    def __init__(self, db: Optional[AsyncIOMotorDatabase], collection: Optional[str] = None):
        # db 없이 기동한 경우(USE_MONGO=false 등) 조회 시점에 실패 → 어댑터가 [] 처리
        self.col = db[collection or settings.FIRST_PARTY_COLLECTION] if db is not None else None

    async def fetch_raw(self, limit: int) -> List[Dict[str, Any]]:
        if self.col is None:
            raise RuntimeError("first-party catalog is not configured")
        for field in _ORDER_FIELDS:
            try:
                # 정렬 필드가 하나도 없는 컬렉션이면 다음 후보로
                if not await self.col.find_one({field: {"$exists": True}}, {"_id": 1}):
                    continue
                cur = self.col.find({}).sort(field, -1).limit(limit)
                return await cur.to_list(length=limit)
            except Exception as e:
                log.warning("first-party ordered read by %s failed: %s", field, e)
        cur = self.col.find({}).limit(limit)
        return await cur.to_list(length=limit)

class FirstPartyAdapter(RecipeSourceAdapter):
    source = RecipeSource.FIRST_PARTY

    def __init__(self, catalog: MongoRecipeCatalog, limit: Optional[int] = None):
        self.catalog = catalog
        self.limit = limit or settings.FIRST_PARTY_LIMIT

    async def fetch_candidates(
        self,
        params: SearchParams,
        *,
        known_titles: Optional[Awaitable[Collection[str]]] = None,
    ) -> List[UnifiedRecipe]:
        try:
            docs = await self.catalog.fetch_raw(self.limit)
        except Exception as e:
            log.error("first-party catalog unavailable: %s", e)
            return []
        try:
            recipes = map_first_party_many(docs)
        except Exception:
            log.exception("first-party mapping failed")
            return []
        log.info("first-party: %d candidates", len(recipes))
        return recipes
