# mealplan/services/sources/spoonacular.py
# 3rd-party(Spoonacular) 카탈로그 어댑터
# 흐름: 캐시 조회 → (miss) complexSearch → id별 /information 병렬 조회 → 매핑
#       → 1st-party 제목과 거의 같은 결과 제거 → 필터 결과를 원래 키로 캐시
# 전체 실패는 로그만 남기고 [] (예외를 밖으로 던지지 않음)

from __future__ import annotations
import asyncio
import logging
import random
from typing import Any, Awaitable, Collection, Dict, List, Optional

import httpx
from pydantic import ValidationError

from mealplan.core.config import settings
from mealplan.models.recipe import RecipeSource, UnifiedRecipe
from mealplan.services.cache import CacheStore, compute_cache_key
from mealplan.services.mappers import map_spoonacular
from mealplan.services.similarity import titles_match
from mealplan.services.sources.base import RecipeSourceAdapter, SearchParams

log = logging.getLogger(__name__)

SEARCH_PATH = "/recipes/complexSearch"
DETAIL_PATH = "/recipes/{id}/information"

# complexSearch 로 넘기는 키 (그 외 파라미터는 무시)
_SEARCH_KEYS = ("query", "type", "diet", "intolerances", "cuisine", "includeIngredients",
                "excludeIngredients", "maxReadyTime", "number", "sort", "offset")

class SpoonacularNotReady(Exception):
    # API 키 없음 등 호출 자체가 불가능한 상태
    pass

def _join(v: Any) -> Any:
    if isinstance(v, (list, tuple, set)):
        return ",".join(str(x) for x in v if x)
    return v

async def _get_with_retry(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    tries: int = 3,
    backoff: float = 1.2,
) -> httpx.Response:
    last: Optional[Exception] = None
    for i in range(tries):
        try:
            return await client.get(url, params=params)
        except (httpx.ConnectTimeout, httpx.ReadTimeout) as e:
            last = e
            # 1.2, 2.4, 3.6초 + 작은 지터 (backoff=0 이면 바로 재시도)
            if backoff:
                await asyncio.sleep(backoff * (i + 1) + random.random() * 0.5)
    assert last is not None
    raise last

class SpoonacularClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        concurrency: Optional[int] = None,
        retries: Optional[int] = None,
        backoff: float = 1.2,
    ):
        self.api_key = api_key if api_key is not None else settings.SPOONACULAR_API_KEY
        self.base_url = (base_url or settings.SPOONACULAR_BASE_URL).rstrip("/")
        self.transport = transport
        self.concurrency = concurrency or settings.SPOONACULAR_DETAIL_CONCURRENCY
        self.retries = retries or settings.SPOONACULAR_RETRIES
        self.backoff = backoff

    def _client(self) -> httpx.AsyncClient:
        # ---- 타임아웃/커넥션 제한 ----
        timeout = httpx.Timeout(connect=5.0, read=10.0, write=10.0, pool=10.0)
        limits = httpx.Limits(max_connections=self.concurrency + 1, max_keepalive_connections=self.concurrency)
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            limits=limits,
            params={"apiKey": self.api_key},
            transport=self.transport,
        )

    async def search(self, params: SearchParams) -> List[Dict[str, Any]]:
        """검색 결과 id들의 상세(영양 포함) payload 목록. 개별 상세 실패는 건너뜀."""
        if not self.api_key:
            raise SpoonacularNotReady("SPOONACULAR_API_KEY not set")

        query = {k: _join(params[k]) for k in _SEARCH_KEYS if params.get(k) not in (None, "", [])}
        query.setdefault("number", settings.SPOONACULAR_RESULTS)

        async with self._client() as client:
            resp = await _get_with_retry(client, SEARCH_PATH, query, tries=self.retries, backoff=self.backoff)
            resp.raise_for_status()
            ids = [r.get("id") for r in (resp.json().get("results") or []) if isinstance(r, dict) and r.get("id")]
            if not ids:
                return []

            sem = asyncio.Semaphore(self.concurrency)

            async def _detail(rid: Any) -> Optional[Dict[str, Any]]:
                async with sem:
                    try:
                        r = await _get_with_retry(
                            client, DETAIL_PATH.format(id=rid), {"includeNutrition": "true"},
                            tries=self.retries, backoff=self.backoff,
                        )
                        r.raise_for_status()
                        return r.json()
                    except (httpx.HTTPError, ValueError) as e:
                        log.warning("spoonacular detail %s skipped: %s", rid, e)
                        return None

            details = await asyncio.gather(*[_detail(rid) for rid in ids])
        return [d for d in details if d]

class SpoonacularAdapter(RecipeSourceAdapter):
    source = RecipeSource.THIRD_PARTY

    def __init__(self, client: SpoonacularClient, cache: CacheStore):
        self.client = client
        self.cache = cache

    @staticmethod
    def cache_key(params: SearchParams) -> str:
        return compute_cache_key({"source": RecipeSource.THIRD_PARTY.value, **dict(params)})

    async def fetch_candidates(
        self,
        params: SearchParams,
        *,
        known_titles: Optional[Awaitable[Collection[str]]] = None,
    ) -> List[UnifiedRecipe]:
        try:
            return await self._fetch(params, known_titles)
        except SpoonacularNotReady as e:
            log.warning("spoonacular not ready: %s", e)
        except httpx.HTTPError as e:
            log.error("spoonacular unavailable: %s", e)
        except Exception:
            log.exception("spoonacular fetch failed")
        return []

    async def _fetch(
        self,
        params: SearchParams,
        known_titles: Optional[Awaitable[Collection[str]]],
    ) -> List[UnifiedRecipe]:
        key = self.cache_key(params)
        cached = await self.cache.get(key)
        if cached is not None:
            try:
                recipes = [UnifiedRecipe.model_validate(r) for r in cached]
                log.info("spoonacular cache hit key=%s (%d)", key, len(recipes))
                return recipes
            except ValidationError as e:
                log.warning("spoonacular cache entry unreadable key=%s: %s", key, e)

        payloads = await self.client.search(params)
        recipes: List[UnifiedRecipe] = []
        skipped = 0
        for p in payloads:
            try:
                recipes.append(map_spoonacular(p))
            except (ValidationError, TypeError, ValueError) as e:
                skipped += 1
                log.debug("spoonacular payload %s unmappable: %s", p.get("id"), e)
        if skipped:
            log.warning("spoonacular: %d/%d payloads could not be mapped", skipped, len(payloads))

        titles = await self._known_titles(known_titles)
        filtered = [r for r in recipes if not any(titles_match(r.title, t) for t in titles)]
        if len(filtered) < len(recipes):
            log.info("spoonacular: dropped %d near-duplicates of first-party titles", len(recipes) - len(filtered))

        # 필터 전 키(원래 질의 키)로 저장
        await self.cache.set(key, [r.model_dump(mode="json") for r in filtered])
        return filtered

    @staticmethod
    async def _known_titles(known_titles: Optional[Awaitable[Collection[str]]]) -> Collection[str]:
        if known_titles is None:
            return []
        try:
            # 1st-party 조회 태스크를 공유하므로 취소가 번지지 않게
            return await asyncio.shield(known_titles)
        except Exception as e:
            log.warning("first-party titles unavailable for cross-source filter: %s", e)
            return []
