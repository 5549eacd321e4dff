# mealplan/services/aggregator.py
# 후보 수집기
# 1) 두 어댑터를 동시에 실행 (각자 타임아웃 + 예외 가드 → 실패 시 [])
#    3rd-party는 1st-party 제목을 필터에만 쓰므로, 제목 태스크를 공유해 조회 자체는 겹쳐서 진행
# 2) 1st-party → 3rd-party 순으로 이어붙임
# 3) 순서 의존 중복 제거 (먼저 본 것이 남음, 병렬화 금지)
# 4) 결과 0건은 에러가 아니라 진단 로그

from __future__ import annotations
import asyncio
import logging
import random
from typing import Any, Dict, List, Optional, Sequence

from mealplan.core.config import settings
from mealplan.models.recipe import UnifiedRecipe
from mealplan.services.similarity import is_near_duplicate
from mealplan.services.sources.base import RecipeSourceAdapter, SearchParams

log = logging.getLogger(__name__)

def deduplicate(recipes: Sequence[UnifiedRecipe]) -> List[UnifiedRecipe]:
    """한 번의 선형 스캔. 이미 채택된 것 중 하나라도 거의 같으면 버린다."""
    accepted: List[UnifiedRecipe] = []
    for r in recipes:
        if any(r.id == a.id or is_near_duplicate(r, a) for a in accepted):
            continue
        accepted.append(r)
    return accepted

class CandidateAggregator:
    def __init__(
        self,
        first_party: RecipeSourceAdapter,
        third_party: RecipeSourceAdapter,
        first_party_timeout: Optional[float] = None,
        third_party_timeout: Optional[float] = None,
        rotation: Optional[bool] = None,
        seed: Optional[int] = None,
    ):
        self.first_party = first_party
        self.third_party = third_party
        self.first_party_timeout = first_party_timeout or settings.FIRST_PARTY_TIMEOUT_S
        self.third_party_timeout = third_party_timeout or settings.THIRD_PARTY_TIMEOUT_S
        if self.third_party_timeout < self.first_party_timeout:
            # 3rd-party는 1st-party 제목을 기다리므로 더 짧으면 1st-party가 느릴 때 같이 잃는다
            raise ValueError("third-party timeout must not be shorter than the first-party timeout")
        self.rotation = settings.CUISINE_ROTATION if rotation is None else rotation
        # 요청 간 간섭이 없도록 인스턴스가 RNG를 소유
        self.rng = random.Random(settings.RANDOM_SEED if seed is None else seed)

    def _with_rotation(self, params: SearchParams) -> Dict[str, Any]:
        out = dict(params)
        if self.rotation and not out.get("cuisine") and settings.ROTATION_CUISINES:
            out["cuisine"] = self.rng.choice(settings.ROTATION_CUISINES)
            log.debug("cuisine rotation → %s", out["cuisine"])
        return out

    async def _guarded(self, name: str, coro, timeout: float) -> List[UnifiedRecipe]:
        try:
            return list(await asyncio.wait_for(coro, timeout=timeout))
        except asyncio.TimeoutError:
            log.warning("%s source timed out after %.1fs", name, timeout)
        except Exception:
            log.exception("%s source failed", name)
        return []

    async def generate_candidates(self, params: Optional[SearchParams] = None) -> List[UnifiedRecipe]:
        params = self._with_rotation(params or {})

        first_task = asyncio.create_task(
            self._guarded("first-party", self.first_party.fetch_candidates(params), self.first_party_timeout)
        )

        async def _titles() -> List[str]:
            return [r.title for r in await asyncio.shield(first_task)]

        titles_task = asyncio.create_task(_titles())
        third_task = asyncio.create_task(
            self._guarded(
                "third-party",
                self.third_party.fetch_candidates(params, known_titles=titles_task),
                self.third_party_timeout,
            )
        )

        first, third = await asyncio.gather(first_task, third_task)
        if not titles_task.done():
            titles_task.cancel()

        merged = deduplicate([*first, *third])
        log.info(
            "candidates: first-party=%d third-party=%d → %d after dedup",
            len(first), len(third), len(merged),
        )
        if not merged:
            log.warning("no candidates from any source (both unavailable or empty) params=%s", params)
        return merged
