# mealplan/services/sources/base.py
# 후보 소스 어댑터 공통 인터페이스
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Collection, List, Mapping, Optional

from mealplan.models.recipe import RecipeSource, UnifiedRecipe

# 검색 파라미터 (diet, intolerances, cuisine, includeIngredients, maxReadyTime, number ...)
SearchParams = Mapping[str, Any]

class RecipeSourceAdapter(ABC):
    source: RecipeSource

    @abstractmethod
    async def fetch_candidates(
        self,
        params: SearchParams,
        *,
        known_titles: Optional[Awaitable[Collection[str]]] = None,
    ) -> List[UnifiedRecipe]:
        """
        후보 레시피 목록을 UnifiedRecipe로 반환.
        레코드 일부가 깨졌으면 대체값으로 채우고, 전체 실패면 로그 후 [].
        known_titles: 이미 알려진 1st-party 제목 (필요한 어댑터만 await)
        """
