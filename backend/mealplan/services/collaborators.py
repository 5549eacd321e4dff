# mealplan/services/collaborators.py
# 외부 협력자가 저장한 선호/이력 읽기 (이 서비스는 절대 쓰지 않는다)
# - user_preferences: {anon_id, dietary{}, food{}, cooking{}, budget{}}  (하위 모델 4종은 서로 독립)
# - recipe_history : {anon_id, recipeId, usedDate, mealType}  (append-only)

from __future__ import annotations
import logging
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from mealplan.models.preferences import (
    BudgetPreferences,
    CookingPreferences,
    DietaryPreferences,
    FoodPreferences,
    RecipeHistoryItem,
    UserPreferences,
)

log = logging.getLogger(__name__)

PREFS_COLLECTION = "user_preferences"
HISTORY_COLLECTION = "recipe_history"
HISTORY_LIMIT = 200

_SUB_MODELS = {
    "dietary": DietaryPreferences,
    "food": FoodPreferences,
    "cooking": CookingPreferences,
    "budget": BudgetPreferences,
}

class PreferenceReader:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db[PREFS_COLLECTION]

    async def load(self, anon_id: str) -> UserPreferences:
        doc = await self.col.find_one({"anon_id": anon_id}) or {}
        parts: Dict[str, Any] = {}
        for key, model in _SUB_MODELS.items():
            raw = doc.get(key)
            if not isinstance(raw, dict):
                continue
            try:
                parts[key] = model.model_validate(raw)
            except ValidationError as e:
                # 하위 모델 하나가 깨져도 나머지는 살린다
                log.warning("stored %s preferences invalid for %s, using defaults: %s", key, anon_id, e.errors()[:2])
        return UserPreferences(**parts)

class HistoryReader:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db[HISTORY_COLLECTION]

    async def load(self, anon_id: str, limit: int = HISTORY_LIMIT) -> List[RecipeHistoryItem]:
        cur = self.col.find({"anon_id": anon_id}).sort("usedDate", -1).limit(limit)
        items: List[RecipeHistoryItem] = []
        bad = 0
        async for d in cur:
            try:
                items.append(RecipeHistoryItem.model_validate(d))
            except ValidationError:
                bad += 1
        if bad:
            log.warning("skipped %d malformed history rows for %s", bad, anon_id)
        return items
