# mealplan/services/scoring.py
# 선호 기반 스코어링
# - 식단 게이트(하드 필터): 실패한 후보는 점수를 매기지 않는다
# - 세부 점수: 음식 선호 / 조리 습관 / 예산 / 다양성 / 재료 겹침 / 인기도
# - 합산: 가중 평균 (선호 입력 상태에 따라 가중치 약간 조정)

from __future__ import annotations
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from mealplan.core.config import settings
from mealplan.models.plan import ScoreRecord
from mealplan.models.preferences import (
    BudgetPreferences,
    DietaryPreferences,
    FoodPreferences,
    RecipeHistoryItem,
    UserPreferences,
)
from mealplan.models.recipe import UnifiedRecipe
from mealplan.models.tags import (
    DIET_FLAG_TAGS,
    LOW_CARB_MAX_GRAMS,
    expand_allergens,
    ingredient_mentions,
    mentions_nut,
    normalize_tag,
)
from mealplan.services.complexity import skill_penalty
from mealplan.services.history import variety_penalty
from mealplan.services.similarity import bigram_jaccard
from mealplan.services.timing import clamp, preferred_band, time_score

log = logging.getLogger(__name__)

# === 가중치 =====================================================================
class ScoringWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    food: float = 0.30
    cooking: float = 0.20
    budget: float = 0.15
    variety: float = 0.15
    overlap: float = 0.10
    popularity: float = 0.10

    @classmethod
    def from_settings(cls) -> "ScoringWeights":
        return cls(
            food=settings.WEIGHT_FOOD,
            cooking=settings.WEIGHT_COOKING,
            budget=settings.WEIGHT_BUDGET,
            variety=settings.WEIGHT_VARIETY,
            overlap=settings.WEIGHT_OVERLAP,
            popularity=settings.WEIGHT_POPULARITY,
        )

def adapt_weights(weights: ScoringWeights, prefs: UserPreferences) -> ScoringWeights:
    # 좋아요/싫어요 입력이 없으면 음식 점수 비중 절반, 예산이 없으면 예산 비중 0
    update = {}
    if not prefs.food.favorite_ingredients and not prefs.food.disliked_ingredients:
        update["food"] = weights.food / 2
    if prefs.budget.amount <= 0:
        update["budget"] = 0.0
    return weights.model_copy(update=update) if update else weights

# === 식단 게이트 =================================================================
_NUT_TAGS = {"nuts", "contains-nuts", "tree-nuts", "peanuts"}

def passes_dietary_gate(recipe: UnifiedRecipe, dietary: DietaryPreferences) -> bool:
    tags = set(recipe.tags)
    for flag, accepted in DIET_FLAG_TAGS.items():
        if not getattr(dietary, flag):
            continue
        if tags & accepted:
            continue
        if flag == "low_carb" and recipe.nutrition is not None and recipe.nutrition.carbs <= LOW_CARB_MAX_GRAMS:
            continue
        return False

    names = recipe.ingredient_names()
    if dietary.nut_free and (tags & _NUT_TAGS or any(mentions_nut(n) for n in names)):
        return False

    keywords = expand_allergens([*dietary.allergies, *dietary.restrictions])
    for n in names:
        if any(ingredient_mentions(n, k) for k in keywords):
            return False
    return True

# === 세부 점수 ===================================================================
FOOD_BASE = 50.0
FAVORITE_BONUS = 15.0
CUISINE_BONUS = 10.0
DISLIKE_PENALTY = 25.0

def food_score(recipe: UnifiedRecipe, food: FoodPreferences) -> float:
    """바닥 없음: 싫어하는 재료가 많으면 음수도 가능."""
    names = recipe.ingredient_names()

    def _has(item: str) -> bool:
        return any(ingredient_mentions(n, item) for n in names)

    score = FOOD_BASE
    score += FAVORITE_BONUS * sum(1 for f in food.favorite_ingredients if _has(f))
    cuisines = {normalize_tag(c) for c in food.preferred_cuisines}
    if cuisines & set(recipe.tags):
        score += CUISINE_BONUS
    score -= DISLIKE_PENALTY * sum(1 for d in food.disliked_ingredients if _has(d))
    return score

def cooking_score(recipe: UnifiedRecipe, prefs: UserPreferences, penalty: Optional[str] = None) -> float:
    base = time_score(
        recipe.readyInMinutes,
        preferred=preferred_band(prefs.cooking.preferred_cooking_duration),
        penalty=penalty,
    )
    return clamp(base - skill_penalty(recipe, prefs.cooking.skill_level))

# 식사 횟수 환산 (하루 3끼)
MEALS_PER_PERIOD = {"daily": 3, "weekly": 21, "monthly": 90}
COST_PER_INGREDIENT_USD = 0.75

def per_meal_budget(budget: BudgetPreferences) -> Optional[float]:
    if budget.amount <= 0:
        return None
    return budget.amount / MEALS_PER_PERIOD[budget.frequency]

def estimate_cost(recipe: UnifiedRecipe) -> float:
    """USD. 1인분 가격(센트)이 있으면 그걸로, 없으면 재료 수 기반 추정."""
    if recipe.pricePerServing:
        return recipe.pricePerServing * recipe.servings / 100.0
    return COST_PER_INGREDIENT_USD * len(recipe.ingredients)

def budget_score(cost: float, budget: Optional[float]) -> float:
    # 예산 이하 100, 초과 1%당 1점 감점, 0 바닥
    if budget is None or cost <= budget:
        return 100.0
    over_pct = (cost - budget) / budget * 100.0
    return max(0.0, 100.0 - over_pct)

def variety_score(recipe: UnifiedRecipe, history: Iterable[RecipeHistoryItem], now: Optional[datetime] = None) -> float:
    return 100.0 - variety_penalty(recipe.id, history, now)

def overlap_score(recipe: UnifiedRecipe, plan: Sequence[UnifiedRecipe]) -> float:
    # 진행 중인 식단과 재료가 겹칠수록 가점 (장보기 절약)
    if not plan:
        return 0.0
    limit = settings.INGREDIENT_COMPARE_LIMIT
    mine = recipe.ingredient_names(limit)
    return 100.0 * max(bigram_jaccard(mine, p.ingredient_names(limit)) for p in plan)

def popularity_score(recipe: UnifiedRecipe) -> float:
    return 100.0 * (recipe.popularityScore if recipe.popularityScore is not None else 0.5)

# === 엔진 ========================================================================
class ScoringEngine:
    def __init__(
        self,
        preferences: UserPreferences,
        history: Optional[List[RecipeHistoryItem]] = None,
        weights: Optional[ScoringWeights] = None,
        now: Optional[datetime] = None,
        penalty: Optional[str] = None,
    ):
        self.prefs = preferences
        self.history = history or []
        base = weights or ScoringWeights.from_settings()
        self.weights = adapt_weights(base, preferences) if settings.ADAPTIVE_WEIGHTS else base
        self.now = now
        self.penalty = penalty
        self.budget = per_meal_budget(preferences.budget)

    def passes(self, recipe: UnifiedRecipe) -> bool:
        return passes_dietary_gate(recipe, self.prefs.dietary)

    def gate(self, candidates: Iterable[UnifiedRecipe]) -> List[UnifiedRecipe]:
        kept = [c for c in candidates if self.passes(c)]
        log.debug("dietary gate kept %d candidates", len(kept))
        return kept

    def score(
        self,
        recipe: UnifiedRecipe,
        plan: Sequence[UnifiedRecipe] = (),
        include_overlap: bool = True,
    ) -> ScoreRecord:
        """게이트 통과한 후보 1건의 점수. 상태를 바꾸지 않는다."""
        w = self.weights
        cost = estimate_cost(recipe)
        parts = {
            "food": food_score(recipe, self.prefs.food),
            "cooking": cooking_score(recipe, self.prefs, self.penalty),
            "budget": budget_score(cost, self.budget),
            "variety": variety_score(recipe, self.history, self.now),
            "overlap": overlap_score(recipe, plan) if include_overlap else 0.0,
            "popularity": popularity_score(recipe),
        }
        weights = {
            "food": w.food,
            "cooking": w.cooking,
            "budget": w.budget,
            "variety": w.variety,
            "overlap": w.overlap if include_overlap else 0.0,
            "popularity": w.popularity,
        }
        denom = sum(weights.values())
        total = sum(parts[k] * weights[k] for k in parts) / denom if denom > 0 else 0.0
        return ScoreRecord(recipeId=recipe.id, total=round(total, 4), estimatedCost=round(cost, 2), **parts)
