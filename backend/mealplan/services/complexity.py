# mealplan/services/complexity.py
# 레시피 난이도(0~100): 단계 수 / 재료 수 / 특수 도구 / 고급 기법 각 25점
# 요리 실력(skill_level)에 따라 조리 점수에서 일부를 감점하는 데 쓴다
from __future__ import annotations
from typing import Dict, List

from mealplan.models.recipe import UnifiedRecipe

STEP_BASELINE, STEP_MAX = 5, 20
INGREDIENT_BASELINE, INGREDIENT_MAX = 5, 15
COMPONENT_WEIGHT = 25.0

SPECIAL_EQUIPMENT = [
    "blender", "food processor", "stand mixer", "pressure cooker", "slow cooker", "sous vide",
    "mandoline", "thermometer", "dutch oven", "cast iron", "grill", "smoker",
]

ADVANCED_TECHNIQUES = [
    "brine", "sous vide", "deglaze", "blanch", "temper", "reduce", "clarify", "render",
    "marinate", "ferment", "cure", "smoke", "caramelize", "fold", "knead", "proof",
    "flambe", "emulsify",
]

# 난이도 중 몇 %를 감점할지
SKILL_PENALTY_FACTOR: Dict[str, float] = {
    "beginner": 0.30,
    "intermediate": 0.15,
    "advanced": 0.0,
}

def _ramp(count: int, baseline: int, cap: int) -> float:
    # baseline 이하는 0, cap에서 만점
    if count <= baseline:
        return 0.0
    return (min(count, cap) - baseline) / (cap - baseline) * COMPONENT_WEIGHT

def _detect(text: str, vocab: List[str]) -> List[str]:
    return [w for w in vocab if w in text]

def recipe_complexity(recipe: UnifiedRecipe) -> float:
    steps = recipe.instructions or []
    text = " ".join(steps).lower()
    score = (
        _ramp(len(steps), STEP_BASELINE, STEP_MAX)
        + _ramp(len(recipe.ingredients), INGREDIENT_BASELINE, INGREDIENT_MAX)
        + len(_detect(text, SPECIAL_EQUIPMENT)) / 3 * COMPONENT_WEIGHT
        + len(_detect(text, ADVANCED_TECHNIQUES)) / 3 * COMPONENT_WEIGHT
    )
    return float(round(min(100.0, score)))

def skill_penalty(recipe: UnifiedRecipe, skill_level: str) -> float:
    return recipe_complexity(recipe) * SKILL_PENALTY_FACTOR.get(skill_level, 0.15)
