# mealplan/models/plan.py
# 식단 생성 입출력 스키마
from __future__ import annotations
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from mealplan.models.preferences import RecipeHistoryItem, UserPreferences
from mealplan.models.recipe import UnifiedRecipe

class ScoreRecord(BaseModel):
    # 후보 1건의 점수 내역 (레시피와 분리된 임시 값)
    recipeId: str
    food: float = 0.0
    cooking: float = 0.0
    budget: float = 0.0
    variety: float = 0.0
    overlap: float = 0.0
    popularity: float = 0.0
    total: float = 0.0
    estimatedCost: float = 0.0

class RelaxationNote(BaseModel):
    mealType: str
    requested: int
    selected: int
    steps: List[str] = Field(default_factory=list)

class PlanResult(BaseModel):
    recipes: List[UnifiedRecipe] = Field(default_factory=list)
    slots: Dict[str, List[str]] = Field(default_factory=dict)   # meal type → recipe ids
    scores: Dict[str, ScoreRecord] = Field(default_factory=dict)
    constraintsRelaxed: bool = False
    message: Optional[str] = None
    relaxations: List[RelaxationNote] = Field(default_factory=list)

class MealPlanIn(BaseModel):
    # POST /meal-plans 바디
    model_config = ConfigDict(populate_by_name=True)

    preferences: Optional[UserPreferences] = None        # 없으면 저장된 선호 조회
    meal_counts: Dict[str, int] = Field(alias="mealCounts")
    history: Optional[List[RecipeHistoryItem]] = None     # 없으면 저장된 이력 조회
    pantry_top_k: List[str] = Field(default_factory=list, alias="pantryTopK")

class CandidatesIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    preferences: Optional[UserPreferences] = None
    pantry_top_k: List[str] = Field(default_factory=list, alias="pantryTopK")

class AlternativesIn(BaseModel):
    # POST /meal-plans/alternatives 바디
    model_config = ConfigDict(populate_by_name=True)

    preferences: Optional[UserPreferences] = None
    meal_type: str = Field(alias="mealType")
    current_plan: List[UnifiedRecipe] = Field(default_factory=list, alias="currentPlan")
    replace_id: Optional[str] = Field(default=None, alias="replaceId")
    limit: int = 5
    history: Optional[List[RecipeHistoryItem]] = None
    pantry_top_k: List[str] = Field(default_factory=list, alias="pantryTopK")

class AlternativesOut(BaseModel):
    mealType: str
    replacing: Optional[str] = None
    alternatives: List[UnifiedRecipe] = Field(default_factory=list)
    scores: Dict[str, ScoreRecord] = Field(default_factory=dict)

class SwapIn(BaseModel):
    # POST /meal-plans/swap 바디
    model_config = ConfigDict(populate_by_name=True)

    preferences: Optional[UserPreferences] = None
    recipe_id: str = Field(alias="recipeId")
    meal_type: str = Field(alias="mealType")
    current_plan: List[UnifiedRecipe] = Field(default_factory=list, alias="currentPlan")
    history: Optional[List[RecipeHistoryItem]] = None
    pantry_top_k: List[str] = Field(default_factory=list, alias="pantryTopK")

class SwapOut(BaseModel):
    replacing: str
    recipe: Optional[UnifiedRecipe] = None     # 대체 후보가 없으면 None
    score: Optional[ScoreRecord] = None
