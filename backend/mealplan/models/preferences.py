# mealplan/models/preferences.py
# 사용자 선호 4종 + 레시피 사용 이력: 읽기 전용 입력 (저장/수정은 외부 협력자 담당)
# 프론트는 camelCase로 보내므로 alias 허용
from __future__ import annotations
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CookingDuration = Literal["under_30_min", "30_to_60_min", "over_60_min"]
CookingFrequency = Literal["daily", "few_times_week", "weekends_only", "rarely"]
SkillLevel = Literal["beginner", "intermediate", "advanced"]
BudgetFrequency = Literal["daily", "weekly", "monthly"]

class _Prefs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

class DietaryPreferences(_Prefs):
    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = Field(default=False, alias="glutenFree")
    dairy_free: bool = Field(default=False, alias="dairyFree")
    nut_free: bool = Field(default=False, alias="nutFree")
    low_carb: bool = Field(default=False, alias="lowCarb")
    allergies: List[str] = Field(default_factory=list)
    restrictions: List[str] = Field(default_factory=list)

class FoodPreferences(_Prefs):
    favorite_ingredients: List[str] = Field(default_factory=list, alias="favoriteIngredients")
    disliked_ingredients: List[str] = Field(default_factory=list, alias="dislikedIngredients")
    preferred_cuisines: List[str] = Field(default_factory=list, alias="preferredCuisines")

class CookingPreferences(_Prefs):
    cooking_frequency: CookingFrequency = Field(default="few_times_week", alias="cookingFrequency")
    preferred_cooking_duration: Optional[CookingDuration] = Field(default=None, alias="preferredCookingDuration")
    skill_level: SkillLevel = Field(default="intermediate", alias="skillLevel")
    meal_types: List[str] = Field(default_factory=list, alias="mealTypes")
    serving_size_preference: int = Field(default=2, ge=1, alias="servingSizePreference")
    weekly_meal_prep_count: int = Field(default=0, ge=0, alias="weeklyMealPrepCount")
    household_size: int = Field(default=1, ge=1, alias="householdSize")

class BudgetPreferences(_Prefs):
    amount: float = Field(default=0.0, ge=0.0)     # 0 = 예산 제약 없음
    frequency: BudgetFrequency = "weekly"

class UserPreferences(_Prefs):
    dietary: DietaryPreferences = Field(default_factory=DietaryPreferences)
    food: FoodPreferences = Field(default_factory=FoodPreferences)
    cooking: CookingPreferences = Field(default_factory=CookingPreferences)
    budget: BudgetPreferences = Field(default_factory=BudgetPreferences)

class RecipeHistoryItem(_Prefs):
    recipe_id: str = Field(alias="recipeId")
    used_date: datetime = Field(alias="usedDate")
    meal_type: str = Field(default="other", alias="mealType")
