# mealplan/models/recipe.py
# 통합 레시피 스키마: 1st-party(tasty) / 3rd-party(spoonacular) 모두 이 형태로 변환 후 사용
# 생성 이후엔 불변 값(frozen). 점수는 별도 레코드(ScoreRecord)로 관리
from __future__ import annotations
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mealplan.models.tags import MEAL_TYPES

# 3rd-party 라이선스: 조리 단계는 최대 12개까지만 보관
MAX_THIRD_PARTY_STEPS = 12

class RecipeSource(str, Enum):
    FIRST_PARTY = "tasty"
    THIRD_PARTY = "spoonacular"

ID_PREFIX = {
    RecipeSource.FIRST_PARTY: "tasty-",
    RecipeSource.THIRD_PARTY: "spn-",
}

class Ingredient(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    amount: float = 0.0
    unit: str = ""
    original: str = ""

class MacroBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    calories: float = 0.0
    protein: float = 0.0   # g
    fat: float = 0.0       # g
    carbs: float = 0.0     # g

class UnifiedRecipe(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    source: RecipeSource
    title: str = Field(min_length=1)
    imageUrl: str = ""
    readyInMinutes: int = Field(default=30, ge=0)
    servings: int = Field(default=1, ge=1)
    ingredients: List[Ingredient] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    instructions: Optional[List[str]] = None
    nutrition: Optional[MacroBreakdown] = None
    popularityScore: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    pricePerServing: Optional[float] = Field(default=None, ge=0.0)   # US cents

    @field_validator("tags", mode="before")
    @classmethod
    def _v_tags(cls, v):
        # 소문자 + 중복 제거, 대표 식사 유형 태그를 맨 앞으로
        tags = list(dict.fromkeys(str(t).strip().lower() for t in (v or []) if str(t).strip()))
        primary = next((t for t in tags if t in MEAL_TYPES), None)
        if primary:
            tags = [primary] + [t for t in tags if t != primary]
        return tags

    @field_validator("instructions")
    @classmethod
    def _v_instructions(cls, v, info):
        # 3rd-party는 라이선스 제약으로 12단계 컷
        if v is not None and info.data.get("source") is RecipeSource.THIRD_PARTY:
            return v[:MAX_THIRD_PARTY_STEPS]
        return v

    @model_validator(mode="after")
    def _v_id_prefix(self):
        prefix = ID_PREFIX[self.source]
        if not self.id.startswith(prefix):
            raise ValueError(f"id {self.id!r} must start with {prefix!r} for source {self.source.value}")
        return self

    @property
    def meal_type(self) -> Optional[str]:
        return self.tags[0] if self.tags and self.tags[0] in MEAL_TYPES else None

    def ingredient_names(self, limit: Optional[int] = None) -> List[str]:
        names = [i.name for i in self.ingredients]
        return names if limit is None else names[:limit]
