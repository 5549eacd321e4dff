# 1st-party 레시피 문서 스키마 (recipes 컬렉션, 스크레이퍼가 적재)
# 필드가 들쭉날쭉하므로 전부 느슨하게 받고, 변환은 services/mappers.py 에서
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional
from datetime import datetime

class FirstPartyRecipeDoc(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    mongo_id: Optional[Any] = Field(default=None, alias="_id")
    name: Optional[str] = None
    title: Optional[str] = None
    imageUrl: Optional[str] = None
    prepTime: Optional[Any] = None          # "15 minutes" / 15
    cookTime: Optional[Any] = None
    readyInMinutes: Optional[int] = None
    servings: Optional[int] = None
    mealType: Optional[str] = None
    tags: List[Any] = []
    ingredients: List[Any] = []             # 형태 제각각 → models/raw.py 에서 판별
    instructions: List[Any] = []
    pricePerServing: Optional[float] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @field_validator("tags", "ingredients", "instructions", mode="before")
    @classmethod
    def _v_list(cls, v):
        if v is None:
            return []
        return v if isinstance(v, list) else [v]

    @field_validator("readyInMinutes", "servings", "pricePerServing", mode="before")
    @classmethod
    def _v_number(cls, v, info):
        # 숫자로 못 읽으면 None (기본값으로 대체)
        if v is None or isinstance(v, bool):
            return None
        try:
            n = float(v)
        except (TypeError, ValueError):
            return None
        return n if info.field_name == "pricePerServing" else int(n)

    @property
    def doc_id(self) -> str:
        return str(self.id or self.mongo_id or "unknown")

    @property
    def display_title(self) -> str:
        return (self.name or self.title or "").strip() or "Untitled Recipe"
