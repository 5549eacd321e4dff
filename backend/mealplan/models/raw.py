# mealplan/models/raw.py
# 1st-party 재료 원본 형태 디코드 (입구에서 한 번만 판별 → Ingredient 하나로 수렴)
# 지원 형태
#   1) structured : {"name", "amount", "unit", "originalString"}
#   2) measured   : {"item": "medium potatoes", "measurement": "2"}   (tasty 스크레이퍼)
#   3) text       : "2 cups flour"                                     (문자열 한 줄)
#   4) unknown    : 그 외 전부 → "Unknown ingredient"
from __future__ import annotations
import re
from typing import Annotated, Any, ClassVar, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Tag, TypeAdapter, ValidationError, field_validator, model_validator

from mealplan.models.recipe import Ingredient

UNKNOWN_INGREDIENT = "Unknown ingredient"

# "2", "1.5", "1/2", "1 1/2" + 나머지(단위)
_QTY_RE = re.compile(r"^\s*(\d+\s+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?)\s*(.*)$")
_UNIT_RE = re.compile(
    r"^(cups?|tbsp|tsp|tablespoons?|teaspoons?|g|kg|ml|l|oz|ounces?|lbs?|pounds?|cloves?|pinch(?:es)?|cans?|slices?)\b\.?\s*",
    re.I,
)

def parse_quantity(raw: Any) -> Tuple[float, str]:
    """수량 문자열 → (숫자, 나머지). 숫자가 없으면 (0, 원문)."""
    if raw is None or isinstance(raw, bool):
        return 0.0, ""
    if isinstance(raw, (int, float)):
        return float(raw), ""
    s = str(raw).strip()
    m = _QTY_RE.match(s)
    if not m:
        return 0.0, s
    total = 0.0
    for part in m.group(1).split():
        if "/" in part:
            num, den = part.split("/", 1)
            total += float(num) / float(den) if float(den) else 0.0
        else:
            total += float(part)
    return total, m.group(2).strip()

class _Raw(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)
    coerced: ClassVar[bool] = False

    def to_ingredient(self) -> Ingredient:
        raise NotImplementedError

class StructuredIngredient(_Raw):
    name: str
    amount: float = 0.0
    unit: str = ""
    originalString: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _v_amount(cls, v):
        return parse_quantity(v)[0]

    @field_validator("unit", mode="before")
    @classmethod
    def _v_unit(cls, v):
        return "" if v is None else str(v)

    def to_ingredient(self) -> Ingredient:
        amount = f"{self.amount:g}" if self.amount else ""
        original = self.originalString or " ".join(p for p in (amount, self.unit, self.name) if p)
        return Ingredient(name=self.name.strip(), amount=self.amount, unit=self.unit, original=original)

class MeasuredIngredient(_Raw):
    item: str
    measurement: Optional[Union[str, float]] = None

    def to_ingredient(self) -> Ingredient:
        amount, unit = parse_quantity(self.measurement)
        m = "" if self.measurement is None else str(self.measurement).strip()
        return Ingredient(
            name=self.item.strip(),
            amount=amount,
            unit=unit,
            original=f"{m} {self.item}".strip(),
        )

class TextIngredient(_Raw):
    text: str

    @model_validator(mode="before")
    @classmethod
    def _wrap(cls, v):
        return {"text": v} if isinstance(v, str) else v

    def to_ingredient(self) -> Ingredient:
        amount, rest = parse_quantity(self.text)
        unit = ""
        if amount:
            m = _UNIT_RE.match(rest)
            if m:
                unit, rest = m.group(1).lower(), rest[m.end():]
        name = rest.strip() if amount else self.text.strip()
        return Ingredient(name=name or self.text.strip(), amount=amount, unit=unit, original=self.text.strip())

class UnknownIngredient(_Raw):
    coerced: ClassVar[bool] = True
    originalString: str = ""

    @model_validator(mode="before")
    @classmethod
    def _any(cls, v):
        # None / 숫자 / 이상한 dict 전부 받아들인다
        if isinstance(v, dict) and isinstance(v.get("originalString"), str):
            return {"originalString": v["originalString"]}
        return {}

    def to_ingredient(self) -> Ingredient:
        return Ingredient(name=UNKNOWN_INGREDIENT, amount=0.0, unit="", original=self.originalString)

def _ingredient_kind(v: Any) -> str:
    if isinstance(v, dict):
        if isinstance(v.get("name"), str) and v["name"].strip():
            return "structured"
        if isinstance(v.get("item"), str) and v["item"].strip():
            return "measured"
        return "unknown"
    if isinstance(v, str) and v.strip():
        return "text"
    return "unknown"

RawIngredient = Annotated[
    Union[
        Annotated[StructuredIngredient, Tag("structured")],
        Annotated[MeasuredIngredient, Tag("measured")],
        Annotated[TextIngredient, Tag("text")],
        Annotated[UnknownIngredient, Tag("unknown")],
    ],
    Discriminator(_ingredient_kind),
]

_adapter = TypeAdapter(RawIngredient)

def decode_ingredient(raw: Any) -> Tuple[Ingredient, bool]:
    """원본 재료 1건 → (Ingredient, 대체값 여부). 예외를 던지지 않는다."""
    try:
        parsed = _adapter.validate_python(raw)
    except ValidationError:
        # 판별은 됐는데 필드가 깨진 경우 (예: amount에 dict)
        return UnknownIngredient.model_validate(raw).to_ingredient(), True
    return parsed.to_ingredient(), parsed.coerced

def instruction_text(raw: Any) -> str:
    # 문자열 또는 {"instruction": ...} / {"step": ...}
    if isinstance(raw, str):
        return raw.strip()
    if isinstance(raw, dict):
        return str(raw.get("instruction") or raw.get("step") or raw.get("text") or "").strip()
    return ""
