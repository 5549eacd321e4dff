# mealplan/services/mappers.py
# 원본 레코드 → UnifiedRecipe 변환
# - 1st-party(Mongo recipes 문서): 재료 형태 판별은 models/raw.py 에 위임
# - 3rd-party(Spoonacular /information 응답): 요약(summary)은 버리고 단계는 12개 컷

from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from mealplan.db.models.recipe import FirstPartyRecipeDoc
from mealplan.models.raw import decode_ingredient, instruction_text
from mealplan.models.recipe import (
    ID_PREFIX,
    MAX_THIRD_PARTY_STEPS,
    Ingredient,
    MacroBreakdown,
    RecipeSource,
    UnifiedRecipe,
)
from mealplan.models.tags import normalize_tags

log = logging.getLogger(__name__)

DEFAULT_READY_MINUTES = 30
POPULARITY_LIKES_CAP = 1000

_INT_RE = re.compile(r"\d+")

def _minutes(v: Any) -> int:
    # "15 minutes" → 15, 숫자는 그대로
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return max(0, int(v))
    m = _INT_RE.search(str(v or ""))
    return int(m.group(0)) if m else 0

def _sanitize_image_url(url: Optional[str]) -> str:
    u = (url or "").strip()
    if u.startswith("//"):
        u = "https:" + u
    return u if u.startswith(("http://", "https://")) else ""

# ---------------------------------------------------------------------
# 1st-party
# ---------------------------------------------------------------------
def _validate_doc(raw: Mapping[str, Any]) -> FirstPartyRecipeDoc:
    # 깨진 필드만 빼고 다시 검증 (나머지 필드는 살린다)
    data = dict(raw)
    try:
        return FirstPartyRecipeDoc.model_validate(data)
    except ValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
        log.warning("first-party doc %s: dropping invalid fields %s", data.get("id") or data.get("_id"), sorted(map(str, bad)))
        for k in bad:
            data.pop(k, None)
    try:
        return FirstPartyRecipeDoc.model_validate(data)
    except ValidationError as e:
        log.warning("first-party doc failed validation, using fallbacks: %s", e.errors()[:3])
        return FirstPartyRecipeDoc(id=str(raw.get("id") or raw.get("_id") or "unknown"),
                                   name=str(raw.get("name") or raw.get("title") or ""))

def map_first_party(raw: Mapping[str, Any]) -> Tuple[UnifiedRecipe, int]:
    """
    Mongo 문서 1건 → (UnifiedRecipe, 대체된 재료 수).
    문서 자체가 깨져도 최소 필드로 채워서 반환 (드롭하지 않음).
    """
    doc = _validate_doc(raw)

    ingredients: List[Ingredient] = []
    coerced = 0
    for item in doc.ingredients:
        ing, was_coerced = decode_ingredient(item)
        ingredients.append(ing)
        coerced += int(was_coerced)

    total = _minutes(doc.prepTime) + _minutes(doc.cookTime)
    ready = total if total > 0 else max(0, doc.readyInMinutes or DEFAULT_READY_MINUTES)

    title = doc.display_title
    steps = [s for s in (instruction_text(x) for x in doc.instructions) if s]

    recipe = UnifiedRecipe(
        id=f"{ID_PREFIX[RecipeSource.FIRST_PARTY]}{doc.doc_id}",
        source=RecipeSource.FIRST_PARTY,
        title=title,
        imageUrl=_sanitize_image_url(doc.imageUrl),
        readyInMinutes=ready,
        servings=max(1, doc.servings or 1),
        ingredients=ingredients,
        tags=normalize_tags([t for t in doc.tags if isinstance(t, str)], title=title, meal_type=doc.mealType),
        instructions=steps,
        pricePerServing=doc.pricePerServing if (doc.pricePerServing or 0) > 0 else None,
    )
    return recipe, coerced

def map_first_party_many(docs: List[Mapping[str, Any]]) -> List[UnifiedRecipe]:
    out: List[UnifiedRecipe] = []
    coerced_records = 0
    skipped = 0
    for d in docs:
        # 한 건이 깨져도 배치 전체를 버리지 않는다
        try:
            recipe, coerced = map_first_party(d)
        except (ValidationError, TypeError, ValueError) as e:
            skipped += 1
            rid = (d.get("id") or d.get("_id")) if isinstance(d, Mapping) else None
            log.warning("first-party record %s skipped: %s", rid, e)
            continue
        out.append(recipe)
        if coerced:
            coerced_records += 1
    if coerced_records:
        log.info("first-party: %d/%d records had unreadable ingredients coerced", coerced_records, len(docs))
    if skipped:
        log.warning("first-party: %d/%d records could not be mapped", skipped, len(docs))
    return out

# ---------------------------------------------------------------------
# 3rd-party (Spoonacular)
# ---------------------------------------------------------------------
def _macros(payload: Mapping[str, Any]) -> Optional[MacroBreakdown]:
    nutrients = ((payload.get("nutrition") or {}).get("nutrients")) or []
    if not nutrients:
        return None
    by_name: Dict[str, float] = {}
    for n in nutrients:
        if isinstance(n, dict) and n.get("name"):
            by_name[str(n["name"]).lower()] = float(n.get("amount") or 0.0)
    return MacroBreakdown(
        calories=by_name.get("calories", 0.0),
        protein=by_name.get("protein", 0.0),
        fat=by_name.get("fat", 0.0),
        carbs=by_name.get("carbohydrates", 0.0),
    )

def _spoonacular_steps(payload: Mapping[str, Any]) -> Optional[List[str]]:
    blocks = payload.get("analyzedInstructions") or []
    if not blocks:
        return None
    steps = [str(s.get("step") or "").strip() for s in (blocks[0].get("steps") or []) if isinstance(s, dict)]
    return [s for s in steps if s][:MAX_THIRD_PARTY_STEPS]

def map_spoonacular(payload: Mapping[str, Any]) -> UnifiedRecipe:
    """GET /recipes/{id}/information?includeNutrition=true 응답 1건 → UnifiedRecipe."""
    ingredients = []
    for ing in payload.get("extendedIngredients") or []:
        if not isinstance(ing, dict):
            continue
        ingredients.append(Ingredient(
            name=str(ing.get("name") or ing.get("nameClean") or "Unknown ingredient"),
            amount=float(ing.get("amount") or 0.0),
            unit=str(ing.get("unit") or ""),
            original=str(ing.get("original") or ""),
        ))

    raw_tags = [*(payload.get("dishTypes") or []), *(payload.get("cuisines") or []), *(payload.get("diets") or [])]
    title = str(payload.get("title") or "").strip() or "Untitled Recipe"

    popularity = None
    if payload.get("aggregateLikes") is not None:
        likes = max(0, int(payload["aggregateLikes"]))
        popularity = min(likes, POPULARITY_LIKES_CAP) / POPULARITY_LIKES_CAP

    price = payload.get("pricePerServing")
    return UnifiedRecipe(
        id=f"{ID_PREFIX[RecipeSource.THIRD_PARTY]}{payload.get('id')}",
        source=RecipeSource.THIRD_PARTY,
        title=title,
        imageUrl=_sanitize_image_url(payload.get("image")),
        readyInMinutes=_minutes(payload.get("readyInMinutes")) or DEFAULT_READY_MINUTES,
        servings=max(1, int(payload.get("servings") or 1)),
        ingredients=ingredients,
        tags=normalize_tags([t for t in raw_tags if isinstance(t, str)], title=title),
        instructions=_spoonacular_steps(payload),
        nutrition=_macros(payload),
        popularityScore=popularity,
        pricePerServing=float(price) if price else None,
    )
