# mealplan/api/routes_plans.py
# 식단 생성 API
# - POST /meal-plans            : 선호 + 끼니 수 → 식단 (선호/이력 생략 시 저장된 값 조회)
# - POST /meal-plans/candidates : 집계된 후보 목록 확인용
# - POST /meal-plans/alternatives / swap : 한 끼를 같은 유형의 다른 레시피로 교체

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from mealplan.core.deps import (
    get_aggregator,
    get_history_reader,
    get_or_set_anon_id,
    get_planner,
    get_preference_reader,
)
from mealplan.models.plan import (
    AlternativesIn,
    AlternativesOut,
    CandidatesIn,
    MealPlanIn,
    PlanResult,
    SwapIn,
    SwapOut,
)
from mealplan.models.preferences import RecipeHistoryItem, UserPreferences
from mealplan.models.recipe import UnifiedRecipe
from mealplan.services.aggregator import CandidateAggregator
from mealplan.services.collaborators import HistoryReader, PreferenceReader
from mealplan.services.planner import InvalidPlanRequest, MealPlanner, build_candidate_params, slot_label

log = logging.getLogger(__name__)

router = APIRouter(prefix="/meal-plans", tags=["meal-plans"])

class CandidatesOut(BaseModel):
    count: int
    params: Dict[str, Any]
    candidates: List[UnifiedRecipe]

async def _preferences(
    given: Optional[UserPreferences], reader: Optional[PreferenceReader], anon_id: str
) -> UserPreferences:
    if given is not None:
        return given
    if reader is None:
        return UserPreferences()
    try:
        return await reader.load(anon_id)
    except Exception as e:
        # 저장소 장애 → 기본 선호로 진행
        log.warning("stored preferences unavailable for %s: %s", anon_id, e)
        return UserPreferences()

async def _history(
    given: Optional[List[RecipeHistoryItem]], reader: Optional[HistoryReader], anon_id: str
) -> List[RecipeHistoryItem]:
    if given is not None:
        return given
    if reader is None:
        return []
    try:
        return await reader.load(anon_id)
    except Exception as e:
        log.warning("recipe history unavailable for %s: %s", anon_id, e)
        return []

@router.post("", response_model=PlanResult)
async def create_meal_plan(
    body: MealPlanIn,
    anon_id: str = Depends(get_or_set_anon_id),
    planner: MealPlanner = Depends(get_planner),
    prefs_reader: Optional[PreferenceReader] = Depends(get_preference_reader),
    history_reader: Optional[HistoryReader] = Depends(get_history_reader),
):
    prefs = await _preferences(body.preferences, prefs_reader, anon_id)
    history = await _history(body.history, history_reader, anon_id)
    try:
        return await planner.build_meal_plan(prefs, body.meal_counts, history, body.pantry_top_k)
    except InvalidPlanRequest as e:
        raise HTTPException(status_code=422, detail=str(e))

@router.post("/candidates", response_model=CandidatesOut)
async def list_candidates(
    body: CandidatesIn,
    anon_id: str = Depends(get_or_set_anon_id),
    aggregator: CandidateAggregator = Depends(get_aggregator),
    prefs_reader: Optional[PreferenceReader] = Depends(get_preference_reader),
):
    prefs = await _preferences(body.preferences, prefs_reader, anon_id)
    params = build_candidate_params(prefs, body.pantry_top_k)
    candidates = await aggregator.generate_candidates(params)
    return CandidatesOut(count=len(candidates), params=params, candidates=candidates)

@router.post("/alternatives", response_model=AlternativesOut)
async def list_alternatives(
    body: AlternativesIn,
    anon_id: str = Depends(get_or_set_anon_id),
    planner: MealPlanner = Depends(get_planner),
    prefs_reader: Optional[PreferenceReader] = Depends(get_preference_reader),
    history_reader: Optional[HistoryReader] = Depends(get_history_reader),
):
    prefs = await _preferences(body.preferences, prefs_reader, anon_id)
    history = await _history(body.history, history_reader, anon_id)
    try:
        ranked = await planner.find_alternatives(
            prefs, body.meal_type, body.current_plan, replacing=body.replace_id,
            history=history, limit=body.limit, pantry_top_k=body.pantry_top_k,
        )
    except InvalidPlanRequest as e:
        raise HTTPException(status_code=422, detail=str(e))
    return AlternativesOut(
        mealType=slot_label(body.meal_type),
        replacing=body.replace_id,
        alternatives=[r for r, _ in ranked],
        scores={r.id: rec for r, rec in ranked},
    )

@router.post("/swap", response_model=SwapOut)
async def swap_recipe(
    body: SwapIn,
    anon_id: str = Depends(get_or_set_anon_id),
    planner: MealPlanner = Depends(get_planner),
    prefs_reader: Optional[PreferenceReader] = Depends(get_preference_reader),
    history_reader: Optional[HistoryReader] = Depends(get_history_reader),
):
    prefs = await _preferences(body.preferences, prefs_reader, anon_id)
    history = await _history(body.history, history_reader, anon_id)
    try:
        picked = await planner.swap_recipe(
            prefs, body.recipe_id, body.meal_type, body.current_plan,
            history=history, pantry_top_k=body.pantry_top_k,
        )
    except InvalidPlanRequest as e:
        raise HTTPException(status_code=422, detail=str(e))
    if picked is None:
        return SwapOut(replacing=body.recipe_id)
    return SwapOut(replacing=body.recipe_id, recipe=picked[0], score=picked[1])
