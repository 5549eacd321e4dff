# mealplan/services/planner.py
# 식단 조립기
# 슬롯(식사 유형)별로: 식단 게이트 + 슬롯 태그 + 현재 제약 → 점수 내림차순(동점은 id) 탐욕 선택
# 부족하면 RELAXATION_ORDER 순으로 제약을 하나씩 풀고 다시 선택
# 끝까지 못 채우면 있는 만큼만 반환 (부분 결과도 정상 출력)

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from mealplan.core.config import settings
from mealplan.models.plan import PlanResult, RelaxationNote, ScoreRecord
from mealplan.models.preferences import RecipeHistoryItem, UserPreferences
from mealplan.models.recipe import UnifiedRecipe
from mealplan.models.tags import MEAL_TYPES, canonical_meal_type, normalize_tag
from mealplan.services.aggregator import CandidateAggregator
from mealplan.services.scoring import ScoringEngine, ScoringWeights
from mealplan.services.timing import DEFAULT_TIME_RANGES, get_time_range, preferred_band

log = logging.getLogger(__name__)

# 제약 완화 순서 (고정)
RELAXATION_ORDER = ("ingredient_overlap", "cooking_time", "budget", "score_floor")
DEFAULT_ALTERNATIVES = 5

class InvalidPlanRequest(ValueError):
    # 호출자에게 그대로 올라가는 유일한 오류 (요청 자체가 잘못됨)
    pass

class SelectionConstraints(BaseModel):
    model_config = ConfigDict(frozen=True)

    use_overlap: bool = True
    enforce_time_band: bool = True
    enforce_budget: bool = True
    min_score: Optional[float] = None

    def relax(self, step: str) -> "SelectionConstraints":
        if step == "ingredient_overlap":
            return self.model_copy(update={"use_overlap": False})
        if step == "cooking_time":
            return self.model_copy(update={"enforce_time_band": False})
        if step == "budget":
            return self.model_copy(update={"enforce_budget": False})
        if step == "score_floor":
            return self.model_copy(update={"min_score": None})
        raise ValueError(f"unknown relaxation step: {step}")

# ---------------------------------------------------------------------
# 입력 검증 / 슬롯 순서
# ---------------------------------------------------------------------
def slot_label(meal_type: str) -> str:
    label = canonical_meal_type(meal_type) or (meal_type or "").strip().lower()
    if not label:
        raise InvalidPlanRequest("meal type name must not be empty")
    return label

def validate_meal_counts(meal_counts: Mapping[str, Any]) -> Dict[str, int]:
    if not meal_counts:
        raise InvalidPlanRequest("mealCounts must request at least one meal type")
    out: Dict[str, int] = {}
    for raw_type, count in meal_counts.items():
        if isinstance(count, bool) or not isinstance(count, int):
            raise InvalidPlanRequest(f"count for {raw_type!r} must be an integer")
        if count <= 0:
            raise InvalidPlanRequest(f"count for {raw_type!r} must be positive, got {count}")
        label = slot_label(raw_type)
        out[label] = out.get(label, 0) + count
    return out

def slot_order(labels: Iterable[str]) -> List[str]:
    labels = list(labels)
    return [m for m in MEAL_TYPES if m in labels] + [m for m in labels if m not in MEAL_TYPES]

# ---------------------------------------------------------------------
# 후보 검색 파라미터 (3rd-party 검색 질의)
# ---------------------------------------------------------------------
# Spoonacular intolerances 허용값
_INTOLERANCES = {"dairy", "egg", "gluten", "grain", "peanut", "seafood", "sesame",
                 "shellfish", "soy", "sulfite", "tree nut", "wheat"}
_INTOLERANCE_ALIASES = {"nuts": ["peanut", "tree nut"], "nut": ["peanut", "tree nut"], "eggs": ["egg"],
                        "peanuts": ["peanut"], "tree nuts": ["tree nut"], "milk": ["dairy"],
                        "lactose": ["dairy"], "fish": ["seafood"]}

def build_candidate_params(prefs: UserPreferences, pantry_top_k: Sequence[str] = ()) -> Dict[str, Any]:
    d = prefs.dietary
    diets: List[str] = []
    if d.vegan:
        diets.append("vegan")
    elif d.vegetarian:
        diets.append("vegetarian")
    if d.gluten_free:
        diets.append("gluten free")
    if d.low_carb:
        diets.append("ketogenic")

    intolerances: List[str] = []
    if d.dairy_free:
        intolerances.append("dairy")
    if d.nut_free:
        intolerances += ["peanut", "tree nut"]
    for a in d.allergies:
        s = (a or "").strip().lower()
        if s in _INTOLERANCES:
            intolerances.append(s)
        intolerances += _INTOLERANCE_ALIASES.get(s, [])

    band = preferred_band(prefs.cooking.preferred_cooking_duration)
    max_ready = next((r.max for r in DEFAULT_TIME_RANGES if r.label == band), None)

    return {
        "diet": diets,
        "intolerances": sorted(set(intolerances)),
        "cuisine": [normalize_tag(c) for c in prefs.food.preferred_cuisines],
        "includeIngredients": [p for p in pantry_top_k if p],
        "excludeIngredients": list(prefs.food.disliked_ingredients),
        "maxReadyTime": max_ready,
        "number": settings.SPOONACULAR_RESULTS,
    }

# ---------------------------------------------------------------------
# 조립
# ---------------------------------------------------------------------
def _ranking_key(rec: ScoreRecord) -> Tuple[float, str]:
    return (-rec.total, rec.recipeId)

class MealPlanner:
    def __init__(
        self,
        aggregator: Optional[CandidateAggregator] = None,
        weights: Optional[ScoringWeights] = None,
        min_score: Optional[float] = None,
        clock=None,
    ):
        self.aggregator = aggregator
        self.weights = weights
        self.min_score = settings.MIN_QUALIFYING_SCORE if min_score is None else min_score
        self.clock = clock

    async def build_meal_plan(
        self,
        preferences: UserPreferences,
        meal_counts: Mapping[str, Any],
        history: Optional[List[RecipeHistoryItem]] = None,
        pantry_top_k: Sequence[str] = (),
    ) -> PlanResult:
        counts = validate_meal_counts(meal_counts)
        candidates = await self._candidates(preferences, pantry_top_k)
        return self.assemble(candidates, preferences, counts, history)

    async def _candidates(self, preferences: UserPreferences, pantry_top_k: Sequence[str]) -> List[UnifiedRecipe]:
        if self.aggregator is None:
            return []
        return await self.aggregator.generate_candidates(build_candidate_params(preferences, pantry_top_k))

    def _engine(self, preferences: UserPreferences, history: Optional[List[RecipeHistoryItem]],
                now: Optional[datetime]) -> ScoringEngine:
        return ScoringEngine(
            preferences,
            history=history,
            weights=self.weights,
            now=now or (self.clock() if self.clock else None),
        )

    def _qualifies(self, recipe: UnifiedRecipe, rec: ScoreRecord, c: SelectionConstraints,
                   band: Optional[str], budget: Optional[float]) -> bool:
        if c.enforce_time_band and band and get_time_range(recipe.readyInMinutes).label != band:
            return False
        if c.enforce_budget and budget is not None and rec.estimatedCost > budget:
            return False
        if c.min_score is not None and rec.total < c.min_score:
            return False
        return True

    def _select(
        self,
        engine: ScoringEngine,
        pool: Sequence[UnifiedRecipe],
        n: int,
        constraints: SelectionConstraints,
        plan: Sequence[UnifiedRecipe],
    ) -> List[Tuple[UnifiedRecipe, ScoreRecord]]:
        band = preferred_band(engine.prefs.cooking.preferred_cooking_duration)
        picked: List[Tuple[UnifiedRecipe, ScoreRecord]] = []
        remaining = list(pool)
        while len(picked) < n and remaining:
            # 겹침 점수는 식단이 커질 때마다 다시 계산
            current = [*plan, *(r for r, _ in picked)]
            best: Optional[Tuple[UnifiedRecipe, ScoreRecord]] = None
            for cand in remaining:
                rec = engine.score(cand, current, include_overlap=constraints.use_overlap)
                if not self._qualifies(cand, rec, constraints, band, engine.budget):
                    continue
                if best is None or _ranking_key(rec) < _ranking_key(best[1]):
                    best = (cand, rec)
            if best is None:
                break
            picked.append(best)
            remaining = [r for r in remaining if r.id != best[0].id]
        return picked

    def assemble(
        self,
        candidates: Sequence[UnifiedRecipe],
        preferences: UserPreferences,
        meal_counts: Mapping[str, Any],
        history: Optional[List[RecipeHistoryItem]] = None,
        now: Optional[datetime] = None,
    ) -> PlanResult:
        counts = validate_meal_counts(meal_counts)
        engine = self._engine(preferences, history, now)
        eligible = engine.gate(candidates)
        dropped = len(candidates) - len(eligible)
        if dropped:
            log.info("dietary gate excluded %d/%d candidates", dropped, len(candidates))

        strict = SelectionConstraints(min_score=self.min_score)
        plan: List[UnifiedRecipe] = []
        used: set = set()
        slots: Dict[str, List[str]] = {}
        scores: Dict[str, ScoreRecord] = {}
        notes: List[RelaxationNote] = []

        for meal_type in slot_order(counts):
            n = counts[meal_type]
            pool = [c for c in eligible if meal_type in c.tags and c.id not in used]

            constraints = strict
            steps: List[str] = []
            picked = self._select(engine, pool, n, constraints, plan)
            for step in RELAXATION_ORDER:
                if len(picked) >= n:
                    break
                constraints = constraints.relax(step)
                steps.append(step)
                picked = self._select(engine, pool, n, constraints, plan)

            for recipe, rec in picked:
                plan.append(recipe)
                used.add(recipe.id)
                scores[recipe.id] = rec
            slots[meal_type] = [r.id for r, _ in picked]

            if steps or len(picked) < n:
                notes.append(RelaxationNote(mealType=meal_type, requested=n, selected=len(picked), steps=steps))
                log.info("slot %s: %d/%d selected, relaxed=%s", meal_type, len(picked), n, steps)

        relaxed = bool(notes)
        return PlanResult(
            recipes=plan,
            slots=slots,
            scores=scores,
            constraintsRelaxed=relaxed,
            message=_summarize(notes) if relaxed else None,
            relaxations=notes,
        )

    # -----------------------------------------------------------------
    # 교체 후보 (식단의 한 끼를 같은 유형의 다음 순위 레시피로 바꾸기)
    # -----------------------------------------------------------------
    def _rank(
        self,
        engine: ScoringEngine,
        pool: Sequence[UnifiedRecipe],
        constraints: SelectionConstraints,
        plan: Sequence[UnifiedRecipe],
    ) -> List[Tuple[UnifiedRecipe, ScoreRecord]]:
        band = preferred_band(engine.prefs.cooking.preferred_cooking_duration)
        scored = [(c, engine.score(c, plan, include_overlap=constraints.use_overlap)) for c in pool]
        kept = [(c, rec) for c, rec in scored if self._qualifies(c, rec, constraints, band, engine.budget)]
        return sorted(kept, key=lambda pair: _ranking_key(pair[1]))

    def rank_alternatives(
        self,
        candidates: Sequence[UnifiedRecipe],
        preferences: UserPreferences,
        meal_type: str,
        current_plan: Sequence[UnifiedRecipe] = (),
        replacing: Optional[str] = None,
        history: Optional[List[RecipeHistoryItem]] = None,
        limit: int = DEFAULT_ALTERNATIVES,
        now: Optional[datetime] = None,
    ) -> List[Tuple[UnifiedRecipe, ScoreRecord]]:
        """
        같은 식사 유형의 대체 후보를 점수순으로 최대 limit개.
        식단에 이미 있는 레시피와 교체 대상은 제외, 겹침 점수는 교체 대상을 뺀 식단 기준.
        부족하면 조립과 같은 순서로 제약을 푼다.
        """
        label = slot_label(meal_type)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise InvalidPlanRequest(f"limit must be a positive integer, got {limit!r}")
        if replacing:
            old = next((r for r in current_plan if r.id == replacing), None)
            if old is not None and label not in old.tags:
                raise InvalidPlanRequest(f"recipe {replacing!r} is not a {label} recipe")

        engine = self._engine(preferences, history, now)
        plan = [r for r in current_plan if r.id != replacing]
        taken = {r.id for r in current_plan} | ({replacing} if replacing else set())
        pool = [c for c in engine.gate(candidates) if label in c.tags and c.id not in taken]

        constraints = SelectionConstraints(min_score=self.min_score)
        ranked = self._rank(engine, pool, constraints, plan)
        for step in RELAXATION_ORDER:
            if len(ranked) >= limit:
                break
            constraints = constraints.relax(step)
            ranked = self._rank(engine, pool, constraints, plan)
        return ranked[:limit]

    async def find_alternatives(
        self,
        preferences: UserPreferences,
        meal_type: str,
        current_plan: Sequence[UnifiedRecipe] = (),
        replacing: Optional[str] = None,
        history: Optional[List[RecipeHistoryItem]] = None,
        limit: int = DEFAULT_ALTERNATIVES,
        pantry_top_k: Sequence[str] = (),
    ) -> List[Tuple[UnifiedRecipe, ScoreRecord]]:
        slot_label(meal_type)  # 잘못된 요청이면 후보 조회 전에 실패
        candidates = await self._candidates(preferences, pantry_top_k)
        return self.rank_alternatives(candidates, preferences, meal_type, current_plan, replacing, history, limit)

    async def swap_recipe(
        self,
        preferences: UserPreferences,
        recipe_id: str,
        meal_type: str,
        current_plan: Sequence[UnifiedRecipe] = (),
        history: Optional[List[RecipeHistoryItem]] = None,
        pantry_top_k: Sequence[str] = (),
    ) -> Optional[Tuple[UnifiedRecipe, ScoreRecord]]:
        if not (recipe_id or "").strip():
            raise InvalidPlanRequest("recipe id to swap must not be empty")
        ranked = await self.find_alternatives(
            preferences, meal_type, current_plan, replacing=recipe_id, history=history, limit=1,
            pantry_top_k=pantry_top_k,
        )
        if not ranked:
            log.info("no alternative found for %s (%s)", recipe_id, meal_type)
            return None
        log.info("swapping %s → %s", recipe_id, ranked[0][0].id)
        return ranked[0]

def _summarize(notes: Sequence[RelaxationNote]) -> str:
    parts = []
    for n in notes:
        s = f"{n.mealType}: {n.selected}/{n.requested} selected"
        if n.steps:
            s += " after relaxing " + ", ".join(n.steps)
        parts.append(s)
    return "Some preferences were relaxed to fill the plan. " + "; ".join(parts)
