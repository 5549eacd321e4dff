# scripts/build_plan.py
# 터미널에서 식단 한 번 뽑아보기
#   python -m mealplan.scripts.build_plan prefs.json --counts dinner=3 lunch=2
# prefs.json: {"preferences": {...}, "history": [...]} 또는 선호 객체 자체
import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List

from mealplan.core.config import settings
from mealplan.db.init import close_db, init_db
from mealplan.models.preferences import RecipeHistoryItem, UserPreferences
from mealplan.services.aggregator import CandidateAggregator
from mealplan.services.cache import CacheStore, MemoryCacheBackend, MongoCacheBackend
from mealplan.services.planner import InvalidPlanRequest, MealPlanner
from mealplan.services.sources.first_party import FirstPartyAdapter, MongoRecipeCatalog
from mealplan.services.sources.spoonacular import SpoonacularAdapter, SpoonacularClient

log = logging.getLogger("mealplan.scripts.build_plan")

def parse_counts(items: List[str]) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for it in items:
        name, _, n = it.partition("=")
        try:
            out[name.strip()] = int(n)
        except ValueError:
            raise SystemExit(f"bad --counts item {it!r} (expected type=N)")
    return out

def load_input(path: Path):
    raw = json.loads(path.read_text(encoding="utf-8"))
    prefs_raw = raw.get("preferences", raw) if isinstance(raw, dict) else {}
    history = [RecipeHistoryItem.model_validate(h) for h in (raw.get("history") or [])] if isinstance(raw, dict) else []
    return UserPreferences.model_validate(prefs_raw), history

async def main(prefs_path: Path, counts: Dict[str, int], pantry: List[str]) -> int:
    prefs, history = load_input(prefs_path)

    db = None
    if settings.USE_MONGO:
        try:
            db = await init_db()
        except Exception as e:
            log.warning("db unavailable, running with memory cache only: %s", e)

    backend = MongoCacheBackend(db[settings.CACHE_COLLECTION]) if db is not None else MemoryCacheBackend()
    planner = MealPlanner(
        aggregator=CandidateAggregator(
            first_party=FirstPartyAdapter(MongoRecipeCatalog(db)),
            third_party=SpoonacularAdapter(SpoonacularClient(), CacheStore(backend)),
        )
    )
    try:
        result = await planner.build_meal_plan(prefs, counts, history, pantry)
    except InvalidPlanRequest as e:
        log.error("invalid request: %s", e)
        return 2
    finally:
        await close_db()

    by_id = {r.id: r for r in result.recipes}
    for meal_type, ids in result.slots.items():
        print(f"[{meal_type}]")
        for rid in ids:
            r, s = by_id[rid], result.scores[rid]
            print(f"  {s.total:6.1f}  {r.title}  ({r.readyInMinutes} min, ~${s.estimatedCost:.2f})  {rid}")
    if result.constraintsRelaxed:
        print(f"\n* {result.message}")
    return 0

if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Build a meal plan from a preferences JSON file")
    ap.add_argument("prefs", type=Path)
    ap.add_argument("--counts", nargs="+", default=["breakfast=1", "lunch=1", "dinner=1"])
    ap.add_argument("--pantry", nargs="*", default=[])
    args = ap.parse_args()

    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    raise SystemExit(asyncio.run(main(args.prefs, parse_counts(args.counts), args.pantry)))
