import asyncio

import pytest

from mealplan.core.config import Settings
from mealplan.services.aggregator import CandidateAggregator, deduplicate
from mealplan.services.sources.base import RecipeSourceAdapter


class StaticSource(RecipeSourceAdapter):
    def __init__(self, recipes, delay=0.0):
        self.recipes = recipes
        self.delay = delay
        self.params = []
        self.seen_titles = None

    async def fetch_candidates(self, params, *, known_titles=None):
        self.params.append(dict(params))
        if self.delay:
            await asyncio.sleep(self.delay)
        if known_titles is not None:
            self.seen_titles = list(await known_titles)
        return list(self.recipes)


class FailingSource(RecipeSourceAdapter):
    async def fetch_candidates(self, params, *, known_titles=None):
        raise RuntimeError("upstream exploded")


def test_one_source_failing_keeps_the_other(make_recipe):
    recipes = [
        make_recipe("spn-1", "Chicken Tikka Masala", ["chicken", "yogurt", "garam masala"]),
        make_recipe("spn-2", "Mushroom Risotto", ["arborio rice", "mushrooms", "parmesan"]),
        make_recipe("spn-3", "Fish Tacos", ["cod", "tortillas", "cabbage"]),
    ]
    agg = CandidateAggregator(FailingSource(), StaticSource(recipes))
    out = asyncio.run(agg.generate_candidates({}))
    assert [r.id for r in out] == ["spn-1", "spn-2", "spn-3"]


def test_timeout_is_treated_as_failure(make_recipe):
    first = StaticSource([make_recipe("tasty-1", "Slow Roast", ["lamb"])], delay=1.0)
    third = StaticSource([make_recipe("spn-1", "Fast Salad", ["lettuce"])])
    agg = CandidateAggregator(first, third, first_party_timeout=0.05, third_party_timeout=1.0)
    out = asyncio.run(agg.generate_candidates({}))
    assert [r.id for r in out] == ["spn-1"]


def test_cross_source_duplicate_keeps_first_seen(make_recipe):
    first = StaticSource([make_recipe("tasty-1", "Spaghetti Bolognese", ["spaghetti", "beef", "tomato"])])
    third = StaticSource([make_recipe("spn-9", "Spaghetti Bolognese Recipe", ["pasta", "ground beef", "passata"])])
    agg = CandidateAggregator(first, third)
    out = asyncio.run(agg.generate_candidates({}))
    assert [r.id for r in out] == ["tasty-1"]
    assert third.seen_titles == ["Spaghetti Bolognese"]


def test_both_sources_down_returns_empty():
    agg = CandidateAggregator(FailingSource(), FailingSource())
    assert asyncio.run(agg.generate_candidates({})) == []


def test_deduplicate_is_idempotent(make_recipe):
    recipes = [
        make_recipe("tasty-1", "Banana Bread", ["banana", "flour", "sugar", "butter", "eggs"]),
        make_recipe("tasty-2", "Best Banana Bread", ["bananas", "flour", "brown sugar"]),
        make_recipe("spn-3", "Vegan Chili", ["kidney beans", "tomatoes", "chili powder"]),
        make_recipe("spn-4", "Chili Sin Carne", ["kidney beans", "tomatoes", "chili powder"]),
        make_recipe("spn-5", "Greek Salad", ["cucumber", "feta", "olives"]),
        make_recipe("spn-5", "Greek Salad", ["cucumber", "feta", "olives"]),
    ]
    once = deduplicate(recipes)
    assert [r.id for r in once] == ["tasty-1", "spn-3", "spn-5"]
    assert [r.id for r in deduplicate(once)] == [r.id for r in once]


def test_seeded_cuisine_rotation_is_reproducible():
    picks = []
    for _ in range(2):
        src = StaticSource([])
        agg = CandidateAggregator(src, StaticSource([]), rotation=True, seed=7)
        asyncio.run(agg.generate_candidates({}))
        picks.append(src.params[0]["cuisine"])
    assert picks[0] == picks[1]


def test_rotation_never_overrides_explicit_cuisine():
    src = StaticSource([])
    agg = CandidateAggregator(src, StaticSource([]), rotation=True, seed=1)
    asyncio.run(agg.generate_candidates({"cuisine": ["korean"]}))
    assert src.params[0]["cuisine"] == ["korean"]


def test_third_party_timeout_shorter_than_first_party_is_rejected(make_recipe):
    src = StaticSource([])
    with pytest.raises(ValueError):
        CandidateAggregator(src, src, first_party_timeout=5.0, third_party_timeout=1.0)
    with pytest.raises(ValueError):
        Settings(FIRST_PARTY_TIMEOUT_S=10.0, THIRD_PARTY_TIMEOUT_S=5.0)


def test_slow_first_party_does_not_cost_third_party_results(make_recipe):
    first = StaticSource([make_recipe("tasty-1", "Slow Roast", ["lamb"])], delay=1.0)
    third = StaticSource([make_recipe("spn-1", "Fast Salad", ["lettuce"])])
    agg = CandidateAggregator(first, third, first_party_timeout=0.05, third_party_timeout=0.5)
    out = asyncio.run(agg.generate_candidates({}))
    assert [r.id for r in out] == ["spn-1"]
    assert third.seen_titles == []
