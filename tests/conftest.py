import os

# DB 없이 돌린다 (settings 로딩 전에 설정)
os.environ.setdefault("USE_MONGO", "false")

import pytest

from mealplan.models.recipe import Ingredient, RecipeSource, UnifiedRecipe


def build_recipe(rid, title, ingredients=(), tags=("dinner",), minutes=45, servings=2, **kw):
    source = RecipeSource.THIRD_PARTY if rid.startswith("spn-") else RecipeSource.FIRST_PARTY
    return UnifiedRecipe(
        id=rid,
        source=source,
        title=title,
        readyInMinutes=minutes,
        servings=servings,
        ingredients=[Ingredient(name=n) for n in ingredients],
        tags=list(tags),
        **kw,
    )


@pytest.fixture
def make_recipe():
    return build_recipe
