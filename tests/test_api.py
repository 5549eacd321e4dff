import pytest
from fastapi.testclient import TestClient

from mealplan.core import deps
from mealplan.main import app
from mealplan.services.planner import MealPlanner


class FakeAggregator:
    def __init__(self, recipes):
        self.recipes = recipes

    async def generate_candidates(self, params=None):
        return list(self.recipes)


@pytest.fixture
def client(make_recipe):
    agg = FakeAggregator([
        make_recipe("tasty-1", "Lemon Herb Chicken", ["chicken", "lemon", "thyme"]),
        make_recipe("spn-2", "Shrimp Fried Rice", ["shrimp", "rice", "egg"]),
        make_recipe("spn-3", "Overnight Oats", ["oats", "milk", "berries"], tags=["breakfast"]),
    ])
    app.dependency_overrides[deps.get_aggregator] = lambda: agg
    app.dependency_overrides[deps.get_planner] = lambda: MealPlanner(aggregator=agg)
    app.dependency_overrides[deps.get_preference_reader] = lambda: None
    app.dependency_overrides[deps.get_history_reader] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_create_meal_plan(client):
    res = client.post("/meal-plans", json={
        "preferences": {"dietary": {"allergies": ["shellfish"]}},
        "mealCounts": {"dinner": 2, "breakfast": 1},
        "history": [],
    })
    assert res.status_code == 200
    body = res.json()
    assert body["slots"] == {"breakfast": ["spn-3"], "dinner": ["tasty-1"]}
    assert body["constraintsRelaxed"] is True
    assert body["recipes"][0]["source"] == "spoonacular"
    assert "anon_id" in res.cookies


def test_invalid_counts_are_422(client):
    res = client.post("/meal-plans", json={"mealCounts": {"dinner": 0}})
    assert res.status_code == 422
    assert "positive" in res.json()["detail"]


def test_stored_preferences_default_when_no_database(client):
    res = client.post("/meal-plans", json={"mealCounts": {"dinner": 1}})
    assert res.status_code == 200
    assert len(res.json()["slots"]["dinner"]) == 1


def test_candidates_endpoint(client):
    res = client.post("/meal-plans/candidates", json={"preferences": {"food": {"preferredCuisines": ["Thai"]}}})
    assert res.status_code == 200
    body = res.json()
    assert body["count"] == 3
    assert body["params"]["cuisine"] == ["thai"]


def test_health_without_database(client):
    res = client.get("/health")
    assert res.json() == {"status": "ok", "db": "skip"}


def test_swap_endpoint(client, make_recipe):
    current = make_recipe("tasty-1", "Lemon Herb Chicken", ["chicken", "lemon", "thyme"])
    res = client.post("/meal-plans/swap", json={
        "recipeId": "tasty-1",
        "mealType": "dinner",
        "currentPlan": [current.model_dump(mode="json")],
    })
    assert res.status_code == 200
    body = res.json()
    assert body["replacing"] == "tasty-1"
    assert body["recipe"]["id"] == "spn-2"
    assert body["score"]["recipeId"] == "spn-2"


def test_alternatives_endpoint(client):
    res = client.post("/meal-plans/alternatives", json={"mealType": "Morning", "limit": 3})
    assert res.status_code == 200
    body = res.json()
    assert body["mealType"] == "breakfast"
    assert [r["id"] for r in body["alternatives"]] == ["spn-3"]

    res = client.post("/meal-plans/alternatives", json={"mealType": "dinner", "limit": 0})
    assert res.status_code == 422
