import asyncio

import httpx

from mealplan.services.cache import CacheStore, MemoryCacheBackend
from mealplan.services.sources.first_party import FirstPartyAdapter, MongoRecipeCatalog
from mealplan.services.sources.spoonacular import SpoonacularAdapter, SpoonacularClient


def _detail(rid, title):
    return {
        "id": rid,
        "title": title,
        "readyInMinutes": 30,
        "servings": 2,
        "dishTypes": ["dinner"],
        "extendedIngredients": [{"name": "tomato", "amount": 1, "unit": "", "original": "1 tomato"}],
        "aggregateLikes": 10,
    }


class Upstream:
    """complexSearch → id 1,2,3 / 상세: 1,2는 정상, 3은 500"""

    def __init__(self):
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path)
        assert request.url.params["apiKey"] == "test-key"
        if request.url.path == "/recipes/complexSearch":
            return httpx.Response(200, json={"results": [{"id": 1}, {"id": 2}, {"id": 3}]})
        if request.url.path == "/recipes/1/information":
            assert request.url.params["includeNutrition"] == "true"
            return httpx.Response(200, json=_detail(1, "Spaghetti Bolognese"))
        if request.url.path == "/recipes/2/information":
            return httpx.Response(200, json=_detail(2, "Thai Green Curry"))
        return httpx.Response(500, json={"message": "boom"})


def _adapter(handler, api_key="test-key", cache=None):
    client = SpoonacularClient(
        api_key=api_key,
        base_url="https://api.test",
        transport=httpx.MockTransport(handler),
        retries=2,
        backoff=0,
    )
    return SpoonacularAdapter(client, cache or CacheStore(MemoryCacheBackend()))


def test_fetch_maps_skips_failed_details_and_filters_known_titles():
    upstream = Upstream()
    adapter = _adapter(upstream)

    async def titles():
        return ["Spaghetti Bolognese Recipe"]

    recipes = asyncio.run(adapter.fetch_candidates({"diet": ["vegan"]}, known_titles=titles()))
    assert [r.id for r in recipes] == ["spn-2"]
    assert upstream.calls[0] == "/recipes/complexSearch"
    assert len(upstream.calls) == 4


def test_second_call_is_served_from_cache_under_original_key():
    upstream = Upstream()
    cache = CacheStore(MemoryCacheBackend())
    adapter = _adapter(upstream, cache=cache)

    async def run():
        first = await adapter.fetch_candidates({"cuisine": "Thai", "number": 5})
        n_calls = len(upstream.calls)
        # 키 순서/대소문자만 다른 같은 질의
        second = await adapter.fetch_candidates({"number": 5, "cuisine": "thai"})
        return first, second, n_calls

    first, second, n_calls = asyncio.run(run())
    assert [r.id for r in second] == [r.id for r in first] == ["spn-1", "spn-2"]
    assert len(upstream.calls) == n_calls


def test_missing_api_key_returns_empty():
    upstream = Upstream()
    adapter = _adapter(upstream, api_key="")
    assert asyncio.run(adapter.fetch_candidates({})) == []
    assert upstream.calls == []


def test_network_failure_returns_empty():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    assert asyncio.run(_adapter(handler).fetch_candidates({})) == []


def test_timeouts_are_retried():
    attempts = {"n": 0}

    def handler(request):
        if request.url.path == "/recipes/complexSearch":
            attempts["n"] += 1
            if attempts["n"] == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"results": [{"id": 7}]})
        return httpx.Response(200, json=_detail(7, "Lentil Soup"))

    recipes = asyncio.run(_adapter(handler).fetch_candidates({}))
    assert attempts["n"] == 2
    assert [r.title for r in recipes] == ["Lentil Soup"]


class FakeCatalog:
    def __init__(self, docs=None, error=None):
        self.docs = docs or []
        self.error = error

    async def fetch_raw(self, limit):
        if self.error:
            raise self.error
        return self.docs[:limit]


def test_first_party_adapter_maps_docs_and_respects_limit():
    docs = [{"id": str(i), "name": f"Dinner Bowl {i}", "ingredients": [{"item": "rice", "measurement": "1 cup"}]}
            for i in range(5)]
    adapter = FirstPartyAdapter(FakeCatalog(docs), limit=3)
    recipes = asyncio.run(adapter.fetch_candidates({}))
    assert [r.id for r in recipes] == ["tasty-0", "tasty-1", "tasty-2"]
    assert recipes[0].ingredients[0].unit == "cup"


def test_first_party_adapter_swallows_catalog_failure():
    adapter = FirstPartyAdapter(FakeCatalog(error=ConnectionError("down")))
    assert asyncio.run(adapter.fetch_candidates({})) == []


def test_first_party_adapter_without_database_returns_empty():
    adapter = FirstPartyAdapter(MongoRecipeCatalog(None))
    assert asyncio.run(adapter.fetch_candidates({})) == []


def test_first_party_adapter_keeps_good_docs_next_to_a_bad_one():
    docs = [{"id": str(i), "name": f"Dinner Bowl {i}", "mealType": "dinner"} for i in range(3)]
    docs.append({"id": "bad", "name": "Odd Dinner", "readyInMinutes": -5})
    recipes = asyncio.run(FirstPartyAdapter(FakeCatalog(docs)).fetch_candidates({}))
    assert len(recipes) == 4
    assert recipes[-1].readyInMinutes == 0


class FakeCursor:
    def __init__(self, col):
        self.col = col
        self.field = None
        self.n = None

    def sort(self, field, direction):
        self.field = field
        return self

    def limit(self, n):
        self.n = n
        return self

    async def to_list(self, length):
        if self.field in self.col.broken_sorts:
            raise RuntimeError(f"sort on {self.field} failed")
        self.col.reads.append(self.field)
        docs = list(self.col.docs)
        if self.field:
            docs.sort(key=lambda d: d.get(self.field) or "", reverse=True)
        return docs[: self.n or length]


class FakeRecipes:
    """motor 컬렉션 흉내: find_one($exists) / find().sort().limit().to_list()"""

    def __init__(self, docs, broken_sorts=(), broken_lookup=False):
        self.docs = docs
        self.broken_sorts = set(broken_sorts)
        self.broken_lookup = broken_lookup
        self.reads = []

    async def find_one(self, query, projection=None):
        if self.broken_lookup:
            raise RuntimeError("find_one failed")
        field = next(iter(query))
        return next((d for d in self.docs if field in d), None)

    def find(self, query):
        return FakeCursor(self)


def _catalog(col):
    return MongoRecipeCatalog({"recipes": col}, collection="recipes")


def test_catalog_orders_by_updated_at_first():
    col = FakeRecipes([
        {"id": "a", "updatedAt": "2024-01-01", "createdAt": "2024-05-01"},
        {"id": "b", "updatedAt": "2024-03-01", "createdAt": "2023-01-01"},
    ])
    docs = asyncio.run(_catalog(col).fetch_raw(10))
    assert [d["id"] for d in docs] == ["b", "a"]
    assert col.reads == ["updatedAt"]


def test_catalog_falls_back_to_created_at():
    col = FakeRecipes([{"id": "a", "createdAt": "2024-01-01"}, {"id": "b", "createdAt": "2024-02-01"}])
    docs = asyncio.run(_catalog(col).fetch_raw(10))
    assert [d["id"] for d in docs] == ["b", "a"]
    assert col.reads == ["createdAt"]


def test_catalog_unordered_when_no_timestamps():
    col = FakeRecipes([{"id": "a"}, {"id": "b"}, {"id": "c"}])
    docs = asyncio.run(_catalog(col).fetch_raw(2))
    assert [d["id"] for d in docs] == ["a", "b"]
    assert col.reads == [None]


def test_catalog_failed_sort_moves_to_next_order():
    col = FakeRecipes(
        [{"id": "a", "updatedAt": "2024-09-01", "createdAt": "2024-01-01"},
         {"id": "b", "updatedAt": "2024-01-01", "createdAt": "2024-02-01"}],
        broken_sorts=["updatedAt"],
    )
    docs = asyncio.run(_catalog(col).fetch_raw(10))
    assert [d["id"] for d in docs] == ["b", "a"]
    assert col.reads == ["createdAt"]

    col = FakeRecipes([{"id": "a", "updatedAt": "x"}, {"id": "b"}], broken_sorts=["updatedAt"])
    docs = asyncio.run(_catalog(col).fetch_raw(10))
    assert [d["id"] for d in docs] == ["a", "b"]
    assert col.reads == [None]


def test_catalog_unordered_when_field_lookup_raises():
    col = FakeRecipes([{"id": "a", "updatedAt": "2024-01-01"}, {"id": "b", "updatedAt": "2024-02-01"}],
                      broken_lookup=True)
    docs = asyncio.run(_catalog(col).fetch_raw(10))
    assert [d["id"] for d in docs] == ["a", "b"]
    assert col.reads == [None]
