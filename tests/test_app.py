from datetime import date

import httpx
import pytest
from starlette.testclient import TestClient

from app.app import create_app, parse_recipe_request
from app.config import Config
from domain.auth import SupabaseAuth
from domain.errors import InvalidRequest, Unauthorized, UpstreamTransportError
from domain.models import IngredientRequest, Provider, QueryRequest

from conftest import FakeSearch, FixedDateTime
from test_orchestrator import GOOD_INGREDIENTS, Pipeline


AUTH = {"Authorization": "Bearer good-token"}


@pytest.fixture
def pipeline(noon: FixedDateTime) -> Pipeline:
    return Pipeline(noon)


@pytest.fixture
def client(pipeline: Pipeline) -> TestClient:
    return TestClient(create_app(Config(), orchestrator=pipeline.orchestrator))


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_recipes(client: TestClient, pipeline: Pipeline) -> None:
    resp = client.post(
        "/recipes",
        json={"ingredients": GOOD_INGREDIENTS, "filters": {"maxTime": 30}},
        headers=AUTH,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert [r["id"] for r in body["recipes"]] == ["spoonacular-1", "spoonacular-2"]
    assert body["recipes"][0]["source"] == "search-provider"
    assert body["analysis"]["level"] == "excellent"
    assert body["cached"] is False
    assert body["rateLimit"]["currentCount"] == 1
    assert pipeline.search.requests[0].max_ready_time == 30


def test_recipes_without_token(client: TestClient) -> None:
    resp = client.post("/recipes", json={"query": "stew"})
    assert resp.status_code == 401
    assert resp.json() == {
        "error": "Invalid or expired token",
        "status": 401,
        "kind": "unauthorized",
        "hint": "fix-input",
    }


@pytest.mark.parametrize(
    "body",
    (
        {},
        {"ingredients": "chicken"},
        {"ingredients": ["  ", ""]},
        {"query": "   "},
        {"query": "stew", "provider": "carrier-pigeon"},
        {"query": "stew", "filters": {"maxTime": -5}},
        {"query": "stew", "filters": {"servings": "two"}},
    ),
)
def test_recipes_invalid_body(client: TestClient, body: dict) -> None:
    resp = client.post("/recipes", json=body, headers=AUTH)
    assert resp.status_code == 400
    assert resp.json()["kind"] == "invalid_request"


def test_recipes_non_json_body(client: TestClient) -> None:
    resp = client.post("/recipes", content=b"chicken, rice", headers=AUTH)
    assert resp.status_code == 400


def test_recipes_non_utf8_body(client: TestClient) -> None:
    resp = client.post(
        "/recipes",
        content=b'{"query": "\xff"}',
        headers={**AUTH, "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "invalid_request"


def test_recipes_rate_limited(client: TestClient, pipeline: Pipeline) -> None:
    pipeline.store.counts[("user-1", date(2024, 3, 10))] = 20
    resp = client.post("/recipes", json={"query": "stew"}, headers=AUTH)
    assert resp.status_code == 429
    body = resp.json()
    assert body["hint"] == "retry-later"
    assert body["resetTime"] == "2024-03-11T00:00:00+00:00"


def test_recipes_upstream_unavailable(noon: FixedDateTime) -> None:
    search = FakeSearch(error=UpstreamTransportError(provider="spoonacular"))
    pipeline = Pipeline(noon, search=search)
    client = TestClient(create_app(Config(), orchestrator=pipeline.orchestrator))

    resp = client.post("/recipes", json={"query": "stew"}, headers=AUTH)

    assert resp.status_code == 503
    assert resp.json()["api"] == "spoonacular"
    assert resp.json()["hint"] == "unavailable"


def test_unexpected_error_is_internal(noon: FixedDateTime) -> None:
    pipeline = Pipeline(noon)
    # Not a list of records, so the transform blows up.
    pipeline.search.results = None  # type: ignore[assignment]
    client = TestClient(create_app(Config(), orchestrator=pipeline.orchestrator))

    resp = client.post("/recipes", json={"query": "stew"}, headers=AUTH)

    assert resp.status_code == 500
    assert resp.json()["kind"] == "internal"


def test_compatibility(client: TestClient) -> None:
    resp = client.post(
        "/compatibility", json={"ingredients": ["apple", "chicken", "banana"]}, headers=AUTH
    )
    assert resp.status_code == 200
    assert resp.json()["level"] == "incompatible"
    assert resp.json()["categories"]["fruit"] == ["apple", "banana"]


def test_rate_limit(client: TestClient) -> None:
    resp = client.get("/rate-limit", headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["remaining"] == 20
    assert resp.json()["maxRequests"] == 20


def test_commentary(client: TestClient) -> None:
    resp = client.post(
        "/commentary",
        json={
            "recipeTitle": "Garlic Chicken Rice",
            "ingredients": ["chicken", "rice"],
            "instructions": "Boil the rice, fry the chicken.",
            "type": "twist",
        },
        headers=AUTH,
    )
    assert resp.status_code == 200
    assert list(resp.json()) == ["twists"]


def test_commentary_missing_fields(client: TestClient) -> None:
    resp = client.post("/commentary", json={"recipeTitle": "Rice"}, headers=AUTH)
    assert resp.status_code == 400


def test_fallback_recipes(client: TestClient, pipeline: Pipeline) -> None:
    resp = client.post(
        "/fallback-recipes",
        json={
            "ingredients": ["apple", "chicken", "banana"],
            "compatibilityReason": "sweet and savory clash",
        },
        headers=AUTH,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["recipes"]) == 2
    assert all(r["isFallback"] for r in body["recipes"])
    assert body["message"].startswith("Your ingredients have conflicting flavor profiles")
    assert len(body["suggestions"]) == 3


def test_fallback_recipes_without_token(client: TestClient) -> None:
    resp = client.post("/fallback-recipes", json={"ingredients": ["apple"]})
    assert resp.status_code == 401


def test_suggestions(client: TestClient) -> None:
    resp = client.post(
        "/suggestions",
        json={"ingredients": ["apple", "banana"], "compatibilityLevel": "insufficient"},
        headers=AUTH,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert [s["ingredient"] for s in body["suggestions"]] == ["chicken", "onion", "milk"]
    assert body["analysis"]["fruit"] == ["apple", "banana"]
    assert isinstance(body["overallScore"], int)


@pytest.mark.parametrize(
    "body",
    (
        {"ingredients": "apple"},
        {"ingredients": []},
        {"ingredients": ["apple"], "compatibilityLevel": "superb"},
    ),
)
def test_suggestions_invalid_body(client: TestClient, body: dict) -> None:
    resp = client.post("/suggestions", json=body, headers=AUTH)
    assert resp.status_code == 400


def test_unknown_route(client: TestClient) -> None:
    resp = client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.json()["kind"] == "not_found"


@pytest.mark.parametrize(
    "body,expected",
    (
        ({"ingredients": [" Chicken ", "rice", ""]}, IngredientRequest),
        ({"query": "stew", "provider": "llm"}, QueryRequest),
    ),
)
def test_parse_recipe_request(body: dict, expected: type) -> None:
    got = parse_recipe_request(body)
    assert isinstance(got, expected)
    if isinstance(got, IngredientRequest):
        assert got.ingredients == ["Chicken", "rice"]
        assert got.provider == Provider.search
    else:
        assert got.provider == Provider.llm


def test_parse_recipe_request_rejects_bools() -> None:
    with pytest.raises(InvalidRequest):
        parse_recipe_request({"query": "stew", "filters": {"servings": True}})


def supabase(handler, **kwargs) -> SupabaseAuth:
    fields = {"url": "https://project.supabase.co", "anon_key": "anon-key"}
    fields.update(kwargs)
    client = httpx.AsyncClient(
        base_url=fields["url"] or "", transport=httpx.MockTransport(handler)
    )
    return SupabaseAuth(client=client, **fields)


@pytest.mark.asyncio
async def test_supabase_verify() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "user-42", "email": "a@b.c"})

    assert await supabase(handler).verify("jwt") == "user-42"
    assert seen[0].url.path == "/auth/v1/user"
    assert seen[0].headers["Authorization"] == "Bearer jwt"
    assert seen[0].headers["apikey"] == "anon-key"


@pytest.mark.parametrize("status", (401, 403))
@pytest.mark.asyncio
async def test_supabase_rejects_token(status: int) -> None:
    auth = supabase(lambda request: httpx.Response(status))
    with pytest.raises(Unauthorized):
        await auth.verify("jwt")


@pytest.mark.asyncio
async def test_supabase_outage() -> None:
    auth = supabase(lambda request: httpx.Response(500))
    with pytest.raises(UpstreamTransportError):
        await auth.verify("jwt")


@pytest.mark.asyncio
async def test_supabase_missing_token_makes_no_call() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "user-42"})

    with pytest.raises(Unauthorized):
        await supabase(handler).verify(None)
    assert seen == []


@pytest.mark.asyncio
async def test_supabase_non_utf8_body() -> None:
    auth = supabase(lambda request: httpx.Response(200, content=b'{"id": "\xff"}'))
    with pytest.raises(UpstreamTransportError):
        await auth.verify("jwt")
