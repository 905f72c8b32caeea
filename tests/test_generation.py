import pytest

from domain.errors import MalformedUpstreamResponse, UpstreamRateLimited
from domain.external import LLMRequest
from domain.generation import (
    RecipeGenerator,
    build_prompt,
    ingredient_groups,
    parse_recipe,
)
from domain.models import IngredientRequest, Mode, QueryRequest, RecipeFilters, RecipeSource

from conftest import RECIPE_REPLY, FakeLLM, make_client


def reply_titled(title: str) -> str:
    return RECIPE_REPLY.replace("**Garlic Chicken Rice**", title)


@pytest.mark.parametrize(
    "ingredients,expected",
    (
        (["a", "b", "c", "d", "e"], [["a", "b", "c"], ["d", "e"]]),
        (["a", "b", "c", "d"], [["a", "b"], ["c", "d"]]),
        (["a", "b", "c"], [["a", "b"], ["a", "b", "c"]]),
        (["a", "b"], [["a", "b"], ["a", "b"]]),
    ),
)
def test_ingredient_groups(ingredients: list[str], expected: list[list[str]]) -> None:
    assert ingredient_groups(ingredients) == expected


def test_parse_recipe() -> None:
    recipe = parse_recipe(
        RECIPE_REPLY,
        number=1,
        ingredients=["chicken", "rice", "garlic"],
        filters=RecipeFilters(cuisine="Asian"),
    )
    assert recipe.title == "Garlic Chicken Rice"
    assert recipe.description == "A quick weeknight bowl."
    assert recipe.cook_time == 25
    assert recipe.servings == 3
    assert recipe.difficulty == "Easy"
    assert recipe.cuisine == "Asian"
    assert recipe.source == RecipeSource.llm
    assert [i.name for i in recipe.ingredients][0] == "2 chicken thighs"
    # Easy recipes keep at most five steps.
    assert recipe.instructions.splitlines() == [
        "Rinse the rice.",
        "Boil the rice for 12 minutes.",
        "Season the chicken with salt.",
        "Fry the chicken for 6 minutes a side.",
        "Fry the garlic for 1 minute.",
    ]


def test_parse_recipe_drops_unlisted_ingredients() -> None:
    text = RECIPE_REPLY.replace("- 1 tbsp salt", "- 1 tbsp saffron")
    recipe = parse_recipe(
        text,
        number=1,
        ingredients=["chicken", "rice", "garlic", "onion"],
        filters=RecipeFilters(),
    )
    assert "1 tbsp saffron" not in [i.name for i in recipe.ingredients]
    assert len(recipe.ingredients) == 3


def test_parse_recipe_defaults() -> None:
    text = "Title: Toast\nIngredients:\n- bread\nInstructions:\n1. Toast the bread."
    recipe = parse_recipe(text, number=2, ingredients=[], filters=RecipeFilters(servings=5))
    assert recipe.difficulty == "Medium"
    assert recipe.cook_time == 30
    assert recipe.servings == 5
    assert recipe.cuisine == "International"


@pytest.mark.parametrize(
    "text",
    (
        "Here is a lovely recipe for you!",
        "Title: Toast\nInstructions:\n1. Toast it.",
        "Title: Toast\nIngredients:\n- bread\n",
    ),
)
def test_parse_recipe_malformed(text: str) -> None:
    with pytest.raises(MalformedUpstreamResponse):
        parse_recipe(text, number=1, ingredients=[], filters=RecipeFilters())


def test_build_prompt_fridge() -> None:
    prompt = build_prompt(
        mode=Mode.fridge,
        number=1,
        ingredients=["chicken", "rice", "garlic", "onion"],
        query=None,
        filters=RecipeFilters(max_time=30, servings=2),
    )
    assert "Difficulty: Easy" in prompt
    assert "ONLY use these ingredients: chicken, rice, garlic, onion" in prompt
    assert "Maximum cooking time: 30 minutes (STRICT LIMIT)" in prompt
    assert "Servings: 2 (EXACT)" in prompt
    assert "Fridge Mode" in prompt


def test_build_prompt_explore() -> None:
    prompt = build_prompt(
        mode=Mode.explore,
        number=2,
        ingredients=[],
        query="cosy winter stew",
        filters=RecipeFilters(cuisine="French"),
    )
    assert "Difficulty: Medium" in prompt
    assert "Recipe theme: cosy winter stew" in prompt
    assert "Cuisine style: French" in prompt
    assert "Explore Mode" in prompt
    assert "MEDIUM RECIPE (Recipe 2)" in prompt


@pytest.mark.asyncio
async def test_generate_two_recipes() -> None:
    titles = iter(["Garlic Chicken Rice", "Chicken Fried Rice"])

    def reply(request: LLMRequest) -> str:
        return reply_titled(next(titles))

    llm = FakeLLM(reply)
    generator = RecipeGenerator(make_client(llm))
    recipes = await generator.generate(
        IngredientRequest(["chicken", "rice", "garlic", "salt"])
    )

    assert [r.title for r in recipes] == ["Garlic Chicken Rice", "Chicken Fried Rice"]
    assert len(llm.requests) == 2
    assert all(r.temperature == 0.8 for r in llm.requests)
    assert all(r.max_output_tokens == 2048 for r in llm.requests)


@pytest.mark.asyncio
async def test_generate_drops_duplicate_titles() -> None:
    generator = RecipeGenerator(make_client(FakeLLM(reply_titled("Same Dish"))))
    recipes = await generator.generate(QueryRequest("comfort food"))
    assert [r.title for r in recipes] == ["Same Dish"]


@pytest.mark.asyncio
async def test_generate_skips_malformed_reply() -> None:
    replies = iter(["Sorry, I cannot help with that.", reply_titled("Soup")])
    generator = RecipeGenerator(make_client(FakeLLM(lambda request: next(replies))))
    recipes = await generator.generate(QueryRequest("soup"))
    assert [r.title for r in recipes] == ["Soup"]


@pytest.mark.asyncio
async def test_generate_nothing_usable() -> None:
    generator = RecipeGenerator(make_client(FakeLLM("no recipe here")))
    with pytest.raises(MalformedUpstreamResponse):
        await generator.generate(QueryRequest("soup"))


@pytest.mark.asyncio
async def test_generate_surfaces_upstream_errors() -> None:
    llm = FakeLLM(error=UpstreamRateLimited(provider="gemini"))
    generator = RecipeGenerator(make_client(llm))
    with pytest.raises(UpstreamRateLimited):
        await generator.generate(QueryRequest("soup"))
