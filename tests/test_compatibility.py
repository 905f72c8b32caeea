import itertools

import pytest

from domain.classifier import IngredientClassifier
from domain.compatibility import (
    INCOMPATIBLE_MESSAGE,
    LIMITED_MESSAGE,
    STARTER_SUGGESTIONS,
    TOO_FEW_MESSAGE,
    CompatibilityAnalyzer,
)
from domain.errors import UpstreamUnconfigured
from domain.models import CompatibilityLevel as L, IngredientCategory as C

from conftest import FakeLLM, make_client


def analyzer() -> CompatibilityAnalyzer:
    return CompatibilityAnalyzer(IngredientClassifier())


@pytest.mark.parametrize(
    "ingredients,message",
    (
        ([], "Add at least 3 ingredients to get started! 🥘"),
        (["chicken"], "Add 2 more ingredients for better recipe variety! 💡"),
        (["chicken", "rice"], "Add 1 more ingredient for better recipe variety! 💡"),
    ),
)
@pytest.mark.asyncio
async def test_too_few_ingredients(ingredients: list[str], message: str) -> None:
    got = await analyzer().analyze(ingredients)
    assert got.level == L.insufficient
    assert got.score == 0
    assert got.message == message
    assert got.suggestions == STARTER_SUGGESTIONS
    assert got.blocks_recipes


@pytest.mark.asyncio
async def test_too_few_ingredients_are_not_classified() -> None:
    llm = FakeLLM("protein")
    got = await CompatibilityAnalyzer(
        IngredientClassifier(client=make_client(llm))
    ).analyze(["chicken", "rice"])
    assert got.level == L.insufficient
    assert llm.requests == []


@pytest.mark.asyncio
async def test_each_ingredient_is_classified_once() -> None:
    llm = FakeLLM(error=UpstreamUnconfigured(provider="gemini"))
    await CompatibilityAnalyzer(
        IngredientClassifier(client=make_client(llm))
    ).analyze(["chicken", "rice", "onion", "garlic"])
    assert len(llm.requests) == 4


@pytest.mark.asyncio
async def test_excellent() -> None:
    got = await analyzer().analyze(["chicken", "rice", "onion", "garlic", "olive oil"])
    # protein, vegetable, grain, oil: 4 * 15 + 10 + 10 + 10 + 5
    assert got.score == 95
    assert got.level == L.excellent
    assert got.suggestions == ()
    assert not got.blocks_recipes
    assert got.category_buckets[C.vegetable] == {"onion", "garlic"}


@pytest.mark.asyncio
async def test_good_has_no_suggestions() -> None:
    got = await analyzer().analyze(["chicken", "onion", "salt"])
    assert got.score == 70
    assert got.level == L.good
    assert got.suggestions == ()


@pytest.mark.asyncio
async def test_limited_names_missing_categories() -> None:
    got = await analyzer().analyze(["chicken", "rice", "xyzfood123"])
    assert got.score == 50
    assert got.level == L.limited
    assert got.message == LIMITED_MESSAGE
    assert got.suggestions == (
        "Add vegetables (onion, garlic, tomato, spinach)",
        "Add seasonings (salt, pepper, oil)",
    )
    assert got.category_buckets[C.other] == {"xyzfood123"}


@pytest.mark.asyncio
async def test_limited_below_forty() -> None:
    got = await analyzer().analyze(["chicken", "beef", "pork"])
    assert got.score == 25
    assert got.level == L.limited
    assert got.message == TOO_FEW_MESSAGE
    assert got.suggestions == (
        "Add vegetables (onion, garlic, tomato, spinach)",
        "Add grains (rice, pasta, bread)",
        "Add seasonings (salt, pepper, oil)",
    )


@pytest.mark.asyncio
async def test_fruit_and_protein_are_incompatible() -> None:
    got = await analyzer().analyze(["apple", "chicken", "banana"])
    assert got.level == L.incompatible
    assert got.message == INCOMPATIBLE_MESSAGE
    # fruit, protein: 2 * 15 + 10 - 30
    assert got.score == 10
    assert got.suggestions[0] == "Try separating sweet and savory ingredients"
    assert got.blocks_recipes


@pytest.mark.asyncio
async def test_fruit_and_vegetable_without_balance_are_incompatible() -> None:
    got = await analyzer().analyze(["apple", "banana", "onion"])
    assert got.level == L.incompatible
    assert got.suggestions[0] == "Add more ingredient variety"


@pytest.mark.asyncio
async def test_grain_balances_fruit() -> None:
    got = await analyzer().analyze(["apple", "onion", "oats"])
    assert got.level != L.incompatible


@pytest.mark.asyncio
async def test_incompatibility_overrides_high_score() -> None:
    # Scores 60 before the penalty, which would otherwise be "good".
    got = await analyzer().analyze(["apple", "chicken", "olive oil", "strawberries"])
    assert got.level == L.incompatible
    assert got.score == 30


@pytest.mark.asyncio
async def test_order_does_not_matter() -> None:
    ingredients = ["chicken", "rice", "apple", "salt"]
    results = set()
    for permutation in itertools.permutations(ingredients):
        got = await analyzer().analyze(list(permutation))
        results.add((got.level, got.score, got.suggestions))
    assert len(results) == 1


@pytest.mark.asyncio
async def test_to_dict_sorts_bucket_members() -> None:
    got = await analyzer().analyze(["onion", "garlic", "chicken", "rice"])
    data = got.to_dict()
    assert data["categories"]["vegetable"] == ["garlic", "onion"]
    assert data["level"] == "good"
