import asyncio
import logging
import re
from typing import Iterable

from domain.cache import ResponseCache
from domain.external import ExternalApiClient, LLMRequest
from domain.models import ClassifiedIngredient, IngredientCategory
from domain.prompts import CLASSIFY_INGREDIENT_PROMPT


logger = logging.getLogger(__name__)


def _rule(*words: str) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(w) for w in words)
    return re.compile(rf"\b(?:{alternatives})(?:e?s)?\b")


# Evaluated in order, first match wins.
RULES: tuple[tuple[IngredientCategory, re.Pattern[str]], ...] = (
    (
        IngredientCategory.protein,
        _rule(
            "chicken", "beef", "pork", "fish", "salmon", "tofu", "egg",
            "lentil", "bean", "turkey", "lamb",
        ),
    ),
    (
        IngredientCategory.vegetable,
        _rule(
            "onion", "garlic", "tomato", "potato", "carrot", "broccoli",
            "spinach", "lettuce", "bell pepper", "cucumber", "mushroom",
        ),
    ),
    (
        IngredientCategory.fruit,
        _rule(
            "apple", "banana", "orange", "lemon", "lime", "strawberry",
            "strawberrie", "blueberry", "blueberrie", "mango", "pineapple",
            "grape", "grapefruit",
        ),
    ),
    (
        IngredientCategory.grain,
        _rule(
            "rice", "pasta", "bread", "breadcrumb", "flour", "cornflour", "oats",
            "quinoa", "barley", "couscous",
        ),
    ),
    (
        IngredientCategory.dairy,
        _rule("milk", "buttermilk", "cheese", "yogurt", "butter", "cream", "sour cream"),
    ),
    (
        IngredientCategory.spice,
        _rule(
            "salt", "pepper", "peppercorn", "cumin", "paprika", "oregano", "thyme",
            "basil", "cinnamon", "nutmeg", "ginger",
        ),
    ),
    (
        IngredientCategory.oil,
        _rule("olive oil", "vegetable oil", "canola oil", "coconut oil"),
    ),
)


def normalize(ingredient: str) -> str:
    return " ".join(ingredient.strip().lower().split())


def classify_by_rules(ingredient: str) -> IngredientCategory:
    text = normalize(ingredient)
    for category, pattern in RULES:
        if pattern.search(text):
            return category
    return IngredientCategory.other


def parse_category(answer: str) -> IngredientCategory | None:
    words = answer.strip().lower().split()
    if not words:
        return None
    token = words[0].strip(".,:;!\"'`*")
    for candidate in (token, token.removesuffix("s")):
        try:
            return IngredientCategory(candidate)
        except ValueError:
            continue
    return None


class IngredientClassifier:
    """Maps an ingredient to a category. Never raises.

    The LLM is asked first. Anything it cannot answer, including the LLM
    being down or unconfigured, is decided by `RULES`.
    """

    def __init__(
        self,
        *,
        client: ExternalApiClient | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self.client = client
        self.cache = cache

    async def _ask_llm(self, ingredient: str) -> str | None:
        if self.client is None:
            return None

        key = None
        if self.cache is not None:
            key = self.cache.compute_key({"ingredient": ingredient}, namespace="classify")
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        request = LLMRequest(
            CLASSIFY_INGREDIENT_PROMPT.format(ingredient=ingredient),
            temperature=0.3,
            top_k=20,
            top_p=0.8,
            max_output_tokens=50,
        )
        try:
            answer = await self.client.complete(request)
        except Exception as e:
            logger.warning(
                "AI classification failed for %r, using fallback: %r", ingredient, e
            )
            return None

        if self.cache is not None and key is not None:
            self.cache.put(key, answer)
        return answer

    async def classify(self, ingredient: str) -> IngredientCategory:
        text = normalize(ingredient)
        answer = await self._ask_llm(text)
        if answer is not None:
            category = parse_category(answer)
            if category is not None:
                return category
            logger.warning("Unrecognised category %r for %r", answer, text)
        return classify_by_rules(text)

    async def classify_many(self, ingredients: Iterable[str]) -> list[ClassifiedIngredient]:
        raw = list(ingredients)
        categories = await asyncio.gather(*(self.classify(i) for i in raw))
        return [ClassifiedIngredient(r, c) for r, c in zip(raw, categories)]
