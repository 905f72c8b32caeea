"""Something to cook when the ingredients cannot make two proper recipes.

The LLM is asked for two beginner recipes that lean on pantry staples. When
it cannot answer, fixed templates built around the strongest ingredient
group take over, so the caller always gets recipes back.
"""
import logging
import re
import uuid
from typing import Any, Sequence

from domain.classifier import IngredientClassifier
from domain.errors import InvalidRequest, MalformedUpstreamResponse, UpstreamError
from domain.external import ExternalApiClient, LLMRequest, json_reply
from domain.models import (
    ClassifiedIngredient,
    FallbackIngredient,
    FallbackRecipe,
    FallbackResult,
    IngredientCategory as C,
    Provider,
)
from domain.prompts import FALLBACK_RECIPES_PROMPT


logger = logging.getLogger(__name__)


MAX_RECIPES = 2
MAX_SUGGESTIONS = 3
DIFFICULTIES = ("Easy", "Medium", "Hard")

EGG = re.compile(r"\beggs?\b")

PROTEIN_BASE = ["rice", "onion", "garlic", "oil", "salt", "pepper"]
VEGETABLE_BASE = ["rice", "onion", "garlic", "soy sauce", "oil", "salt", "pepper"]
FRUIT_BASE = ["milk", "honey", "yogurt"]
EGG_BASE = ["eggs", "milk", "butter", "salt", "pepper", "bread"]
RICE_BOWL_BASE = ["rice", "salt", "pepper", "oil"]
SOUP_BASE = ["water", "salt", "pepper"]

PROTEIN_STEPS = """Rinse 1 cup rice under cold water. In a pot, bring 2 cups water to boil. Add rice, reduce heat to low, cover and simmer 18-20 minutes until water is absorbed.

While rice cooks, heat 1 tbsp oil in a pan over medium heat. Add 1 chopped onion and 2 minced garlic cloves. Cook 3-4 minutes until softened.

Add {protein} to the pan. Season with salt and pepper. Cook according to protein type:
- Ground meat: Cook 5-7 minutes until browned
- Chicken pieces: Cook 8-10 minutes until cooked through
- Tofu: Cook 5 minutes until golden

Serve protein mixture over rice. Makes 2 servings."""

VEGETABLE_STEPS = """Cook 1 cup rice according to package directions (usually 2 cups water, bring to boil, simmer 18 minutes covered).

While rice cooks, heat 1 tbsp oil in a large pan over medium-high heat. Add 1 chopped onion and 2 minced garlic cloves. Cook 2-3 minutes.

Add your vegetables: {vegetables}. Stir-fry for 5-7 minutes until tender-crisp.

Add 2 tbsp soy sauce (or substitute with salt if unavailable). Toss to combine.

Serve over rice. Makes 2 servings."""

FRUIT_STEPS = """Wash and prepare your fruits: {fruits}.

Add to blender: {fruits}, 1 cup milk, 1 cup yogurt, 2 tbsp honey.

Blend on high speed for 1-2 minutes until smooth and creamy.

Pour into glasses and serve immediately. Makes 2 servings."""

EGG_STEPS = """Crack 4 eggs into a bowl. Add 2 tbsp milk, salt, and pepper. Whisk until well combined.

Heat 1 tbsp butter in a pan over medium heat. Add egg mixture.

{additions}Cook, stirring gently, for 3-4 minutes until eggs are set but still soft.

Serve with toast or bread. Makes 2 servings."""

RICE_BOWL_STEPS = """Rinse 1 cup rice. Add 2 cups water, bring to boil, reduce heat, cover and simmer 18 minutes.

While rice cooks, prepare your ingredients: {ingredients}

Heat oil in pan, add your ingredients and seasonings. Cook 5-7 minutes.

Serve over rice."""

SOUP_STEPS = """Chop your ingredients: {ingredients}

Add to pot with 4 cups water. Bring to boil, then simmer 15 minutes.

Season with salt and pepper to taste.

Blend if desired for creamy texture."""

CONFLICTING_MESSAGE = (
    "Your ingredients have conflicting flavor profiles. "
    "Here are some practical recipes using what you have:"
)
FEW_INGREDIENTS_MESSAGE = (
    "With limited ingredients, here are some simple recipes "
    "that make the most of what you have:"
)
DEFAULT_MESSAGE = (
    "These ingredients don't work perfectly together. "
    "Here are some practical alternatives using easily available items:"
)


class IngredientGroups:
    """The user's ingredients split by what a fallback template can build on.

    Anything mentioning eggs is kept apart from the other proteins so the
    scramble template can use it.
    """

    def __init__(self, classified: Sequence[ClassifiedIngredient]) -> None:
        self.proteins: list[str] = []
        self.vegetables: list[str] = []
        self.fruits: list[str] = []
        self.grains: list[str] = []
        self.eggs: list[str] = []
        for raw, category in classified:
            if EGG.search(raw.lower()):
                self.eggs.append(raw)
                continue
            match category:
                case C.protein:
                    self.proteins.append(raw)
                case C.vegetable:
                    self.vegetables.append(raw)
                case C.fruit:
                    self.fruits.append(raw)
                case C.grain:
                    self.grains.append(raw)


def is_user_provided(name: str, user_ingredients: Sequence[str]) -> bool:
    name = name.lower().strip()
    for ingredient in user_ingredients:
        ingredient = ingredient.lower().strip()
        if ingredient and (ingredient in name or name in ingredient):
            return True
    return False


def mark_ingredients(
    names: Sequence[str], user_ingredients: Sequence[str]
) -> list[FallbackIngredient]:
    return [
        FallbackIngredient(name, not is_user_provided(name, user_ingredients))
        for name in names
    ]


def _id(kind: str) -> str:
    return f"fallback-{kind}-{uuid.uuid4().hex[:12]}"


def _template(
    kind: str,
    *,
    title: str,
    description: str,
    own: list[str],
    base: list[str],
    cooking_time: int,
    instructions: str,
    user_ingredients: list[str],
    compatibility: str,
    to_buy: list[str] | None = None,
) -> FallbackRecipe:
    to_buy = base if to_buy is None else to_buy
    return FallbackRecipe(
        id=_id(kind),
        title=title,
        description=description,
        ingredients=mark_ingredients(own + base, user_ingredients),
        required_ingredients=[i for i in to_buy if i not in user_ingredients],
        cooking_time=cooking_time,
        instructions=instructions,
        user_ingredients=user_ingredients,
        compatibility=compatibility,
    )


def template_recipes(
    user_ingredients: list[str], groups: IngredientGroups
) -> list[FallbackRecipe]:
    recipes: list[FallbackRecipe] = []

    if groups.proteins:
        recipes.append(
            _template(
                "template-protein",
                title="Simple Protein Rice Bowl",
                description=(
                    f"A simple, satisfying meal using your {groups.proteins[0]} "
                    "with basic pantry staples."
                ),
                own=groups.proteins,
                base=PROTEIN_BASE,
                cooking_time=25,
                instructions=PROTEIN_STEPS.format(protein=groups.proteins[0]),
                user_ingredients=user_ingredients,
                compatibility="Uses your protein with rice base",
            )
        )

    if groups.vegetables and len(recipes) < MAX_RECIPES:
        recipes.append(
            _template(
                "template-veggie",
                title="Simple Vegetable Stir-Fry",
                description="A fresh, healthy stir-fry using your vegetables with rice.",
                own=groups.vegetables,
                base=VEGETABLE_BASE,
                cooking_time=20,
                instructions=VEGETABLE_STEPS.format(vegetables=", ".join(groups.vegetables)),
                user_ingredients=user_ingredients,
                compatibility="Uses your vegetables with rice base",
            )
        )

    if groups.fruits and len(recipes) < MAX_RECIPES:
        recipes.append(
            _template(
                "template-fruit",
                title="Simple Fruit Smoothie",
                description="A refreshing smoothie using your fruits with dairy.",
                own=groups.fruits,
                base=FRUIT_BASE,
                cooking_time=5,
                instructions=FRUIT_STEPS.format(fruits=", ".join(groups.fruits)),
                user_ingredients=user_ingredients,
                compatibility="Uses your fruits in a smoothie",
            )
        )

    if groups.eggs and len(recipes) < MAX_RECIPES:
        additions = (groups.vegetables + groups.proteins)[:2]
        recipes.append(
            _template(
                "template-egg",
                title="Simple Egg Scramble",
                description="A quick egg dish using your eggs and available ingredients.",
                own=groups.eggs + additions,
                base=EGG_BASE,
                cooking_time=10,
                instructions=EGG_STEPS.format(
                    additions=(
                        f"Add your ingredients: {', '.join(additions)}. " if additions else ""
                    )
                ),
                user_ingredients=user_ingredients,
                compatibility="Uses your eggs with simple additions",
            )
        )

    if not recipes:
        listed = ", ".join(user_ingredients)
        recipes.append(
            _template(
                "basic-1",
                title="Simple Rice Bowl",
                description="A basic rice dish with your ingredients and simple seasonings.",
                own=user_ingredients,
                base=RICE_BOWL_BASE,
                cooking_time=25,
                instructions=RICE_BOWL_STEPS.format(ingredients=listed),
                user_ingredients=user_ingredients,
                compatibility="Basic rice bowl with your ingredients",
            )
        )
        recipes.append(
            _template(
                "basic-2",
                title="Simple Vegetable Soup",
                description="A comforting soup using your ingredients with broth.",
                own=user_ingredients,
                base=SOUP_BASE,
                cooking_time=20,
                instructions=SOUP_STEPS.format(ingredients=listed),
                user_ingredients=user_ingredients,
                compatibility="Simple soup with your ingredients",
                to_buy=["water"],
            )
        )

    return recipes[:MAX_RECIPES]


def fallback_message(ingredients: Sequence[str], reason: str) -> str:
    reason = reason.lower()
    if "sweet" in reason and "savory" in reason:
        return CONFLICTING_MESSAGE
    if len(ingredients) <= 3:
        return FEW_INGREDIENTS_MESSAGE
    return DEFAULT_MESSAGE


def improvement_suggestions(ingredients: Sequence[str], groups: IngredientGroups) -> list[str]:
    suggestions = []
    if not groups.proteins and not groups.eggs:
        suggestions.append("Add a protein (chicken, eggs, tofu, lentils)")
    if not groups.vegetables:
        suggestions.append("Add vegetables (onion, garlic, tomato, spinach)")
    if not groups.grains:
        suggestions.append("Add grains (rice, pasta, bread)")
    if len(ingredients) < 5:
        suggestions.append("Add more ingredients for better recipe variety")
    if len(suggestions) < MAX_SUGGESTIONS:
        suggestions.append("Try adding basic seasonings (salt, pepper, oil)")
        suggestions.append("Include dairy (milk, cheese, yogurt) for creaminess")
    return suggestions[:MAX_SUGGESTIONS]


def _positive(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return value


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v.strip()]


def recipe_from_reply(
    item: Any, index: int, user_ingredients: list[str]
) -> FallbackRecipe | None:
    if not isinstance(item, dict) or not isinstance(item.get("title"), str):
        return None
    difficulty = item.get("difficulty")
    instructions = item.get("instructions")
    return FallbackRecipe(
        id=_id(f"ai-{index}"),
        title=item["title"].strip(),
        description=str(item.get("description") or ""),
        ingredients=mark_ingredients(_strings(item.get("ingredients")), user_ingredients),
        required_ingredients=_strings(item.get("requiredIngredients")),
        cooking_time=_positive(item.get("cookingTime"), 20),
        difficulty=difficulty if difficulty in DIFFICULTIES else "Easy",
        servings=_positive(item.get("servings"), 2),
        instructions=instructions if isinstance(instructions, str) else "",
        user_ingredients=user_ingredients,
        compatibility=str(item.get("compatibility") or "Fallback recipe"),
    )


class FallbackRecipes:
    def __init__(
        self,
        client: ExternalApiClient,
        *,
        classifier: IngredientClassifier | None = None,
    ) -> None:
        self.client = client
        self.classifier = IngredientClassifier() if classifier is None else classifier

    async def _ask_llm(self, ingredients: list[str], reason: str) -> list[FallbackRecipe]:
        provider = self.client.api_name(Provider.llm)
        reply = await self.client.complete(
            LLMRequest(
                FALLBACK_RECIPES_PROMPT.format(
                    ingredients=", ".join(ingredients),
                    reason=reason or "they do not combine into a balanced meal",
                ),
                temperature=0.7,
                top_k=40,
                top_p=0.95,
                max_output_tokens=1024,
            )
        )
        data = json_reply(reply, provider=provider)
        if not isinstance(data, list):
            raise MalformedUpstreamResponse(
                "Fallback reply is not a list of recipes", provider=provider
            )
        recipes = [
            recipe
            for index, item in enumerate(data)
            if (recipe := recipe_from_reply(item, index, ingredients)) is not None
        ]
        return recipes[:MAX_RECIPES]

    async def suggest(
        self,
        ingredients: Sequence[str],
        reason: str = "",
        *,
        use_llm: bool = True,
    ) -> FallbackResult:
        user_ingredients = [i.strip() for i in ingredients if i.strip()]
        if not user_ingredients:
            raise InvalidRequest("Please provide at least one ingredient")

        groups = IngredientGroups(await self.classifier.classify_many(user_ingredients))

        recipes: list[FallbackRecipe] = []
        if use_llm:
            try:
                recipes = await self._ask_llm(user_ingredients, reason)
            except UpstreamError as e:
                logger.warning("AI fallback generation failed, using templates: %s", e)
        if not recipes:
            recipes = template_recipes(user_ingredients, groups)
            logger.info("Using %s template fallback recipes", len(recipes))

        return FallbackResult(
            recipes=recipes,
            message=fallback_message(user_ingredients, reason),
            suggestions=improvement_suggestions(user_ingredients, groups),
        )
