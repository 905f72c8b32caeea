"""LLM recipe generation.

Each request produces two recipes from two prompts: the first targets an
Easy dish, the second a Medium one. The LLM answers in a fixed plain-text
layout which is parsed back into `Recipe` objects here.
"""
import logging
import math
import re
import uuid
from typing import Sequence

from domain import prompts
from domain.errors import MalformedUpstreamResponse
from domain.external import ExternalApiClient, LLMRequest
from domain.models import (
    Mode,
    Provider,
    Recipe,
    RecipeFilters,
    RecipeIngredient,
    RecipeRequest,
    RecipeSource,
)


logger = logging.getLogger(__name__)


RECIPES_PER_REQUEST = 2
TARGET_DIFFICULTIES = ("Easy", "Medium")
MAX_STEPS = {"Easy": 5}
DEFAULT_MAX_STEPS = 8
DEFAULT_COOKING_TIME = 30
DEFAULT_SERVINGS = 2

BASIC_SEASONINGS = ("salt", "pepper", "oil", "butter", "water")
PANTRY_ITEMS = ("flour", "milk", "sugar", "garlic", "onion", "lemon", "honey")

TITLE = re.compile(r"Title:\s*(.+)", re.IGNORECASE)
DESCRIPTION = re.compile(r"Description:\s*(.+)", re.IGNORECASE)
COOKING_TIME = re.compile(r"Cooking Time:\s*(\d+)", re.IGNORECASE)
DIFFICULTY = re.compile(r"Difficulty:\s*(Easy|Medium|Hard)", re.IGNORECASE)
SERVINGS = re.compile(r"Servings:\s*(\d+)", re.IGNORECASE)
INGREDIENTS = re.compile(
    r"Ingredients:\s*(.*?)(?=Instructions:|\Z)", re.IGNORECASE | re.DOTALL
)
INSTRUCTIONS = re.compile(r"Instructions:\s*(.*)\Z", re.IGNORECASE | re.DOTALL)

BULLET = re.compile(r"^[-•*]\s*")
STEP_NUMBER = re.compile(r"^\d+[.)]\s*")
MARKDOWN = re.compile(r"\*\*|__|#+ ?")


def ingredient_groups(ingredients: Sequence[str]) -> list[list[str]]:
    """Split the user's ingredients between the two recipes."""
    items = list(ingredients)
    if len(items) >= 4:
        mid = math.ceil(len(items) / 2)
        return [items[:mid], items[mid:]]
    if len(items) == 3:
        return [items[:2], items]
    return [items, items]


def allowed_ingredients(ingredients: Sequence[str]) -> tuple[str, ...]:
    if len(ingredients) >= 4:
        return (*ingredients, *BASIC_SEASONINGS)
    return (*ingredients, *PANTRY_ITEMS, *BASIC_SEASONINGS)


def ingredient_constraint(ingredients: Sequence[str]) -> str:
    listed = ", ".join(ingredients)
    seasonings = ", ".join(BASIC_SEASONINGS)
    if len(ingredients) >= 4:
        constraint = prompts.STRICT_INGREDIENTS.format(
            ingredients=listed, seasonings=seasonings
        )
    elif len(ingredients) >= 2:
        constraint = prompts.PRIMARY_INGREDIENTS.format(
            ingredients=listed, pantry=", ".join(PANTRY_ITEMS), seasonings=seasonings
        )
    else:
        constraint = prompts.REQUIRED_INGREDIENTS.format(ingredients=listed)
    return f"{constraint} {prompts.RAW_INGREDIENTS_RULE}"


def build_prompt(
    *,
    mode: Mode,
    number: int,
    ingredients: Sequence[str],
    query: str | None,
    filters: RecipeFilters,
) -> str:
    difficulty = TARGET_DIFFICULTIES[number - 1]
    fridge = mode is Mode.fridge

    if difficulty == "Easy":
        rules = prompts.EASY_RULES.format(number=number)
        closing = prompts.EASY_CLOSING.format(number=number)
    else:
        rules = prompts.ADVANCED_RULES.format(
            number=number, difficulty_upper=difficulty.upper()
        )
        closing = prompts.ADVANCED_CLOSING.format(
            number=number, difficulty_upper=difficulty.upper()
        )
    if fridge:
        context = prompts.FRIDGE_CONTEXT.format(
            ingredients=", ".join(ingredients) or "none provided"
        )
    else:
        context = prompts.EXPLORE_CONTEXT
    variety = (
        prompts.FIRST_RECIPE_VARIETY if number == 1 else prompts.SECOND_RECIPE_VARIETY
    )

    requirements = []
    if ingredients:
        requirements.append(ingredient_constraint(ingredients))
        if fridge:
            requirements.append(
                "This is FRIDGE MODE - work within ingredient constraints, "
                "keep it simple and keep it practical"
            )
        else:
            requirements.append("This is EXPLORE MODE - be creative and sophisticated")
    if query:
        requirements.append(f"Recipe theme: {query}")
    if filters.max_time:
        requirements.append(
            f"Maximum cooking time: {filters.max_time} minutes (STRICT LIMIT)"
        )
    if filters.servings:
        requirements.append(f"Servings: {filters.servings} (EXACT)")
    if filters.cuisine:
        requirements.append(f"Cuisine style: {filters.cuisine}")
    if filters.diet:
        requirements.append(f"Dietary requirement: {filters.diet}")
    if filters.meal_type:
        requirements.append(f"Meal type: {filters.meal_type}")

    sections = [
        prompts.FRIDGE_PERSONA if fridge else prompts.EXPLORE_PERSONA,
        prompts.RECIPE_FORMAT.format(difficulty=difficulty),
        f"{rules}\n\n{context}",
        "REQUIREMENTS:" + "".join(f"\n- {r}" for r in requirements),
        f"{closing} {variety}\n\n{prompts.DISTINCT_RECIPES}",
    ]
    return "\n\n".join(sections)


def _lines(block: str) -> list[str]:
    lines = []
    for line in block.splitlines():
        line = BULLET.sub("", line.strip())
        line = STEP_NUMBER.sub("", line).strip()
        if line:
            lines.append(line)
    return lines


def parse_recipe(
    text: str,
    *,
    number: int,
    ingredients: Sequence[str],
    filters: RecipeFilters,
) -> Recipe:
    """Parse one LLM reply. Raises `MalformedUpstreamResponse`."""
    text = MARKDOWN.sub("", text)

    title = TITLE.search(text)
    ingredients_block = INGREDIENTS.search(text)
    instructions_block = INSTRUCTIONS.search(text)
    if title is None or ingredients_block is None or instructions_block is None:
        raise MalformedUpstreamResponse(
            "Recipe reply is missing its title, ingredients or instructions",
            provider="llm",
        )

    items = _lines(ingredients_block.group(1))
    if ingredients:
        allowed = [a.lower() for a in allowed_ingredients(ingredients)]
        kept = [i for i in items if any(a in i.lower() for a in allowed)]
        if len(kept) < len(items):
            logger.warning(
                "Recipe %s lists ingredients the user did not provide: %s",
                number,
                [i for i in items if i not in kept],
            )
        items = kept

    target = TARGET_DIFFICULTIES[number - 1]
    parsed = DIFFICULTY.search(text)
    difficulty = target if parsed is None else parsed.group(1).capitalize()
    steps = _lines(instructions_block.group(1))[: MAX_STEPS.get(target, DEFAULT_MAX_STEPS)]

    if not items or not steps:
        raise MalformedUpstreamResponse(
            "Recipe reply has no usable ingredients or instructions", provider="llm"
        )

    description = DESCRIPTION.search(text)
    cooking_time = COOKING_TIME.search(text)
    servings = SERVINGS.search(text)
    return Recipe(
        id=f"ai-{uuid.uuid4().hex[:12]}-{number}",
        title=title.group(1).strip(),
        description=(
            "A delicious AI-generated recipe"
            if description is None
            else description.group(1).strip()
        ),
        cook_time=(
            DEFAULT_COOKING_TIME if cooking_time is None else int(cooking_time.group(1))
        ),
        servings=(
            int(servings.group(1))
            if servings is not None
            else filters.servings or DEFAULT_SERVINGS
        ),
        cuisine=filters.cuisine or "International",
        difficulty=difficulty,
        source=RecipeSource.llm,
        instructions="\n".join(steps),
        ingredients=[RecipeIngredient(item) for item in items],
    )


class RecipeGenerator:
    def __init__(self, client: ExternalApiClient) -> None:
        self.client = client

    async def generate(self, request: RecipeRequest) -> list[Recipe]:
        if request.mode is Mode.fridge:
            groups = ingredient_groups(request.ingredients)
        else:
            groups = [[] for _ in range(RECIPES_PER_REQUEST)]

        recipes: list[Recipe] = []
        titles: set[str] = set()
        for number, group in enumerate(groups, start=1):
            prompt = build_prompt(
                mode=request.mode,
                number=number,
                ingredients=group,
                query=request.query,
                filters=request.filters,
            )
            text = await self.client.complete(
                LLMRequest(
                    prompt,
                    temperature=0.8,
                    top_k=40,
                    top_p=0.95,
                    max_output_tokens=2048,
                )
            )
            try:
                recipe = parse_recipe(
                    text, number=number, ingredients=group, filters=request.filters
                )
            except MalformedUpstreamResponse as e:
                logger.warning("Skipping recipe %s: %s", number, e)
                continue

            if recipe.title.lower() in titles:
                logger.warning("Dropping duplicate recipe %r", recipe.title)
                continue
            titles.add(recipe.title.lower())
            recipes.append(recipe)

        if not recipes:
            raise MalformedUpstreamResponse(
                "The LLM did not return a usable recipe",
                provider=self.client.api_name(Provider.llm),
            )
        logger.info("Generated %s recipes in %s mode", len(recipes), request.mode.value)
        return recipes
