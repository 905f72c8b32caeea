from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple, Self, TypeAlias


class IngredientCategory(Enum):
    protein = "protein"
    vegetable = "vegetable"
    fruit = "fruit"
    grain = "grain"
    dairy = "dairy"
    spice = "spice"
    oil = "oil"
    other = "other"


class CompatibilityLevel(Enum):
    insufficient = "insufficient"
    incompatible = "incompatible"
    limited = "limited"
    good = "good"
    excellent = "excellent"


class Provider(Enum):
    search = "search"
    llm = "llm"


class Mode(Enum):
    fridge = "fridge"
    explore = "explore"


class RecipeSource(Enum):
    search = "search-provider"
    llm = "llm"


class ClassifiedIngredient(NamedTuple):
    raw: str
    category: IngredientCategory


CategoryBuckets: TypeAlias = dict[IngredientCategory, frozenset[str]]


class CompatibilityAnalysis:
    def __init__(
        self,
        *,
        level: CompatibilityLevel,
        message: str,
        suggestions: tuple[str, ...] = (),
        score: int = 0,
        category_buckets: CategoryBuckets | None = None,
    ) -> None:
        buckets = {} if category_buckets is None else category_buckets
        self.level = level
        self.message = message
        self.suggestions = tuple(suggestions[:3])
        self.score = score
        self.category_buckets: CategoryBuckets = {
            category: frozenset(buckets.get(category, ()))
            for category in IngredientCategory
        }

    @property
    def blocks_recipes(self) -> bool:
        return self.level in (
            CompatibilityLevel.insufficient,
            CompatibilityLevel.incompatible,
        )

    def __repr__(self) -> str:
        return f"<CompatibilityAnalysis(level={self.level.value}, score={self.score})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "message": self.message,
            "suggestions": list(self.suggestions),
            "score": self.score,
            "categories": {
                category.value: sorted(members)
                for category, members in self.category_buckets.items()
            },
        }


class RecipeFilters:
    def __init__(
        self,
        *,
        cuisine: str | None = None,
        diet: str | None = None,
        max_time: int | None = None,
        difficulty: str | None = None,
        servings: int | None = None,
        meal_type: str | None = None,
    ) -> None:
        self.cuisine = cuisine
        self.diet = diet
        self.max_time = max_time
        self.difficulty = difficulty
        self.servings = servings
        self.meal_type = meal_type

    def to_dict(self) -> dict[str, Any]:
        data = {
            "cuisine": self.cuisine,
            "diet": self.diet,
            "maxTime": self.max_time,
            "difficulty": self.difficulty,
            "servings": self.servings,
            "mealType": self.meal_type,
        }
        return {k: v for k, v in data.items() if v is not None}


class IngredientRequest:
    mode = Mode.fridge

    def __init__(
        self,
        ingredients: list[str],
        *,
        filters: RecipeFilters | None = None,
        provider: Provider = Provider.search,
    ) -> None:
        self.ingredients = list(ingredients)
        self.filters = RecipeFilters() if filters is None else filters
        self.provider = provider

    @property
    def query(self) -> str | None:
        return None

    def cache_params(self) -> dict[str, Any]:
        return {
            "provider": self.provider.value,
            "mode": self.mode.value,
            "ingredients": [i.strip().lower() for i in self.ingredients],
            "query": None,
            "filters": self.filters.to_dict(),
        }


class QueryRequest:
    mode = Mode.explore

    def __init__(
        self,
        query: str,
        *,
        filters: RecipeFilters | None = None,
        provider: Provider = Provider.search,
    ) -> None:
        self.query = query
        self.filters = RecipeFilters() if filters is None else filters
        self.provider = provider

    @property
    def ingredients(self) -> list[str]:
        return []

    def cache_params(self) -> dict[str, Any]:
        return {
            "provider": self.provider.value,
            "mode": self.mode.value,
            "ingredients": [],
            "query": self.query.strip(),
            "filters": self.filters.to_dict(),
        }


RecipeRequest: TypeAlias = IngredientRequest | QueryRequest


class RecipeIngredient:
    def __init__(
        self,
        name: str,
        amount: float | str | None = None,
        unit: str | None = None,
    ) -> None:
        self.name = name
        self.amount = amount
        self.unit = unit

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "amount": self.amount, "unit": self.unit}


class Recipe:
    def __init__(
        self,
        *,
        id: str,
        title: str,
        description: str = "",
        prep_time: int = 0,
        cook_time: int = 0,
        servings: int = 4,
        cuisine: str = "International",
        difficulty: str = "Medium",
        source: RecipeSource,
        instructions: str = "",
        ingredients: list[RecipeIngredient] | None = None,
        rating: float = 4.0,
    ) -> None:
        self.id = id
        self.title = title
        self.description = description
        self.prep_time = prep_time
        self.cook_time = cook_time
        self.servings = servings
        self.cuisine = cuisine
        self.difficulty = difficulty
        self.source = source
        self.instructions = instructions
        self.ingredients = [] if ingredients is None else ingredients
        self.rating = rating

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, title={self.title})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "servings": self.servings,
            "cuisine": self.cuisine,
            "difficulty": self.difficulty,
            "source": self.source.value,
            "instructions": self.instructions,
            "ingredients": [i.to_dict() for i in self.ingredients],
            "rating": self.rating,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            prep_time=data["prepTime"],
            cook_time=data["cookTime"],
            servings=data["servings"],
            cuisine=data["cuisine"],
            difficulty=data["difficulty"],
            source=RecipeSource(data["source"]),
            instructions=data["instructions"],
            ingredients=[RecipeIngredient(**i) for i in data["ingredients"]],
            rating=data["rating"],
        )


class RateLimitStatus:
    def __init__(
        self,
        *,
        current_count: int,
        max_requests: int,
        reset_time: datetime,
    ) -> None:
        self.current_count = current_count
        self.max_requests = max_requests
        self.reset_time = reset_time

    @property
    def remaining(self) -> int:
        return max(0, self.max_requests - self.current_count)

    @property
    def percentage_used(self) -> int:
        if not self.max_requests:
            return 100
        return round(self.current_count / self.max_requests * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentCount": self.current_count,
            "maxRequests": self.max_requests,
            "remaining": self.remaining,
            "resetTime": self.reset_time.isoformat(),
            "percentageUsed": self.percentage_used,
        }


class RecipeResponse:
    def __init__(
        self,
        *,
        recipes: list[Recipe] | None = None,
        analysis: CompatibilityAnalysis | None = None,
        cached: bool = False,
        rate_limit: RateLimitStatus | None = None,
    ) -> None:
        self.recipes = [] if recipes is None else recipes
        self.analysis = analysis
        self.cached = cached
        self.rate_limit = rate_limit

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipes": [r.to_dict() for r in self.recipes],
            "analysis": None if self.analysis is None else self.analysis.to_dict(),
            "cached": self.cached,
            "rateLimit": None if self.rate_limit is None else self.rate_limit.to_dict(),
        }


class CommentaryType(Enum):
    commentary = "commentary"
    twist = "twist"


class CommentaryRequest:
    def __init__(
        self,
        *,
        recipe_title: str,
        ingredients: list[str],
        instructions: str,
        type: CommentaryType = CommentaryType.commentary,
    ) -> None:
        self.recipe_title = recipe_title
        self.ingredients = ingredients
        self.instructions = instructions
        self.type = type

    def cache_params(self) -> dict[str, Any]:
        return {
            "title": self.recipe_title.strip(),
            "ingredients": [i.strip().lower() for i in self.ingredients],
            "instructions": self.instructions.strip(),
            "type": self.type.value,
        }


class FallbackIngredient(NamedTuple):
    name: str
    required: bool


class FallbackRecipe:
    def __init__(
        self,
        *,
        id: str,
        title: str,
        description: str = "",
        ingredients: list[FallbackIngredient] | None = None,
        required_ingredients: list[str] | None = None,
        cooking_time: int = 20,
        difficulty: str = "Easy",
        servings: int = 2,
        instructions: str = "",
        user_ingredients: list[str] | None = None,
        compatibility: str = "Fallback recipe",
    ) -> None:
        self.id = id
        self.title = title
        self.description = description
        self.ingredients = [] if ingredients is None else ingredients
        self.required_ingredients = [] if required_ingredients is None else required_ingredients
        self.cooking_time = cooking_time
        self.difficulty = difficulty
        self.servings = servings
        self.instructions = instructions
        self.user_ingredients = [] if user_ingredients is None else user_ingredients
        self.compatibility = compatibility

    def __repr__(self) -> str:
        return f"<FallbackRecipe(id={self.id}, title={self.title})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "ingredients": [i._asdict() for i in self.ingredients],
            "requiredIngredients": self.required_ingredients,
            "cookingTime": self.cooking_time,
            "difficulty": self.difficulty,
            "servings": self.servings,
            "instructions": self.instructions,
            "isFallback": True,
            "userIngredients": self.user_ingredients,
            "compatibility": self.compatibility,
        }


class FallbackResult:
    def __init__(
        self,
        *,
        recipes: list[FallbackRecipe],
        message: str,
        suggestions: list[str] | None = None,
    ) -> None:
        self.recipes = recipes
        self.message = message
        self.suggestions = [] if suggestions is None else suggestions

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipes": [r.to_dict() for r in self.recipes],
            "message": self.message,
            "suggestions": self.suggestions,
        }


class SuggestionType(Enum):
    add = "add"
    remove = "remove"
    replace = "replace"
    complement = "complement"


class Priority(Enum):
    high = "high"
    medium = "medium"
    low = "low"


class Suggestion:
    def __init__(
        self,
        *,
        ingredient: str,
        reason: str,
        type: SuggestionType = SuggestionType.add,
        priority: Priority = Priority.medium,
        category: IngredientCategory | None = None,
        alternatives: list[str] | None = None,
    ) -> None:
        self.ingredient = ingredient
        self.reason = reason
        self.type = type
        self.priority = priority
        self.category = category
        self.alternatives = [] if alternatives is None else alternatives

    def __repr__(self) -> str:
        return f"<Suggestion({self.type.value} {self.ingredient}, {self.priority.value})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "ingredient": self.ingredient,
            "reason": self.reason,
            "priority": self.priority.value,
            "category": None if self.category is None else self.category.value,
            "alternatives": self.alternatives,
        }


class IngredientProfile:
    """Which ingredients mention each category. One ingredient may sit in several."""

    def __init__(self, members: dict[IngredientCategory, list[str]] | None = None) -> None:
        members = {} if members is None else members
        self.members = {
            category: list(members.get(category, ()))
            for category in IngredientCategory
            if category is not IngredientCategory.other
        }

    def has(self, category: IngredientCategory) -> bool:
        return bool(self.members.get(category))

    def to_dict(self) -> dict[str, Any]:
        return {category.value: names for category, names in self.members.items()}


class SuggestionResult:
    def __init__(
        self,
        *,
        suggestions: list[Suggestion],
        profile: IngredientProfile,
        overall_score: int,
        message: str,
    ) -> None:
        self.suggestions = suggestions
        self.profile = profile
        self.overall_score = overall_score
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "analysis": self.profile.to_dict(),
            "overallScore": self.overall_score,
            "message": self.message,
        }
