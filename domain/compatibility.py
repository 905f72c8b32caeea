"""Ingredient compatibility scoring.

Category coverage stands in for "can two distinct dishes be made from this".
The weights and thresholds are calibrated constants. The incompatibility
check runs before the score tiers and overrides them.
"""
import logging
from typing import Sequence

from domain.classifier import IngredientClassifier
from domain.models import (
    CategoryBuckets,
    CompatibilityAnalysis,
    CompatibilityLevel,
    IngredientCategory as C,
)


logger = logging.getLogger(__name__)


MIN_INGREDIENTS = 3

CATEGORY_WEIGHT = 15
BONUSES: dict[C, int] = {
    C.protein: 10,
    C.vegetable: 10,
    C.grain: 10,
    C.spice: 5,
    C.oil: 5,
}
SCORED_CATEGORIES = (C.protein, C.vegetable, C.fruit, C.grain, C.dairy, C.spice, C.oil)
INCOMPATIBLE_PENALTY = 30

EXCELLENT = 80
GOOD = 60
LIMITED = 40

STARTER_SUGGESTIONS = ("Add a protein source", "Add vegetables", "Add grains or carbs")

INCOMPATIBLE_MESSAGE = (
    "These ingredients don't work well together. "
    "Maybe ask a friend or neighbor for these items:"
)

MESSAGES = {
    CompatibilityLevel.excellent: "🎉 Perfect! I can create multiple recipe combinations with these ingredients:",
    CompatibilityLevel.good: "👍 Great ingredient selection! I can create two delicious recipes with these:",
}
LIMITED_MESSAGE = "Good start! Adding a few more ingredients will help me create two different recipes:"
TOO_FEW_MESSAGE = "Add more ingredients for better recipe variety:"

MISSING_SUGGESTIONS = (
    (C.protein, "Add a protein (chicken, eggs, tofu, lentils)"),
    (C.vegetable, "Add vegetables (onion, garlic, tomato, spinach)"),
    (C.grain, "Add grains (rice, pasta, bread)"),
    (C.spice, "Add seasonings (salt, pepper, oil)"),
)


def insufficient_message(count: int) -> str:
    if count == 0:
        return "Add at least 3 ingredients to get started! 🥘"
    missing = MIN_INGREDIENTS - count
    plural = "s" if missing > 1 else ""
    return f"Add {missing} more ingredient{plural} for better recipe variety! 💡"


def score(buckets: CategoryBuckets) -> int:
    present = {c for c in SCORED_CATEGORIES if buckets.get(c)}
    return CATEGORY_WEIGHT * len(present) + sum(
        bonus for category, bonus in BONUSES.items() if category in present
    )


def is_incompatible(buckets: CategoryBuckets) -> bool:
    has = {c: bool(buckets.get(c)) for c in C}
    if (
        has[C.fruit]
        and (has[C.protein] or has[C.vegetable])
        and not (has[C.grain] or has[C.dairy] or has[C.spice])
    ):
        return True
    return (
        has[C.fruit]
        and has[C.protein]
        and not has[C.vegetable]
        and not has[C.grain]
    )


def incompatible_suggestions(buckets: CategoryBuckets) -> tuple[str, ...]:
    if buckets.get(C.fruit) and buckets.get(C.protein):
        return (
            "Try separating sweet and savory ingredients",
            "Add grains (rice, bread, pasta) to balance flavors",
            "Include dairy (milk, cheese, yogurt) for creaminess",
        )
    return (
        "Add more ingredient variety",
        "Include basic seasonings (salt, pepper, oil)",
        "Add vegetables for nutritional balance",
    )


def limited_suggestions(buckets: CategoryBuckets) -> tuple[str, ...]:
    missing = [text for category, text in MISSING_SUGGESTIONS if not buckets.get(category)]
    return tuple(missing[:3])


class CompatibilityAnalyzer:
    def __init__(self, classifier: IngredientClassifier) -> None:
        self.classifier = classifier

    async def analyze(self, ingredients: Sequence[str]) -> CompatibilityAnalysis:
        if len(ingredients) < MIN_INGREDIENTS:
            return CompatibilityAnalysis(
                level=CompatibilityLevel.insufficient,
                message=insufficient_message(len(ingredients)),
                suggestions=STARTER_SUGGESTIONS,
                score=0,
            )

        classified = await self.classifier.classify_many(ingredients)
        grouped: dict[C, set[str]] = {c: set() for c in C}
        for item in classified:
            grouped[item.category].add(item.raw)
        buckets: CategoryBuckets = {c: frozenset(v) for c, v in grouped.items()}

        total = score(buckets)

        if is_incompatible(buckets):
            analysis = CompatibilityAnalysis(
                level=CompatibilityLevel.incompatible,
                message=INCOMPATIBLE_MESSAGE,
                suggestions=incompatible_suggestions(buckets),
                score=max(0, total - INCOMPATIBLE_PENALTY),
                category_buckets=buckets,
            )
        elif total >= EXCELLENT:
            analysis = CompatibilityAnalysis(
                level=CompatibilityLevel.excellent,
                message=MESSAGES[CompatibilityLevel.excellent],
                score=total,
                category_buckets=buckets,
            )
        elif total >= GOOD:
            analysis = CompatibilityAnalysis(
                level=CompatibilityLevel.good,
                message=MESSAGES[CompatibilityLevel.good],
                score=total,
                category_buckets=buckets,
            )
        else:
            analysis = CompatibilityAnalysis(
                level=CompatibilityLevel.limited,
                message=LIMITED_MESSAGE if total >= LIMITED else TOO_FEW_MESSAGE,
                suggestions=limited_suggestions(buckets),
                score=total,
                category_buckets=buckets,
            )

        logger.info(
            "Compatibility analysis completed: level=%s score=%s",
            analysis.level.value,
            analysis.score,
        )
        return analysis
