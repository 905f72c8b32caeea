"""Typed advice on what to add to an ingredient list.

Rule-based suggestions are always produced. LLM suggestions are merged in
front of them when available, then everything is re-ranked so that filling
a missing core category beats seasoning, which beats extras.
"""
import logging
from typing import Any, Sequence

from domain.classifier import RULES, normalize
from domain.errors import InvalidRequest, MalformedUpstreamResponse, UpstreamError
from domain.external import ExternalApiClient, LLMRequest, json_reply
from domain.models import (
    CompatibilityLevel,
    IngredientCategory as C,
    IngredientProfile,
    Priority,
    Provider,
    Suggestion,
    SuggestionResult,
    SuggestionType,
)
from domain.prompts import SMART_SUGGESTIONS_PROMPT


logger = logging.getLogger(__name__)


MAX_SUGGESTIONS = 5
BASE_SCORE = 50
CATEGORY_WEIGHT = 15
HIGH_PRIORITY_PENALTY = 10
BALANCE_BONUS = 10
COMPLETENESS = (C.protein, C.vegetable, C.grain, C.spice, C.oil)
CORE = (C.protein, C.vegetable, C.grain)

LABELS = {
    C.protein: "Proteins",
    C.vegetable: "Vegetables",
    C.fruit: "Fruits",
    C.grain: "Grains",
    C.dairy: "Dairy",
    C.spice: "Spices",
    C.oil: "Oils",
}


def profile_ingredients(ingredients: Sequence[str]) -> IngredientProfile:
    members: dict[C, list[str]] = {}
    for ingredient in ingredients:
        text = normalize(ingredient)
        for category, pattern in RULES:
            if pattern.search(text):
                members.setdefault(category, []).append(ingredient)
    return IngredientProfile(members)


def rule_suggestions(profile: IngredientProfile) -> list[Suggestion]:
    suggestions = []
    if not profile.has(C.protein):
        suggestions.append(
            Suggestion(
                ingredient="chicken",
                reason="Adds protein for a complete, satisfying meal",
                priority=Priority.high,
                category=C.protein,
                alternatives=["eggs", "tofu", "lentils", "canned tuna"],
            )
        )
    if not profile.has(C.vegetable):
        suggestions.append(
            Suggestion(
                ingredient="onion",
                reason="Provides flavor base and nutritional balance",
                priority=Priority.high,
                category=C.vegetable,
                alternatives=["garlic", "tomato", "carrot", "spinach"],
            )
        )
    if not profile.has(C.grain) and profile.has(C.protein):
        suggestions.append(
            Suggestion(
                ingredient="rice",
                reason="Creates a complete meal with your protein",
                priority=Priority.high,
                category=C.grain,
                alternatives=["pasta", "bread", "potatoes"],
            )
        )
    if not profile.has(C.spice) and profile.has(C.vegetable):
        suggestions.append(
            Suggestion(
                ingredient="salt and pepper",
                reason="Essential seasonings to enhance vegetable flavors",
                priority=Priority.high,
                category=C.spice,
            )
        )
    if not profile.has(C.oil) and (profile.has(C.protein) or profile.has(C.vegetable)):
        suggestions.append(
            Suggestion(
                ingredient="vegetable oil",
                reason="Needed for cooking proteins and vegetables",
                priority=Priority.medium,
                category=C.oil,
                alternatives=["olive oil", "butter"],
            )
        )
    if profile.has(C.fruit) and not profile.has(C.dairy):
        suggestions.append(
            Suggestion(
                ingredient="milk",
                reason="Creates a delicious smoothie with your fruits",
                priority=Priority.medium,
                category=C.dairy,
                alternatives=["yogurt", "juice"],
            )
        )
    return suggestions


def rank(suggestion: Suggestion, profile: IngredientProfile) -> int:
    category = suggestion.category
    if category in CORE and not profile.has(category):
        return 3
    if category in (C.spice, C.oil):
        return 2
    if category in (C.dairy, C.fruit):
        return 1
    return 0


def prioritize(suggestions: list[Suggestion], profile: IngredientProfile) -> list[Suggestion]:
    # sorted is stable, so LLM suggestions stay ahead of rules within a rank
    return sorted(suggestions, key=lambda s: rank(s, profile), reverse=True)


def overall_score(profile: IngredientProfile, suggestions: Sequence[Suggestion]) -> int:
    score = BASE_SCORE + CATEGORY_WEIGHT * sum(profile.has(c) for c in COMPLETENESS)
    score -= HIGH_PRIORITY_PENALTY * sum(s.priority is Priority.high for s in suggestions)
    if profile.has(C.protein) and (profile.has(C.vegetable) or profile.has(C.grain)):
        score += BALANCE_BONUS
    return max(0, min(100, score))


def overall_message(score: int, level: CompatibilityLevel | None) -> str:
    if score >= 80:
        return "Excellent combination! You have a well-balanced set of ingredients."
    if score >= 60:
        return "Good foundation! A few additions could make this even better."
    if level is CompatibilityLevel.incompatible:
        return (
            "These ingredients don't work well together. "
            "Here are some suggestions to improve compatibility:"
        )
    return "Your ingredient combination could be enhanced. Here are some practical suggestions:"


def _enum(cls, value: Any, default: Any) -> Any:
    try:
        return cls(value)
    except ValueError:
        return default


def suggestion_from_reply(item: Any) -> Suggestion | None:
    if not isinstance(item, dict):
        return None
    ingredient = item.get("ingredient")
    if not isinstance(ingredient, str) or not ingredient.strip():
        return None
    alternatives = item.get("alternatives")
    if not isinstance(alternatives, list):
        alternatives = []
    return Suggestion(
        ingredient=ingredient.strip(),
        reason=str(item.get("reason") or ""),
        type=_enum(SuggestionType, item.get("type"), SuggestionType.add),
        priority=_enum(Priority, item.get("priority"), Priority.medium),
        category=_enum(C, item.get("category"), None),
        alternatives=[a for a in alternatives if isinstance(a, str)],
    )


class SmartSuggestions:
    def __init__(self, client: ExternalApiClient) -> None:
        self.client = client

    async def _ask_llm(
        self,
        ingredients: list[str],
        profile: IngredientProfile,
        level: CompatibilityLevel | None,
    ) -> list[Suggestion]:
        provider = self.client.api_name(Provider.llm)
        analysis = "\n".join(
            f"- {label}: {', '.join(profile.members[category]) or 'none'}"
            for category, label in LABELS.items()
        )
        reply = await self.client.complete(
            LLMRequest(
                SMART_SUGGESTIONS_PROMPT.format(
                    ingredients=", ".join(ingredients),
                    analysis=analysis,
                    level="unknown" if level is None else level.value,
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
                "Suggestion reply is not a list", provider=provider
            )
        return [s for s in map(suggestion_from_reply, data) if s is not None]

    async def suggest(
        self,
        ingredients: Sequence[str],
        level: CompatibilityLevel | None = None,
        *,
        use_llm: bool = True,
    ) -> SuggestionResult:
        user_ingredients = [i.strip() for i in ingredients if i.strip()]
        if not user_ingredients:
            raise InvalidRequest("Please provide at least one ingredient")

        profile = profile_ingredients(user_ingredients)
        from_llm: list[Suggestion] = []
        if use_llm:
            try:
                from_llm = await self._ask_llm(user_ingredients, profile, level)
            except UpstreamError as e:
                logger.warning("AI suggestion generation failed, using rules: %s", e)

        ranked = prioritize(from_llm + rule_suggestions(profile), profile)
        score = overall_score(profile, ranked)
        logger.info(
            "Smart suggestions: %s from AI, %s total, score=%s",
            len(from_llm),
            len(ranked),
            score,
        )
        return SuggestionResult(
            suggestions=ranked[:MAX_SUGGESTIONS],
            profile=profile,
            overall_score=score,
            message=overall_message(score, level),
        )
