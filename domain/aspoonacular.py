import logging
from typing import Any

import bs4
import httpx

from domain.errors import (
    MalformedUpstreamResponse,
    UpstreamTransportError,
    UpstreamUnconfigured,
    error_for_status,
)
from domain.external import DEFAULT_TIMEOUT, SearchRequest
from domain.models import Recipe, RecipeIngredient, RecipeSource


logger = logging.getLogger(__name__)


BASE_URL = "https://api.spoonacular.com/"


class SpoonacularClient:
    api_name = "spoonacular"

    def __init__(
        self,
        *,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.token = token
        self._client = (
            httpx.AsyncClient(
                base_url=BASE_URL,
                headers={"User-Agent": "PLATE-App/1.0"},
                timeout=timeout,
            )
            if client is None
            else client
        )

    async def search(self, request: SearchRequest) -> list[dict[str, Any]]:
        if not self.token:
            raise UpstreamUnconfigured(
                "Spoonacular API key not configured", provider=self.api_name
            )

        params = request.to_params()
        logger.info("Making Spoonacular API request: %s", params)
        try:
            resp = await self._client.get(
                "recipes/complexSearch",
                params=params,
                headers={"x-api-key": self.token},
            )
        except httpx.HTTPError as e:
            raise UpstreamTransportError(
                f"Spoonacular request failed: {type(e).__name__}",
                provider=self.api_name,
            ) from e

        if not resp.is_success:
            logger.error("Spoonacular API error: %s", resp.status_code)
            raise error_for_status(resp.status_code, provider=self.api_name)

        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedUpstreamResponse(
                "Spoonacular returned a non-JSON body", provider=self.api_name
            ) from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise MalformedUpstreamResponse(
                "Invalid response format from Spoonacular API",
                provider=self.api_name,
            )
        return results

    async def aclose(self) -> None:
        await self._client.aclose()


def strip_html(text: str) -> str:
    return bs4.BeautifulSoup(text, features="html.parser").get_text()


def _minutes(value: Any) -> int:
    return value if isinstance(value, int) and value > 0 else 0


def difficulty_for(ready_in: Any) -> str:
    if not isinstance(ready_in, (int, float)) or ready_in <= 0:
        return "Medium"
    if ready_in <= 30:
        return "Easy"
    if ready_in <= 60:
        return "Medium"
    return "Hard"


def rating_for(score: Any) -> float:
    if not isinstance(score, (int, float)):
        return 4.0
    return round(min(5.0, max(0.0, score / 20)), 2)


def recipe_from_search_result(raw: dict[str, Any]) -> Recipe:
    if raw.get("id") is None:
        raise MalformedUpstreamResponse(
            "Search result without an id", provider=SpoonacularClient.api_name
        )
    instructions = raw.get("analyzedInstructions") or []
    first = instructions[0] if instructions and isinstance(instructions[0], dict) else {}
    steps = first.get("steps") or []
    cuisines = raw.get("cuisines") or []
    return Recipe(
        id=f"spoonacular-{raw.get('id')}",
        title=raw.get("title") or "Untitled Recipe",
        description=strip_html(raw.get("summary") or "").strip(),
        prep_time=_minutes(raw.get("preparationMinutes")),
        cook_time=_minutes(raw.get("cookingMinutes")),
        servings=raw.get("servings") or 4,
        cuisine=cuisines[0] if cuisines else "International",
        difficulty=difficulty_for(raw.get("readyInMinutes")),
        source=RecipeSource.search,
        instructions="\n".join(
            s["step"] for s in steps if isinstance(s, dict) and s.get("step")
        ),
        ingredients=[
            RecipeIngredient(i.get("name", ""), i.get("amount"), i.get("unit"))
            for i in raw.get("extendedIngredients") or []
        ],
        rating=rating_for(raw.get("spoonacularScore")),
    )


def recipes_from_search_results(results: list[dict[str, Any]]) -> list[Recipe]:
    recipes = []
    for raw in results:
        try:
            recipes.append(recipe_from_search_result(raw))
        except MalformedUpstreamResponse as e:
            logger.warning("Skipping search result: %s", e)
    return recipes
