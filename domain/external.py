"""Uniform access to the paid third-party APIs.

Every failure leaves here as one of the `UpstreamError` subclasses in
`domain.errors`. Nothing is retried: callers decide whether to fall back.
"""
import json
import logging
import re
import time
from typing import Any, Protocol, Self

from domain.errors import MalformedUpstreamResponse, UpstreamError
from domain.models import Provider, RecipeRequest


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 15

CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def json_reply(text: str, *, provider: str) -> Any:
    """Decodes an LLM reply that was asked to be JSON, tolerating a code fence."""
    try:
        return json.loads(CODE_FENCE.sub("", text.strip()))
    except ValueError as e:
        raise MalformedUpstreamResponse(
            "LLM reply is not valid JSON", provider=provider
        ) from e


class LLMRequest:
    def __init__(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        top_k: int = 40,
        top_p: float = 0.95,
        max_output_tokens: int = 1024,
    ) -> None:
        self.prompt = prompt
        self.temperature = temperature
        self.top_k = top_k
        self.top_p = top_p
        self.max_output_tokens = max_output_tokens

    def generation_config(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


class SearchRequest:
    def __init__(
        self,
        *,
        include_ingredients: list[str] | None = None,
        query: str | None = None,
        cuisine: str | None = None,
        diet: str | None = None,
        max_ready_time: int | None = None,
        servings: int | None = None,
        type: str | None = None,
        number: int = 10,
    ) -> None:
        self.include_ingredients = [] if include_ingredients is None else include_ingredients
        self.query = query
        self.cuisine = cuisine
        self.diet = diet
        self.max_ready_time = max_ready_time
        self.servings = servings
        self.type = type
        self.number = number

    @classmethod
    def from_recipe_request(cls, request: RecipeRequest) -> Self:
        filters = request.filters
        return cls(
            include_ingredients=request.ingredients,
            query=request.query,
            cuisine=filters.cuisine,
            diet=filters.diet,
            max_ready_time=filters.max_time,
            servings=filters.servings,
            type=filters.meal_type,
        )

    def to_params(self) -> dict[str, str]:
        params = {
            "number": str(self.number),
            "addRecipeInformation": "true",
            "fillIngredients": "true",
        }
        if self.include_ingredients:
            params["includeIngredients"] = ",".join(self.include_ingredients)
        if self.query:
            params["query"] = self.query
        if self.cuisine:
            params["cuisine"] = self.cuisine
        if self.diet:
            params["diet"] = self.diet
        if self.max_ready_time:
            params["maxReadyTime"] = str(self.max_ready_time)
        if self.servings:
            params["servings"] = str(self.servings)
        if self.type:
            params["type"] = self.type
        return params


class LLMBackend(Protocol):
    api_name: str

    async def generate(self, request: LLMRequest) -> str:
        ...


class SearchBackend(Protocol):
    api_name: str

    async def search(self, request: SearchRequest) -> list[dict[str, Any]]:
        ...


class ExternalApiClient:
    def __init__(self, *, llm: LLMBackend, search: SearchBackend) -> None:
        self.llm = llm
        self.search_backend = search

    def api_name(self, provider: Provider) -> str:
        match provider:
            case Provider.llm:
                return self.llm.api_name
            case Provider.search:
                return self.search_backend.api_name

    async def call(self, provider: Provider, request: LLMRequest | SearchRequest) -> Any:
        api = self.api_name(provider)
        start = time.perf_counter()
        try:
            match provider, request:
                case Provider.llm, LLMRequest():
                    result = await self.llm.generate(request)
                case Provider.search, SearchRequest():
                    result = await self.search_backend.search(request)
                case _:
                    raise TypeError(
                        f"{type(request).__name__} cannot be sent to {provider.value}"
                    )
        except UpstreamError as e:
            logger.error(
                "API request failed: api=%s kind=%s duration=%.3fs",
                api,
                e.kind,
                time.perf_counter() - start,
            )
            raise
        logger.info(
            "API request successful: api=%s duration=%.3fs",
            api,
            time.perf_counter() - start,
        )
        return result

    async def complete(self, request: LLMRequest) -> str:
        return await self.call(Provider.llm, request)

    async def search(self, request: SearchRequest) -> list[dict[str, Any]]:
        return await self.call(Provider.search, request)

    async def aclose(self) -> None:
        for backend in (self.llm, self.search_backend):
            close = getattr(backend, "aclose", None)
            if close is not None:
                await close()
