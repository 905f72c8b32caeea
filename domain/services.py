"""The recipe request pipeline.

authenticate -> quota check -> compatibility -> cache -> external call ->
cache -> count the request. Quota is only consumed by a request that reached
a paid API and finished; cache hits and refusals are free.
"""
import logging
from typing import Any

from domain.aspoonacular import recipes_from_search_results
from domain.auth import AuthVerifier
from domain.cache import ResponseCache
from domain.commentary import CommentaryService
from domain.compatibility import CompatibilityAnalyzer
from domain.errors import UpstreamRateLimited
from domain.external import ExternalApiClient, SearchRequest
from domain.fallback import FallbackRecipes
from domain.generation import RecipeGenerator
from domain.models import (
    CommentaryRequest,
    CompatibilityAnalysis,
    CompatibilityLevel,
    FallbackResult,
    IngredientRequest,
    Provider,
    RateLimitStatus,
    Recipe,
    RecipeRequest,
    RecipeResponse,
    SuggestionResult,
)
from domain.rate_limit import RateLimiter, quota_exceeded
from domain.suggestions import SmartSuggestions
from domain.usage import ApiUsageTracker


logger = logging.getLogger(__name__)


CACHE_NAMESPACES = {Provider.search: "search", Provider.llm: "generate"}


class RequestOrchestrator:
    def __init__(
        self,
        *,
        auth: AuthVerifier,
        rate_limiter: RateLimiter,
        analyzer: CompatibilityAnalyzer,
        client: ExternalApiClient,
        generator: RecipeGenerator,
        commentary: CommentaryService,
        search_cache: ResponseCache,
        llm_cache: ResponseCache,
        usage: ApiUsageTracker | None = None,
        fallback: FallbackRecipes | None = None,
        suggestions: SmartSuggestions | None = None,
    ) -> None:
        self.auth = auth
        self.rate_limiter = rate_limiter
        self.analyzer = analyzer
        self.client = client
        self.generator = generator
        self.commentary_service = commentary
        self.caches = {Provider.search: search_cache, Provider.llm: llm_cache}
        self.usage = ApiUsageTracker() if usage is None else usage
        self.fallback = (
            FallbackRecipes(client, classifier=analyzer.classifier)
            if fallback is None
            else fallback
        )
        self.suggestions = SmartSuggestions(client) if suggestions is None else suggestions

    def _pace(self, provider: Provider, user_id: str) -> None:
        api = self.client.api_name(provider)
        if not self.usage.track(api, user_id):
            raise UpstreamRateLimited(provider=api)

    async def _fetch(self, request: RecipeRequest) -> list[Recipe]:
        match request.provider:
            case Provider.search:
                results = await self.client.search(
                    SearchRequest.from_recipe_request(request)
                )
                return recipes_from_search_results(results)
            case Provider.llm:
                return await self.generator.generate(request)

    async def handle(self, token: str | None, request: RecipeRequest) -> RecipeResponse:
        user_id = await self.auth.verify(token)

        status = await self.rate_limiter.status(user_id)
        if status.remaining == 0:
            raise quota_exceeded(status)

        analysis: CompatibilityAnalysis | None = None
        if isinstance(request, IngredientRequest):
            analysis = await self.analyzer.analyze(request.ingredients)
            if analysis.blocks_recipes:
                logger.info(
                    "Request for %s stopped at compatibility: %s",
                    user_id,
                    analysis.level.value,
                )
                return RecipeResponse(analysis=analysis, rate_limit=status)

        cache = self.caches[request.provider]
        key = cache.compute_key(
            request.cache_params(), namespace=CACHE_NAMESPACES[request.provider]
        )
        cached: list[dict[str, Any]] | None = cache.get(key)
        if cached is not None:
            logger.info("Cache hit for %s (%s)", user_id, request.provider.value)
            return RecipeResponse(
                recipes=[Recipe.from_dict(r) for r in cached],
                analysis=analysis,
                cached=True,
                rate_limit=status,
            )

        self._pace(request.provider, user_id)
        recipes = await self._fetch(request)
        cache.put(key, [r.to_dict() for r in recipes])

        status = await self.rate_limiter.acquire(user_id)
        logger.info(
            "Served %s recipes to %s: %s/%s requests used today",
            len(recipes),
            user_id,
            status.current_count,
            status.max_requests,
        )
        return RecipeResponse(recipes=recipes, analysis=analysis, rate_limit=status)

    async def analyze(self, token: str | None, ingredients: list[str]) -> CompatibilityAnalysis:
        await self.auth.verify(token)
        return await self.analyzer.analyze(ingredients)

    async def rate_limit_status(self, token: str | None) -> RateLimitStatus:
        user_id = await self.auth.verify(token)
        return await self.rate_limiter.status(user_id)

    async def commentary(self, token: str | None, request: CommentaryRequest) -> dict[str, str]:
        user_id = await self.auth.verify(token)
        self._pace(Provider.llm, user_id)
        return await self.commentary_service.generate(request)

    def _llm_allowed(self, user_id: str) -> bool:
        if self.usage.track(self.client.api_name(Provider.llm), user_id):
            return True
        logger.warning("LLM pacing refused %s, answering from rules", user_id)
        return False

    async def fallback_recipes(
        self, token: str | None, ingredients: list[str], reason: str = ""
    ) -> FallbackResult:
        user_id = await self.auth.verify(token)
        return await self.fallback.suggest(
            ingredients, reason, use_llm=self._llm_allowed(user_id)
        )

    async def smart_suggestions(
        self,
        token: str | None,
        ingredients: list[str],
        level: CompatibilityLevel | None = None,
    ) -> SuggestionResult:
        user_id = await self.auth.verify(token)
        return await self.suggestions.suggest(
            ingredients, level, use_llm=self._llm_allowed(user_id)
        )
