import contextlib
import functools
import logging
from typing import Any, Awaitable, Callable

from databases import Database
from rich.logging import RichHandler
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from app import config
from domain.agemini import GeminiClient
from domain.aopenai import OpenAIChatClient
from domain.aspoonacular import SpoonacularClient
from domain.auth import SupabaseAuth
from domain.cache import ResponseCache
from domain.classifier import IngredientClassifier
from domain.commentary import CommentaryService
from domain.compatibility import CompatibilityAnalyzer
from domain.errors import Internal, InvalidRequest, NotFound, PlateError
from domain.external import ExternalApiClient, LLMBackend
from domain.fallback import FallbackRecipes
from domain.generation import RecipeGenerator
from domain.models import (
    CommentaryRequest,
    CommentaryType,
    CompatibilityLevel,
    IngredientRequest,
    Provider,
    QueryRequest,
    RecipeFilters,
    RecipeRequest,
)
from domain.rate_limit import RateLimiter
from domain.repository import (
    DatabaseRateLimitStore,
    InMemoryRateLimitStore,
    RateLimitStore,
)
from domain.services import RequestOrchestrator
from domain.suggestions import SmartSuggestions
from domain.usage import ApiUsageTracker


logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def llm_backend(cfg: config.Config) -> LLMBackend:
    match cfg.llm_backend:
        case config.LLMBackend.gemini:
            return GeminiClient(
                token=cfg.gemini_api_key,
                model=cfg.gemini_model,
                timeout=cfg.upstream_timeout,
            )
        case config.LLMBackend.openai:
            return OpenAIChatClient(
                token=cfg.openai_api_key,
                model=cfg.openai_model,
                timeout=cfg.upstream_timeout,
            )


def build_orchestrator(
    cfg: config.Config,
    *,
    store: RateLimitStore,
    auth: SupabaseAuth,
    client: ExternalApiClient,
) -> RequestOrchestrator:
    search_cache = ResponseCache(ttl=cfg.search_cache_ttl, name="search-cache")
    llm_cache = ResponseCache(ttl=cfg.llm_cache_ttl, name="llm-cache")
    classifier = IngredientClassifier(client=client, cache=llm_cache)
    return RequestOrchestrator(
        auth=auth,
        rate_limiter=RateLimiter(store, max_requests=cfg.max_requests_per_day),
        analyzer=CompatibilityAnalyzer(classifier),
        client=client,
        generator=RecipeGenerator(client),
        commentary=CommentaryService(client, cache=llm_cache),
        search_cache=search_cache,
        llm_cache=llm_cache,
        usage=ApiUsageTracker(),
        fallback=FallbackRecipes(client, classifier=classifier),
        suggestions=SmartSuggestions(client),
    )


def _positive_int(data: dict[str, Any], name: str) -> int | None:
    value = data.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidRequest(f"{name} must be a positive integer")
    return value


def _optional_str(data: dict[str, Any], name: str) -> str | None:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequest(f"{name} must be a string")
    return value.strip() or None


def parse_ingredients(value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(i, str) for i in value):
        raise InvalidRequest("ingredients must be a list of strings")
    return [i.strip() for i in value if i.strip()]


def parse_filters(value: Any) -> RecipeFilters:
    if value is None:
        return RecipeFilters()
    if not isinstance(value, dict):
        raise InvalidRequest("filters must be an object")
    return RecipeFilters(
        cuisine=_optional_str(value, "cuisine"),
        diet=_optional_str(value, "diet"),
        max_time=_positive_int(value, "maxTime"),
        difficulty=_optional_str(value, "difficulty"),
        servings=_positive_int(value, "servings"),
        meal_type=_optional_str(value, "mealType"),
    )


def parse_recipe_request(body: dict[str, Any]) -> RecipeRequest:
    try:
        provider = Provider(body.get("provider", Provider.search.value))
    except ValueError:
        raise InvalidRequest("provider must be 'search' or 'llm'")
    filters = parse_filters(body.get("filters"))

    if body.get("ingredients") is not None:
        ingredients = parse_ingredients(body["ingredients"])
        if not ingredients:
            raise InvalidRequest("Please provide at least one ingredient")
        return IngredientRequest(ingredients, filters=filters, provider=provider)

    query = body.get("query")
    if not isinstance(query, str) or not query.strip():
        raise InvalidRequest("Either ingredients or query must be provided")
    return QueryRequest(query.strip(), filters=filters, provider=provider)


def parse_commentary_request(body: dict[str, Any]) -> CommentaryRequest:
    title = body.get("recipeTitle")
    instructions = body.get("instructions")
    if not isinstance(title, str) or not isinstance(instructions, str):
        raise InvalidRequest("Recipe title, ingredients, and instructions are required")
    try:
        type = CommentaryType(body.get("type", CommentaryType.commentary.value))
    except ValueError:
        raise InvalidRequest("type must be 'commentary' or 'twist'")
    return CommentaryRequest(
        recipe_title=title,
        ingredients=parse_ingredients(body.get("ingredients")),
        instructions=instructions,
        type=type,
    )


def parse_compatibility_level(value: Any) -> CompatibilityLevel | None:
    if value is None:
        return None
    try:
        return CompatibilityLevel(value)
    except ValueError:
        raise InvalidRequest("compatibilityLevel is not a known level")


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise InvalidRequest("Request body must be JSON")
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return body


def _token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def error_response(error: PlateError) -> JSONResponse:
    return JSONResponse(error.to_dict(), status_code=error.status_code)


def aJSONResponse(route: Callable[[Request], Awaitable[Any]]):
    @functools.wraps(route)
    async def wrapper(request: Request) -> JSONResponse:
        try:
            data = await route(request)
        except PlateError as e:
            if e.status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.url.path, e)
            return error_response(e)
        except Exception:
            logger.exception("Unexpected error on %s %s", request.method, request.url.path)
            return error_response(Internal())
        return JSONResponse(data)

    return wrapper


def _orchestrator(request: Request) -> RequestOrchestrator:
    return request.app.state.orchestrator


@aJSONResponse
async def recipes(request: Request) -> dict[str, Any]:
    body = await _json_body(request)
    recipe_request = parse_recipe_request(body)
    response = await _orchestrator(request).handle(_token(request), recipe_request)
    return response.to_dict()


@aJSONResponse
async def compatibility(request: Request) -> dict[str, Any]:
    body = await _json_body(request)
    ingredients = parse_ingredients(body.get("ingredients"))
    analysis = await _orchestrator(request).analyze(_token(request), ingredients)
    return analysis.to_dict()


@aJSONResponse
async def rate_limit(request: Request) -> dict[str, Any]:
    status = await _orchestrator(request).rate_limit_status(_token(request))
    return status.to_dict()


@aJSONResponse
async def commentary(request: Request) -> dict[str, str]:
    body = await _json_body(request)
    commentary_request = parse_commentary_request(body)
    return await _orchestrator(request).commentary(_token(request), commentary_request)


@aJSONResponse
async def fallback_recipes(request: Request) -> dict[str, Any]:
    body = await _json_body(request)
    reason = body.get("compatibilityReason") or ""
    if not isinstance(reason, str):
        raise InvalidRequest("compatibilityReason must be a string")
    result = await _orchestrator(request).fallback_recipes(
        _token(request), parse_ingredients(body.get("ingredients")), reason
    )
    return result.to_dict()


@aJSONResponse
async def suggestions(request: Request) -> dict[str, Any]:
    body = await _json_body(request)
    result = await _orchestrator(request).smart_suggestions(
        _token(request),
        parse_ingredients(body.get("ingredients")),
        parse_compatibility_level(body.get("compatibilityLevel")),
    )
    return result.to_dict()


@aJSONResponse
async def health(request: Request) -> dict[str, str]:
    return {"status": "ok"}


async def http_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, HTTPException)
    if exc.status_code == 404:
        return error_response(NotFound(f"No route for {request.url.path}"))
    return JSONResponse(
        {
            "error": exc.detail,
            "status": exc.status_code,
            "kind": "http_error",
            "hint": "fix-input",
        },
        status_code=exc.status_code,
    )


def create_app(
    cfg: config.Config | None = None,
    *,
    orchestrator: RequestOrchestrator | None = None,
) -> Starlette:
    cfg = config.Config() if cfg is None else cfg

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        configure_logging(cfg.log_level)
        if orchestrator is not None:
            yield
            return

        db: Database | None = None
        store: RateLimitStore
        if cfg.db_url:
            db = Database(cfg.db_url)
            await db.connect()
            store = DatabaseRateLimitStore(db)
            await store.create_table()
        else:
            logger.warning("DB_URL is empty, request counts are kept in memory")
            store = InMemoryRateLimitStore()
        auth = SupabaseAuth(
            url=cfg.supabase_url,
            anon_key=cfg.supabase_anon_key,
            timeout=cfg.upstream_timeout,
        )
        client = ExternalApiClient(
            llm=llm_backend(cfg),
            search=SpoonacularClient(
                token=cfg.spoonacular_api_key, timeout=cfg.upstream_timeout
            ),
        )
        app.state.orchestrator = build_orchestrator(
            cfg, store=store, auth=auth, client=client
        )
        logger.info("PLATE started: env=%s llm=%s", cfg.env.value, cfg.llm_backend.value)
        try:
            yield
        finally:
            await client.aclose()
            await auth.aclose()
            if db is not None:
                await db.disconnect()

    app = Starlette(
        debug=True if cfg.env == config.Env.local else False,
        routes=[
            Route("/recipes", recipes, methods=["POST"]),
            Route("/compatibility", compatibility, methods=["POST"]),
            Route("/rate-limit", rate_limit, methods=["GET"]),
            Route("/commentary", commentary, methods=["POST"]),
            Route("/fallback-recipes", fallback_recipes, methods=["POST"]),
            Route("/suggestions", suggestions, methods=["POST"]),
            Route("/health", health, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
            ),
        ],
        exception_handlers={HTTPException: http_error},
        lifespan=lifespan,
    )
    if orchestrator is not None:
        app.state.orchestrator = orchestrator
    return app


app = create_app()
