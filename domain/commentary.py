import logging

from domain.cache import ResponseCache
from domain.errors import InvalidRequest, MalformedUpstreamResponse
from domain.external import ExternalApiClient, LLMRequest
from domain.models import CommentaryRequest, CommentaryType, Provider
from domain.prompts import COMMENTARY_PROMPT, TWIST_PROMPT


logger = logging.getLogger(__name__)


MIN_TEXT_LENGTH = 10

PROMPTS = {
    CommentaryType.commentary: COMMENTARY_PROMPT,
    CommentaryType.twist: TWIST_PROMPT,
}
TEMPERATURES = {
    CommentaryType.commentary: 0.8,
    CommentaryType.twist: 0.7,
}
RESULT_FIELDS = {
    CommentaryType.commentary: "commentary",
    CommentaryType.twist: "twists",
}


def validate(request: CommentaryRequest) -> None:
    if (
        not request.recipe_title.strip()
        or not request.ingredients
        or not request.instructions.strip()
    ):
        raise InvalidRequest("Recipe title, ingredients, and instructions are required")
    if len(request.instructions.strip()) < MIN_TEXT_LENGTH:
        raise InvalidRequest("Instructions are too short to comment on")


class CommentaryService:
    """Chef commentary or creative twists for a recipe the user already has."""

    def __init__(
        self,
        client: ExternalApiClient,
        *,
        cache: ResponseCache | None = None,
    ) -> None:
        self.client = client
        self.cache = cache

    async def generate(self, request: CommentaryRequest) -> dict[str, str]:
        validate(request)

        key = None
        if self.cache is not None:
            key = self.cache.compute_key(request.cache_params(), namespace="commentary")
            cached = self.cache.get(key)
            if cached is not None:
                logger.info("Commentary cache hit for %r", request.recipe_title)
                return cached

        prompt = PROMPTS[request.type].format(
            title=request.recipe_title.strip(),
            ingredients=", ".join(request.ingredients),
            instructions=request.instructions.strip(),
        )
        text = await self.client.complete(
            LLMRequest(
                prompt,
                temperature=TEMPERATURES[request.type],
                top_k=40,
                top_p=0.95,
                max_output_tokens=1024,
            )
        )
        text = text.strip()
        if len(text) < MIN_TEXT_LENGTH:
            raise MalformedUpstreamResponse(
                "AI response too short", provider=self.client.api_name(Provider.llm)
            )

        result = {RESULT_FIELDS[request.type]: text}
        if self.cache is not None and key is not None:
            self.cache.put(key, result)
        return result
