from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from domain.errors import Unauthorized, UpstreamError
from domain.external import ExternalApiClient, LLMRequest, SearchRequest


class FakeLLM:
    api_name = "gemini"

    def __init__(
        self,
        reply: str | Callable[[LLMRequest], str] = "",
        *,
        error: UpstreamError | None = None,
    ) -> None:
        self.reply = reply
        self.error = error
        self.requests: list[LLMRequest] = []

    async def generate(self, request: LLMRequest) -> str:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.reply(request) if callable(self.reply) else self.reply


class FakeSearch:
    api_name = "spoonacular"

    def __init__(
        self,
        results: list[dict[str, Any]] | None = None,
        *,
        error: UpstreamError | None = None,
    ) -> None:
        self.results = [] if results is None else results
        self.error = error
        self.requests: list[SearchRequest] = []

    async def search(self, request: SearchRequest) -> list[dict[str, Any]]:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.results


class FakeAuth:
    def __init__(self, tokens: dict[str, str] | None = None) -> None:
        self.tokens = {"good-token": "user-1"} if tokens is None else tokens

    async def verify(self, token: str | None) -> str:
        if token not in self.tokens:
            raise Unauthorized()
        return self.tokens[token]


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FixedDateTime:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_client(
    llm: FakeLLM | None = None, search: FakeSearch | None = None
) -> ExternalApiClient:
    return ExternalApiClient(
        llm=FakeLLM() if llm is None else llm,
        search=FakeSearch() if search is None else search,
    )


@pytest.fixture
def noon() -> FixedDateTime:
    return FixedDateTime(datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc))


RECIPE_REPLY = """Title: **Garlic Chicken Rice**
Description: A quick weeknight bowl.
Cooking Time: 25 minutes
Difficulty: Easy
Servings: 3
Ingredients:
- 2 chicken thighs
- 1 cup rice
- 3 cloves garlic
- 1 tbsp salt
Instructions:
1. Rinse the rice.
2. Boil the rice for 12 minutes.
3. Season the chicken with salt.
4. Fry the chicken for 6 minutes a side.
5. Fry the garlic for 1 minute.
6. Serve the chicken over the rice.
"""
