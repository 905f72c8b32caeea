from typing import Any

import httpx

from domain.errors import (
    MalformedUpstreamResponse,
    UpstreamTransportError,
    UpstreamUnconfigured,
    error_for_status,
)
from domain.external import DEFAULT_TIMEOUT, LLMRequest


BASE_URL = "https://generativelanguage.googleapis.com/v1beta/"
DEFAULT_MODEL = "gemini-1.5-flash"


def candidate_text(data: Any) -> str:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedUpstreamResponse(
            "No candidate text in Gemini response", provider="gemini"
        ) from e
    if not isinstance(text, str):
        raise MalformedUpstreamResponse(
            "No candidate text in Gemini response", provider="gemini"
        )
    return text


class GeminiClient:
    api_name = "gemini"

    def __init__(
        self,
        *,
        token: str | None = None,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.token = token
        self.model = model
        # The key travels in a header so it never shows up in a logged URL.
        self._client = (
            httpx.AsyncClient(
                base_url=BASE_URL,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": "PLATE-App/1.0",
                },
                timeout=timeout,
            )
            if client is None
            else client
        )

    async def generate(self, request: LLMRequest) -> str:
        if not self.token:
            raise UpstreamUnconfigured(
                "Gemini API key not configured", provider=self.api_name
            )

        try:
            resp = await self._client.post(
                f"models/{self.model}:generateContent",
                headers={"x-goog-api-key": self.token},
                json={
                    "contents": [{"parts": [{"text": request.prompt}]}],
                    "generationConfig": request.generation_config(),
                },
            )
        except httpx.HTTPError as e:
            raise UpstreamTransportError(
                f"Gemini request failed: {type(e).__name__}", provider=self.api_name
            ) from e

        if not resp.is_success:
            raise error_for_status(resp.status_code, provider=self.api_name)

        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedUpstreamResponse(
                "Gemini returned a non-JSON body", provider=self.api_name
            ) from e
        return candidate_text(data)

    async def aclose(self) -> None:
        await self._client.aclose()
