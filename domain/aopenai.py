import openai

from domain.errors import (
    MalformedUpstreamResponse,
    UpstreamTransportError,
    UpstreamUnconfigured,
    error_for_status,
)
from domain.external import DEFAULT_TIMEOUT, LLMRequest


DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIChatClient:
    """Chat completions backend. topK has no OpenAI equivalent and is dropped."""

    api_name = "openai"

    def __init__(
        self,
        *,
        token: str | None = None,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        openai_client: openai.AsyncClient | None = None,
    ) -> None:
        self.model = model
        if openai_client is None and token:
            openai_client = openai.AsyncClient(
                api_key=token, timeout=timeout, max_retries=0
            )
        self.openai_client = openai_client

    async def generate(self, request: LLMRequest) -> str:
        if self.openai_client is None:
            raise UpstreamUnconfigured(
                "OpenAI API key not configured", provider=self.api_name
            )

        try:
            resp = await self.openai_client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": request.prompt}],
                temperature=request.temperature,
                top_p=request.top_p,
                max_tokens=request.max_output_tokens,
            )
        except openai.APIConnectionError as e:
            raise UpstreamTransportError(
                f"OpenAI request failed: {type(e).__name__}", provider=self.api_name
            ) from e
        except openai.APIStatusError as e:
            raise error_for_status(e.status_code, provider=self.api_name) from e
        except openai.APIResponseValidationError as e:
            raise MalformedUpstreamResponse(
                "OpenAI returned an unexpected body", provider=self.api_name
            ) from e

        if not resp.choices or resp.choices[0].message.content is None:
            raise MalformedUpstreamResponse(
                "No candidate text in OpenAI response", provider=self.api_name
            )
        return resp.choices[0].message.content

    async def aclose(self) -> None:
        if self.openai_client is not None:
            await self.openai_client.close()
