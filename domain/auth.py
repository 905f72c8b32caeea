import logging
from typing import Protocol

import httpx

from domain.errors import Unauthorized, UpstreamTransportError, UpstreamUnconfigured
from domain.external import DEFAULT_TIMEOUT


logger = logging.getLogger(__name__)


class AuthVerifier(Protocol):
    async def verify(self, token: str | None) -> str:
        ...


class SupabaseAuth:
    """Resolves a Supabase access token to the user id it was issued for."""

    api_name = "supabase"

    def __init__(
        self,
        *,
        url: str | None = None,
        anon_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.anon_key = anon_key
        self._client = (
            httpx.AsyncClient(base_url=url or "", timeout=timeout)
            if client is None
            else client
        )

    async def verify(self, token: str | None) -> str:
        if not token:
            raise Unauthorized("No authorization token provided")
        if not self.url or not self.anon_key:
            raise UpstreamUnconfigured(
                "Supabase auth not configured", provider=self.api_name
            )

        try:
            resp = await self._client.get(
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {token}", "apikey": self.anon_key},
            )
        except httpx.HTTPError as e:
            raise UpstreamTransportError(
                f"Auth request failed: {type(e).__name__}", provider=self.api_name
            ) from e

        if resp.status_code in (401, 403):
            raise Unauthorized()
        if not resp.is_success:
            raise UpstreamTransportError(
                f"Auth service error: {resp.status_code}", provider=self.api_name
            )

        try:
            user_id = resp.json().get("id")
        except (ValueError, AttributeError) as e:
            raise UpstreamTransportError(
                "Auth service returned an invalid body", provider=self.api_name
            ) from e
        if not user_id:
            raise Unauthorized()
        logger.debug("Authenticated user %s", user_id)
        return user_id

    async def aclose(self) -> None:
        await self._client.aclose()
