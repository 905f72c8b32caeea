from enum import Enum
from typing import Any


class Hint(Enum):
    retry_later = "retry-later"
    fix_input = "fix-input"
    unavailable = "unavailable"
    none = "none"


class PlateError(Exception):
    status_code = 500
    kind = "internal"
    hint = Hint.none
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = self.default_message if message is None else message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "status": self.status_code,
            "kind": self.kind,
            "hint": self.hint.value,
        }


class Internal(PlateError):
    pass


class Unauthorized(PlateError):
    status_code = 401
    kind = "unauthorized"
    hint = Hint.fix_input
    default_message = "Invalid or expired token"


class InvalidRequest(PlateError):
    status_code = 400
    kind = "invalid_request"
    hint = Hint.fix_input
    default_message = "Invalid request"


class NotFound(PlateError):
    status_code = 404
    kind = "not_found"
    hint = Hint.fix_input
    default_message = "Not found"


class RateLimitExceeded(PlateError):
    status_code = 429
    kind = "rate_limit_exceeded"
    hint = Hint.retry_later
    default_message = "Daily rate limit exceeded"

    def __init__(self, message: str | None = None, *, status: Any = None) -> None:
        super().__init__(message)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.status is not None:
            data["rateLimit"] = self.status.to_dict()
            data["resetTime"] = data["rateLimit"]["resetTime"]
        return data


class UpstreamError(PlateError):
    """Failure talking to the LLM or recipe-search provider."""

    kind = "upstream_error"

    def __init__(self, message: str | None = None, *, provider: str = "") -> None:
        super().__init__(message)
        self.provider = provider

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["api"] = self.provider
        return data


class UpstreamUnavailable(UpstreamError):
    status_code = 503
    kind = "upstream_unavailable"
    hint = Hint.unavailable
    default_message = "Service temporarily unavailable"


class UpstreamUnconfigured(UpstreamUnavailable):
    default_message = "API key not configured"


class UpstreamTransportError(UpstreamUnavailable):
    pass


class UpstreamRateLimited(UpstreamError):
    status_code = 429
    kind = "upstream_rate_limited"
    hint = Hint.retry_later
    default_message = "API rate limit exceeded. Please try again later."


class UpstreamQuotaExceeded(UpstreamError):
    status_code = 402
    kind = "upstream_quota_exceeded"
    hint = Hint.retry_later
    default_message = "API quota exceeded. Please contact support."


class UpstreamUnauthorized(UpstreamError):
    status_code = 403
    kind = "upstream_unauthorized"
    hint = Hint.unavailable
    default_message = "API access denied. Please check the API key."


class UpstreamInvalidRequest(UpstreamError):
    status_code = 400
    kind = "upstream_invalid_request"
    hint = Hint.fix_input
    default_message = "Invalid request to API. Please check your input."


class MalformedUpstreamResponse(UpstreamError):
    status_code = 502
    kind = "malformed_upstream_response"
    hint = Hint.unavailable
    default_message = "Invalid response format from API"


class QuotaExceeded(Exception):
    """Raised by a rate-limit store when an increment would pass the quota."""


def error_for_status(status_code: int, *, provider: str) -> UpstreamError:
    match status_code:
        case 429:
            return UpstreamRateLimited(provider=provider)
        case 402:
            return UpstreamQuotaExceeded(provider=provider)
        case 403:
            return UpstreamUnauthorized(provider=provider)
        case 400:
            return UpstreamInvalidRequest(provider=provider)
        case _:
            return UpstreamTransportError(
                f"{provider} API error: {status_code}", provider=provider
            )
