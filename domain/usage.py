import logging
from datetime import datetime, timedelta, timezone
from typing import Callable


logger = logging.getLogger(__name__)


class ApiLimits:
    def __init__(self, *, per_minute: int, per_day: int) -> None:
        self.per_minute = per_minute
        self.per_day = per_day


DEFAULT_LIMITS: dict[str, ApiLimits] = {
    "spoonacular": ApiLimits(per_minute=5, per_day=150),
    "gemini": ApiLimits(per_minute=15, per_day=1000),
    "openai": ApiLimits(per_minute=15, per_day=1000),
}


class ApiUsageRecord:
    def __init__(self, *, api_name: str, last_request: datetime) -> None:
        self.api_name = api_name
        self.request_count = 0
        self.last_request = last_request
        self.window_start = last_request
        self.window_count = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiUsageTracker:
    """Soft pacing of third-party calls, per API and user, in this process only.

    Lost updates under concurrent requests are tolerated.
    """

    def __init__(
        self,
        limits: dict[str, ApiLimits] | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.limits = DEFAULT_LIMITS if limits is None else limits
        self._clock = _utcnow if clock is None else clock
        self._usage: dict[str, ApiUsageRecord] = {}

    def _roll(self, record: ApiUsageRecord, now: datetime) -> None:
        if record.last_request.date() != now.date():
            record.request_count = 0
        if now - record.window_start >= timedelta(minutes=1):
            record.window_start = now
            record.window_count = 0

    def track(self, api_name: str, user_id: str) -> bool:
        """Record a call. False when the call would break the API's limits."""
        limits = self.limits.get(api_name)
        if limits is None:
            logger.warning("No rate limits defined for API: %s", api_name)
            return True

        now = self._clock()
        key = f"{api_name}:{user_id}"
        record = self._usage.get(key) or ApiUsageRecord(
            api_name=api_name, last_request=now
        )
        self._roll(record, now)

        if record.request_count >= limits.per_day:
            logger.warning(
                "Daily rate limit exceeded for %s: %s/%s",
                api_name,
                record.request_count,
                limits.per_day,
            )
            return False
        if record.window_count >= limits.per_minute:
            logger.warning("Minute rate limit exceeded for %s", api_name)
            return False

        record.request_count += 1
        record.window_count += 1
        record.last_request = now
        self._usage[key] = record
        logger.info(
            "API usage tracked: %s - %s/%s daily requests",
            api_name,
            record.request_count,
            limits.per_day,
        )
        return True

    def usage(self, api_name: str, user_id: str) -> ApiUsageRecord | None:
        return self._usage.get(f"{api_name}:{user_id}")

    def remaining(self, api_name: str, user_id: str) -> int:
        limits = self.limits.get(api_name)
        if limits is None:
            return 0
        record = self.usage(api_name, user_id)
        if record is None or record.last_request.date() != self._clock().date():
            return limits.per_day
        return max(0, limits.per_day - record.request_count)

    def cleanup(self) -> int:
        cutoff = self._clock() - timedelta(days=1)
        stale = [k for k, r in self._usage.items() if r.last_request < cutoff]
        for key in stale:
            del self._usage[key]
        return len(stale)
