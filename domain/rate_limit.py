import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

from domain.errors import QuotaExceeded, RateLimitExceeded
from domain.models import RateLimitStatus
from domain.repository import RateLimitStore


logger = logging.getLogger(__name__)


MAX_REQUESTS_PER_DAY = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_utc_midnight(now: datetime) -> datetime:
    tomorrow = now.astimezone(timezone.utc).date() + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=timezone.utc)


def quota_exceeded(status: RateLimitStatus) -> RateLimitExceeded:
    return RateLimitExceeded(
        f"You've reached your daily limit of {status.max_requests} recipe "
        f"requests. Please try again after {status.reset_time.isoformat()}",
        status=status,
    )


class RateLimiter:
    def __init__(
        self,
        store: RateLimitStore,
        *,
        max_requests: int = MAX_REQUESTS_PER_DAY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.max_requests = max_requests
        self._clock = _utcnow if clock is None else clock

    def today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()

    def _status(self, count: int) -> RateLimitStatus:
        return RateLimitStatus(
            current_count=count,
            max_requests=self.max_requests,
            reset_time=next_utc_midnight(self._clock()),
        )

    async def status(self, user_id: str) -> RateLimitStatus:
        """Current quota use. An unreachable store reads as an unused quota."""
        try:
            count = await self.store.get_count(user_id, self.today())
        except Exception:
            logger.exception(
                "Rate limit store unavailable for %s, failing open", user_id
            )
            count = 0
        return self._status(count)

    async def acquire(self, user_id: str) -> RateLimitStatus:
        """Count one accepted request against today's quota."""
        try:
            count = await self.store.increment_if_under_quota(
                user_id, self.today(), self.max_requests
            )
        except QuotaExceeded:
            status = self._status(self.max_requests)
            logger.warning(
                "Rate limit exceeded: user=%s reset=%s",
                user_id,
                status.reset_time.isoformat(),
            )
            raise quota_exceeded(status)
        except Exception:
            logger.exception(
                "Rate limit store unavailable for %s, request not counted", user_id
            )
            return self._status(0)
        logger.info("Rate limit incremented: user=%s count=%s", user_id, count)
        return self._status(count)
