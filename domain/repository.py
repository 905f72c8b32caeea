"""Daily request counters.

The store owns the day rollover: the UTC day is part of the key, so the first
increment of a new day starts from zero. `increment_if_under_quota` must be a
single atomic step; callers never read-then-write.
"""
from datetime import date, datetime, timezone
from typing import Protocol

from databases import Database

from domain.errors import QuotaExceeded


CREATE_RATE_LIMITS_TABLE = """
CREATE TABLE IF NOT EXISTS user_rate_limits (
    user_id VARCHAR(64) NOT NULL,
    request_date VARCHAR(10) NOT NULL,
    request_count INTEGER NOT NULL DEFAULT 0,
    last_request_at VARCHAR(32),
    PRIMARY KEY (user_id, request_date)
)
"""


GET_REQUEST_COUNT = """
SELECT request_count FROM user_rate_limits
WHERE user_id = :user_id AND request_date = :request_date
"""


# No row comes back when the WHERE clause refuses the update.
INCREMENT_IF_UNDER_QUOTA = """
INSERT INTO user_rate_limits (user_id, request_date, request_count, last_request_at)
VALUES (:user_id, :request_date, 1, :now)
ON CONFLICT (user_id, request_date) DO UPDATE
SET request_count = user_rate_limits.request_count + 1,
    last_request_at = excluded.last_request_at
WHERE user_rate_limits.request_count < :quota
RETURNING request_count
"""


class RateLimitStore(Protocol):
    async def get_count(self, user_id: str, day: date) -> int:
        ...

    async def increment_if_under_quota(self, user_id: str, day: date, quota: int) -> int:
        ...


class DatabaseRateLimitStore:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def create_table(self) -> None:
        await self.db.execute(  # pyright: ignore[reportUnknownMemberType]
            query=CREATE_RATE_LIMITS_TABLE
        )

    async def get_count(self, user_id: str, day: date) -> int:
        row = await self.db.fetch_one(  # pyright: ignore[reportUnknownMemberType]
            GET_REQUEST_COUNT,
            values={"user_id": user_id, "request_date": day.isoformat()},
        )
        return 0 if row is None else row["request_count"]

    async def increment_if_under_quota(self, user_id: str, day: date, quota: int) -> int:
        if quota < 1:
            raise QuotaExceeded(user_id)
        row = await self.db.fetch_one(  # pyright: ignore[reportUnknownMemberType]
            INCREMENT_IF_UNDER_QUOTA,
            values={
                "user_id": user_id,
                "request_date": day.isoformat(),
                "now": datetime.now(timezone.utc).isoformat(),
                "quota": quota,
            },
        )
        if row is None:
            raise QuotaExceeded(user_id)
        return row["request_count"]


class InMemoryRateLimitStore:
    """Single-process store. Nothing awaits between the check and the write."""

    def __init__(self) -> None:
        self.counts: dict[tuple[str, date], int] = {}

    async def get_count(self, user_id: str, day: date) -> int:
        return self.counts.get((user_id, day), 0)

    async def increment_if_under_quota(self, user_id: str, day: date, quota: int) -> int:
        count = self.counts.get((user_id, day), 0)
        if count >= quota:
            raise QuotaExceeded(user_id)
        self.counts[(user_id, day)] = count + 1
        return count + 1
