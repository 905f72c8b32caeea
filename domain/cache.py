"""Process-local response cache.

One instance per TTL class: search results live for five minutes, LLM text for
ten. Expired entries are only removed when they are next read.
"""
import json
import logging
import time
from typing import Any, Callable

from domain.errors import Internal


logger = logging.getLogger(__name__)


SEARCH_TTL = 5 * 60
LLM_TTL = 10 * 60


def _canonical(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_canonical(v) for v in value]
        return sorted(items, key=lambda v: json.dumps(v, sort_keys=True))
    return value


def compute_key(params: dict[str, Any], *, namespace: str = "") -> str:
    """Fingerprint of request parameters, independent of list order."""
    try:
        body = json.dumps(_canonical(params), sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise Internal(f"Unable to compute cache key: {e}") from e
    return f"{namespace}:{body}" if namespace else body


class CacheEntry:
    def __init__(self, *, key: str, payload: Any, created_at: float) -> None:
        self.key = key
        self.payload = payload
        self.created_at = created_at


class ResponseCache:
    def __init__(
        self,
        *,
        ttl: float,
        name: str = "cache",
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.ttl = ttl
        self.name = name
        self._clock = time.monotonic if clock is None else clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def compute_key(self, params: dict[str, Any], *, namespace: str = "") -> str:
        return compute_key(params, namespace=namespace)

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at >= self.ttl:
            self._entries.pop(key, None)
            logger.debug("%s: expired %s", self.name, key)
            return None
        logger.debug("%s: hit %s", self.name, key)
        return entry.payload

    def put(self, key: str, payload: Any) -> None:
        self._entries[key] = CacheEntry(
            key=key, payload=payload, created_at=self._clock()
        )
