"""In-memory cache for generation responses keyed by call type and parameters."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_MAX_SIZE = 200
DEFAULT_KEY_LENGTH = 100


@dataclass
class CacheEntry:
    """Cached generation result with the time it was stored."""

    data: Any
    timestamp: float
    type: str


class ResponseCache:
    """
    Thread-safe TTL cache with a hard capacity bound.

    Entries expire `ttl_seconds` after insertion and are removed lazily on lookup.
    When the cache is full, inserting a new key first evicts the oldest-inserted entry,
    which approximates LRU without tracking access order.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
        key_length: int = DEFAULT_KEY_LENGTH,
        clock: Callable[[], float] = time.time,
    ):
        self._entries: Dict[str, CacheEntry] = {}
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._key_length = key_length
        self._clock = clock
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def make_key(self, call_type: str, params: Any) -> str:
        """Build `type:params` with the serialized params lower-cased and truncated."""
        serialized = json.dumps(params, separators=(",", ":"), default=_json_default).lower()
        return f"{call_type}:{serialized[: self._key_length]}"

    def get(self, call_type: str, params: Any) -> Optional[Any]:
        """Return the cached data, or None when missing or expired."""
        key = self.make_key(call_type, params)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp < self._ttl:
                logger.debug("Cache hit for %s", call_type)
                return entry.data
            del self._entries[key]
            return None

    def set(self, call_type: str, params: Any, data: Any) -> None:
        """Store data for the key, evicting the oldest entry when at capacity."""
        key = self.make_key(call_type, params)
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_size:
                oldest_key = next(iter(self._entries))
                del self._entries[oldest_key]
            self._entries[key] = CacheEntry(data=data, timestamp=self._clock(), type=call_type)
            size = len(self._entries)
        logger.debug("Cached %s response (cache size: %d)", call_type, size)

    def clear(self, call_type: Optional[str] = None) -> None:
        """Drop every entry, or only those stored for `call_type`."""
        with self._lock:
            if call_type is None:
                self._entries.clear()
                return
            stale = [key for key, entry in self._entries.items() if entry.type == call_type]
            for key in stale:
                del self._entries[key]

    def stats(self) -> Dict[str, Any]:
        """Report the resident entry count overall and per call type."""
        types: Dict[str, int] = {}
        with self._lock:
            for entry in self._entries.values():
                types[entry.type] = types.get(entry.type, 0) + 1
            size = len(self._entries)
        return {"size": size, "types": types}


def _json_default(value: Any) -> Any:
    # Pydantic models and dataclass-like objects show up inside call parameters.
    if hasattr(value, "model_dump"):
        return value.model_dump(by_alias=True)
    if hasattr(value, "__dict__"):
        return vars(value)
    return str(value)
