"""Process-lifetime lookup cache for backend and working tree resolution."""

from __future__ import annotations

import threading
from typing import Dict, Generic, Hashable, Optional, Tuple, TypeVar

T = TypeVar("T")

_MISSING = object()


class LookupCache(Generic[T]):
    """Permanent memo of resolved values, including resolved-to-None.

    The lock only guards map access; resolution runs outside of it, so a
    slow resolver never blocks lookups of other keys. Two racing resolutions
    of the same key may both run, but the first stored value wins and is
    returned to every caller.

    Entries are never evicted. This suits a single analysis run; a
    long-running service would need invalidation.
    """

    def __init__(self) -> None:
        self._entries: Dict[Hashable, Optional[T]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def lookup(self, key: Hashable) -> Tuple[bool, Optional[T]]:
        """Return (found, value) without resolving."""
        with self._lock:
            value = self._entries.get(key, _MISSING)
            if value is _MISSING:
                self._misses += 1
                return False, None
            self._hits += 1
            return True, value  # type: ignore[return-value]

    def store(self, key: Hashable, value: Optional[T]) -> Optional[T]:
        """Store value unless another caller stored first; return the stored value."""
        with self._lock:
            return self._entries.setdefault(key, value)

    def stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        with self._lock:
            return {
                "total_entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }
