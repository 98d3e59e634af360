"""
Fix History
===========
Memory of past fixes keyed by an error-pattern digest, so a similar error
can be offered a known-good fix as an extra candidate.

Store contract (FixHistoryStore):
    get(key)            → entry or None; a hit marks the key most-recent
    set(key, entry)     → insert/replace and mark most-recent
    prune_to_size(n)    → evict least-recently-used entries until len <= n

The store is injected into FixAgent; there is no process-wide instance.
In-memory only; a persistent store can implement the same protocol.
"""
import logging
import time
from collections import OrderedDict
from typing import Optional, Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class FixHistoryEntry(BaseModel):
    code: str
    explanation: str = ""
    confidence: float = 0.0
    timestamp: float = Field(default_factory=time.time)


class FixHistoryStore(Protocol):
    def get(self, key: str) -> Optional[FixHistoryEntry]: ...

    def set(self, key: str, entry: FixHistoryEntry) -> None: ...

    def prune_to_size(self, max_entries: int) -> None: ...


class InMemoryFixHistory:
    """
    Recency-ordered in-memory store.

    Usage:
        history = InMemoryFixHistory(max_entries=100)
        history.set(digest, FixHistoryEntry(code="...", confidence=0.8))
        entry = history.get(digest)
    """

    def __init__(self, max_entries: int = 100) -> None:
        self.max_entries = max_entries
        # Least-recent first
        self._entries: "OrderedDict[str, FixHistoryEntry]" = OrderedDict()

    def get(self, key: str) -> Optional[FixHistoryEntry]:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
            logger.debug("Fix history hit for %s", key[:16])
        return entry

    def set(self, key: str, entry: FixHistoryEntry) -> None:
        if not key:
            return
        self._entries[key] = entry
        self._entries.move_to_end(key)
        self.prune_to_size(self.max_entries)

    def prune_to_size(self, max_entries: int) -> None:
        while len(self._entries) > max(0, max_entries):
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted fix history entry %s", evicted[:16])

    def keys(self) -> list[str]:
        """Keys from least to most recently used."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
