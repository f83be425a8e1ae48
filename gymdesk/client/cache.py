"""
Query cache for client reads.

Entries are keyed by entity type plus an id or the list's filter params.
Mutations never patch entries; they drop every entry of the entities they
may have affected so the next read refetches from the server.
"""
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Tuple

# entity mutated -> cached entities that may now be stale
RELATED_ENTITIES: Dict[str, Tuple[str, ...]] = {
    "membership": ("membership", "member", "dues_report", "financials"),
    "training": ("training", "member", "dues_report", "financials"),
    "payment": ("membership", "training", "member", "dues_report", "financials"),
    "plan": ("plan",),
    "member": ("member", "dues_report"),
    "trainer": ("trainer", "training"),
    "financials": ("financials",),
}

CacheKey = Tuple[Hashable, ...]


def make_key(entity: str, *parts: Any, **params: Any) -> CacheKey:
    filtered = tuple(sorted((k, v) for k, v in params.items() if v is not None))
    return (entity, *parts, filtered)


class QueryCache:
    def __init__(self):
        self._entries: Dict[CacheKey, Any] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def fetch(self, key: CacheKey, loader: Callable[[], Awaitable[Any]]) -> Any:
        if key in self._entries:
            return self._entries[key]
        value = await loader()
        self._entries[key] = value
        return value

    def invalidate(self, entities: Iterable[str]) -> int:
        """Drop every entry whose entity is listed; returns how many were dropped."""
        entities = set(entities)
        stale = [key for key in self._entries if key[0] in entities]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def invalidate_after(self, mutated: str) -> int:
        return self.invalidate(RELATED_ENTITIES.get(mutated, (mutated,)))

    def clear(self) -> None:
        self._entries.clear()
