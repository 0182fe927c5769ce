"""Caché de consultas del cliente con claves jerárquicas e invalidación por prefijo."""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

QueryKey = Tuple[Any, ...]


def _freeze(params: Optional[Mapping[str, Any]]) -> Tuple[Tuple[str, Any], ...]:
    # Las claves deben ser hashables; los parámetros vacíos se omiten
    if not params:
        return ()
    return tuple(sorted((key, value) for key, value in params.items() if value is not None))


class post_keys:
    all: QueryKey = ("posts",)

    @staticmethod
    def lists() -> QueryKey:
        return post_keys.all + ("list",)

    @staticmethod
    def list(params: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return post_keys.lists() + (_freeze(params),)

    @staticmethod
    def details() -> QueryKey:
        return post_keys.all + ("detail",)

    @staticmethod
    def detail(post_id: Any) -> QueryKey:
        return post_keys.details() + (str(post_id),)

    @staticmethod
    def my_posts() -> QueryKey:
        return post_keys.all + ("my-posts",)

    @staticmethod
    def by_category(category: str) -> QueryKey:
        return post_keys.all + ("category", category)

    @staticmethod
    def by_author(author_id: Any) -> QueryKey:
        return post_keys.all + ("author", str(author_id))

    @staticmethod
    def stats() -> QueryKey:
        return post_keys.all + ("stats",)

    @staticmethod
    def infinite(params: Optional[Mapping[str, Any]] = None) -> QueryKey:
        key = post_keys.all + ("infinite",)
        return key if params is None else key + (_freeze(params),)


class home_keys:
    all: QueryKey = ("homeContent",)

    @staticmethod
    def content() -> QueryKey:
        return home_keys.all + ("public",)

    @staticmethod
    def admin() -> QueryKey:
        return home_keys.all + ("admin",)

    @staticmethod
    def history(page: int = 1, limit: int = 10) -> QueryKey:
        return home_keys.all + ("history", page, limit)

    @staticmethod
    def stats() -> QueryKey:
        return home_keys.all + ("stats",)


@dataclass
class CacheEntry:
    data: Any
    updated_at: float
    stale_time: float = 0.0
    invalidated: bool = False

    def is_fresh(self, now: float) -> bool:
        return not self.invalidated and (now - self.updated_at) < self.stale_time


class QueryCache:
    """Memoriza respuestas por clave.

    `invalidate(prefix)` marca como obsoletas todas las entradas bajo el prefijo;
    la siguiente lectura vuelve a consultar al servidor. `remove(prefix)` las
    descarta por completo.
    """

    def __init__(self, default_stale_time: float = 0.0, clock: Callable[[], float] = time.monotonic):
        self.default_stale_time = default_stale_time
        self._clock = clock
        self._entries: Dict[QueryKey, CacheEntry] = {}

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> Iterator[QueryKey]:
        return iter(list(self._entries))

    def get(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def is_fresh(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        return bool(entry and entry.is_fresh(self._clock()))

    def set(self, key: QueryKey, data: Any, stale_time: Optional[float] = None) -> Any:
        self._entries[key] = CacheEntry(
            data=data,
            updated_at=self._clock(),
            stale_time=self.default_stale_time if stale_time is None else stale_time,
        )
        return data

    def fetch(self, key: QueryKey, loader: Callable[[], Any], stale_time: Optional[float] = None) -> Any:
        if self.is_fresh(key):
            return self._entries[key].data
        return self.set(key, loader(), stale_time)

    def _matching(self, prefix: QueryKey):
        size = len(prefix)
        return [key for key in self._entries if key[:size] == prefix]

    def invalidate(self, prefix: QueryKey) -> int:
        matched = self._matching(prefix)
        for key in matched:
            self._entries[key].invalidated = True
        return len(matched)

    def remove(self, prefix: QueryKey) -> int:
        matched = self._matching(prefix)
        for key in matched:
            del self._entries[key]
        return len(matched)

    def clear(self):
        self._entries.clear()
