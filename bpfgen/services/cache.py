from __future__ import annotations

from typing import Callable, Generic, Hashable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class ReadThroughCache(Generic[K, V]):
    """Memoize one value per key; a miss computes then stores, a hit never recomputes.

    Entries are never invalidated since the target binary is assumed not to
    change while the generator runs.
    """

    def __init__(self, compute: Callable[[K], V]) -> None:
        self._compute = compute
        self._entries: dict[K, V] = {}

    def get(self, key: K) -> V:
        try:
            return self._entries[key]
        except KeyError:
            pass
        value = self._compute(key)
        self._entries[key] = value
        return value

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(self._entries)
