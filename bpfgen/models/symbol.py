from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class Symbol:
    name: str
    address: int
    size: int = 0

    @property
    def end(self) -> int:
        return self.address + self.size


@dataclass(frozen=True)
class ReturnSites:
    """Return-instruction offsets found inside one function."""

    symbol: str
    start: int
    offsets: tuple[int, ...] = ()

    def addresses(self) -> Iterator[int]:
        for offset in self.offsets:
            yield self.start + offset

    def __len__(self) -> int:
        return len(self.offsets)
