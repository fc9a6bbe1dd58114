from __future__ import annotations

import re
from typing import Callable, Iterable

from ..errors import ArgumentError

ASSIGNMENT_PATTERN = re.compile(r"^(?P<key>[^=]*)=(?P<value>[^=]*)$")

SYMBOL_KEY = "symbol"


def parse_assignments(items: Iterable[str]) -> dict[str, list[str]]:
    """Collect ``key=value`` tokens; repeated keys append in order."""
    values: dict[str, list[str]] = {}
    for raw in items:
        match = ASSIGNMENT_PATTERN.match(raw)
        if not match:
            raise ArgumentError(f"malformed argument {raw}, must be of form key=value")
        values.setdefault(match.group("key"), []).append(match.group("value"))
    return values


def accessor(values: dict[str, list[str]]) -> Callable[[str], list[str]]:
    def arguments(key: str) -> list[str]:
        return list(values.get(key, ()))

    return arguments
