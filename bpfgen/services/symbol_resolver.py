from __future__ import annotations

from ..errors import SymbolNotFound
from ..models.symbol import Symbol
from .binary_image import BinaryImage


def lookup(image: BinaryImage, name: str) -> Symbol:
    symbol = image.symbols.get(name)
    if symbol is None:
        raise SymbolNotFound(name, str(image.path))
    return symbol


def resolve(image: BinaryImage, name: str) -> int:
    """Return the static link-time address of ``name``; load bias is not applied."""
    return lookup(image, name).address


def format_address(value: int) -> str:
    return f"0x{value:x}"
