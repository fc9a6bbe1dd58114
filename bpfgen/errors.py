"""Exception hierarchy for target introspection and script generation."""

from __future__ import annotations


class GeneratorError(Exception):
    """Base class for every error the generator reports to the user."""


class ArgumentError(GeneratorError):
    """Raised when a ``key=value`` argument is malformed."""


class FileError(GeneratorError):
    """Raised when a script template or target executable cannot be read."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class ParseError(GeneratorError):
    """Raised when the target is not a binary image we can parse."""


class ClassificationFailure(GeneratorError):
    """Raised when no decisive calling-convention pattern is found."""


class SymbolNotFound(GeneratorError):
    def __init__(self, symbol: str, path: str | None = None) -> None:
        where = f" in {path}" if path else ""
        super().__init__(f"failed to find symbol {symbol}{where}")
        self.symbol = symbol
        self.path = path


class SizeUnknown(GeneratorError):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"symbol {symbol} has no size in the symbol table; cannot bound its return sites")
        self.symbol = symbol


class RenderError(GeneratorError):
    """Raised for template syntax errors and explicit in-template aborts."""


class ArgumentIndexError(GeneratorError):
    """Raised when a template asks for an argument the ABI cannot express."""


__all__ = [
    "GeneratorError",
    "ArgumentError",
    "FileError",
    "ParseError",
    "ClassificationFailure",
    "SymbolNotFound",
    "SizeUnknown",
    "RenderError",
    "ArgumentIndexError",
]
