"""Read-only view of an ELF executable: symbols and executable section bytes."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import lief

from ..errors import FileError, ParseError
from ..models.symbol import Symbol

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class Section:
    name: str
    address: int
    data: bytes = b""

    @property
    def end(self) -> int:
        return self.address + len(self.data)

    def covers(self, start: int, end: int) -> bool:
        return self.address <= start and end <= self.end


@dataclass(frozen=True)
class BinaryImage:
    path: Path
    machine: int
    symbols: dict[str, Symbol] = field(default_factory=dict)
    sections: tuple[Section, ...] = ()

    @classmethod
    def open(cls, path: Path | str) -> BinaryImage:
        binary_path = Path(path)
        if not binary_path.exists():
            raise FileError(f"Target binary '{binary_path}' was not found", str(binary_path))
        if not binary_path.is_file() or not os.access(binary_path, os.R_OK):
            raise FileError(f"Target binary '{binary_path}' is not a readable file", str(binary_path))

        LOG.debug("opening %s", binary_path)
        try:
            binary = lief.parse(str(binary_path))
        except Exception as exc:
            raise ParseError(f"Unable to parse {binary_path}: {exc}") from exc
        if binary is None:
            raise ParseError(f"Unable to parse {binary_path}: not a recognised binary format")
        if not isinstance(binary, lief.ELF.Binary):
            raise ParseError(f"Unsupported binary format for {binary_path}: only ELF executables are supported")

        machine = getattr(binary.header, "machine_type", None)
        if machine is None:
            raise ParseError(f"ELF machine type unavailable for {binary_path}")

        return cls(
            path=binary_path,
            machine=_as_int(machine),
            symbols=_collect_symbols(binary.symbols),
            sections=tuple(_executable_sections(binary)),
        )

    def symbol_table(self) -> dict[str, Symbol]:
        return dict(self.symbols)

    def section_bytes(self, start: int, end: int) -> bytes:
        """Return the raw bytes of ``[start, end)`` from the executable section holding them."""
        if end < start:
            raise ValueError(f"Invalid address range 0x{start:x}-0x{end:x}")
        for section in self.sections:
            if section.covers(start, end):
                offset = start - section.address
                return section.data[offset : offset + (end - start)]
        raise ParseError(f"No executable section of {self.path} covers 0x{start:x}-0x{end:x}")

    def function_symbols(self) -> list[Symbol]:
        """Sized symbols lying inside executable sections, in address order."""
        functions = [
            symbol
            for symbol in self.symbols.values()
            if symbol.size > 0 and any(section.covers(symbol.address, symbol.end) for section in self.sections)
        ]
        functions.sort(key=lambda symbol: (symbol.address, symbol.name))
        return functions


def _collect_symbols(entries: Iterable[lief.Symbol]) -> dict[str, Symbol]:
    table: dict[str, Symbol] = {}
    for entry in entries:
        name = getattr(entry, "name", "") or ""
        if not name:
            continue
        address = int(entry.value)
        existing = table.get(name)
        # Undefined imports carry address 0; a defined entry of the same name wins.
        if existing is not None and (existing.address != 0 or address == 0):
            continue
        table[name] = Symbol(name=name, address=address, size=int(entry.size))
    return table


def _executable_sections(binary: lief.ELF.Binary) -> Iterable[Section]:
    exec_flag = _resolve_elf_execinstr_flag()
    for section in binary.sections:
        try:
            flags_value = _as_int(section.flags)
        except (TypeError, ValueError):
            continue
        if not flags_value & exec_flag:
            continue
        data = bytes(section.content)
        if not data:
            continue
        yield Section(name=section.name or "", address=int(section.virtual_address), data=data)


def _resolve_elf_execinstr_flag() -> int:
    elf_module = getattr(lief, "ELF", None)
    if elf_module is None:
        raise NotImplementedError("Current lief build does not expose ELF helpers")

    section_flags = getattr(elf_module, "SECTION_FLAGS", None)
    if section_flags is not None and hasattr(section_flags, "EXECINSTR"):
        return _as_int(section_flags.EXECINSTR)

    section_class = getattr(elf_module, "Section", None)
    flag_enum = getattr(section_class, "FLAGS", None) if section_class else None
    if flag_enum is not None and hasattr(flag_enum, "EXECINSTR"):
        return _as_int(flag_enum.EXECINSTR)

    raise NotImplementedError("Unable to determine ELF EXECINSTR section flag from the installed lief version")


def _as_int(value) -> int:
    # lief enums are pybind11 or nanobind objects depending on the release.
    return int(getattr(value, "value", value))
