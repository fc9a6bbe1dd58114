import struct
import sys
from pathlib import Path
from typing import Callable, Iterable, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

EM_X86_64 = 62
EM_AARCH64 = 183

SymbolSpec = Tuple[str, int, int]

# cmp rsp, [r14+0x10]; jbe; add rax, rbx; ret; call morestack; jmp start
REGISTER_ABI_FUNC = bytes.fromhex("493b6610" "7604" "4801d8" "c3" "e800000000" "ebef")
# mov rcx, fs:[-8]; cmp rsp, [rcx+0x10]; jbe; ret; call morestack; jmp start
STACK_ABI_FUNC = bytes.fromhex("64488b0c25f8ffffff" "483b6110" "7601" "c3" "e800000000" "ebe9")
# push rbp; mov rbp, rsp; mov eax, edi; pop rbp; ret
PLAIN_FUNC = bytes.fromhex("55" "4889e5" "89f8" "5d" "c3")


def multi_return_func() -> bytes:
    """0x41 bytes with returns at offsets 0x10, 0x25 and 0x40 and 0xc3 bytes hidden in operands."""
    code = bytearray(b"\x90" * 0x41)
    code[0x00:0x05] = bytes.fromhex("b8c3000000")  # mov eax, 0xc3
    code[0x05:0x0B] = bytes.fromhex("0f84c3000000")  # je rel32 0xc3
    code[0x10] = 0xC3
    code[0x11:0x14] = bytes.fromhex("83f801")  # cmp eax, 1
    code[0x25] = 0xC3
    code[0x26:0x29] = bytes.fromhex("c6c0c3")  # mov al, 0xc3
    code[0x40] = 0xC3
    return bytes(code)


# test edi, edi; je +1; ret; jmp next; jmp 0x1000 (tail call when placed at 0x1050)
TAIL_CALL_FUNC = bytes.fromhex("85ff" "7401" "c3" "eb00" "e9a4ffffff")


def layout(functions: Iterable[Tuple[str, bytes]], *, base: int = 0x1000, align: int = 0x10):
    """Concatenate function bodies at aligned addresses; returns (code, symbols)."""
    code = bytearray()
    symbols = []
    for name, body in functions:
        while len(code) % align:
            code.append(0xCC)
        symbols.append((name, base + len(code), len(body)))
        code.extend(body)
    return bytes(code), symbols


def _align(value: int, alignment: int) -> int:
    return (value + alignment - 1) & ~(alignment - 1)


def write_elf(
    path: Path,
    code: bytes,
    symbols: Iterable[SymbolSpec],
    *,
    base: int = 0x1000,
    machine: int = EM_X86_64,
) -> Path:
    """Write a minimal ELF64 executable with one .text section and a symbol table."""
    symbols = list(symbols)
    shstrtab = b"\0.text\0.symtab\0.strtab\0.shstrtab\0"
    names = {name: shstrtab.index(name.encode() + b"\0") for name in (".text", ".symtab", ".strtab", ".shstrtab")}

    strtab = bytearray(b"\0")
    symtab = bytearray(struct.pack("<IBBHQQ", 0, 0, 0, 0, 0, 0))
    for name, address, size in symbols:
        name_offset = len(strtab)
        strtab.extend(name.encode() + b"\0")
        symtab.extend(struct.pack("<IBBHQQ", name_offset, 0x12, 0, 1, address, size))

    text_offset = 0x1000 + (base & 0xFFF)
    symtab_offset = _align(text_offset + len(code), 8)
    strtab_offset = symtab_offset + len(symtab)
    shstrtab_offset = strtab_offset + len(strtab)
    shoff = _align(shstrtab_offset + len(shstrtab), 8)

    ident = b"\x7fELF" + bytes([2, 1, 1, 0]) + b"\0" * 8
    header = struct.pack("<16sHHIQQQIHHHHHH", ident, 2, machine, 1, base, 64, shoff, 0, 64, 56, 1, 64, 5, 4)
    program_header = struct.pack("<IIQQQQQQ", 1, 5, text_offset, base, base, len(code), len(code), 0x1000)
    section_headers = [
        struct.pack("<IIQQQQIIQQ", 0, 0, 0, 0, 0, 0, 0, 0, 0, 0),
        struct.pack("<IIQQQQIIQQ", names[".text"], 1, 0x6, base, text_offset, len(code), 0, 0, 16, 0),
        struct.pack("<IIQQQQIIQQ", names[".symtab"], 2, 0, 0, symtab_offset, len(symtab), 3, 1, 8, 24),
        struct.pack("<IIQQQQIIQQ", names[".strtab"], 3, 0, 0, strtab_offset, len(strtab), 0, 0, 1, 0),
        struct.pack("<IIQQQQIIQQ", names[".shstrtab"], 3, 0, 0, shstrtab_offset, len(shstrtab), 0, 0, 1, 0),
    ]

    blob = bytearray(header + program_header)
    blob.extend(b"\0" * (text_offset - len(blob)))
    blob.extend(code)
    blob.extend(b"\0" * (symtab_offset - len(blob)))
    blob.extend(symtab)
    blob.extend(strtab)
    blob.extend(shstrtab)
    blob.extend(b"\0" * (shoff - len(blob)))
    for entry in section_headers:
        blob.extend(entry)

    path.write_bytes(bytes(blob))
    path.chmod(0o755)
    return path


@pytest.fixture
def elf_factory(tmp_path) -> Callable[..., Path]:
    def build(name: str, functions, *, extra_symbols=(), base: int = 0x1000, machine: int = EM_X86_64) -> Path:
        code, symbols = layout(functions, base=base)
        return write_elf(tmp_path / name, code, [*symbols, *extra_symbols], base=base, machine=machine)

    return build


@pytest.fixture
def traced_binary(elf_factory) -> Path:
    """foo at 0x1000 with three returns, bar at 0x1050 ending in a tail call, nosize has no size."""
    return elf_factory(
        "traced",
        [("foo", multi_return_func()), ("bar", TAIL_CALL_FUNC), ("stub", b"\xc3")],
        extra_symbols=[("nosize", 0x1060, 0)],
    )


@pytest.fixture
def register_abi_binary(elf_factory) -> Path:
    return elf_factory(
        "regabi",
        [("main.add", REGISTER_ABI_FUNC), ("main.sub", REGISTER_ABI_FUNC), ("main.foo", multi_return_func())],
    )


@pytest.fixture
def stack_abi_binary(elf_factory) -> Path:
    return elf_factory("stackabi", [("main.add", STACK_ABI_FUNC), ("main.sub", STACK_ABI_FUNC)])


@pytest.fixture
def plain_binary(elf_factory) -> Path:
    return elf_factory("plain", [("add", PLAIN_FUNC), ("sub", PLAIN_FUNC)])
