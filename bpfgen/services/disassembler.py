"""Capstone setup and instruction predicates for the architectures we analyse."""

from __future__ import annotations

from dataclasses import dataclass

import capstone

from ..errors import ParseError

EM_386 = 3
EM_X86_64 = 62
EM_AARCH64 = 183


@dataclass(frozen=True)
class ArchSpec:
    name: str
    cs_arch: int
    cs_mode: int
    return_mnemonics: frozenset[str]
    jump_mnemonics: frozenset[str]


_X86_RETURNS = frozenset({"ret", "retf", "retfq", "retn"})
_X86_JUMPS = frozenset({"jmp"})
_INTERRUPT_RETURNS = ("iret", "eret", "sysret", "sysexit")

ARCHITECTURES: dict[int, ArchSpec] = {
    EM_X86_64: ArchSpec("x86_64", capstone.CS_ARCH_X86, capstone.CS_MODE_64, _X86_RETURNS, _X86_JUMPS),
    EM_386: ArchSpec("x86", capstone.CS_ARCH_X86, capstone.CS_MODE_32, _X86_RETURNS, _X86_JUMPS),
    EM_AARCH64: ArchSpec(
        "aarch64",
        getattr(capstone, "CS_ARCH_AARCH64", None) or capstone.CS_ARCH_ARM64,
        capstone.CS_MODE_ARM,
        frozenset({"ret", "retaa", "retab"}),
        frozenset({"b"}),
    ),
}


def arch_for(machine: int) -> ArchSpec:
    spec = ARCHITECTURES.get(machine)
    if spec is None:
        raise ParseError(f"Unsupported ELF machine type {machine} for disassembly")
    return spec


def engine(spec: ArchSpec, *, skipdata: bool = True) -> capstone.Cs:
    md = capstone.Cs(spec.cs_arch, spec.cs_mode)
    md.detail = True
    # Keep sweeping past bytes capstone cannot decode instead of stopping.
    md.skipdata = skipdata
    return md


def base_mnemonic(instruction: capstone.CsInsn) -> str:
    """Mnemonic without prefixes, e.g. ``ret`` for ``repz ret`` and ``jmp`` for ``bnd jmp``."""
    parts = instruction.mnemonic.split()
    return parts[-1] if parts else ""


def is_return(spec: ArchSpec, instruction: capstone.CsInsn) -> bool:
    # skipdata pseudo-instructions have id 0 and carry no detail.
    if instruction.id == 0:
        return False
    if base_mnemonic(instruction) in spec.return_mnemonics:
        return True
    return bool(instruction.group(capstone.CS_GRP_RET)) and not base_mnemonic(instruction).startswith(_INTERRUPT_RETURNS)


def direct_jump_target(spec: ArchSpec, instruction: capstone.CsInsn) -> int | None:
    """Target of an unconditional direct jump, or None for anything else."""
    if instruction.id == 0 or base_mnemonic(instruction) not in spec.jump_mnemonics:
        return None
    return _parse_address_text(instruction.op_str)


def _parse_address_text(raw: str) -> int | None:
    text = (raw or "").strip().lstrip("#")
    if not text.lower().startswith("0x"):
        return None
    try:
        return int(text, 16)
    except ValueError:
        return None
