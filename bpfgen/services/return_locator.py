"""Locate every instruction at which a function returns to its caller."""

from __future__ import annotations

import logging

from ..errors import SizeUnknown
from ..models.symbol import ReturnSites
from . import disassembler, symbol_resolver
from .binary_image import BinaryImage

LOG = logging.getLogger(__name__)


def find_return_sites(image: BinaryImage, symbol_name: str, *, tail_calls: bool = False) -> ReturnSites:
    """Linear-sweep ``symbol_name`` and collect the offsets of its return instructions.

    The sweep decodes every instruction in ``[start, start + size)`` without
    following control flow. Return opcodes identify themselves, so a function
    with several ``return`` statements yields one offset per emitted return.

    With ``tail_calls`` set, unconditional direct jumps that leave the
    function are reported as exits too. Indirect jumps never are.
    """
    symbol = symbol_resolver.lookup(image, symbol_name)
    if symbol.size <= 0:
        raise SizeUnknown(symbol_name)

    spec = disassembler.arch_for(image.machine)
    code = image.section_bytes(symbol.address, symbol.end)
    md = disassembler.engine(spec)

    offsets: set[int] = set()
    for instruction in md.disasm(code, symbol.address):
        offset = int(instruction.address) - symbol.address
        if disassembler.is_return(spec, instruction):
            offsets.add(offset)
            continue
        if tail_calls:
            target = disassembler.direct_jump_target(spec, instruction)
            if target is not None and not symbol.address <= target < symbol.end:
                offsets.add(offset)

    LOG.debug("%s: %d return site(s) in %d bytes", symbol_name, len(offsets), symbol.size)
    return ReturnSites(symbol=symbol_name, start=symbol.address, offsets=tuple(sorted(offsets)))
