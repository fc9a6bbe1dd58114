"""Decide whether a Go binary passes arguments in registers or on the stack.

Go 1.17 introduced a register-based internal ABI on amd64. Binaries built
with it keep the current goroutine in ``r14`` and every function prologue
checks the stack bound through it::

    cmp rsp, qword ptr [r14 + 0x10]

Older binaries load the goroutine from thread-local storage first::

    mov rcx, qword ptr fs:[0xfffffffffffffff8]
    cmp rsp, qword ptr [rcx + 0x10]

Sampling function prologues for these two idioms is enough to classify the
whole binary.
"""

from __future__ import annotations

import logging
import re

from ..errors import ClassificationFailure
from ..models.abi_profile import ABIProfile
from . import disassembler
from .binary_image import BinaryImage

LOG = logging.getLogger(__name__)

DEFAULT_SAMPLE_LIMIT = 512
PROLOGUE_INSTRUCTIONS = 6

REGISTER_BOUND_CHECK = re.compile(r"qword ptr \[r14 \+ 0x10\]")
TLS_GOROUTINE_LOAD = re.compile(r"^(?P<reg>\w+), qword ptr fs:\[(?:0xfffffffffffffff8|-8)\]$")


def classify(image: BinaryImage, *, sample_limit: int = DEFAULT_SAMPLE_LIMIT) -> ABIProfile:
    if image.machine != disassembler.EM_X86_64:
        raise ClassificationFailure(
            f"no calling-convention patterns known for ELF machine type {image.machine} in {image.path}"
        )

    spec = disassembler.arch_for(image.machine)
    md = disassembler.engine(spec, skipdata=False)
    register_votes = 0
    stack_votes = 0
    sampled = 0
    for symbol in image.function_symbols()[: max(sample_limit, 0)]:
        sampled += 1
        code = image.section_bytes(symbol.address, symbol.end)
        vote = _prologue_vote(md.disasm(code, symbol.address, PROLOGUE_INSTRUCTIONS))
        if vote is True:
            register_votes += 1
        elif vote is False:
            stack_votes += 1

    LOG.debug(
        "%s: sampled %d prologue(s), %d register vote(s), %d stack vote(s)",
        image.path,
        sampled,
        register_votes,
        stack_votes,
    )
    if register_votes > stack_votes:
        return ABIProfile.registers_abi()
    if stack_votes > register_votes:
        return ABIProfile.stack_abi()
    if not register_votes:
        raise ClassificationFailure(f"no argument-passing prologue found in {sampled} function(s) of {image.path}")
    raise ClassificationFailure(
        f"ambiguous calling convention in {image.path}: {register_votes} register and {stack_votes} stack prologues"
    )


def _prologue_vote(instructions) -> bool | None:
    """True for a register-ABI prologue, False for a stack-ABI one, None when neither."""
    goroutine_reg: str | None = None
    for instruction in instructions:
        if instruction.mnemonic == "mov":
            match = TLS_GOROUTINE_LOAD.match(instruction.op_str)
            if match:
                goroutine_reg = match.group("reg")
            continue
        if instruction.mnemonic != "cmp":
            continue
        if REGISTER_BOUND_CHECK.search(instruction.op_str):
            return True
        if goroutine_reg and f"qword ptr [{goroutine_reg} + 0x10]" in instruction.op_str:
            return False
    return None
