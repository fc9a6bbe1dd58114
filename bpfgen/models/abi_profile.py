from __future__ import annotations

from dataclasses import dataclass

from ..errors import ArgumentIndexError

# Integer argument registers in the order the Go internal register ABI assigns them.
REGISTER_ARGUMENTS: tuple[str, ...] = ("ax", "bx", "cx", "di", "si", "r8", "r9", "r10", "r11")


@dataclass(frozen=True)
class ABIProfile:
    register_based: bool
    registers: tuple[str, ...] = REGISTER_ARGUMENTS
    warning: str | None = None

    @classmethod
    def registers_abi(cls) -> ABIProfile:
        return cls(register_based=True)

    @classmethod
    def stack_abi(cls, warning: str | None = None) -> ABIProfile:
        return cls(register_based=False, warning=warning)

    @property
    def label(self) -> str:
        return "register" if self.register_based else "stack"

    def argument_token(self, index: int) -> str:
        """Return the bpftrace expression that reads argument ``index``."""
        if index < 0:
            raise ArgumentIndexError(f"argument index {index} must not be negative")
        if not self.register_based:
            return f"sarg{index}"
        if index >= len(self.registers):
            raise ArgumentIndexError(
                f"argument {index} is out of bounds for the register ABI "
                f"({len(self.registers)} argument registers); roll your own"
            )
        return f'reg("{self.registers[index]}")'
