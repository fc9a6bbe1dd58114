from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from ..errors import ArgumentIndexError, ClassificationFailure, FileError
from ..models.abi_profile import ABIProfile
from ..models.symbol import ReturnSites
from ..services import abi_classifier, return_locator, symbol_resolver
from ..services.binary_image import BinaryImage
from ..services.cache import ReadThroughCache
from ..services.parser import SYMBOL_KEY

LOG = logging.getLogger(__name__)


class Target:
    """Static facts about one executable, exposed to script templates.

    The binary is re-opened for every query (classification, each symbol
    resolution, each return-site scan) rather than kept open.
    """

    def __init__(
        self,
        exe_path: str | Path,
        arguments: Callable[[str], list[str]],
        *,
        strict_abi: bool = False,
        tail_calls: bool = False,
        sample_limit: int = abi_classifier.DEFAULT_SAMPLE_LIMIT,
    ) -> None:
        path = Path(exe_path).expanduser().absolute()
        if not path.exists():
            raise FileError(f"Target binary '{path}' was not found", str(path))

        self.exe_path = str(path)
        self.arguments = arguments
        self.tail_calls = tail_calls
        self.abi = self._classify(strict_abi=strict_abi, sample_limit=sample_limit)
        self._returns: ReadThroughCache[str, ReturnSites] = ReadThroughCache(self._scan_returns)
        self._addresses: ReadThroughCache[str, str] = ReadThroughCache(self._resolve_address)
        for symbol in self.arguments(SYMBOL_KEY):
            self._addresses.get(symbol)

    @property
    def regs_abi(self) -> bool:
        return self.abi.register_based

    @property
    def symbol_addresses(self) -> dict[str, str]:
        return {symbol: self._addresses.get(symbol) for symbol in self._addresses}

    def arg(self, index: int) -> str:
        try:
            position = int(index)
        except (TypeError, ValueError) as exc:
            raise ArgumentIndexError(f"argument index {index!r} is not an integer") from exc
        return self.abi.argument_token(position)

    def symbol_address(self, symbol: str) -> str:
        if symbol in self._addresses:
            return self._addresses.get(symbol)
        # Undeclared names resolve on demand but stay out of symbol_addresses.
        return self._resolve_address(symbol)

    def symbol_returns(self, symbol: str) -> list[str]:
        sites = self._returns.get(symbol)
        return [symbol_resolver.format_address(address) for address in sites.addresses()]

    def symbol_return_offsets(self, symbol: str) -> list[str]:
        sites = self._returns.get(symbol)
        return [symbol_resolver.format_address(offset) for offset in sites.offsets]

    def context(self) -> dict[str, Any]:
        """Names a template can reference directly, plus ``target`` itself."""
        return {
            "target": self,
            "exe_path": self.exe_path,
            "regs_abi": self.regs_abi,
            "arguments": self.arguments,
            "arg": self.arg,
            "symbol_returns": self.symbol_returns,
            "symbol_return_offsets": self.symbol_return_offsets,
            "symbol_address": self.symbol_address,
            "symbol_addresses": self.symbol_addresses,
        }

    def _open(self) -> BinaryImage:
        return BinaryImage.open(self.exe_path)

    def _classify(self, *, strict_abi: bool, sample_limit: int) -> ABIProfile:
        image = self._open()
        try:
            profile = abi_classifier.classify(image, sample_limit=sample_limit)
        except ClassificationFailure as exc:
            if strict_abi:
                raise
            message = f"couldn't get regs abi ({exc}). falling back to stack calling convention"
            LOG.warning("%s", message)
            return ABIProfile.stack_abi(warning=message)
        LOG.debug("%s uses the %s calling convention", self.exe_path, profile.label)
        return profile

    def _resolve_address(self, symbol: str) -> str:
        return symbol_resolver.format_address(symbol_resolver.resolve(self._open(), symbol))

    def _scan_returns(self, symbol: str) -> ReturnSites:
        LOG.debug("scanning %s for return sites", symbol)
        return return_locator.find_return_sites(self._open(), symbol, tail_calls=self.tail_calls)
