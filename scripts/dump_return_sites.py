#!/usr/bin/env python3
"""Print the ABI classification and return sites of functions in a binary.

Handy for checking what a template will see before writing one.

Usage:
  python scripts/dump_return_sites.py ./server main.handleRequest main.(*Conn).Close
  python scripts/dump_return_sites.py --tail-calls ./server main.dispatch
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bpfgen.errors import ClassificationFailure, GeneratorError  # noqa: E402
from bpfgen.services import abi_classifier, return_locator  # noqa: E402
from bpfgen.services.binary_image import BinaryImage  # noqa: E402


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Dump return sites found by the linear-sweep locator")
    p.add_argument("binary", type=Path, help="Path to the ELF executable")
    p.add_argument("symbols", nargs="+", help="Function symbols to scan")
    p.add_argument("--tail-calls", action="store_true", help="Also report direct jumps out of the function")
    return p.parse_args()


def main() -> int:
    args = parse_args()
    try:
        image = BinaryImage.open(args.binary)
    except GeneratorError as exc:
        raise SystemExit(str(exc))

    try:
        profile = abi_classifier.classify(image)
        print(f"abi: {profile.label}")
    except ClassificationFailure as exc:
        print(f"abi: unknown ({exc})")

    failed = False
    for name in args.symbols:
        try:
            sites = return_locator.find_return_sites(image, name, tail_calls=args.tail_calls)
        except GeneratorError as exc:
            print(f"{name}: {exc}")
            failed = True
            continue
        print(f"\n=== {name} @ 0x{sites.start:x}: {len(sites)} site(s) ===")
        for offset, address in zip(sites.offsets, sites.addresses()):
            print(f"  +0x{offset:x}\t0x{address:x}")

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
