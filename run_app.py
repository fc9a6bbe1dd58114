#!/usr/bin/env python3
from __future__ import annotations

import sys
from pathlib import Path


def main() -> int:
    root = Path(__file__).resolve().parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))

    # Import after sys.path adjustment so the in-tree `bpfgen` package resolves without installing.
    from bpfgen import app

    return app.main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main())
