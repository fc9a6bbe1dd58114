"""Find script templates on disk or among the ones shipped with the package."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from ..errors import FileError

LOG = logging.getLogger(__name__)

BUILTIN_TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"


def load_template(name: str, *, search_dirs: Iterable[str | Path] = ()) -> str:
    """Return template text for ``name``.

    The filesystem is tried first, then each of ``search_dirs``, then the
    built-in templates.
    """
    candidate = Path(name).expanduser()
    if candidate.is_file():
        return _read(candidate)

    tried = [str(candidate)]
    for directory in [*search_dirs, BUILTIN_TEMPLATE_DIR]:
        path = Path(directory).expanduser() / name
        if path.is_file():
            LOG.debug("using template %s", path)
            return _read(path)
        tried.append(str(path))
    raise FileError(f"failed to open template {name}; tried {', '.join(tried)}", name)


def list_builtin() -> list[str]:
    if not BUILTIN_TEMPLATE_DIR.is_dir():
        return []
    return sorted(path.name for path in BUILTIN_TEMPLATE_DIR.iterdir() if path.is_file())


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileError(f"Unable to read template {path}: {exc}", str(path)) from exc
