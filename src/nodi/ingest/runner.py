from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from ..errors import ReadFailure


DEFAULT_EXTENSION = ".md"


def normalize_extension(extension: str) -> str:
    ext = extension.strip()
    if not ext:
        raise ValueError("document extension must not be empty")
    return ext if ext.startswith(".") else f".{ext}"


def relpath(path: Path, root: Path) -> str:
    # Stored paths are POSIX-style so reference suffix matching is separator independent.
    # Only the directory is resolved: a symlinked document keeps its own name.
    try:
        return (path.parent.resolve() / path.name).relative_to(root.resolve()).as_posix()
    except ValueError:
        return path.as_posix()


def _walk_error(err: OSError) -> None:
    raise ReadFailure(err.strerror or str(err), path=err.filename) from err


def iter_documents(root: str | os.PathLike[str], extension: str = DEFAULT_EXTENSION) -> Iterable[Path]:
    """Yield document files under ``root`` in a stable (sorted) order.

    Hidden files and anything below a hidden directory (including the index
    directory itself) are skipped.
    """
    base = Path(root)
    ext = normalize_extension(extension)
    for dirpath, dirnames, filenames in os.walk(base, onerror=_walk_error):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in sorted(filenames):
            if name.startswith("."):
                continue
            if not name.endswith(ext):
                continue
            p = Path(dirpath) / name
            if not p.is_file():
                continue
            yield p
