"""File IO helpers shared by the filesystem provider and the settings store."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

__all__ = [
    "TEXT_ENCODING",
    "normalize_path",
    "read_text",
    "write_text",
]

TEXT_ENCODING = "utf-8"


def normalize_path(path: Path | str) -> Path:
    """Return an absolute, user-expanded path without resolving symlinks.

    Tree entries are keyed by the paths they were listed under, so a symlinked
    directory must keep its link path rather than collapse onto its target.
    """

    return Path(os.path.abspath(Path(path).expanduser()))


def read_text(path: Path | str, *, encoding: str = TEXT_ENCODING) -> str:
    """Read ``path`` strictly as ``encoding``.

    Raises ``OSError`` when the file cannot be read and ``UnicodeDecodeError``
    when its bytes are not valid in the fixed encoding.
    """

    raw = Path(path).read_bytes()
    return raw.decode(encoding, errors="strict")


def _umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def write_text(
    path: Path | str,
    content: str,
    *,
    encoding: str = TEXT_ENCODING,
    atomic: bool = True,
    create_parents: bool = False,
) -> Path:
    """Write ``content`` to ``path``, by default via a temp file and ``os.replace``.

    A symlinked ``path`` is written through to its target, and an existing
    file keeps its permission bits. Parent directories are only created when
    ``create_parents`` is set; a vanished parent is reported as ``OSError``
    instead of being recreated.
    """

    target = Path(path)
    destination = Path(os.path.realpath(target))
    if create_parents:
        destination.parent.mkdir(parents=True, exist_ok=True)
    if not atomic:
        with destination.open("w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        return target

    try:
        mode = stat.S_IMODE(os.stat(destination).st_mode)
    except FileNotFoundError:
        mode = 0o666 & ~_umask()
    descriptor, tmp_name = tempfile.mkstemp(
        dir=str(destination.parent), prefix=f".{destination.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(descriptor, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, destination)
    finally:
        if os.path.exists(tmp_name):  # pragma: no cover - cleanup path
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return target
