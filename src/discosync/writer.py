"""File writes below the destination directory.

Every file goes through :func:`atomic_write` (temp file in the target
directory, then ``os.replace``) so an interrupted run never leaves a
half-written module behind. Earlier files of the same run are not rolled
back when a later write fails.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from discosync.exceptions import FileWriteError
from discosync.output import debug


def atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically using a temp file + rename.

    Parent directories are created as needed. The temp file is removed on
    any failure, including ``KeyboardInterrupt``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def write_files(destination: Path, files: Mapping[str, str]) -> list[Path]:
    """Write each ``relative path -> content`` entry below *destination*.

    Existing files are overwritten. Files already on disk but absent from
    *files* are left alone.

    Returns:
        The absolute paths written, in mapping order.

    Raises:
        FileWriteError: If a path escapes *destination* or a write fails.
    """
    root = destination.resolve()
    written: list[Path] = []
    for relative, content in files.items():
        target = (root / relative).resolve()
        if target == root or root not in target.parents:
            raise FileWriteError(f"Refusing to write outside {root}: {relative}")
        try:
            atomic_write(target, content)
        except OSError as exc:
            raise FileWriteError(f"Cannot write {target}: {exc}") from exc
        debug(f"Wrote {target}")
        written.append(target)
    return written
