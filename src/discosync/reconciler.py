"""Removal of generated artifacts that left the catalog.

A generated unit is a top-level ``<artifact_id>.py`` module in the
destination directory plus its ``<artifact_id>/`` support directory. Any
unit whose id is not the canonical artifact id of an effective-catalog
entry is deleted. Paused APIs stay in the catalog, so their artifacts
survive.

Deletion is immediate and final; there is no staging or dry run.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from discosync.catalog import EffectiveCatalog
from discosync.exceptions import FileWriteError
from discosync.output import debug, info


def generated_units(destination: Path) -> list[str]:
    """Return the artifact ids of the top-level modules in *destination*, sorted.

    Modules whose name starts with an underscore (``__init__.py``) are not
    generated units.
    """
    if not destination.is_dir():
        return []
    return sorted(
        p.stem
        for p in destination.glob("*.py")
        if p.is_file() and not p.stem.startswith("_")
    )


def reconcile(catalog: EffectiveCatalog, destination: Path) -> int:
    """Delete every generated unit in *destination* not represented in *catalog*.

    Returns:
        The number of units removed.

    Raises:
        FileWriteError: If a module or support directory cannot be deleted.
    """
    keep = catalog.artifact_ids()
    removed = 0
    for unit in generated_units(destination):
        if unit in keep:
            continue
        support_dir = destination / unit
        module = destination / f"{unit}.py"
        try:
            if support_dir.is_dir():
                shutil.rmtree(support_dir)
            module.unlink()
        except OSError as exc:
            raise FileWriteError(f"Cannot remove artifact {unit}: {exc}") from exc
        info(f"Removed {unit}")
        removed += 1
    debug(f"Reconciled {destination}: {removed} removed, {len(keep)} cataloged")
    return removed
