"""Generated-name overrides.

Some discovery names do not map cleanly to Python (collisions after
snake-casing, awkward acronyms). :class:`ApiNames` lets a YAML file pin the
identifier emitted for a given key, and records every name the renderer
picked so the full table can be dumped with ``--names-out`` and reviewed.

Keys look like::

    /drive:v3/File                  # schema class
    /drive:v3/File/modifiedTime     # schema attribute
    /drive:v3/drive.files.list      # service method
    /drive:v3/drive.files.list/q    # method parameter
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml

from discosync.exceptions import ConfigLoadError


class ApiNames:
    """Override table plus a record of the names actually used.

    Args:
        overrides: Mapping of name key to the identifier to emit.
    """

    def __init__(self, overrides: Optional[dict[str, str]] = None) -> None:
        self._overrides = dict(overrides or {})
        self._used: dict[str, str] = {}

    @classmethod
    def load(cls, path: Optional[str | Path]) -> ApiNames:
        """Load overrides from *path*.

        A ``None`` path or a file that does not exist yet yields an empty
        table, so ``--names`` and ``--names-out`` may point at the same file
        on the first run.

        Raises:
            ConfigLoadError: If the file exists but is not a mapping of
                strings.
        """
        if path is None:
            return cls()
        names_path = Path(path)
        if not names_path.is_file():
            return cls()
        try:
            data = yaml.safe_load(names_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise ConfigLoadError(f"Invalid names file {names_path}: {exc}") from exc
        if data is None:
            return cls()
        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise ConfigLoadError(
                f"Invalid names file {names_path}: expected a mapping of strings"
            )
        return cls(data)

    def pick(self, key: str, default: str) -> str:
        """Return the override for *key*, or *default*, and record the choice."""
        name = self._overrides.get(key, default)
        self._used[key] = name
        return name

    @property
    def used(self) -> dict[str, str]:
        return dict(self._used)

    def dump(self) -> str:
        """Serialise every recorded name as sorted YAML."""
        return yaml.safe_dump(
            dict(sorted(self._used.items())),
            default_flow_style=False,
            sort_keys=True,
        )
