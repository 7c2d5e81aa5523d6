"""Settings resolution and overlay policy loading.

* **Settings** -- :func:`resolve_settings` merges CLI flags, environment
  variables and the project-local ``./discosync.json`` into a
  :class:`~discosync.models.Settings`.
* **Policy** -- :func:`load_policy` reads the exclude/include/pause overlay
  from a YAML (or JSON) file into a
  :class:`~discosync.models.PolicyConfig`. A missing or malformed policy
  is fatal: every catalog-dependent step assumes a valid overlay.
* **Data directory** -- :func:`get_data_dir` resolves where crash logs go,
  XDG compliant on Linux/BSD.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from discosync.exceptions import ConfigLoadError
from discosync.models import PolicyConfig, Settings

_APP_NAME = "discosync"
_PROJECT_CONFIG_FILENAME = "discosync.json"

ENV_POLICY = "DISCOSYNC_CONFIG"
ENV_DISCOVERY_URL = "DISCOSYNC_DISCOVERY_URL"
ENV_MIRROR_URL = "DISCOSYNC_MIRROR_URL"
ENV_TIMEOUT = "DISCOSYNC_TIMEOUT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/discosync/`` (default
    ``~/.local/share/discosync/``). Elsewhere: ``~/.discosync/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Policy ---


def load_policy(path: str | Path) -> PolicyConfig:
    """Load the overlay policy from *path*.

    The file holds up to three keys, all optional::

        exclude:
          - discovery.v1
        include:
          - name: internal
            version: v1
            discoveryRestUrl: https://example.com/internal.v1.json
        pause:
          - drive.v2

    Args:
        path: Location of the YAML (or JSON) policy file.

    Returns:
        The parsed :class:`~discosync.models.PolicyConfig`. An empty file
        yields an empty policy.

    Raises:
        ConfigLoadError: If the file is missing, unreadable, not a mapping,
            or fails validation.
    """
    policy_path = Path(path)
    if not policy_path.is_file():
        raise ConfigLoadError(f"Policy file not found: {policy_path}")
    try:
        text = policy_path.read_text(encoding="utf-8")
        data = yaml.safe_load(text)
    except OSError as exc:
        raise ConfigLoadError(f"Cannot read policy file {policy_path}: {exc}") from exc
    except (UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigLoadError(f"Invalid policy file {policy_path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"Invalid policy file {policy_path}: expected a mapping, "
            f"got {type(data).__name__}"
        )
    try:
        return PolicyConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid policy file {policy_path}: {exc}") from exc


# --- Project-local settings ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./discosync.json`` if present.

    Raises:
        ConfigLoadError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        raise ConfigLoadError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Invalid project config at {path}: expected an object")
    return data


# --- Precedence resolution ---


def resolve_settings(
    cli_policy: Optional[str] = None,
    cli_discovery_url: Optional[str] = None,
) -> Settings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``--config``, ``--discovery-url``)
        2. Environment variables (``DISCOSYNC_CONFIG``,
           ``DISCOSYNC_DISCOVERY_URL``, ``DISCOSYNC_MIRROR_URL``,
           ``DISCOSYNC_TIMEOUT``)
        3. Project config (``./discosync.json``)
        4. Defaults

    Raises:
        ConfigLoadError: If the project config or an environment value is
            invalid.
    """
    values: dict[str, Any] = dict(load_project_config() or {})

    env_map = {
        "policy_path": ENV_POLICY,
        "discovery_url": ENV_DISCOVERY_URL,
        "mirror_url": ENV_MIRROR_URL,
        "timeout": ENV_TIMEOUT,
    }
    for field, var in env_map.items():
        env_value = os.environ.get(var)
        if env_value:
            values[field] = env_value

    if cli_policy is not None:
        values["policy_path"] = cli_policy
    if cli_discovery_url is not None:
        values["discovery_url"] = cli_discovery_url

    try:
        return Settings.model_validate(values)
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid settings: {exc}") from exc
