"""Identifier normalisation for catalog entries and generated code.

* :func:`underscore` -- CamelCase to snake_case for API names.
* :func:`canonical_artifact_id` -- the on-disk name of one API's artifact.
* :func:`python_identifier` / :func:`class_name` -- safe names for the
  renderer's output.
"""

from __future__ import annotations

import keyword
import re

_ACRONYM_BOUNDARY_RE = re.compile(r"([A-Z\d]+)([A-Z][a-z])")
_WORD_BOUNDARY_RE = re.compile(r"([a-z\d])([A-Z])")
_INVALID_IDENT_RE = re.compile(r"[^a-zA-Z0-9_]")
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]+")


def underscore(name: str) -> str:
    """Lower-case *name*, inserting underscores at word boundaries.

    Example::

        >>> underscore("AdExchangeBuyer")
        'ad_exchange_buyer'
        >>> underscore("HTTPHealthCheck")
        'http_health_check'
        >>> underscore("cloud-resource")
        'cloud_resource'
    """
    result = _ACRONYM_BOUNDARY_RE.sub(r"\1_\2", name)
    result = _WORD_BOUNDARY_RE.sub(r"\1_\2", result)
    return result.replace("-", "_").lower()


def canonical_artifact_id(name: str, version: str) -> str:
    """Return the normalised artifact identifier for an API name and version.

    Example::

        >>> canonical_artifact_id("adexchangebuyer", "v1.4")
        'adexchangebuyer_v1_4'
    """
    return f"{underscore(name)}_{version.replace('.', '_')}"


def python_identifier(name: str, fallback: str = "value") -> str:
    """Convert a discovery property, parameter or method name to snake_case.

    Separators become underscores, runs of underscores collapse, a leading
    digit gets an underscore prefix and Python keywords get a trailing one.

    Example::

        >>> python_identifier("pageToken")
        'page_token'
        >>> python_identifier("import")
        'import_'
    """
    result = underscore(name).replace(".", "_")
    result = _INVALID_IDENT_RE.sub("_", result)
    result = re.sub(r"_+", "_", result).strip("_")
    if not result:
        result = fallback
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result


def class_name(name: str) -> str:
    """Convert a schema id or API name to a CamelCase class name.

    Example::

        >>> class_name("drive")
        'Drive'
        >>> class_name("GoogleCloudV1.Operation")
        'GoogleCloudV1Operation'
    """
    parts = [p for p in _NON_ALNUM_RE.split(name) if p]
    result = "".join(p[0].upper() + p[1:] for p in parts) or "Unnamed"
    if result[0].isdigit():
        result = f"_{result}"
    return result
