"""Render one discovery document into the files of a generated artifact.

:class:`ClientRenderer` turns a parsed discovery document into a mapping of
relative output path to file content:

* ``<artifact_id>.py`` -- the client module: one dataclass per schema and
  one service class whose methods wrap the API's REST methods over httpx.
* ``<artifact_id>/README.md`` -- method overview for humans.
* ``<artifact_id>/discovery.json`` -- the source document, normalised.

The support directory has no ``__init__.py``, so it never shadows the
module on import.

The rendering process:

1. The document's ``name`` and ``version`` are validated; anything else
   missing is defaulted.
2. Schema, attribute, method and parameter names are derived with
   :mod:`discosync.naming` and passed through
   :class:`~discosync.renderer.names.ApiNames` so overrides apply and every
   choice is recorded.
3. The Jinja2 templates in ``renderer/templates/`` are rendered with the
   assembled context.
"""

from __future__ import annotations

import json
import keyword
import textwrap
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from discosync.exceptions import RenderError
from discosync.naming import canonical_artifact_id, class_name, python_identifier
from discosync.renderer.names import ApiNames


TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``renderer/templates/``)."""

_TYPE_MAP: dict[str, str] = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "any": "Any",
}

# Names the generated module already binds at top level.
_RESERVED_CLASS_NAMES = frozenset({"Any", "ClassVar", "Optional", "dataclass", "httpx", "quote"})
_RESERVED_ATTRS = frozenset({"self", "from_dict", "to_dict"})
_RESERVED_PARAMS = frozenset({"self", "body", "path"})


class ClientRenderer:
    """Render discovery documents into client modules.

    One renderer is created per run so that :attr:`names` accumulates every
    name picked across all rendered APIs.

    Args:
        names: Name override table. A fresh, empty table is used when
            ``None``.
    """

    def __init__(self, names: Optional[ApiNames] = None) -> None:
        self.names = names or ApiNames()
        self._env = _create_jinja_env()

    def render(self, document: Mapping[str, Any]) -> dict[str, str]:
        """Render *document* into ``{relative path: content}``.

        Raises:
            RenderError: If the document is not a mapping, lacks ``name`` or
                ``version``, has malformed ``schemas``/``resources``, or a
                name override is not a valid identifier.
        """
        if not isinstance(document, Mapping):
            raise RenderError(
                f"Discovery document must be an object, got {type(document).__name__}"
            )
        context = self._build_context(document)
        artifact_id = context["artifact_id"]
        try:
            module = self._env.get_template("client.py.j2").render(context)
            readme = self._env.get_template("README.md.j2").render(context)
        except TemplateError as exc:
            raise RenderError(f"Failed to render {context['api_id']}: {exc}") from exc

        source = json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False)
        return {
            f"{artifact_id}.py": module,
            f"{artifact_id}/README.md": readme,
            f"{artifact_id}/discovery.json": source + "\n",
        }

    # ------------------------------------------------------------------ #
    # Context assembly
    # ------------------------------------------------------------------ #

    def _build_context(self, document: Mapping[str, Any]) -> dict[str, Any]:
        name = document.get("name")
        version = document.get("version")
        if not isinstance(name, str) or not name or not isinstance(version, str) or not version:
            raise RenderError("Discovery document lacks a 'name' or 'version'")

        api_id = f"{name}.{version}"
        prefix = f"/{name}:{version}"
        title = str(document.get("title") or api_id)
        description = str(document.get("description") or "")
        service_class = f"{class_name(name)}{class_name(version)}Service"

        schemas_raw = _mapping(document.get("schemas"), "schemas", api_id)
        taken = set(_RESERVED_CLASS_NAMES) | {service_class}
        class_names: dict[str, str] = {}
        for schema_id in schemas_raw:
            default = _unique(class_name(schema_id), taken)
            class_names[schema_id] = self._pick(f"{prefix}/{schema_id}", default)

        schemas = [
            self._schema_context(prefix, schema_id, schema, class_names)
            for schema_id, schema in schemas_raw.items()
        ]

        method_names: set[str] = set()
        methods = [
            self._method_context(prefix, name, trail, method, method_names, api_id)
            for trail, method in _walk_methods(document, (), api_id)
        ]

        root_url = document.get("rootUrl")
        if root_url:
            root_url = f"{root_url}{document.get('servicePath') or ''}"
        else:
            root_url = document.get("baseUrl") or ""

        return {
            "name": name,
            "version": version,
            "api_id": api_id,
            "artifact_id": canonical_artifact_id(name, version),
            "title": title,
            "description": description,
            "revision": str(document.get("revision") or ""),
            "documentation_link": document.get("documentationLink") or "",
            "root_url": str(root_url),
            "module_docstring": _docstring(f"{title} ({api_id}).\n\n{description}", ""),
            "service_class": service_class,
            "service_docstring": _docstring(f"Client for the {title}.", "    "),
            "schemas": schemas,
            "methods": methods,
        }

    def _schema_context(
        self,
        prefix: str,
        schema_id: str,
        schema: Any,
        class_names: dict[str, str],
    ) -> dict[str, Any]:
        if not isinstance(schema, Mapping):
            schema = {}
        properties = schema.get("properties")
        if not isinstance(properties, Mapping):
            properties = {}

        taken = set(_RESERVED_ATTRS)
        attrs = []
        for wire, prop in properties.items():
            default = _unique(python_identifier(wire), taken)
            attrs.append({
                "attr": self._pick(f"{prefix}/{schema_id}/{wire}", default),
                "wire": wire,
                "hint": _type_hint(prop, class_names),
            })

        wire_names = "{" + ", ".join(f"{a['attr']!r}: {a['wire']!r}" for a in attrs) + "}"
        return {
            "class_name": class_names[schema_id],
            "docstring": _docstring(str(schema.get("description") or schema_id), "    "),
            "attrs": attrs,
            "wire_names": wire_names,
        }

    def _method_context(
        self,
        prefix: str,
        api_name: str,
        trail: tuple[str, ...],
        method: Mapping[str, Any],
        method_names: set[str],
        api_id: str,
    ) -> dict[str, Any]:
        method_id = str(method.get("id") or ".".join((api_name,) + trail))
        default = _unique(python_identifier("_".join(trail), fallback="call"), method_names)
        py_name = self._pick(f"{prefix}/{method_id}", default)

        parameters = _mapping(method.get("parameters"), f"parameters of {method_id}", api_id)
        order = [p for p in method.get("parameterOrder") or [] if p in parameters]
        rest = [p for p in parameters if p not in order]

        taken = set(_RESERVED_PARAMS)
        params = []
        for wire in order + rest:
            definition = parameters[wire] if isinstance(parameters[wire], Mapping) else {}
            default = _unique(python_identifier(wire), taken)
            params.append({
                "attr": self._pick(f"{prefix}/{method_id}/{wire}", default),
                "wire": wire,
                "location": definition.get("location", "query"),
                "positional": wire in order,
                "description": str(definition.get("description") or ""),
            })

        has_body = "request" in method
        args = ["self"] + [p["attr"] for p in params if p["positional"]]
        keyword_only = (["body=None"] if has_body else []) + [
            f"{p['attr']}=None" for p in params if not p["positional"]
        ]
        if keyword_only:
            args += ["*"] + keyword_only

        http_method = str(method.get("httpMethod") or "GET").upper()
        path = str(method.get("path") or "")
        extra = [f"{http_method} {path}"]
        response = method.get("response")
        if isinstance(response, Mapping) and response.get("$ref"):
            extra.append(f"Returns the JSON form of {response['$ref']}.")

        return {
            "py_name": py_name,
            "method_id": method_id,
            "signature": ", ".join(args),
            "docstring": _docstring(
                str(method.get("description") or method_id), "        ", extra
            ),
            "http_method": http_method,
            "path": path,
            "has_body": has_body,
            "path_args": _dict_literal(p for p in params if p["location"] == "path"),
            "query_args": _dict_literal(p for p in params if p["location"] != "path"),
            "params": params,
        }

    def _pick(self, key: str, default: str) -> str:
        name = self.names.pick(key, default)
        if not name.isidentifier() or keyword.iskeyword(name):
            raise RenderError(f"Name override for {key} is not a valid identifier: {name!r}")
        return name


# ---------------------------------------------------------------------- #
# Helpers
# ---------------------------------------------------------------------- #


def _create_jinja_env() -> Environment:
    """Create the Jinja2 environment over ``renderer/templates/``.

    Autoescape is disabled for the Python and Markdown templates; values
    that end up inside Python literals go through the ``pyrepr`` filter.
    """
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("py.j2", "md.j2")),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["pyrepr"] = lambda value: repr(str(value))
    return env


def _mapping(value: Any, what: str, api_id: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise RenderError(f"Malformed {what} in {api_id}: expected an object")
    return value


def _walk_methods(
    node: Mapping[str, Any], trail: tuple[str, ...], api_id: str
) -> Iterator[tuple[tuple[str, ...], Mapping[str, Any]]]:
    """Yield ``(resource trail + method name, method)`` depth-first."""
    for name, method in _mapping(node.get("methods"), "methods", api_id).items():
        if isinstance(method, Mapping):
            yield trail + (name,), method
    for name, resource in _mapping(node.get("resources"), "resources", api_id).items():
        if isinstance(resource, Mapping):
            yield from _walk_methods(resource, trail + (name,), api_id)


def _unique(name: str, taken: set[str]) -> str:
    while name in taken:
        name = f"{name}_"
    taken.add(name)
    return name


def _type_hint(prop: Any, class_names: dict[str, str]) -> str:
    """Map a discovery JSON-schema fragment to a Python annotation string."""
    if not isinstance(prop, Mapping):
        return "Any"
    ref = prop.get("$ref")
    if ref:
        return class_names.get(ref, "Any")
    kind = prop.get("type")
    if kind == "array":
        return f"list[{_type_hint(prop.get('items'), class_names)}]"
    if kind == "object":
        extra = prop.get("additionalProperties")
        if isinstance(extra, Mapping):
            return f"dict[str, {_type_hint(extra, class_names)}]"
        return "dict[str, Any]"
    return _TYPE_MAP.get(kind, "Any")


def _dict_literal(params: Any) -> str:
    return "{" + ", ".join(f"{p['wire']!r}: {p['attr']}" for p in params) + "}"


def _docstring(text: str, indent: str, extra: Optional[list[str]] = None) -> str:
    """Build an indented, escaped triple-quoted docstring literal."""
    lines: list[str] = []
    for raw in text.strip().splitlines():
        raw = raw.strip()
        lines.extend(textwrap.wrap(raw, width=72) if raw else [""])
    if extra:
        lines += [""] + extra
    if not lines:
        lines = ["No description provided."]
    lines = [line.replace("\\", "\\\\").replace('"', '\\"') for line in lines]

    if len(lines) == 1:
        return f'{indent}"""{lines[0]}"""'
    out = [f'{indent}"""{lines[0]}']
    out += [f"{indent}{line}" if line else "" for line in lines[1:]]
    out.append(f'{indent}"""')
    return "\n".join(out)
