"""Canonical Pydantic models shared across all discosync modules.

**Catalog models** -- produced from the remote discovery index:
    :class:`ApiKey` and :class:`ApiDescriptor`.

**Configuration models** -- parsed once at load time:
    :class:`PolicyConfig` (the exclude/include/pause overlay) and
    :class:`Settings` (endpoints, timeout, policy path).

All models use Pydantic v2. Catalog models are frozen so that a fetched
catalog cannot be mutated after the overlay has been applied.
"""

from __future__ import annotations

from string import Formatter
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from discosync.naming import canonical_artifact_id


DEFAULT_DISCOVERY_URL = "https://www.googleapis.com/discovery/v1/apis"
DEFAULT_MIRROR_URL = (
    "https://raw.githubusercontent.com/googleapis/discovery-artifact-manager/"
    "master/discoveries/{name}.{version}.json"
)
DEFAULT_POLICY_PATH = "api_list_config.yaml"


# --- Catalog ---


class ApiKey(BaseModel):
    """Composite ``(name, version)`` key identifying one API.

    Equality and hashing compare the two fields; the dotted string form is
    produced only by :meth:`render` and read back by :meth:`parse`.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    def render(self) -> str:
        """Return the ``name.version`` string used in config files and messages."""
        return f"{self.name}.{self.version}"

    @classmethod
    def parse(cls, value: str) -> ApiKey:
        """Parse a ``name.version`` string, splitting on the first dot.

        Raises:
            ValueError: If *value* has no dot or an empty half.
        """
        name, sep, version = value.strip().partition(".")
        if not sep or not name or not version:
            raise ValueError(f"expected 'name.version', got {value!r}")
        return cls(name=name, version=version)

    def __str__(self) -> str:
        return self.render()


class ApiDescriptor(BaseModel):
    """One entry of the discovery index.

    Unknown index fields (``kind``, ``icons``, ``documentationLink``, ...)
    are ignored. Policy ``include`` entries use the same model, so only
    ``name`` and ``version`` are required.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str
    version: str
    description: str = ""
    preferred: bool = False
    discovery_rest_url: str = Field(default="", alias="discoveryRestUrl")

    @field_validator("description", "discovery_rest_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def key(self) -> ApiKey:
        return ApiKey(name=self.name, version=self.version)

    @property
    def id(self) -> str:
        """The ``name.version`` lookup string."""
        return self.key.render()

    @property
    def canonical_artifact_id(self) -> str:
        """Name of the generated module and support directory for this API."""
        return canonical_artifact_id(self.name, self.version)


# --- Configuration ---


def _parse_keys(value: Any) -> Any:
    if value is None:
        return frozenset()
    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(
            ApiKey.parse(item) if isinstance(item, str) else item for item in value
        )
    return value


class PolicyConfig(BaseModel):
    """Local overlay applied on top of the fetched catalog.

    Attributes:
        exclude: APIs dropped from the catalog entirely.
        include: Entries appended when no catalog entry shares their
            name and version.
        pause: APIs kept in the catalog (so their artifacts survive
            reconciliation) but never generated.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    exclude: frozenset[ApiKey] = Field(default_factory=frozenset)
    include: tuple[ApiDescriptor, ...] = Field(default_factory=tuple)
    pause: frozenset[ApiKey] = Field(default_factory=frozenset)

    @field_validator("exclude", "pause", mode="before")
    @classmethod
    def _parse_key_list(cls, value: Any) -> Any:
        return _parse_keys(value)

    @field_validator("include", mode="before")
    @classmethod
    def _none_to_tuple(cls, value: Any) -> Any:
        return () if value is None else value

    def is_paused(self, key: ApiKey) -> bool:
        return key in self.pause


class Settings(BaseModel):
    """Effective run settings after precedence resolution.

    See :func:`~discosync.config.resolve_settings` for the precedence chain.
    """

    model_config = ConfigDict(extra="forbid")

    discovery_url: str = Field(
        default=DEFAULT_DISCOVERY_URL, description="URL of the discovery index"
    )
    mirror_url: str = Field(
        default=DEFAULT_MIRROR_URL,
        description="Per-API document mirror, templated by {name} and {version}",
    )
    policy_path: str = Field(
        default=DEFAULT_POLICY_PATH, description="Path to the overlay policy file"
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    @field_validator("mirror_url")
    @classmethod
    def _check_mirror_template(cls, value: str) -> str:
        """Only ``{name}`` and ``{version}`` may appear in the mirror template."""
        try:
            fields = {f for _, f, _, _ in Formatter().parse(value) if f is not None}
        except ValueError as exc:
            raise ValueError(f"malformed mirror URL template {value!r}: {exc}") from exc
        unknown = fields - {"name", "version"}
        if unknown:
            raise ValueError(
                f"mirror URL template {value!r} uses unknown fields: "
                f"{', '.join(sorted(unknown))}"
            )
        return value
