"""Remote discovery index and the policy overlay applied to it.

:class:`DiscoveryCatalog` performs the single index fetch of a run and
applies a :class:`~discosync.models.PolicyConfig` to it, producing an
:class:`EffectiveCatalog`. The CLI builds the effective catalog once at the
start of a run and hands the same object to the dispatcher and the
reconciler.

Overlay order is fixed: excludes are removed first, then includes are
appended for every name+version not already present. Because the two
steps run in sequence, an include can bring back an API that the exclude
list just removed.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Optional

from pydantic import ValidationError

from discosync.exceptions import CatalogFetchError, PerApiFetchError
from discosync.fetcher import DocumentFetcher
from discosync.models import ApiDescriptor, ApiKey, PolicyConfig
from discosync.output import debug, info


class EffectiveCatalog:
    """Immutable, ordered set of descriptors for one run.

    Args:
        descriptors: Descriptors in catalog order. Keys must be unique.

    Raises:
        ValueError: If two descriptors share a name and version.
    """

    def __init__(self, descriptors: tuple[ApiDescriptor, ...]) -> None:
        by_key: dict[ApiKey, ApiDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.key in by_key:
                raise ValueError(f"Duplicate catalog entry: {descriptor.id}")
            by_key[descriptor.key] = descriptor
        self._descriptors = tuple(descriptors)
        self._by_key = by_key

    def __iter__(self) -> Iterator[ApiDescriptor]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    @property
    def descriptors(self) -> tuple[ApiDescriptor, ...]:
        return self._descriptors

    def get(self, key: ApiKey) -> Optional[ApiDescriptor]:
        return self._by_key.get(key)

    def keys(self) -> list[ApiKey]:
        return [d.key for d in self._descriptors]

    def artifact_ids(self) -> set[str]:
        """Canonical artifact ids of every cataloged API, paused ones included."""
        return {d.canonical_artifact_id for d in self._descriptors}


def apply_policy(
    descriptors: list[ApiDescriptor], policy: PolicyConfig
) -> EffectiveCatalog:
    """Apply *policy* to raw index *descriptors*.

    1. Drop every descriptor whose key is in ``policy.exclude``.
    2. Append each ``policy.include`` entry unless a remaining descriptor
       already has the same name and version. Existing entries are never
       modified.

    A key repeated in the raw index keeps its first occurrence.
    """
    kept: list[ApiDescriptor] = []
    seen: set[ApiKey] = set()
    for descriptor in descriptors:
        if descriptor.key in policy.exclude:
            debug(f"Excluding {descriptor.id}")
            continue
        if descriptor.key in seen:
            debug(f"Ignoring repeated index entry {descriptor.id}")
            continue
        seen.add(descriptor.key)
        kept.append(descriptor)

    for extra in policy.include:
        if extra.key in seen:
            debug(f"Include {extra.id} already in catalog, skipping")
            continue
        debug(f"Including {extra.id}")
        seen.add(extra.key)
        kept.append(extra)

    return EffectiveCatalog(tuple(kept))


class DiscoveryCatalog:
    """The remote discovery index, fetched at most once per instance.

    Args:
        fetcher: An open :class:`~discosync.fetcher.DocumentFetcher`.
        index_url: URL of the discovery index.
    """

    def __init__(self, fetcher: DocumentFetcher, index_url: str) -> None:
        self._fetcher = fetcher
        self._index_url = index_url
        self._raw: Optional[list[ApiDescriptor]] = None
        self._effective: Optional[EffectiveCatalog] = None

    def fetch(self) -> list[ApiDescriptor]:
        """Return the raw index entries in index order.

        Raises:
            CatalogFetchError: If the index is unreachable, is not JSON,
                has no ``items`` list, or holds an invalid entry.
        """
        if self._raw is not None:
            return list(self._raw)

        info(f"Fetching API list from {self._index_url}")
        try:
            index = self._fetcher.get_json(self._index_url)
        except PerApiFetchError as exc:
            raise CatalogFetchError(f"Cannot fetch discovery index: {exc}") from exc

        items = index.get("items")
        if not isinstance(items, list):
            raise CatalogFetchError(
                f"Malformed discovery index at {self._index_url}: missing 'items' list"
            )
        self._raw = [self._parse_item(item) for item in items]
        debug(f"Discovery index lists {len(self._raw)} APIs")
        return list(self._raw)

    def effective(self, policy: PolicyConfig) -> EffectiveCatalog:
        """Return the policy-filtered catalog, computing it on first call only."""
        if self._effective is None:
            self._effective = apply_policy(self.fetch(), policy)
        return self._effective

    def _parse_item(self, item: Any) -> ApiDescriptor:
        try:
            return ApiDescriptor.model_validate(item)
        except ValidationError as exc:
            raise CatalogFetchError(
                f"Malformed discovery index entry {item!r}: {exc}"
            ) from exc
