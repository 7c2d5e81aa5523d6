"""Generation dispatch -- from documents, URLs or catalog entries to files.

:class:`GenerationDispatcher` offers one operation per selection mode. Every
operation returns the number of APIs processed, never the number of files:

* :meth:`~GenerationDispatcher.generate_from_documents` -- documents already
  in hand.
* :meth:`~GenerationDispatcher.generate_first_success` -- one API, ordered
  candidate URLs; stops at the first successful retrieval.
* :meth:`~GenerationDispatcher.generate_each` -- a flat URL list; every URL
  is attempted and every success counts.
* :meth:`~GenerationDispatcher.generate_named` -- ``name.version`` ids
  looked up in the effective catalog.
* :meth:`~GenerationDispatcher.generate_all` -- a sweep of the whole
  catalog.

Retrieval failures (:class:`~discosync.exceptions.PerApiFetchError`) are
logged and skipped. Renderer and write failures are not caught and abort
the run.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from discosync.catalog import EffectiveCatalog
from discosync.exceptions import PerApiFetchError, RenderError
from discosync.fetcher import DocumentFetcher
from discosync.models import DEFAULT_MIRROR_URL, ApiDescriptor, ApiKey, PolicyConfig
from discosync.output import debug, error, info, warning
from discosync.writer import write_files

Renderer = Callable[[Mapping[str, Any]], Mapping[str, str]]
"""A document goes in, ``{relative path: content}`` comes out."""

Document = Union[str, Mapping[str, Any]]


class GenerationDispatcher:
    """Turn selections of APIs into written client files.

    Args:
        fetcher: An open :class:`~discosync.fetcher.DocumentFetcher`.
        render: The renderer callable, usually
            :meth:`ClientRenderer.render <discosync.renderer.ClientRenderer.render>`.
        destination: Root directory for every written file.
        mirror_url: Template for the primary per-API document URL, with
            ``{name}`` and ``{version}`` placeholders.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        render: Renderer,
        destination: Path,
        mirror_url: str = DEFAULT_MIRROR_URL,
    ) -> None:
        self._fetcher = fetcher
        self._render = render
        self._destination = destination
        self._mirror_url = mirror_url

    # ------------------------------------------------------------------ #
    # Candidate resolution
    # ------------------------------------------------------------------ #

    def mirror_url_for(self, name: str, version: str) -> str:
        return self._mirror_url.format(name=name, version=version)

    def candidate_urls(self, descriptor: ApiDescriptor) -> list[str]:
        """Mirror URL first, then the descriptor's own ``discoveryRestUrl``."""
        candidates = [self.mirror_url_for(descriptor.name, descriptor.version)]
        if descriptor.discovery_rest_url and descriptor.discovery_rest_url not in candidates:
            candidates.append(descriptor.discovery_rest_url)
        return candidates

    # ------------------------------------------------------------------ #
    # Selection modes
    # ------------------------------------------------------------------ #

    def generate_from_documents(self, documents: Iterable[Document]) -> int:
        """Render documents already in hand, one unit of work each.

        String documents are parsed as JSON, falling back to YAML.

        Raises:
            RenderError: If a string document cannot be parsed.
        """
        count = 0
        for document in documents:
            if isinstance(document, str):
                document = parse_document(document)
            self._render_and_write(document)
            count += 1
        return count

    def generate_first_success(
        self, candidates: Sequence[str], label: Optional[str] = None
    ) -> int:
        """Generate one API from the first candidate URL that can be retrieved.

        Returns:
            ``1`` if a candidate succeeded, ``0`` if all of them failed.
        """
        for url in candidates:
            document = self._retrieve(url)
            if document is None:
                continue
            self._render_and_write(document)
            return 1
        error(f"No candidate URL could be retrieved for {label or ', '.join(candidates)}")
        return 0

    def generate_each(self, urls: Iterable[str]) -> int:
        """Attempt every URL independently and count each success."""
        count = 0
        for url in urls:
            document = self._retrieve(url)
            if document is None:
                continue
            self._render_and_write(document)
            count += 1
        return count

    def generate_named(
        self,
        requested: Iterable[str],
        catalog: EffectiveCatalog,
        policy: PolicyConfig,
    ) -> int:
        """Generate the APIs named by ``name.version`` ids.

        Paused ids and ids missing from *catalog* are reported and
        contribute nothing.
        """
        count = 0
        for api_id in requested:
            try:
                key = ApiKey.parse(api_id)
            except ValueError:
                info(f"API {api_id} is not in the discovery list")
                continue
            if policy.is_paused(key):
                info(f"Ignoring paused API {key}")
                continue
            descriptor = catalog.get(key)
            if descriptor is None:
                info(f"API {api_id} is not in the discovery list")
                continue
            count += self._generate_descriptor(descriptor)
        return count

    def generate_all(
        self,
        catalog: EffectiveCatalog,
        policy: PolicyConfig,
        preferred_only: bool = False,
    ) -> int:
        """Sweep the whole catalog, skipping paused and (optionally) non-preferred APIs."""
        count = 0
        for descriptor in catalog:
            if policy.is_paused(descriptor.key):
                info(f"Ignoring paused API {descriptor.id}")
                continue
            if preferred_only and not descriptor.preferred:
                info(f"Ignoring non-preferred API {descriptor.id}")
                continue
            count += self._generate_descriptor(descriptor)
        return count

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _generate_descriptor(self, descriptor: ApiDescriptor) -> int:
        candidates = self.candidate_urls(descriptor)
        info(f"Loading {descriptor.name}, version {descriptor.version} from {candidates[0]}")
        return self.generate_first_success(candidates, label=descriptor.id)

    def _retrieve(self, url: str) -> Optional[dict[str, Any]]:
        try:
            return self._fetcher.get_json(url)
        except PerApiFetchError as exc:
            warning(f"Failed request, skipping {url}")
            debug(str(exc))
            return None

    def _render_and_write(self, document: Mapping[str, Any]) -> None:
        files = self._render(document)
        written = write_files(self._destination, files)
        debug(f"Rendered {document.get('name')}.{document.get('version')} into {len(written)} files")


def parse_document(content: str) -> dict[str, Any]:
    """Parse raw discovery document content as JSON, falling back to YAML.

    Raises:
        RenderError: If the content is neither, or is not an object.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise RenderError(f"Cannot parse discovery document: {exc}") from exc
    if not isinstance(data, dict):
        raise RenderError(
            f"Discovery document must be an object, got {type(data).__name__}"
        )
    return data
