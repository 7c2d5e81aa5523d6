"""The ``generate`` command -- regenerate clients and prune stale ones.

One invocation runs these steps in order, each only when requested:

1. Resolve settings; when the catalog is needed (``--api``,
   ``--from-discovery``, ``--clean``), load the policy and build the
   effective catalog once.
2. ``--url``: fetch and render every URL (failures skipped).
3. ``--file``: render local discovery documents.
4. ``--api``: render the named catalog entries.
5. ``--from-discovery``: render the whole catalog.
6. ``--clean``: remove artifacts that are no longer cataloged.
7. ``--names-out``: dump the generated-name table if anything was rendered.

Usage::

    discosync generate ./generated --from-discovery --preferred-only --clean
    discosync generate ./generated --api drive.v3 --api sheets.v4
    discosync generate ./generated --file ./drive.v3.json --names names.yaml
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from discosync.catalog import DiscoveryCatalog, EffectiveCatalog
from discosync.config import load_policy, resolve_settings
from discosync.dispatcher import GenerationDispatcher
from discosync.exceptions import DiscosyncError, FileWriteError, InvalidUsageError
from discosync.fetcher import DocumentFetcher
from discosync.models import PolicyConfig
from discosync.output import debug, error, get_output, success
from discosync.reconciler import reconcile
from discosync.renderer import ApiNames, ClientRenderer
from discosync.writer import atomic_write


def generate_command(
    destination: Path = typer.Argument(
        ..., help="Directory holding the generated client modules."
    ),
    url: Optional[List[str]] = typer.Option(
        None, "--url", help="Discovery document URL to generate (repeatable)."
    ),
    file: Optional[List[Path]] = typer.Option(
        None, "--file", help="Local discovery document to generate (repeatable)."
    ),
    from_discovery: bool = typer.Option(
        False, "--from-discovery", help="Generate every API in the catalog."
    ),
    preferred_only: bool = typer.Option(
        False, "--preferred-only", help="With --from-discovery, only preferred versions."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    names: Optional[Path] = typer.Option(
        None, "--names", help="YAML file with generated-name overrides."
    ),
    names_out: Optional[Path] = typer.Option(
        None, "--names-out", help="Write the generated-name table to this file."
    ),
    api: Optional[List[str]] = typer.Option(
        None, "--api", help="Catalog id (name.version) to generate (repeatable)."
    ),
    clean: bool = typer.Option(
        False, "--clean", help="Remove generated clients no longer in the catalog."
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Policy file (default: api_list_config.yaml)."
    ),
    discovery_url: Optional[str] = typer.Option(
        None, "--discovery-url", help="Override the discovery index URL."
    ),
) -> None:
    """Generate API clients into DESTINATION and optionally prune stale ones."""
    if verbose:
        get_output().set_verbose(True)

    try:
        _run(
            destination,
            urls=url or [],
            files=file or [],
            apis=api or [],
            from_discovery=from_discovery,
            preferred_only=preferred_only,
            clean=clean,
            names=names,
            names_out=names_out,
            config=config,
            discovery_url=discovery_url,
        )
    except DiscosyncError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _run(
    destination: Path,
    urls: list[str],
    files: list[Path],
    apis: list[str],
    from_discovery: bool,
    preferred_only: bool,
    clean: bool,
    names: Optional[Path],
    names_out: Optional[Path],
    config: Optional[str],
    discovery_url: Optional[str],
) -> None:
    if not (urls or files or apis or from_discovery or clean):
        raise InvalidUsageError(
            "Nothing to do: pass --url, --file, --api, --from-discovery or --clean"
        )

    settings = resolve_settings(cli_policy=config, cli_discovery_url=discovery_url)
    renderer = ClientRenderer(ApiNames.load(names))
    documents = [_read_document(path) for path in files]
    needs_catalog = bool(apis) or from_discovery or clean

    policy: Optional[PolicyConfig] = None
    if needs_catalog:
        policy = load_policy(settings.policy_path)
        debug(f"Loaded policy from {settings.policy_path}")

    generated = 0
    removed = 0
    with DocumentFetcher(timeout=settings.timeout) as fetcher:
        catalog: Optional[EffectiveCatalog] = None
        if policy is not None:
            catalog = DiscoveryCatalog(fetcher, settings.discovery_url).effective(policy)

        dispatcher = GenerationDispatcher(
            fetcher, renderer.render, destination, mirror_url=settings.mirror_url
        )
        if urls:
            generated += dispatcher.generate_each(urls)
        if documents:
            generated += dispatcher.generate_from_documents(documents)
        if catalog is not None and policy is not None:
            if apis:
                generated += dispatcher.generate_named(apis, catalog, policy)
            if from_discovery:
                generated += dispatcher.generate_all(catalog, policy, preferred_only)
            if clean:
                removed = reconcile(catalog, destination)

    if generated > 0 and names_out is not None:
        try:
            atomic_write(names_out, renderer.names.dump())
        except OSError as exc:
            raise FileWriteError(f"Cannot write names file {names_out}: {exc}") from exc
        debug(f"Wrote generated names to {names_out}")

    success(f"Generated {generated} API(s)")
    if clean:
        success(f"Removed {removed} stale artifact(s)")


def _read_document(path: Path) -> str:
    if not path.is_file():
        raise InvalidUsageError(f"Discovery document not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidUsageError(f"Cannot read discovery document {path}: {exc}") from exc
