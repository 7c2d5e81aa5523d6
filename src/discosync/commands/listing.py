"""The ``list`` command -- show the effective catalog.

Prints one row per cataloged API after the policy overlay is applied.
Paused APIs are listed (they are still cataloged) and marked as such.

Usage::

    discosync list
    discosync list --preferred-only --verbose
    discosync --json list > catalog.json
"""

from __future__ import annotations

from typing import Optional

import typer

from discosync.catalog import DiscoveryCatalog
from discosync.config import load_policy, resolve_settings
from discosync.exceptions import DiscosyncError
from discosync.fetcher import DocumentFetcher
from discosync.output import error, get_output, print_table


def list_command(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show preferred flag and discovery URL."
    ),
    preferred_only: bool = typer.Option(
        False, "--preferred-only", help="Only list preferred API versions."
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Policy file (default: api_list_config.yaml)."
    ),
    discovery_url: Optional[str] = typer.Option(
        None, "--discovery-url", help="Override the discovery index URL."
    ),
) -> None:
    """List the APIs in the effective catalog."""
    if verbose:
        get_output().set_verbose(True)

    try:
        settings = resolve_settings(cli_policy=config, cli_discovery_url=discovery_url)
        policy = load_policy(settings.policy_path)
        with DocumentFetcher(timeout=settings.timeout) as fetcher:
            catalog = DiscoveryCatalog(fetcher, settings.discovery_url).effective(policy)
    except DiscosyncError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    headers = ["ID", "Description"]
    if verbose:
        headers += ["Preferred", "Discovery URL"]

    rows: list[list[str]] = []
    for descriptor in catalog:
        if preferred_only and not descriptor.preferred:
            continue
        api_id = descriptor.id
        if policy.is_paused(descriptor.key):
            api_id += " (paused)"
        row = [api_id, descriptor.description]
        if verbose:
            row += ["yes" if descriptor.preferred else "no", descriptor.discovery_rest_url]
        rows.append(row)

    print_table(headers, rows, title=f"Discovery catalog ({len(rows)})")
