"""discosync -- Keep generated API clients in sync with a discovery catalog.

This package fetches a remote *discovery index* of API descriptions, layers
a local exclude/include/pause policy on top of it, and regenerates (or
removes) the client modules it owns in a destination directory.

Typical workflow::

    discosync list --preferred-only             # inspect the effective catalog
    discosync generate ./generated --from-discovery --clean

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: Settings resolution and policy loading.
    catalog: Remote index fetch and policy overlay.
    dispatcher: Document retrieval and generation dispatch.
    reconciler: Removal of artifacts that left the catalog.
    renderer: Jinja2 rendering of one discovery document.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr diagnostics with Rich support.
"""

__version__ = "0.3.0"
