"""Client code renderer -- one discovery document in, a set of files out.

The dispatcher only depends on the renderer's call shape: a parsed
discovery document goes in, a ``{relative path: content}`` mapping comes
out, and any exception is fatal to the run.

Exports:
    ClientRenderer: Jinja2-based renderer producing the client module and
        its support directory.
    ApiNames: Name override table shared across one run.
"""

from discosync.renderer.generator import ClientRenderer
from discosync.renderer.names import ApiNames

__all__ = ["ApiNames", "ClientRenderer"]
