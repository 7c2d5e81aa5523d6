"""Typer application and console-script entry point.

``discosync`` has two commands, ``generate`` and ``list``. The root
callback turns ``--json``/``--plain``/``--no-color``/``--quiet`` into the
global :class:`~discosync.output.OutputManager` before either runs.

Exit status comes from :mod:`discosync.exit_codes`: commands map their own
:class:`~discosync.exceptions.DiscosyncError` failures, :func:`main`
handles Ctrl-C and anything unexpected.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any

import typer

from discosync import __version__
from discosync.commands.generate import generate_command
from discosync.commands.listing import list_command
from discosync.exceptions import DiscosyncError
from discosync.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from discosync.output import OutputFormat, OutputManager, error, set_output


app = typer.Typer(
    name="discosync",
    help="Keep generated API clients in sync with a discovery catalog.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("generate")(generate_command)
app.command("list")(list_command)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"discosync {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the catalog as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print the catalog as plain lines."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only print warnings, errors and data."
    ),
) -> None:
    """Keep generated API clients in sync with a discovery catalog."""
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))


def _on_sigint(signum: int, frame: Any) -> None:
    # Files already written stay written; there is nothing to roll back.
    sys.stderr.write("\nInterrupted.\n")
    sys.exit(EXIT_INTERRUPTED)


def _save_traceback() -> Path:
    """Dump the active traceback to ``<data dir>/logs/`` and return the file."""
    from discosync.config import get_data_dir

    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"crash-{datetime.now():%Y%m%dT%H%M%S}.log"
    log_file.write_text(traceback.format_exc(), encoding="utf-8")
    return log_file


def main() -> None:
    """Run the CLI; always ends in :class:`SystemExit`."""
    signal.signal(signal.SIGINT, _on_sigint)
    try:
        app()
    except DiscosyncError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error, traceback saved to {_save_traceback()}")
        sys.exit(EXIT_GENERIC_FAILURE)
