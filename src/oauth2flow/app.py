"""The ``oauth2flow`` command line.

``profile`` manages authorization-server profiles and ``auth`` runs the
sign-in and refresh flows against the active one. :func:`main` is the
console-script entry point: it turns library errors into their exit codes
and anything unexpected into a crash log under ``<data_dir>/logs``.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from oauth2flow import __version__
from oauth2flow.commands.auth import auth_app
from oauth2flow.commands.profile import profile_app
from oauth2flow.config import get_data_dir
from oauth2flow.exceptions import OAuth2FlowError
from oauth2flow.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from oauth2flow.output import (
    OutputFormat,
    OutputManager,
    configure_logging,
    error,
    set_output,
)

app = typer.Typer(
    name="oauth2flow",
    help="Run OAuth2 authorization-code sign-in and token refresh from the terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(profile_app, name="profile", help="Authorization-server profiles.")
app.add_typer(auth_app, name="auth", help="Sign in, refresh and stored credentials.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"oauth2flow {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show version and exit.",
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile to use instead of the default."
    ),
    json_output: bool = typer.Option(False, "--json", help="Write data as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Write data as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print data, warnings and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug output."),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Set up output and logging, then hand shared options to sub-commands via ``ctx.obj``."""
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.obj = {"profile": profile, "force": force, "verbose": verbose}


def _exit_interrupted(*_: object) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log() -> Path:
    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(exist_ok=True)
    path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.write_text(traceback.format_exc(), encoding="utf-8")
    return path


def main() -> None:
    """Console-script entry point."""
    signal.signal(signal.SIGINT, _exit_interrupted)
    try:
        app()
    except KeyboardInterrupt:
        _exit_interrupted()
    except OAuth2FlowError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Details were written to {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
