"""Terminal output for the oauth2flow CLI.

Data and diagnostics never share a stream:

* **stdout** carries only what a script would capture -- the authorization
  URL, a credential, a profile listing.
* **stderr** carries everything addressed to the person at the terminal:
  status lines, warnings, errors, next-step hints, and log records.

Rich styling is used when stdout is a terminal; piped output is plain.
``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` all turn colour off.

Credentials get their own renderer, :meth:`OutputManager.print_credential`,
which shows tokens in full in JSON output (so they can be piped into other
tools) and masked in the human-readable formats unless asked otherwise.

:class:`OutputManager` is created once per invocation by
:func:`~oauth2flow.app.main_callback`; the module-level helpers delegate to
it. :func:`configure_logging` attaches the library's loggers to the same
stderr console.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from oauth2flow.credential import Credential

_SECRET_FIELDS = ("access_token", "refresh_token", "id_token")


class OutputFormat(str, Enum):
    """How data on stdout is rendered. ``AUTO`` picks RICH on a colour TTY, else PLAIN."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def mask_token(token: str, visible: int = 4) -> str:
    """Return *token* with all but its last *visible* characters hidden.

    Tokens too short to keep any characters private are hidden entirely.
    """
    if len(token) <= visible * 2:
        return "*" * len(token)
    return f"{'*' * 8}{token[-visible:]}"


class OutputManager:
    """Renders data to stdout and diagnostics to stderr.

    Args:
        format: Requested format for stdout data.
        no_color: Disable colour and Rich markup.
        quiet: Drop status lines and hints (warnings and errors still print).
        verbose: Print debug lines and lower the log threshold to DEBUG.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format == OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """The diagnostics console, shared with the logging handler."""
        return self._stderr

    # --- stdout ---

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Render a dict, list or scalar in the active format."""
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.RICH and isinstance(data, (dict, list)):
            rendered = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(rendered, "json", theme="monokai", word_wrap=True))
        elif isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                self.print_data(str(item))
        else:
            self.print_data(str(data))

    def print_credential(self, credential: Credential, reveal: bool = False) -> None:
        """Render *credential*, omitting absent fields.

        JSON output always carries the real token values. The PLAIN and
        RICH formats mask them unless *reveal* is set.
        """
        data: dict[str, Any] = credential.model_dump(exclude_none=True)
        if not reveal and self._format != OutputFormat.JSON:
            for field in _SECRET_FIELDS:
                if field in data:
                    data[field] = mask_token(data[field])
        if self._format == OutputFormat.RICH:
            table = Table(show_header=False, box=None)
            table.add_column(style="bold cyan")
            table.add_column()
            for key, value in data.items():
                table.add_row(key, str(value))
            self._stdout.print(table)
        else:
            self.format_response(data)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a Rich table, a JSON array of objects, or TSV."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return
        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # --- stderr ---

    def _emit(self, message: str, style: str = "", prefix: str = "") -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        elif style and prefix:
            self._stderr.print(f"[{style}]{prefix}[/{style}]{message}")
        elif style:
            self._stderr.print(f"[{style}]{message}[/{style}]")
        else:
            self._stderr.print(message)

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, style="green")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            self._emit(f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(f"[debug] {message}", style="dim")

    def warning(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._emit(message, style="yellow", prefix="Warning: ")

    def error(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._emit(message, style="bold red", prefix="Error: ")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything or ``TERM`` is ``dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def configure_logging(output: OutputManager) -> None:
    """Send ``oauth2flow`` log records to stderr via Rich.

    WARNING and above by default; DEBUG when the manager is verbose.
    Calling it again replaces the previously installed handler.
    """
    logger = logging.getLogger("oauth2flow")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(
        RichHandler(
            console=output.stderr_console,
            show_path=False,
            show_time=output.is_verbose,
            markup=False,
        )
    )
    logger.setLevel(logging.DEBUG if output.is_verbose else logging.WARNING)


# --- process-wide instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one if needed."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests swap stdout/stderr between runs)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_credential(credential: Credential, reveal: bool = False) -> None:
    get_output().print_credential(credential, reveal)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def error(message: str) -> None:
    get_output().error(message)
