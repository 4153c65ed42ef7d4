"""
Strata Console Interface
=========================

Rich-powered console abstraction providing a single presentation layer
for the Strata command-line tools.

The class wraps :class:`rich.console.Console` and adds convenience methods
for banners, section headers, severity-coloured messages and tables, all
with consistent styling.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

# ---------------------------------------------------------------------------
# Theme -- consistent palette across all Strata output
# ---------------------------------------------------------------------------
_STRATA_THEME = Theme(
    {
        "strata.banner": "bold bright_cyan",
        "strata.section": "bold bright_magenta",
        "strata.success": "bold green",
        "strata.warning": "bold yellow",
        "strata.error": "bold red",
        "strata.info": "bold bright_blue",
        "strata.dim": "dim white",
        "strata.highlight": "bold bright_white",
        "strata.offset": "bright_cyan",
        "strata.size": "bright_green",
        "strata.note": "dim italic bright_white",
    }
)

_BANNER_ART = r"""[bright_cyan]
  ___ _____ ___    _ _____ _
 / __|_   _| _ \  /_\_   _/_\
 \__ \ | | |   / / _ \| |/ _ \
 |___/ |_| |_|_\/_/ \_\_/_/ \_\
[/bright_cyan]"""

_TAGLINE = "ELF file and memory layout explorer"


class StrataConsole:
    """Unified console interface for Strata.

    Usage::

        con = StrataConsole()
        con.banner()
        con.section("File layout")
        con.success("Report written")
    """

    # ------------------------------------------------------------------ #
    #  Construction
    # ------------------------------------------------------------------ #

    def __init__(self, *, quiet: bool = False, record: bool = False) -> None:
        """Initialise the console.

        Args:
            quiet:  Suppress all output (useful in library / test mode).
            record: Enable Rich recording for text / HTML export.
        """
        self._console = Console(
            theme=_STRATA_THEME,
            quiet=quiet,
            record=record,
            highlight=False,
        )

    @property
    def rich(self) -> Console:
        """Direct access to the underlying Rich Console instance."""
        return self._console

    # ------------------------------------------------------------------ #
    #  Banner / sections
    # ------------------------------------------------------------------ #

    def banner(self, version: str = "1.0.0") -> None:
        """Display the Strata banner.

        Args:
            version: Version string shown beneath the logo.
        """
        subtitle = (
            f"[strata.highlight]{_TAGLINE}[/strata.highlight]\n"
            f"[strata.dim]Version: {version}[/strata.dim]"
        )
        panel = Panel(
            Align.center(Text.from_markup(_BANNER_ART + "\n" + subtitle)),
            border_style="bright_cyan",
            padding=(0, 2),
        )
        self._console.print(panel)

    def section(self, title: str) -> None:
        """Print a prominent section header."""
        self._console.rule(
            f"  {title}  ",
            style="strata.section",
            characters="─",
        )
        self._console.print()

    # ------------------------------------------------------------------ #
    #  Message helpers (severity-coloured)
    # ------------------------------------------------------------------ #

    def success(self, message: str) -> None:
        self._console.print(
            f"[strata.success][✔] SUCCESS:[/strata.success] {message}"
        )

    def warning(self, message: str) -> None:
        self._console.print(
            f"[strata.warning][⚠] WARNING:[/strata.warning] {message}"
        )

    def error(self, message: str) -> None:
        """Print an error message.

        The message is printed literally; square brackets in file names or
        parse diagnostics are not treated as markup.
        """
        self._console.print(
            Text.assemble(
                Text("[✘] ERROR:", style="strata.error"),
                " ",
                message,
            )
        )

    def info(self, message: str) -> None:
        self._console.print(
            f"[strata.info][ℹ] INFO:[/strata.info] {message}"
        )

    # ------------------------------------------------------------------ #
    #  Table display
    # ------------------------------------------------------------------ #

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        caption: str | None = None,
        styles: Sequence[str] | None = None,
    ) -> None:
        """Render a styled Rich table.

        Args:
            title:    Table title.
            columns:  Column header labels.
            rows:     Iterable of row tuples; each element is stringified.
            caption:  Optional footer caption.
            styles:   Optional per-column Rich style strings.
        """
        tbl = Table(
            title=title,
            caption=caption,
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=False,
            padding=(0, 1),
        )
        for idx, col_name in enumerate(columns):
            style = styles[idx] if styles and idx < len(styles) else ""
            tbl.add_column(col_name, style=style)

        for row in rows:
            tbl.add_row(*(str(cell) for cell in row))

        self._console.print(tbl)

    # ------------------------------------------------------------------ #
    #  Utility
    # ------------------------------------------------------------------ #

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Proxy to :meth:`rich.console.Console.print`."""
        self._console.print(*args, **kwargs)

    def blank(self, count: int = 1) -> None:
        """Print *count* blank lines."""
        for _ in range(count):
            self._console.print()

    def divider(self, style: str = "dim") -> None:
        """Print a thin horizontal rule."""
        self._console.rule(style=style)

    def export_text(self) -> str:
        """Export recorded console output as plain text (requires ``record=True``)."""
        return self._console.export_text()
