"""
Strata CLI -- ELF Layout Explorer
==================================

Click-based command-line interface for Strata.  Loads one ELF binary and
shows how its bytes are laid out in the file and in virtual memory.

Usage::

    # Both trees for a binary
    strata /usr/bin/ls

    # Only the file-offset tree, two levels deep, without notes
    strata /usr/bin/ls --space file --max-depth 2 --no-notes

    # The running interpreter itself
    strata --self

    # JSON to stdout, or to a file
    strata /usr/bin/ls --json
    strata /usr/bin/ls --output report.json
    strata /usr/bin/ls --save

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import click

from shared.config import VALID_SPACES, StrataConfig
from shared.console import StrataConsole
from shared.logger import StrataLogger

from strata.core.engine import StrataEngine
from strata.core.models import AddressSpace
from strata.errors import AcquisitionError, ParseError
from strata.output.console import StrataConsoleOutput
from strata.output.report import StrataReportGenerator


_SPACE_SELECTION: dict[str, list[AddressSpace]] = {
    "file": [AddressSpace.FILE],
    "virtual": [AddressSpace.VIRTUAL],
    "both": [AddressSpace.FILE, AddressSpace.VIRTUAL],
}


# ---------------------------------------------------------------------------
# CLI command
# ---------------------------------------------------------------------------

@click.command("strata")
@click.argument("path", type=click.Path(dir_okay=False), required=False)
@click.option(
    "--self", "load_self",
    is_flag=True,
    default=False,
    help="Inspect the running Python interpreter's executable.",
)
@click.option(
    "--space",
    type=click.Choice(list(VALID_SPACES), case_sensitive=False),
    default=None,
    help="Address space(s) to display.  Default: from config (both).",
)
@click.option(
    "--max-depth",
    type=click.IntRange(min=0),
    default=None,
    help="Deepest tree level to expand (0 = unlimited).",
)
@click.option(
    "--no-notes",
    is_flag=True,
    default=False,
    help="Hide region notes (types, flags, addresses).",
)
@click.option(
    "--json", "json_output",
    is_flag=True,
    default=False,
    help="Output the region trees as JSON to stdout.",
)
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write a JSON report to this path.",
)
@click.option(
    "--save",
    is_flag=True,
    default=False,
    help="Write a JSON report into the configured output directory.",
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a strata.toml configuration file.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable verbose/debug output.",
)
def strata_cli(
    path: str | None,
    load_self: bool,
    space: str | None,
    max_depth: int | None,
    no_notes: bool,
    json_output: bool,
    output_path: str | None,
    save: bool,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Strata -- ELF Layout Explorer.

    Parse an ELF executable, shared object or object file and display
    its regions (headers, header-table entries, section contents) as
    nested trees over file offsets and over virtual addresses.

    PATH is the binary to inspect; use --self instead to inspect the
    running interpreter.

    Examples:

    \b
        strata /usr/bin/ls
        strata /usr/bin/ls --space virtual --no-notes
        strata --self --json
    """
    console = StrataConsole()

    if load_self == (path is not None):
        raise click.UsageError("Give exactly one of PATH or --self.")

    try:
        config = StrataConfig.load(config_path)
    except (OSError, ValueError) as exc:
        if config_path is not None:
            console.error(f"Invalid configuration {config_path}: {exc}")
            sys.exit(1)
        config = StrataConfig()

    settings = config.global_settings
    logger = StrataLogger(
        "cli",
        log_level="DEBUG" if verbose or settings.debug else settings.log_level,
        log_file=settings.log_file or None,
        json_logs=settings.log_json,
    )

    engine = StrataEngine(config=config, logger=logger)
    try:
        executable = engine.load_self() if load_self else engine.load(path)
    except AcquisitionError as exc:
        console.error(str(exc))
        sys.exit(1)
    except ParseError as exc:
        console.error(f"Failed to parse {path or 'self'}: {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.warning("Interrupted by user.")
        sys.exit(130)

    report_gen = StrataReportGenerator(
        indent=config.inspector.json_indent,
        version=settings.version,
    )

    # JSON output mode
    if json_output:
        click.echo(report_gen.to_json(executable))
    else:
        inspector = config.inspector
        output_display = StrataConsoleOutput(
            console=console,
            show_notes=inspector.show_notes and not no_notes,
            max_depth=inspector.max_depth if max_depth is None else max_depth,
        )
        console.banner(settings.version)
        output_display.display(
            executable,
            spaces=_SPACE_SELECTION[(space or inspector.default_space).lower()],
        )

    if save and not output_path:
        output_path = _default_output_path(settings.output_dir, executable.name)
    if output_path:
        report_path = report_gen.generate_json(executable, output_path)
        if not json_output:
            console.success(f"JSON report saved: {report_path}")


def _default_output_path(output_dir: str, binary_name: str) -> str:
    """Timestamped report path for *binary_name* under *output_dir*."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    stem = Path(binary_name).name or "binary"
    return str(Path(output_dir) / f"strata_{stem}_{timestamp}.json")


# ---------------------------------------------------------------------------
# Module entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Entry point for the ``strata`` console script."""
    strata_cli()


if __name__ == "__main__":
    main()
