"""Terminal and JSON renderers for loaded binaries."""

from strata.output.console import StrataConsoleOutput, format_size
from strata.output.report import StrataReportGenerator

__all__ = ["StrataConsoleOutput", "StrataReportGenerator", "format_size"]
