"""
Strata -- ELF Layout Explorer
==============================

Strata parses ELF executables, shared objects and object files and
turns them into two region trees: one over file offsets, one over
virtual (load-time) addresses.  Every region -- the ELF header, each
program- and section-header table entry, each section's contents -- is
placed in the tree so that siblings never overlap and every region sits
inside the one that contains it.

Capabilities:
    - ELF32 / ELF64 parsing in both byte orders, bounds-checked
    - Section-name resolution with per-region diagnostics
    - Deterministic overlap resolution into nested region trees
    - Rich terminal trees and JSON reports

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - Linux man page: elf(5).
"""

__version__ = "1.0.0"

from strata.core.engine import StrataEngine
from strata.core.models import ExecutableFile
from strata.output.console import StrataConsoleOutput
from strata.output.report import StrataReportGenerator

__all__ = [
    "StrataEngine",
    "ExecutableFile",
    "StrataConsoleOutput",
    "StrataReportGenerator",
]
