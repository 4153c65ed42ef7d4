"""
Strata Core Module
===================

Data models, region extraction and overlap resolution.  The engine that
ties them together lives in :mod:`strata.core.engine`.
"""

from strata.core.models import (
    AddressSpace,
    BinaryInfo,
    ExecutableFile,
    Region,
    RegionKind,
    RegionTree,
)

__all__ = [
    "AddressSpace",
    "BinaryInfo",
    "ExecutableFile",
    "Region",
    "RegionKind",
    "RegionTree",
]
