"""
Strata Report Generator
========================

Generates JSON reports from loaded binaries.  The report holds the
identification data and both region trees as nested objects, suitable
for machine consumption or for diffing the layouts of two builds.

Region objects look like::

    {
      "name": ".text",
      "kind": "section-content",
      "start": 4096,
      "end": 4112,
      "size": 16,
      "notes": [["type", "PROGBITS"], ["flags", "ALLOC|EXECINSTR"]],
      "children": []
    }
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from strata.core.models import ExecutableFile, Region, RegionTree


class StrataReportGenerator:
    """Generate JSON reports from :class:`ExecutableFile` objects.

    Usage::

        generator = StrataReportGenerator()
        generator.generate_json(executable, "report.json")
    """

    def __init__(self, indent: int = 2, version: str = "1.0.0") -> None:
        self._indent = indent
        self._version = version

    def to_dict(self, executable: ExecutableFile) -> dict[str, Any]:
        """Build the report document as plain Python objects."""
        info = executable.info
        return {
            "report_type": "strata_region_trees",
            "version": self._version,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "name": executable.name,
            "size": executable.size,
            "header": {
                "bits": info.bits,
                "endian": info.endian,
                "elf_type": info.elf_type,
                "machine": info.machine,
                "entry_point": info.entry_point,
            },
            "file_tree": self._tree_dict(executable.file_tree),
            "virtual_tree": self._tree_dict(executable.virtual_tree),
        }

    def to_json(self, executable: ExecutableFile) -> str:
        """Serialise the report document to a JSON string."""
        return json.dumps(
            self.to_dict(executable),
            indent=self._indent,
            ensure_ascii=False,
        )

    def generate_json(
        self,
        executable: ExecutableFile,
        output_path: str | Path,
    ) -> str:
        """Write the JSON report to *output_path*.

        Args:
            executable: The loaded binary to report.
            output_path: Filesystem path for the output JSON file.

        Returns:
            The absolute path of the generated report.
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json(executable))
            f.write("\n")

        return str(path.resolve())

    # ------------------------------------------------------------------ #
    #  Builders
    # ------------------------------------------------------------------ #

    def _tree_dict(self, tree: RegionTree) -> dict[str, Any]:
        return {
            "space": tree.space.value,
            "total_size": tree.total_size,
            "root": self._region_dict(tree.root),
        }

    def _region_dict(self, region: Region) -> dict[str, Any]:
        top: dict[str, Any] = {}
        pending: list[tuple[Region, dict[str, Any]]] = [(region, top)]
        while pending:
            node, out = pending.pop()
            out.update({
                "name": node.name,
                "kind": node.kind.value,
                "start": node.start,
                "end": node.end,
                "size": node.size,
                "notes": [list(note) for note in node.notes],
                "children": [{} for _ in node.children],
            })
            pending.extend(zip(node.children, out["children"]))
        return top
