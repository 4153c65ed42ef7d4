"""Tests for console and JSON rendering."""

import json

import pytest

from elf_builder import SHT_PROGBITS, Section, build_elf, sample_sections
from shared.console import StrataConsole
from shared.logger import StrataLogger
from strata.core.engine import StrataEngine
from strata.core.models import AddressSpace, RegionKind
from strata.core.resolver import RegionDraft, build_region_tree
from strata.output.console import StrataConsoleOutput, format_size, region_label
from strata.output.report import StrataReportGenerator


@pytest.fixture
def executable():
    engine = StrataEngine(logger=StrataLogger("test.output", console_output=False))
    sections = sample_sections() + [
        Section(".wrapper", SHT_PROGBITS, offset=64, size=24),
    ]
    return engine.load_from_bytes("sample", build_elf(sections))


def labels(tree):
    return [node.label.plain for node in tree.children]


class TestFormatSize:
    """Tests for human-readable sizes."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 B"),
            (999, "999 B"),
            (1_000, "1.0 KB"),
            (4_096, "4.1 KB"),
            (2_500_000, "2.5 MB"),
        ],
    )
    def test_format_size(self, size, expected):
        assert format_size(size) == expected


class TestConsoleOutput:
    """Tests for StrataConsoleOutput."""

    def test_region_label(self, executable):
        label = region_label(executable.file_tree.root.children[0]).plain

        assert label == "ELF Header  [0x0, 0x40)  64 B"

    def test_build_tree(self, executable):
        output = StrataConsoleOutput(StrataConsole(quiet=True), show_notes=False)
        tree = output.build_tree(executable.file_tree)

        assert tree.label.plain.startswith("ELF file")
        assert labels(tree)[1].startswith(".wrapper")
        wrapper = tree.children[1]
        assert [lbl.split()[0] for lbl in labels(wrapper)] == [".text", ".data"]

    def test_notes_shown(self, executable):
        output = StrataConsoleOutput(StrataConsole(quiet=True), show_notes=True)
        tree = output.build_tree(executable.virtual_tree)

        text_node = tree.children[0]
        assert "type: PROGBITS" in labels(text_node)
        assert "flags: ALLOC|EXECINSTR" in labels(text_node)

    def test_max_depth(self, executable):
        """Test that levels below max_depth are summarised."""
        output = StrataConsoleOutput(
            StrataConsole(quiet=True), show_notes=False, max_depth=1
        )
        tree = output.build_tree(executable.file_tree)

        wrapper = tree.children[1]
        assert labels(wrapper) == ["... 2 nested region(s)"]

    def test_display_renders(self, executable):
        console = StrataConsole(record=True)
        StrataConsoleOutput(console).display(executable, [AddressSpace.VIRTUAL])

        text = console.export_text()
        assert "Virtual memory layout" in text
        assert ".bss" in text
        assert "x86_64" in text
        assert "File layout" not in text
        assert "Summary" in text

    def test_name_errors_reported(self):
        sections = sample_sections()
        sections[1].name_offset = 0x999
        engine = StrataEngine(logger=StrataLogger("test.output", console_output=False))
        exe = engine.load_from_bytes("bad-names", build_elf(sections))
        console = StrataConsole(record=True)

        StrataConsoleOutput(console).display(exe)

        assert "unresolvable section names" in console.export_text()

    def test_build_deep_tree(self):
        """Test that very deep trees are built without recursion."""
        count = 2000
        drafts = [
            RegionDraft(f"d{i}", i, 2 * count - i, RegionKind.SECTION_CONTENT)
            for i in reversed(range(count))
        ]
        tree = build_region_tree(drafts, 2 * count, AddressSpace.FILE)
        output = StrataConsoleOutput(StrataConsole(quiet=True), show_notes=False)

        node, depth = output.build_tree(tree), 0
        while node.children:
            (node,) = node.children
            depth += 1

        assert depth == count
        assert node.label.plain.startswith(f"d{count - 1}")


class TestReport:
    """Tests for StrataReportGenerator."""

    def test_to_dict(self, executable):
        report = StrataReportGenerator().to_dict(executable)

        assert report["name"] == "sample"
        assert report["size"] == executable.size
        assert report["header"]["machine"] == "x86_64"
        assert report["file_tree"]["total_size"] == executable.size
        assert report["virtual_tree"]["root"]["name"] == "Virtual memory"
        assert "generated_at" in report

    def test_nested_regions(self, executable):
        root = StrataReportGenerator().to_dict(executable)["file_tree"]["root"]

        wrapper = root["children"][1]
        assert wrapper["name"] == ".wrapper"
        assert wrapper["kind"] == "section-content"
        assert [c["name"] for c in wrapper["children"]] == [".text", ".data"]
        assert ["type", "PROGBITS"] in wrapper["notes"]

    def test_generate_json(self, executable, tmp_path):
        out = tmp_path / "reports" / "sample.json"

        written = StrataReportGenerator(indent=4).generate_json(executable, out)

        assert written == str(out.resolve())
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["virtual_tree"]["total_size"] == 0x2028
