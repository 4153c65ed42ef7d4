"""
Strata Engine
==============

Orchestrates the complete loading pipeline for one binary:

    1. Acquire the bytes (from disk, from memory, or the running
       interpreter's own executable)
    2. Parse the ELF header, program headers, section headers and the
       section-name string table
    3. Extract flat region drafts for both address spaces
    4. Resolve overlaps into one region tree per space
    5. Wrap both trees in an :class:`ExecutableFile`

Steps 2-5 are pure and synchronous; only acquisition touches the
filesystem.  A parse failure aborts the whole load: there are no partial
trees.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from shared.config import StrataConfig
from shared.logger import StrataLogger

from strata.core.extractor import RegionExtractor
from strata.core.models import AddressSpace, ExecutableFile
from strata.core.resolver import build_region_tree
from strata.errors import AcquisitionError, ParseError
from strata.parsers.elf_parser import ELFParser


class StrataEngine:
    """Load ELF binaries into file-space and virtual-space region trees.

    Usage::

        engine = StrataEngine()
        exe = engine.load("/bin/true")
        print(exe.file_tree.root.children[0].name)    # "ELF Header"

    Or asynchronously::

        exe = await engine.load_async("/bin/true")
    """

    def __init__(
        self,
        config: StrataConfig | None = None,
        logger: StrataLogger | None = None,
    ) -> None:
        """Initialise the engine.

        Args:
            config: Strata configuration.  Defaults are used if not provided.
            logger: Logger instance.  A new one is created if not provided.
        """
        self._config: StrataConfig = config or StrataConfig()
        self._logger: StrataLogger = logger or StrataLogger("engine")

    # ------------------------------------------------------------------ #
    #  Entry points
    # ------------------------------------------------------------------ #

    def load_from_bytes(self, name: str, data: bytes) -> ExecutableFile:
        """Build both region trees for an in-memory ELF image.

        Args:
            name: Display name for the result.
            data: Complete file contents.  Never modified.

        Returns:
            The loaded :class:`ExecutableFile`.

        Raises:
            ParseError: The buffer is not a well-formed ELF image.
        """
        with self._logger.operation(f"load:{name}"):
            self._logger.info(f"Loading {name} ({len(data):,} bytes)")
            try:
                with self._logger.timed(f"parse {name}"):
                    parser = ELFParser(data).parse()
                    extractor = RegionExtractor(parser, self._logger)
                    file_drafts = extractor.file_regions()
                    virtual_drafts = extractor.virtual_regions()
            except ParseError as exc:
                self._logger.error(f"Failed to parse {name}: {exc}")
                raise

            virtual_size = max((d.end for d in virtual_drafts), default=0)

            with self._logger.timed(f"resolve regions of {name}"):
                file_tree = build_region_tree(
                    file_drafts, len(data), AddressSpace.FILE
                )
                virtual_tree = build_region_tree(
                    virtual_drafts, virtual_size, AddressSpace.VIRTUAL
                )

            info = parser.get_binary_info()
            self._logger.info(
                f"Loaded {name}: ELF{info.bits} {info.endian}-endian "
                f"{info.machine} | {len(parser.sections)} sections, "
                f"{len(parser.program_headers)} segments | "
                f"{len(file_drafts)} file regions, "
                f"{len(virtual_drafts)} virtual regions"
            )

            return ExecutableFile(
                name=name,
                size=len(data),
                info=info,
                file_tree=file_tree,
                virtual_tree=virtual_tree,
            )

    def load(self, path: str | Path) -> ExecutableFile:
        """Read *path* from disk and load it.

        Raises:
            AcquisitionError: The file is missing, too large or unreadable.
            ParseError: The file is not a well-formed ELF image.
        """
        data = self._read(Path(path))
        return self.load_from_bytes(str(path), data)

    async def load_async(self, path: str | Path) -> ExecutableFile:
        """Like :meth:`load`, with the file read in the default executor."""
        data = await asyncio.get_event_loop().run_in_executor(
            None, self._read, Path(path)
        )
        return self.load_from_bytes(str(path), data)

    def load_self(self) -> ExecutableFile:
        """Load the executable of the running Python interpreter."""
        if not sys.executable:
            raise AcquisitionError("Cannot determine the running executable")
        return self.load(sys.executable)

    # ------------------------------------------------------------------ #
    #  Acquisition
    # ------------------------------------------------------------------ #

    def _read(self, path: Path) -> bytes:
        if not path.is_file():
            msg = f"File not found: {path}"
            self._logger.error(msg)
            raise AcquisitionError(msg)

        max_size = self._config.inspector.max_file_size
        try:
            file_size = path.stat().st_size
            if file_size > max_size:
                msg = (
                    f"File too large: {file_size:,} bytes "
                    f"(max: {max_size:,} bytes)"
                )
                self._logger.error(msg)
                raise AcquisitionError(msg)
            data = path.read_bytes()
        except OSError as exc:
            self._logger.error(f"Cannot read {path}: {exc}")
            raise AcquisitionError(f"Cannot read {path}: {exc}") from exc

        self._logger.debug(f"Read {len(data):,} bytes from {path}")
        return data
