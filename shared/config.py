"""
Strata Configuration Management
================================

Dataclass-based configuration with TOML persistence.

A configuration file has one table per section::

    [global]
    log_level = "DEBUG"
    log_file = "logs/strata.log"
    log_json = true

    [inspector]
    max_file_size = 104857600
    default_space = "file"
    max_depth = 4

Keys a section does not declare are ignored, and missing keys keep their
dataclass defaults.

References:
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


# Default configuration file, next to the installed packages
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "strata.toml"

VALID_SPACES: tuple[str, ...] = ("file", "virtual", "both")


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Settings shared by every Strata entry point.

    Controls logging verbosity and destinations and where reports go.
    """

    log_level: str = "INFO"
    log_file: str = ""  # empty disables file logging
    log_json: bool = False
    output_dir: str = "output"
    debug: bool = False
    version: str = "1.0.0"


@dataclass(frozen=False, slots=True)
class InspectorConfig:
    """Settings for loading binaries and presenting region trees."""

    max_file_size: int = 52_428_800  # 50 MiB
    default_space: str = "both"
    max_depth: int = 0  # 0 = unlimited
    show_notes: bool = True
    json_indent: int = 2

    def __post_init__(self) -> None:
        if self.default_space not in VALID_SPACES:
            raise ValueError(
                f"inspector.default_space must be one of {VALID_SPACES}, "
                f"got {self.default_space!r}"
            )
        if self.max_file_size <= 0:
            raise ValueError("inspector.max_file_size must be positive")
        if self.max_depth < 0:
            raise ValueError("inspector.max_depth must not be negative")


@dataclass(frozen=False, slots=True)
class StrataConfig:
    """Master configuration.

    Usage:
        >>> config = StrataConfig.load()                 # default path
        >>> config = StrataConfig.load("custom.toml")    # explicit path
        >>> config.inspector.default_space
        'both'
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    inspector: InspectorConfig = field(default_factory=InspectorConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> StrataConfig:
        """Load configuration from a TOML file.

        If *path* is ``None`` the loader looks for ``strata.toml`` in the
        project root and falls back to defaults when it is absent.

        Raises:
            FileNotFoundError: If an explicitly given *path* does not exist.
            ValueError: If a value is out of range.
        """
        config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Configuration file not found: {config_path}"
                )
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls(
            global_settings=cls._build_section(GlobalConfig, raw.get("global", {})),
            inspector=cls._build_section(InspectorConfig, raw.get("inspector", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise the configuration to a plain dictionary."""
        return asdict(self)

    @staticmethod
    def _build_section(cls: type, data: dict[str, Any]) -> Any:
        """Instantiate dataclass *cls* from the keys it declares."""
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered)


def get_config(path: str | Path | None = None) -> StrataConfig:
    """Cached wrapper around :meth:`StrataConfig.load`.

    Passing a *path* always reloads.
    """
    if not hasattr(get_config, "_cached") or path is not None:
        get_config._cached = StrataConfig.load(path)  # type: ignore[attr-defined]
    return get_config._cached  # type: ignore[attr-defined]
