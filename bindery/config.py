"""Config management for Bindery.

Reads `config.ini` from DATA_DIR (beside main.py unless the DATA_DIR
environment variable points elsewhere).
"""

from __future__ import annotations

import configparser
import dataclasses
import os
import pathlib
from typing import Optional

from .logging_config import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]

# DATA_DIR holds all persistent state (config.ini, library.db, bindery.log).
DATA_DIR = pathlib.Path(os.environ.get("DATA_DIR", str(PROJECT_ROOT)))
DEFAULT_CONFIG_PATH = DATA_DIR / "config.ini"

DEFAULT_IGNORE_PATTERNS = (".DS_Store", "Thumbs.db", "@eaDir")


@dataclasses.dataclass
class LibraryConfig:
    path: pathlib.Path
    name: str


@dataclasses.dataclass
class ScannerConfig:
    ignore_patterns: tuple[str, ...] = DEFAULT_IGNORE_PATTERNS
    workers: int = 4
    chunk_size: int = 1024 * 1024


@dataclasses.dataclass
class MonitoringConfig:
    enabled: bool = True
    debounce_seconds: int = 2


@dataclasses.dataclass
class SyncConfig:
    # 0 disables the timeout
    timeout_seconds: float = 0

    @property
    def timeout(self) -> Optional[float]:
        return self.timeout_seconds if self.timeout_seconds > 0 else None


@dataclasses.dataclass
class BinderyConfig:
    library: LibraryConfig
    scanner: ScannerConfig = dataclasses.field(default_factory=ScannerConfig)
    monitoring: MonitoringConfig = dataclasses.field(default_factory=MonitoringConfig)
    sync: SyncConfig = dataclasses.field(default_factory=SyncConfig)

    @property
    def library_path(self) -> pathlib.Path:
        return self.library.path


def _parse_bool(value: str, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_list(value: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in value.split(",") if p.strip())


def load_config(config_path: Optional[pathlib.Path] = None) -> BinderyConfig:
    """Load configuration from config.ini.

    Defaults to `config.ini` in DATA_DIR.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    parser = configparser.ConfigParser()
    parser.read(path)

    lib_path = pathlib.Path(
        parser.get("library", "path", fallback="/path/to/library")
    ).expanduser()
    lib_name = parser.get("library", "name", fallback="My Library")

    scanner = ScannerConfig(
        ignore_patterns=_parse_list(
            parser.get(
                "scanner",
                "ignore_patterns",
                fallback=",".join(DEFAULT_IGNORE_PATTERNS),
            )
        ),
        workers=max(1, parser.getint("scanner", "workers", fallback=4)),
        chunk_size=max(4096, parser.getint("scanner", "chunk_size", fallback=1024 * 1024)),
    )

    monitoring = MonitoringConfig(
        enabled=_parse_bool(
            parser.get("monitoring", "enabled", fallback="true"), True
        ),
        debounce_seconds=parser.getint(
            "monitoring", "debounce_seconds", fallback=2
        ),
    )

    sync = SyncConfig(
        timeout_seconds=parser.getfloat("sync", "timeout_seconds", fallback=0),
    )

    return BinderyConfig(
        library=LibraryConfig(path=lib_path, name=lib_name),
        scanner=scanner,
        monitoring=monitoring,
        sync=sync,
    )


def write_config(
    config_path: pathlib.Path, library_path: pathlib.Path, library_name: str
) -> None:
    """Write a config.ini with default settings for the given library."""
    parser = configparser.ConfigParser()

    parser["library"] = {
        "path": str(library_path.expanduser()),
        "name": library_name,
    }
    parser["scanner"] = {
        "ignore_patterns": ",".join(DEFAULT_IGNORE_PATTERNS),
        "workers": "4",
        "chunk_size": str(1024 * 1024),
    }
    parser["monitoring"] = {
        "enabled": "true",
        "debounce_seconds": "2",
    }
    parser["sync"] = {
        "timeout_seconds": "0",
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w") as handle:
        parser.write(handle)
    logger.debug(f"Wrote config to {config_path}")

