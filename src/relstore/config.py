"""Configuration loading from environment variables and relstore.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_STORE_DIR = Path.home() / ".relstore" / "data"
_CONFIG_FILENAME = "relstore.toml"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class RelstoreConfig:
    """Top-level relstore configuration."""

    store_dir: Path = _DEFAULT_STORE_DIR
    backend: str = "json"
    strict_load: bool = False
    log_level: str = "INFO"


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def load_config(config_path: Path | None = None) -> RelstoreConfig:
    """Load configuration from environment variables and optional relstore.toml.

    Priority: environment variables > relstore.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.relstore/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".relstore" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    store_data = file_data.get("store", {})

    return RelstoreConfig(
        store_dir=Path(
            os.getenv("RELSTORE_DIR", store_data.get("dir", str(_DEFAULT_STORE_DIR)))
        ).expanduser(),
        backend=os.getenv("RELSTORE_BACKEND", store_data.get("backend", "json")),
        strict_load=_as_bool(
            os.getenv("RELSTORE_STRICT_LOAD", store_data.get("strict_load", False))
        ),
        log_level=os.getenv("RELSTORE_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
