"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: GEOTRACK_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class RecordingConfig:
    min_distance_m: float = 10.0
    min_interval_s: float = 1.0
    timezone: str = "UTC"  # used for speed-series labels and default track names


@dataclass
class StorageConfig:
    backend: str = "file"  # "file" or "memory"
    base_dir: str = "data/tracks"


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    recording: RecordingConfig = field(default_factory=RecordingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = ("server", "recording", "storage", "logging")


def _apply_section(section: object, values: dict) -> None:
    """Copy known keys onto a config section, coercing to the field's type."""
    known = {f.name for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            continue
        current = getattr(section, key)
        if isinstance(current, bool):
            value = str(value).lower() in ("1", "true", "yes", "on")
        elif isinstance(current, (int, float)):
            value = type(current)(value)
        setattr(section, key, value)


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    for section_name in _SECTIONS:
        section = getattr(config, section_name)
        prefix = f"GEOTRACK_{section_name.upper()}_"
        overrides = {
            f.name: os.environ[prefix + f.name.upper()]
            for f in fields(section)
            if prefix + f.name.upper() in os.environ
        }
        _apply_section(section, overrides)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path(os.environ.get("GEOTRACK_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section_name in _SECTIONS:
            if isinstance(raw.get(section_name), dict):
                _apply_section(getattr(config, section_name), raw[section_name])

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
