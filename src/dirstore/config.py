"""Configuration loading and Pydantic models for DirStore."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Server binding and runtime configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"
    shutdown_timeout: int = 30


class StorageConfig(BaseModel):
    """Filesystem storage configuration."""

    root: str = ".s3data"
    lock_mode: Literal["bucket", "global"] = "bucket"


class ObservabilityConfig(BaseModel):
    """Metrics and health-check configuration."""

    metrics: bool = True
    health_check: bool = True


class DirStoreConfig(BaseModel):
    """Top-level DirStore configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


def _parse_server(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the server section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    return {
        "host": data.get("host", "0.0.0.0"),
        "port": data.get("port", 8080),
        "log_level": data.get("log_level", "INFO"),
        "log_format": data.get("log_format", "text"),
        "shutdown_timeout": data.get("shutdown_timeout", 30),
    }


def _parse_storage(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the storage section from YAML data.

    Accepts ``storage.root`` and, for compatibility with nested layouts,
    ``storage.local.root_dir``.
    """
    if data is None:
        return {}

    result: dict[str, Any] = {
        "root": data.get("root", ".s3data"),
        "lock_mode": data.get("lock_mode", "bucket"),
    }

    local_section = data.get("local")
    if isinstance(local_section, dict) and "root_dir" in local_section:
        result["root"] = local_section["root_dir"]

    return result


def _parse_observability(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the observability section from YAML data."""
    if data is None:
        return {}
    return {
        "metrics": data.get("metrics", True),
        "health_check": data.get("health_check", True),
    }


def load_config(path: Path) -> DirStoreConfig:
    """Load a DirStoreConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated DirStoreConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value has the wrong type or is not
            one of the allowed choices.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return DirStoreConfig(
        server=ServerConfig(**_parse_server(raw.get("server"))),
        storage=StorageConfig(**_parse_storage(raw.get("storage"))),
        observability=ObservabilityConfig(**_parse_observability(raw.get("observability"))),
    )
