"""Configuration models and loading for Waypost."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

CONFIG_FILENAME = ".waypost.yaml"


class RouterConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    debug: bool = False
    log_file: str | None = None


class ResponseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_headers: dict[str, str] = Field(
        default_factory=lambda: {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "*",
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
        }
    )


class ViewsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    package: str | None = None
    entrypoint: str = "handle"


class SystemRoutesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    prefix: str = "/system"


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: int = 8000


class WaypostConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    router: RouterConfig = Field(default_factory=RouterConfig)
    response: ResponseConfig = Field(default_factory=ResponseConfig)
    views: ViewsConfig = Field(default_factory=ViewsConfig)
    system_routes: SystemRoutesConfig = Field(default_factory=SystemRoutesConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    routes: dict[str, Any] = Field(default_factory=dict)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text())
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML at {path} must decode to a mapping")
    return data


def load_yaml_dict(path: str | Path | None) -> dict[str, Any] | None:
    """Optional YAML mapping from an explicit path; missing path means no overrides."""
    if not path:
        return None
    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"YAML at {path} must decode to a mapping")
    return data


def load_effective_config(
    project_path: str | Path,
    system_defaults: dict[str, Any] | None = None,
    runtime_override: dict[str, Any] | None = None,
) -> WaypostConfig:
    """Load config with precedence runtime > project .waypost.yaml > system."""
    project_config = _load_yaml(Path(project_path) / CONFIG_FILENAME)

    merged: dict[str, Any] = {}
    if system_defaults:
        merged = _deep_merge(merged, system_defaults)
    if project_config:
        merged = _deep_merge(merged, project_config)
    if runtime_override:
        merged = _deep_merge(merged, runtime_override)

    return WaypostConfig.model_validate(merged)
