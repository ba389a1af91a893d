"""Shared helpers for CLI command modules."""

from __future__ import annotations

import argparse
import logging

from waypost.app import Application, load_application
from waypost.config import WaypostConfig, load_effective_config, load_yaml_dict
from waypost.logging_utils import apply_router_logging

logger = logging.getLogger(__name__)


def load_config(args: argparse.Namespace) -> WaypostConfig:
    config = load_effective_config(
        project_path=args.project_path,
        system_defaults=load_yaml_dict(args.system_config),
        runtime_override=load_yaml_dict(args.runtime_override),
    )
    log_file = None if getattr(args, "log_file", None) else config.router.log_file
    apply_router_logging(config.router.debug, log_file)
    return config


def load_app(args: argparse.Namespace, config: WaypostConfig | None = None) -> Application:
    config = config or load_config(args)
    application = load_application(args.app, config)
    logger.debug("Loaded application %s with %s routes", args.app or "<config>", len(application.registry))
    return application


def add_common_config_flags(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--project-path", default=".", help="Project root holding .waypost.yaml")
    cmd.add_argument("--system-config", help="Optional system defaults YAML")
    cmd.add_argument("--runtime-override", help="Optional runtime override YAML")
    cmd.add_argument("--app", help="Application target as module:attribute (instance or factory)")


def parse_header_args(values: list[str] | None) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Header must look like 'Name: value', got {raw!r}")
        headers[name.strip()] = value.strip()
    return headers
