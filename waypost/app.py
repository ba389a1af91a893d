"""Application composition root: one hook bus, one registry, one router."""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from waypost.config import WaypostConfig, load_effective_config
from waypost.hooks import HookBus, HookFunctions
from waypost.registry import RouteRegistry
from waypost.responses import Response
from waypost.router import Router
from waypost.system_routes import register_system_routes
from waypost.views import LoginCheck, ViewLoader, register_route_tree

logger = logging.getLogger(__name__)


class Application:
    def __init__(
        self,
        config: WaypostConfig | None = None,
        hooks: HookBus | None = None,
        registry: RouteRegistry | None = None,
        login_check: LoginCheck | None = None,
    ) -> None:
        self.config = config or WaypostConfig()
        self.hooks = hooks or HookBus()
        self.registry = registry or RouteRegistry()
        self.router = Router(
            registry=self.registry,
            hooks=self.hooks,
            config=self.config.router,
            default_headers=self.config.response.default_headers,
        )
        self.functions = HookFunctions(self.hooks)
        self.views: ViewLoader | None = None
        if self.config.views.package:
            self.views = ViewLoader(self.config.views.package, self.config.views.entrypoint)

        if self.config.system_routes.enabled:
            register_system_routes(self.router, self.config.system_routes.prefix)
        if self.config.routes:
            self.register_route_tree(self.config.routes, login_check=login_check)

    @classmethod
    def from_project(
        cls,
        project_path: str | Path,
        system_defaults: dict | None = None,
        runtime_override: dict | None = None,
        hooks: HookBus | None = None,
        login_check: LoginCheck | None = None,
    ) -> Application:
        config = load_effective_config(
            project_path=project_path,
            system_defaults=system_defaults,
            runtime_override=runtime_override,
        )
        return cls(config=config, hooks=hooks, login_check=login_check)

    def register_route_tree(self, tree: Mapping[str, Any], login_check: LoginCheck | None = None) -> list[str]:
        if self.views is None:
            raise ValueError("views.package must be configured to register a route tree")
        paths = register_route_tree(self.router, tree, self.views, self.hooks, login_check)
        logger.info("Registered %s view routes", len(paths))
        return paths

    def route(self, pattern: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
            self.router.register_route(pattern, handler)
            return handler

        return decorator

    def error_handler(self, code: int) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
            self.router.register_error_handler(code, handler)
            return handler

        return decorator

    def handle(
        self,
        path: str,
        method: str = "GET",
        *,
        query_string: str = "",
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
        client_host: str | None = None,
    ) -> Response:
        return self.router.dispatch_request(
            path,
            method,
            query_string=query_string,
            headers=headers,
            body=body,
            client_host=client_host,
        )


def load_application(target: str | None, config: WaypostConfig) -> Application:
    """Build the application named by ``module:attribute``.

    The attribute may be an ``Application`` or a factory taking the
    effective config. Without a target a bare application is built from
    ``config`` alone.
    """
    if not target:
        return Application(config=config)
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Application target must look like 'module:attribute', got {target!r}")
    module = importlib.import_module(module_name)
    candidate = getattr(module, attribute, None)
    if candidate is None:
        raise ValueError(f"{module_name} has no attribute {attribute!r}")
    if isinstance(candidate, Application):
        return candidate
    if callable(candidate):
        application = candidate(config)
        if not isinstance(application, Application):
            raise ValueError(f"{target} returned {type(application).__name__}, expected Application")
        return application
    raise ValueError(f"{target} is neither an Application nor a factory")
