"""View loading and nested route-tree registration."""

from __future__ import annotations

import importlib
import logging
import re
from collections.abc import Callable, Mapping
from typing import Any

from waypost.errors import Halt, ViewNotFound
from waypost.hooks import HookBus, HookName
from waypost.responses import json_response
from waypost.router import Router

logger = logging.getLogger(__name__)

LoginCheck = Callable[[], bool]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def view_module_name(package: str, view: str) -> str:
    """``("app.views", "Auth/CheckLogin")`` -> ``"app.views.auth.check_login"``."""
    parts = []
    for part in view.strip("/").split("/"):
        name = _CAMEL_BOUNDARY.sub("_", part).replace("-", "_").lower()
        if not name.isidentifier():
            raise ViewNotFound(view, f"invalid segment {part!r}")
        parts.append(name)
    if not parts:
        raise ViewNotFound(view, "empty view name")
    return ".".join([package, *parts])


class ViewLoader:
    """Resolves logical view names to callables inside a views package."""

    def __init__(self, package: str, entrypoint: str = "handle") -> None:
        self.package = package
        self.entrypoint = entrypoint

    def load(self, view: str) -> Callable[[], Any]:
        module_name = view_module_name(self.package, view)
        try:
            module = importlib.import_module(module_name)
        except ModuleNotFoundError as exc:
            # only a missing view module is "not found"; broken imports inside it propagate
            if exc.name and (module_name == exc.name or module_name.startswith(f"{exc.name}.")):
                raise ViewNotFound(view, f"no module {module_name}") from exc
            raise
        handler = getattr(module, self.entrypoint, None)
        if not callable(handler):
            raise ViewNotFound(view, f"{module_name} has no callable {self.entrypoint}()")
        return handler


def _unauthorized() -> Halt:
    return Halt(json_response({"code": 401, "message": "Unauthorized"}, status=401))


def make_view_handler(
    views: ViewLoader,
    hooks: HookBus,
    path: str,
    view: str,
    login_required: bool = False,
    login_check: LoginCheck | None = None,
) -> Callable[[], Any]:
    def handler() -> Any:
        if login_required:
            hooks.do_action(HookName.APP_BEFORE_LOGIN_CHECK, path)
            if login_check is None or not login_check():
                hooks.do_action(HookName.APP_LOGIN_CHECK_FAILED, path)
                raise _unauthorized()
            hooks.do_action(HookName.APP_LOGIN_CHECK_SUCCESS, path)
        return views.load(view)()

    handler.__qualname__ = f"view_handler[{view}]"
    return handler


def register_route_tree(
    router: Router,
    tree: Mapping[str, Any],
    views: ViewLoader,
    hooks: HookBus | None = None,
    login_check: LoginCheck | None = None,
    base_path: str = "",
) -> list[str]:
    """Register every leaf of a nested ``{segment: {...}}`` tree.

    A leaf is a mapping with a ``view`` key and an optional
    ``login_required`` flag; any other mapping is a path prefix.
    Returns the registered paths in order.
    """
    hooks = hooks or router.hooks
    registered: list[str] = []
    for key, value in tree.items():
        current = f"{base_path}/{key}" if base_path else str(key)
        if not isinstance(value, Mapping):
            raise ValueError(f"Route tree node {current} must be a mapping")

        if "view" not in value:
            registered.extend(register_route_tree(router, value, views, hooks, login_check, current))
            continue

        view = str(value["view"])
        login_required = bool(value.get("login_required", False))
        if login_required and login_check is None:
            raise ValueError(f"Route {current} requires login but no login_check was supplied")

        hooks.do_action(HookName.APP_BEFORE_REGISTER_ROUTE, current, view, login_required)
        route = router.register_route(
            current,
            make_view_handler(views, hooks, current, view, login_required, login_check),
        )
        hooks.do_action(HookName.APP_AFTER_REGISTER_ROUTE, current, view, login_required)
        logger.debug("Registered view route %s -> %s", route.pattern, view)
        registered.append(route.pattern)
    return registered
