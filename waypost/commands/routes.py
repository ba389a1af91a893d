"""List registered routes."""

from __future__ import annotations

import argparse
import json

from waypost.commands.common import load_app
from waypost.registry import Route


def _handler_name(handler: object) -> str:
    if not callable(handler):
        return f"<not callable: {type(handler).__name__}>"
    module = getattr(handler, "__module__", None) or ""
    name = getattr(handler, "__qualname__", None) or type(handler).__qualname__
    return f"{module}.{name}" if module else name


def describe_route(route: Route) -> dict[str, object]:
    return {
        "pattern": route.pattern,
        "params": [name for _, name in route.captures],
        "handler": _handler_name(route.handler),
    }


def run(args: argparse.Namespace) -> int:
    application = load_app(args)
    rows = [describe_route(route) for route in application.router.routes()]
    snapshot = application.registry.snapshot()

    if args.json:
        payload = {
            "routes": rows,
            "error_handlers": {str(code): _handler_name(handler) for code, handler in snapshot.error_handlers.items()},
        }
        print(json.dumps(payload, indent=2))
        return 0

    if not rows:
        print("No routes registered")
        return 0
    width = max(len(row["pattern"]) for row in rows)
    for row in rows:
        print(f"{row['pattern']:<{width}}  {row['handler']}")
    for code, handler in sorted(snapshot.error_handlers.items()):
        print(f"error {code}  {_handler_name(handler)}")
    return 0
