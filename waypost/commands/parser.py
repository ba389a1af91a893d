"""CLI parser construction."""

from __future__ import annotations

import argparse

from waypost.commands.common import add_common_config_flags


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Waypost request dispatcher")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--log-file", help="Optional log file (overrides router.log_file)")

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Serve the application over HTTP with uvicorn")
    serve.add_argument("--host", help="Bind host (defaults to server.host)")
    serve.add_argument("--port", type=int, help="Bind port (defaults to server.port)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    add_common_config_flags(serve)

    routes = sub.add_parser("routes", help="List registered routes in match order")
    routes.add_argument("--json", action="store_true", help="Emit JSON instead of a table")
    add_common_config_flags(routes)

    hooks = sub.add_parser("hooks", help="List registered hooks in execution order")
    hooks.add_argument("--name", help="Only show one hook name")
    add_common_config_flags(hooks)

    request = sub.add_parser("request", help="Dispatch a single request in-process and print the response")
    request.add_argument("path", help="Request path, optionally with a query string")
    request.add_argument("--method", "-X", default="GET", help="HTTP method")
    request.add_argument("--header", "-H", action="append", help="Request header as 'Name: value' (repeatable)")
    request.add_argument("--data", "-d", default="", help="Request body")
    request.add_argument("--include", "-i", action="store_true", help="Print status line and headers")
    add_common_config_flags(request)

    return parser
