"""Built-in system info and client IP routes."""

from __future__ import annotations

import ipaddress
import platform

from waypost import __version__
from waypost.context import RequestContext, current_request
from waypost.responses import Response, json_response
from waypost.router import Router

CLIENT_IP_SOURCES = ("x-client-ip", "x-forwarded-for")


def client_ip(context: RequestContext) -> str | None:
    """First valid address among the client IP headers and the peer address."""
    candidates: list[str | None] = []
    for header in CLIENT_IP_SOURCES:
        value = context.header(header)
        if value and header == "x-forwarded-for":
            value = value.split(",")[0]
        candidates.append(value)
    candidates.append(context.client_host)

    for candidate in candidates:
        if not candidate:
            continue
        candidate = candidate.strip()
        try:
            ipaddress.ip_address(candidate)
        except ValueError:
            continue
        if candidate == "::1":
            return "127.0.0.1"
        return candidate
    return None


def system_info(context: RequestContext) -> dict[str, str]:
    host = context.header("host", "") or ""
    return {
        "python_version": platform.python_version(),
        "python_implementation": platform.python_implementation(),
        "server_software": f"waypost/{__version__}",
        "server_name": host.split(":")[0] or "Unknown",
        "platform": platform.platform(),
    }


def register_system_routes(router: Router, prefix: str = "/system") -> list[str]:
    prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""

    def system_info_handler() -> Response:
        return json_response(system_info(current_request()))

    def client_ip_handler() -> Response:
        return json_response(client_ip(current_request()))

    paths = [f"{prefix}/system-info", f"{prefix}/client-ip"]
    router.register_route(paths[0], system_info_handler)
    router.register_route(paths[1], client_ip_handler)
    return paths
