"""Waypost exception hierarchy.

The router owns request-level guarantees and the hook bus owns per-callback
isolation; both raise and catch these types.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from waypost.responses import Response


class WaypostError(Exception):
    """Base for all waypost errors."""


class RouteNotFound(WaypostError):
    """No exact or parameterized route matched the request path."""

    status = 404

    def __init__(self, path: str) -> None:
        super().__init__(f"No route matched for: {path}")
        self.path = path


class HandlerNotInvocable(WaypostError):
    """The value registered for a route is not callable. Served as 404."""

    status = 404

    def __init__(self, pattern: str) -> None:
        super().__init__(f"Invalid handler for route: {pattern}")
        self.pattern = pattern


class HandlerExecutionFailure(WaypostError):
    status = 500

    def __init__(self, pattern: str, cause: BaseException) -> None:
        super().__init__(f"Route execution failed [{pattern}]: {cause}")
        self.pattern = pattern
        self.cause = cause


class RegistryInvalid(WaypostError):
    """The route registry could not produce a well-formed snapshot."""

    status = 500


class HookCallbackFailure(WaypostError):
    def __init__(self, hook_name: str, callback_id: str, cause: BaseException) -> None:
        super().__init__(f"Hook callback error: {hook_name} [{callback_id}] - {cause}")
        self.hook_name = hook_name
        self.callback_id = callback_id
        self.cause = cause


class ViewNotFound(WaypostError):
    """A logical view name has no backing implementation."""

    def __init__(self, view: str, detail: str = "") -> None:
        message = f"Router view not found: {view}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.view = view


class Halt(WaypostError):
    """Raised by a handler to end the request with a prepared response."""

    def __init__(self, response: Response) -> None:
        super().__init__(f"Halted with status {response.status}")
        self.response = response
