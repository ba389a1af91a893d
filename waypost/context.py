"""Per-request state threaded through matching and dispatch."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import parse_qsl

if TYPE_CHECKING:
    from waypost.responses import Response


class RouterState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    FAILED = "failed"
    TERMINATED = "terminated"


@dataclass
class RequestContext:
    path: str
    method: str = "GET"
    query_string: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_host: str | None = None
    params: dict[str, str] = field(default_factory=dict)
    route: str | None = None
    state: RouterState = RouterState.IDLE
    response: Response | None = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.headers = {key.lower(): value for key, value in self.headers.items()}
        if not self.query_string and "?" in self.path:
            self.query_string = self.path.split("?", 1)[1].split("#", 1)[0]
        for key, value in parse_qsl(self.query_string, keep_blank_values=True):
            self.params.setdefault(key, value)

    @property
    def terminated(self) -> bool:
        return self.state is RouterState.TERMINATED

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)

    def advance(self, state: RouterState) -> None:
        if self.terminated:
            raise RuntimeError(f"Request for {self.path} already terminated; cannot move to {state.value}")
        self.state = state

    def terminate(self, response: Response) -> Response:
        """Record the single terminal response for this request."""
        if self.terminated:
            raise RuntimeError(f"Request for {self.path} already terminated")
        self.state = RouterState.TERMINATED
        self.response = response
        return response


_current: ContextVar[RequestContext | None] = ContextVar("waypost_current_request", default=None)


def current_request() -> RequestContext:
    """The request being dispatched on this thread or task.

    Handlers take no arguments; they read the path, params and headers
    from here.
    """
    context = _current.get()
    if context is None:
        raise RuntimeError("No request is being dispatched")
    return context


@contextmanager
def bind_request(context: RequestContext) -> Iterator[RequestContext]:
    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)
