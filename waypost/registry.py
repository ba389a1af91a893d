"""Route registry: path patterns and error handlers in registration order."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any


def normalize_pattern(pattern: str) -> str:
    if not isinstance(pattern, str):
        raise TypeError(f"Route pattern must be a string, got {type(pattern).__name__}")
    if not pattern:
        raise ValueError("Route pattern must not be empty")
    return pattern if pattern.startswith("/") else f"/{pattern}"


def _capture_name(segment: str) -> str | None:
    if len(segment) > 2 and segment.startswith("{") and segment.endswith("}"):
        inner = segment[1:-1]
        if "{" not in inner and "}" not in inner:
            return inner
    return None


@dataclass(frozen=True)
class Route:
    """A registered path pattern.

    ``segments`` holds the ``/``-split pattern; ``captures`` maps segment
    index to capture name for every whole-segment ``{name}``.
    """

    pattern: str
    handler: Any
    segments: tuple[str, ...]
    captures: tuple[tuple[int, str], ...]

    @classmethod
    def build(cls, pattern: str, handler: Any) -> Route:
        normalized = normalize_pattern(pattern)
        segments = tuple(normalized.split("/"))
        captures: list[tuple[int, str]] = []
        seen: set[str] = set()
        for index, segment in enumerate(segments):
            name = _capture_name(segment)
            if name is None:
                continue
            if name in seen:
                raise ValueError(f"Duplicate capture {{{name}}} in route pattern {normalized}")
            seen.add(name)
            captures.append((index, name))
        return cls(pattern=normalized, handler=handler, segments=segments, captures=tuple(captures))

    @property
    def is_parameterized(self) -> bool:
        return bool(self.captures)


@dataclass(frozen=True)
class RegistrySnapshot:
    routes: Mapping[str, Route]
    error_handlers: Mapping[int, Any]


class RouteRegistry:
    def __init__(self) -> None:
        self._routes: dict[str, Route] = {}
        self._error_handlers: dict[int, Any] = {}
        self._snapshot: RegistrySnapshot | None = None
        self._lock = threading.Lock()

    def add_route(self, pattern: str, handler: Any) -> Route:
        route = Route.build(pattern, handler)
        with self._lock:
            # dict assignment keeps the original position of a replaced pattern
            self._routes[route.pattern] = route
            self._snapshot = None
        return route

    def add_error_handler(self, code: int, handler: Any) -> None:
        if isinstance(code, bool) or not isinstance(code, int):
            raise TypeError(f"Error handler code must be an int, got {type(code).__name__}")
        with self._lock:
            self._error_handlers[code] = handler
            self._snapshot = None

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            if self._snapshot is None:
                self._snapshot = RegistrySnapshot(
                    routes=MappingProxyType(dict(self._routes)),
                    error_handlers=MappingProxyType(dict(self._error_handlers)),
                )
            return self._snapshot

    def __len__(self) -> int:
        with self._lock:
            return len(self._routes)
