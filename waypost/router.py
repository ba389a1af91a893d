"""Request router: exact and parameterized matching, dispatch, error responses."""

from __future__ import annotations

import logging
import threading
import traceback
from collections.abc import Iterable, Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote

from waypost.config import RouterConfig
from waypost.context import RequestContext, RouterState, bind_request
from waypost.errors import Halt, HandlerExecutionFailure, HandlerNotInvocable, RegistryInvalid, RouteNotFound
from waypost.hooks import HookBus, HookName
from waypost.registry import RegistrySnapshot, Route, RouteRegistry
from waypost.responses import Response, coerce_response, default_error_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    params: dict[str, str]
    exact: bool


def normalize_request_path(path: str) -> str:
    """Drop query and fragment, keep exactly one leading slash."""
    path = path.split("?", 1)[0].split("#", 1)[0]
    return "/" + path.lstrip("/")


def match_parameter_route(routes: Iterable[Route], path: str) -> RouteMatch | None:
    """First parameterized route, in registration order, that fits ``path``.

    First match wins even when a later pattern is more specific.
    """
    segments = path.split("/")
    for route in routes:
        if not route.is_parameterized or len(route.segments) != len(segments):
            continue
        capture_at = dict(route.captures)
        params: dict[str, str] = {}
        for index, (expected, actual) in enumerate(zip(route.segments, segments)):
            name = capture_at.get(index)
            if name is None:
                if expected != actual:
                    break
            elif not actual:
                break
            else:
                params[name] = unquote(actual)
        else:
            return RouteMatch(route=route, params=params, exact=False)
    return None


def _failure_location(exc: BaseException) -> tuple[str, int]:
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return "", 0
    return frames[-1].filename, frames[-1].lineno or 0


class Router:
    """Resolves request paths against a route registry and dispatches them.

    Every call to ``dispatch_request`` ends in exactly one ``Response``;
    handler failures, unknown paths and a broken registry all become
    status-coded error responses instead of propagating.
    """

    def __init__(
        self,
        registry: RouteRegistry | None = None,
        hooks: HookBus | None = None,
        config: RouterConfig | None = None,
        default_headers: Mapping[str, str] | None = None,
    ) -> None:
        self.registry = registry or RouteRegistry()
        self.hooks = hooks or HookBus()
        self.config = config or RouterConfig()
        self.default_headers = dict(default_headers or {})
        self._snapshot: RegistrySnapshot | None = None
        self._init_error: RegistryInvalid | None = None
        self._initialized = False
        self._init_lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized and self._init_error is None

    def register_route(self, pattern: str, handler: Any) -> Route:
        return self.registry.add_route(pattern, handler)

    def register_error_handler(self, code: int, handler: Any) -> None:
        self.registry.add_error_handler(code, handler)

    def routes(self) -> list[Route]:
        return list(self.registry.snapshot().routes.values())

    def init(self) -> bool:
        with self._init_lock:
            return self._init_locked()

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._init_lock:
            if not self._initialized:
                self._init_locked()

    def _init_locked(self) -> bool:
        self.hooks.do_action(HookName.ROUTER_BEFORE_INIT)
        self._trace("Router system initializing")
        try:
            snapshot = self._load_snapshot()
        except RegistryInvalid as exc:
            self.hooks.do_action(HookName.ROUTER_INIT_ERROR, exc)
            self._log_failure(f"Router ERROR: {exc}", exc)
            self._snapshot = None
            self._init_error = exc
            self._initialized = True
            return False

        self._snapshot = snapshot
        self._init_error = None
        self.hooks.do_action(HookName.ROUTER_CONFIG_LOADED, snapshot.routes, snapshot.error_handlers)
        self._trace("Router system initialized with %s routes", len(snapshot.routes))
        self.hooks.do_action(HookName.ROUTER_AFTER_INIT)
        self._initialized = True
        return True

    def resolve(self, path: str, snapshot: RegistrySnapshot | None = None) -> RouteMatch | None:
        snapshot = snapshot or self._load_snapshot()
        path = normalize_request_path(path)
        route = snapshot.routes.get(path)
        if route is not None:
            return RouteMatch(route=route, params={}, exact=True)
        return match_parameter_route(snapshot.routes.values(), path)

    def dispatch(self, match: RouteMatch, context: RequestContext) -> Response:
        route = match.route
        context.params.update(match.params)
        context.route = route.pattern
        self._trace("Dispatching route: %s", route.pattern)

        if not callable(route.handler):
            failure = HandlerNotInvocable(route.pattern)
            self._trace("%s", failure)
            context.advance(RouterState.FAILED)
            return self.handle_error(failure.status, context)

        context.advance(RouterState.DISPATCHING)
        self.hooks.do_action(HookName.ROUTER_BEFORE_DISPATCH, route.pattern, route.handler)
        try:
            with bind_request(context):
                response = coerce_response(route.handler())
        except Halt as halt:
            response = halt.response
        except Exception as exc:
            self.hooks.do_action(HookName.ROUTER_DISPATCH_ERROR, exc, route.pattern, route.handler)
            self._log_failure(str(HandlerExecutionFailure(route.pattern, exc)), exc)
            context.advance(RouterState.FAILED)
            return self.handle_error(HandlerExecutionFailure.status, context)

        context.advance(RouterState.COMPLETED)
        self.hooks.do_action(HookName.ROUTER_AFTER_DISPATCH, route.pattern, route.handler)
        return response

    def handle_error(self, status: int, context: RequestContext | None = None) -> Response:
        handlers = self._snapshot.error_handlers if self._snapshot else {}
        handler = handlers.get(status)
        if callable(handler):
            try:
                with bind_request(context) if context is not None else nullcontext():
                    return coerce_response(handler(), status=status)
            except Halt as halt:
                return halt.response
            except Exception as exc:
                self._log_failure(f"Error handler for {status} failed: {exc}", exc)
        return default_error_response(status)

    def dispatch_request(
        self,
        path: str,
        method: str = "GET",
        *,
        query_string: str = "",
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
        client_host: str | None = None,
    ) -> Response:
        self._ensure_initialized()

        context = RequestContext(
            path=path,
            method=method,
            query_string=query_string,
            headers=dict(headers or {}),
            body=body,
            client_host=client_host,
        )
        if self._init_error is not None:
            context.advance(RouterState.FAILED)
            return self._finish(context, self.handle_error(500, context))

        try:
            response = self._handle(context)
        except Exception as exc:
            self.hooks.do_action(HookName.ROUTER_REQUEST_ERROR, exc, context.path)
            self._log_failure(f"Request handling failed: {exc}", exc)
            context.state = RouterState.FAILED
            response = self.handle_error(500, context)
        return self._finish(context, response)

    def _handle(self, context: RequestContext) -> Response:
        context.advance(RouterState.RESOLVING)
        snapshot = self._load_snapshot()
        self._snapshot = snapshot

        path = self.hooks.apply_filters(HookName.ROUTER_REQUEST_PATH, normalize_request_path(context.path))
        context.path = normalize_request_path(path)
        self.hooks.do_action(HookName.ROUTER_BEFORE_REQUEST, context.path)
        self._trace("Request path: %s", context.path)
        self._trace("Available routes: %s", list(snapshot.routes))

        match = self.resolve(context.path, snapshot)
        if match is None:
            self._trace("%s", RouteNotFound(context.path))
            self.hooks.do_action(HookName.ROUTER_NO_MATCH, context.path)
            context.advance(RouterState.FAILED)
            return self.handle_error(RouteNotFound.status, context)

        if match.exact:
            self._trace("Matched route: %s", match.route.pattern)
            self.hooks.do_action(HookName.ROUTER_ROUTE_MATCHED, context.path, match.route.handler)
        else:
            self._trace("Matched parameter route: %s %s", match.route.pattern, match.params)
            self.hooks.do_action(HookName.ROUTER_PARAM_ROUTE_MATCHED, match.route.pattern, dict(match.params))
        return self.dispatch(match, context)

    def _finish(self, context: RequestContext, response: Response) -> Response:
        filtered = self.hooks.apply_filters(HookName.ROUTER_RESPONSE, response, context)
        if isinstance(filtered, Response):
            response = filtered
        else:
            logger.warning("Ignoring %s filter result of type %s", HookName.ROUTER_RESPONSE.value, type(filtered).__name__)
        return context.terminate(response.with_default_headers(self.default_headers))

    def _load_snapshot(self) -> RegistrySnapshot:
        try:
            snapshot = self.registry.snapshot()
        except RegistryInvalid:
            raise
        except Exception as exc:
            raise RegistryInvalid(f"Invalid router configuration: {exc}") from exc
        if not isinstance(snapshot, RegistrySnapshot):
            raise RegistryInvalid("Invalid router configuration")
        if not isinstance(snapshot.routes, Mapping) or not isinstance(snapshot.error_handlers, Mapping):
            raise RegistryInvalid("Invalid router configuration")
        return snapshot

    def _log_failure(self, message: str, cause: BaseException) -> None:
        filename, line = _failure_location(cause)
        if filename:
            message = f"{message} in {filename} on line {line}"
        logger.error("%s", message, exc_info=(type(cause), cause, cause.__traceback__))

    def _trace(self, message: str, *args: Any) -> None:
        if self.config.debug:
            logger.debug(message, *args)
