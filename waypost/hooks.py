"""Hook bus: priority-ordered actions and filters."""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Callable
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from waypost.errors import HookCallbackFailure

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 10
DEFAULT_ACCEPTED_ARGS = 1


class HookName(str, Enum):
    ROUTER_BEFORE_INIT = "router_before_init"
    ROUTER_CONFIG_LOADED = "router_config_loaded"
    ROUTER_AFTER_INIT = "router_after_init"
    ROUTER_INIT_ERROR = "router_init_error"
    ROUTER_REQUEST_PATH = "router_request_path"
    ROUTER_BEFORE_REQUEST = "router_before_request"
    ROUTER_ROUTE_MATCHED = "router_route_matched"
    ROUTER_PARAM_ROUTE_MATCHED = "router_param_route_matched"
    ROUTER_NO_MATCH = "router_no_match"
    ROUTER_BEFORE_DISPATCH = "router_before_dispatch"
    ROUTER_AFTER_DISPATCH = "router_after_dispatch"
    ROUTER_DISPATCH_ERROR = "router_dispatch_error"
    ROUTER_REQUEST_ERROR = "router_request_error"
    ROUTER_RESPONSE = "router_response"
    APP_BEFORE_REGISTER_ROUTE = "app_before_register_route"
    APP_AFTER_REGISTER_ROUTE = "app_after_register_route"
    APP_BEFORE_LOGIN_CHECK = "app_before_login_check"
    APP_LOGIN_CHECK_FAILED = "app_login_check_failed"
    APP_LOGIN_CHECK_SUCCESS = "app_login_check_success"


class HookKind(str, Enum):
    ACTION = "action"
    FILTER = "filter"


class HookStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_calls: int = 0
    total_time: float = 0.0
    total_executed: int = 0
    kind: HookKind


@dataclass(frozen=True)
class HookHandle:
    """Registration receipt; pass it back to ``unregister`` or ``has_hook``."""

    name: str
    priority: int
    callback_id: str


@dataclass
class HookRecord:
    callback_id: str
    callback: Callable[..., Any]
    priority: int
    accepted_args: int
    kind: HookKind
    sequence: int
    registered_at: float = field(default_factory=time.time)


def hook_key(name: str | HookName) -> str:
    if isinstance(name, Enum):
        return str(name.value)
    return name


def callback_id(callback: Callable[..., Any]) -> str:
    """Stable identity: the same function bound to the same receiver maps to one id."""
    receiver = getattr(callback, "__self__", None)
    if receiver is not None:
        func = getattr(callback, "__func__", callback)
        name = getattr(func, "__qualname__", None) or getattr(func, "__name__", type(func).__name__)
        return f"{id(receiver):x}::{name}"
    name = getattr(callback, "__qualname__", None) or type(callback).__qualname__
    return f"{id(callback):x}::{name}"


class HookBus:
    """In-process hook bus with deterministic (priority, registration) ordering.

    Registries are shared across threads and guarded by a lock. Each
    invocation works from a snapshot of its records, so callbacks may add or
    remove hooks while a chain runs; changes apply to the next invocation.
    The current-hook stack lives in a context variable and is therefore
    private to each request.
    """

    def __init__(self) -> None:
        self._hooks: dict[str, dict[int, list[HookRecord]]] = {}
        self._stats: dict[str, HookStats] = {}
        self._sequence = itertools.count()
        self._lock = threading.RLock()
        self._stack: ContextVar[tuple[str, ...]] = ContextVar(f"waypost_hook_stack_{id(self):x}", default=())

    def register(
        self,
        name: str | HookName,
        callback: Callable[..., Any],
        priority: int = DEFAULT_PRIORITY,
        accepted_args: int = DEFAULT_ACCEPTED_ARGS,
        kind: HookKind = HookKind.ACTION,
    ) -> HookHandle | None:
        key = hook_key(name)
        if not callable(callback):
            logger.error("Invalid hook callback for %s: %r", key, callback)
            return None
        if accepted_args < 0:
            raise ValueError(f"accepted_args must be >= 0, got {accepted_args}")

        cid = callback_id(callback)
        with self._lock:
            bucket = self._hooks.setdefault(key, {}).setdefault(priority, [])
            for index, existing in enumerate(bucket):
                if existing.callback_id == cid:
                    bucket[index] = HookRecord(
                        callback_id=cid,
                        callback=callback,
                        priority=priority,
                        accepted_args=accepted_args,
                        kind=HookKind(kind),
                        sequence=existing.sequence,
                    )
                    break
            else:
                bucket.append(
                    HookRecord(
                        callback_id=cid,
                        callback=callback,
                        priority=priority,
                        accepted_args=accepted_args,
                        kind=HookKind(kind),
                        sequence=next(self._sequence),
                    )
                )
        logger.debug("Added %s hook: %s (priority: %s)", HookKind(kind).value, key, priority)
        return HookHandle(name=key, priority=priority, callback_id=cid)

    def add_action(
        self,
        name: str | HookName,
        callback: Callable[..., Any],
        priority: int = DEFAULT_PRIORITY,
        accepted_args: int = DEFAULT_ACCEPTED_ARGS,
    ) -> HookHandle | None:
        return self.register(name, callback, priority, accepted_args, HookKind.ACTION)

    def add_filter(
        self,
        name: str | HookName,
        callback: Callable[..., Any],
        priority: int = DEFAULT_PRIORITY,
        accepted_args: int = DEFAULT_ACCEPTED_ARGS,
    ) -> HookHandle | None:
        return self.register(name, callback, priority, accepted_args, HookKind.FILTER)

    def unregister(
        self,
        name: str | HookName,
        callback: Callable[..., Any] | HookHandle,
        priority: int = DEFAULT_PRIORITY,
    ) -> bool:
        key = hook_key(name)
        if isinstance(callback, HookHandle):
            cid = callback.callback_id
            priority = callback.priority
        else:
            cid = callback_id(callback)

        with self._lock:
            buckets = self._hooks.get(key)
            if not buckets or priority not in buckets:
                return False
            bucket = buckets[priority]
            remaining = [record for record in bucket if record.callback_id != cid]
            if len(remaining) == len(bucket):
                return False
            if remaining:
                buckets[priority] = remaining
            else:
                del buckets[priority]
            if not buckets:
                del self._hooks[key]
        logger.debug("Removed hook: %s (priority: %s)", key, priority)
        return True

    def unregister_all(self, name: str | HookName | None = None, priority: int | None = None) -> bool:
        with self._lock:
            if name is None:
                self._hooks.clear()
                logger.debug("Removed all hooks")
                return True

            key = hook_key(name)
            buckets = self._hooks.get(key)
            if buckets is None:
                return False
            if priority is None:
                del self._hooks[key]
                logger.debug("Removed all hooks: %s", key)
                return True
            if buckets.pop(priority, None) is not None:
                logger.debug("Removed hook group: %s (priority: %s)", key, priority)
            if not buckets:
                del self._hooks[key]
            return True

    def has_hook(self, name: str | HookName, callback: Callable[..., Any] | HookHandle | None = None) -> bool:
        key = hook_key(name)
        with self._lock:
            buckets = self._hooks.get(key)
            if not buckets:
                return False
            if callback is None:
                return any(buckets.values())
        return self.priority_of(key, callback) is not None

    def priority_of(self, name: str | HookName, callback: Callable[..., Any] | HookHandle) -> int | None:
        """Return the lowest priority ``callback`` is registered at under ``name``."""
        key = hook_key(name)
        cid = callback.callback_id if isinstance(callback, HookHandle) else callback_id(callback)
        with self._lock:
            for priority in sorted(self._hooks.get(key, {})):
                if any(record.callback_id == cid for record in self._hooks[key][priority]):
                    return priority
        return None

    def current_hook(self) -> str | None:
        stack = self._stack.get()
        return stack[-1] if stack else None

    def hooks(self, name: str | HookName | None = None) -> dict[str, list[HookRecord]]:
        """Registered records per hook name, in execution order."""
        with self._lock:
            names = [hook_key(name)] if name is not None else list(self._hooks)
            return {key: self._ordered(key) for key in names if key in self._hooks}

    def get_stats(self, name: str | HookName | None = None) -> dict[str, HookStats] | HookStats | None:
        with self._lock:
            if name is not None:
                stats = self._stats.get(hook_key(name))
                return stats.model_copy() if stats else None
            return {key: stats.model_copy() for key, stats in self._stats.items()}

    def clear_stats(self, name: str | HookName | None = None) -> None:
        with self._lock:
            if name is None:
                self._stats.clear()
            else:
                self._stats.pop(hook_key(name), None)

    def do_action(self, name: str | HookName, *args: Any) -> None:
        self._execute(hook_key(name), HookKind.ACTION, args)

    def apply_filters(self, name: str | HookName, value: Any, *args: Any) -> Any:
        return self._execute(hook_key(name), HookKind.FILTER, (value, *args))

    def _ordered(self, key: str) -> list[HookRecord]:
        records = [record for bucket in self._hooks.get(key, {}).values() for record in bucket]
        return sorted(records, key=lambda record: (record.priority, record.sequence))

    def _execute(self, key: str, kind: HookKind, args: tuple[Any, ...]) -> Any:
        value = args[0] if kind is HookKind.FILTER else None
        with self._lock:
            if key not in self._hooks:
                return value
            records = [record for record in self._ordered(key) if record.kind is kind]

        token = self._stack.set((*self._stack.get(), key))
        start = time.perf_counter()
        executed = 0
        try:
            for record in records:
                hook_start = time.perf_counter()
                try:
                    if kind is HookKind.ACTION:
                        record.callback(*args[: record.accepted_args])
                    else:
                        extra = args[1 : max(record.accepted_args, 1)]
                        value = record.callback(value, *extra)
                except Exception as exc:
                    failure = HookCallbackFailure(key, record.callback_id, exc)
                    logger.exception("%s", failure)
                    continue
                executed += 1
                logger.debug(
                    "Executed hook: %s (priority: %s, %.2fms)",
                    key,
                    record.priority,
                    (time.perf_counter() - hook_start) * 1000,
                )
        finally:
            self._stack.reset(token)

        elapsed = time.perf_counter() - start
        with self._lock:
            stats = self._stats.get(key)
            if stats is None:
                stats = self._stats[key] = HookStats(kind=kind)
            stats.total_calls += 1
            stats.total_time += elapsed
            stats.total_executed += executed
        return value


@dataclass(frozen=True)
class HookFunctions:
    """Free-function style surface over one explicitly constructed bus.

    Holds nothing but the bus reference::

        hooks = HookFunctions(bus)
        hooks.add_action("user_login", audit)
        hooks.do_action("user_login", user)
    """

    bus: HookBus

    def add_action(self, name: str | HookName, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY, accepted_args: int = DEFAULT_ACCEPTED_ARGS) -> HookHandle | None:
        return self.bus.add_action(name, callback, priority, accepted_args)

    def do_action(self, name: str | HookName, *args: Any) -> None:
        self.bus.do_action(name, *args)

    def add_filter(self, name: str | HookName, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY, accepted_args: int = DEFAULT_ACCEPTED_ARGS) -> HookHandle | None:
        return self.bus.add_filter(name, callback, priority, accepted_args)

    def apply_filters(self, name: str | HookName, value: Any, *args: Any) -> Any:
        return self.bus.apply_filters(name, value, *args)

    def remove_hook(self, name: str | HookName, callback: Callable[..., Any] | HookHandle, priority: int = DEFAULT_PRIORITY) -> bool:
        return self.bus.unregister(name, callback, priority)

    def remove_all_hooks(self, name: str | HookName | None = None, priority: int | None = None) -> bool:
        return self.bus.unregister_all(name, priority)

    def has_hook(self, name: str | HookName, callback: Callable[..., Any] | HookHandle | None = None) -> bool:
        return self.bus.has_hook(name, callback)

    def current_hook(self) -> str | None:
        return self.bus.current_hook()
