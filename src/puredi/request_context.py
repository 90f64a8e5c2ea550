from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Hashable
from contextvars import ContextVar, Token
from typing import Any, TypeVar, overload

from puredi.exceptions import PureDIScopeClosedError, PureDIScopedValueNotFoundError

T = TypeVar("T")

logger = logging.getLogger(__name__)

_MISSING = object()


class RequestScope:
    """Hold the request-scoped values of one in-flight request.

    A scope is created once at request entry, before any handler of that
    request is constructed, and is passed to every handler constructor. Values
    are keyed by capability (usually a type), so a middleware and a controller
    asking for the same capability receive the same instance whichever of them
    is built first.

    The scope also serves as the owner key of its disposables in the
    ``DisposalRegistry``; it hashes by identity.
    """

    def __init__(self) -> None:
        self.scope_id = uuid.uuid4().hex
        self._values: dict[Hashable, Any] = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def assert_open(self) -> None:
        """Fail when the request of this scope already ended.

        Raises:
            PureDIScopeClosedError: If ``clear`` already ran.

        """
        if self._closed:
            msg = f"Request scope {self.scope_id} is closed; its request already ended."
            raise PureDIScopeClosedError(msg)

    def get_or_create(self, key: Hashable, factory: Callable[[], T]) -> T:
        """Return the value stored under ``key``, creating it on first use.

        ``factory`` runs at most once per key and scope, even when handlers of
        the same request are constructed from different threads.

        Raises:
            PureDIScopeClosedError: If the scope is already closed.

        """
        with self._lock:
            self.assert_open()
            value = self._values.get(key, _MISSING)
            if value is _MISSING:
                value = factory()
                self._values[key] = value
                logger.debug("Created %s for %s in request scope %s", value, key, self.scope_id)
            return value

    @overload
    def get(self, key: type[T]) -> T: ...

    @overload
    def get(self, key: Hashable) -> Any: ...

    def get(self, key: Hashable) -> Any:
        """Return the value stored under ``key``.

        Raises:
            PureDIScopedValueNotFoundError: If nothing was stored under ``key``.

        """
        with self._lock:
            value = self._values.get(key, _MISSING)
        if value is _MISSING:
            msg = f"No value for {key!r} in request scope {self.scope_id}."
            raise PureDIScopedValueNotFoundError(msg)
        return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self.assert_open()
            self._values[key] = value

    def clear(self) -> None:
        """Forget every stored value and mark the scope closed."""
        with self._lock:
            self._values.clear()
            self._closed = True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __repr__(self) -> str:
        return f"RequestScope({self.scope_id})"


_current_request_scope: ContextVar[RequestScope | None] = ContextVar(
    "puredi_current_request_scope",
    default=None,
)


class RequestScopedValueStore:
    """Expose the current request's scope to code that cannot receive it.

    The binding lives in a ``ContextVar``: it follows the request across
    ``await`` points and into tasks spawned by it, and is never visible to a
    different request handled concurrently.

    Prefer passing the ``RequestScope`` explicitly. This store exists for
    handlers constructed without the scope, which look up their scoped
    dependencies at invocation time instead.
    """

    def bind(self, scope: RequestScope) -> Token[RequestScope | None]:
        """Make ``scope`` current for this execution context."""
        return _current_request_scope.set(scope)

    def reset(self, token: Token[RequestScope | None]) -> None:
        _current_request_scope.reset(token)

    def current(self) -> RequestScope:
        """Return the request scope bound to this execution context.

        Raises:
            PureDIScopedValueNotFoundError: If no request is being handled.

        """
        scope = _current_request_scope.get()
        if scope is None:
            msg = "No request scope is bound to the current execution context."
            raise PureDIScopedValueNotFoundError(msg)
        return scope

    def set_for_current_request(self, key: Hashable, value: Any) -> None:
        self.current().set(key, value)

    @overload
    def get_for_current_request(self, key: type[T]) -> T: ...

    @overload
    def get_for_current_request(self, key: Hashable) -> Any: ...

    def get_for_current_request(self, key: Hashable) -> Any:
        """Return the value set for ``key`` earlier in the current request.

        Raises:
            PureDIScopedValueNotFoundError: If no request is active or nothing
                was set under ``key`` in it.

        """
        return self.current().get(key)

    def clear_for_current_request(self) -> None:
        scope = _current_request_scope.get()
        if scope is not None:
            scope.clear()


request_store = RequestScopedValueStore()
"""Process-wide accessor for the current request scope."""
