from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeAlias

from puredi.exceptions import PureDIInvalidRegistrationError, PureDIUnknownKindError
from puredi.registry import DisposalRegistry
from puredi.request_context import RequestScope

logger = logging.getLogger(__name__)


class HandlerKind(str, Enum):
    """Stable identifiers of the handlers the composition root can build."""

    HELLO_CONTROLLER = "hello_controller"
    """Controller serving ``GET /api/hello``."""

    GREETING_MIDDLEWARE = "greeting_middleware"
    """Middleware built with its singleton and scoped dependencies."""

    CONVENTIONAL_MIDDLEWARE = "conventional_middleware"
    """Middleware built without dependencies; looks them up per invocation."""


HandlerConstructor: TypeAlias = Callable[[RequestScope], Any]
"""Build a handler for one request from its scope."""


class FactoryDispatch:
    """Map handler kinds to hand-written constructor functions.

    Constructors are registered once at startup. ``create`` never falls back
    to anything: an unknown kind is a wiring bug and fails loudly.
    """

    def __init__(self, registry: DisposalRegistry) -> None:
        self._registry = registry
        self._constructors: dict[HandlerKind, HandlerConstructor] = {}

    def register(self, kind: HandlerKind, constructor: HandlerConstructor) -> None:
        """Register the constructor used for ``kind``.

        Raises:
            PureDIInvalidRegistrationError: If ``kind`` already has a constructor.

        """
        if kind in self._constructors:
            msg = f"Handler kind '{kind.value}' is already registered."
            raise PureDIInvalidRegistrationError(msg)
        self._constructors[kind] = constructor

    def kinds(self) -> tuple[HandlerKind, ...]:
        return tuple(self._constructors)

    def create(self, kind: HandlerKind | str, scope: RequestScope) -> Any:
        """Build the handler registered for ``kind``.

        Args:
            kind: Handler kind, or its string value.
            scope: Scope of the request the handler will serve.

        Returns:
            The constructed handler.

        Raises:
            PureDIUnknownKindError: If no constructor is registered for ``kind``.
            PureDIRegistryClosedError: If the registry is already released.
            PureDIScopeClosedError: If the request of ``scope`` already ended.

        """
        constructor = self._constructors.get(_normalize_kind(kind))
        if constructor is None:
            msg = f"Unknown handler kind: {kind!r}."
            raise PureDIUnknownKindError(msg)
        self._registry.assert_not_disposed()
        scope.assert_open()
        handler = constructor(scope)
        logger.debug("Created %s for request scope %s", type(handler).__name__, scope.scope_id)
        return handler

    def release(self, kind: HandlerKind | str, handler: Any) -> None:
        """Release the resources owned by a handler built by ``create``."""
        logger.debug("Releasing %s (%s)", type(handler).__name__, kind)
        self._registry.release_scope(handler)


def _normalize_kind(kind: HandlerKind | str) -> HandlerKind | None:
    if isinstance(kind, HandlerKind):
        return kind
    try:
        return HandlerKind(kind)
    except ValueError:
        return None
