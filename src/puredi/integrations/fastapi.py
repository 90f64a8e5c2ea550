from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

from fastapi import FastAPI, Request
from starlette.types import ASGIApp, Receive, Scope, Send

from puredi.composition_root import CompositionRoot
from puredi.dispatch import HandlerKind
from puredi.exceptions import PureDIScopedValueNotFoundError
from puredi.request_context import RequestScope, RequestScopedValueStore, request_store

logger = logging.getLogger(__name__)

REQUEST_SCOPE_KEY = "puredi.request_scope"
_ROOT_STATE_ATTR = "puredi_root"
_SCOPED_TYPES = frozenset({"http", "websocket"})


class RequestScopeMiddleware:
    """Open a ``RequestScope`` per request and release it when the request ends.

    Must be the outermost puredi middleware: every handler of the request is
    built from the scope it opens. The scope is released in ``finally``, so
    successful, failed and cancelled requests are all cleaned up.
    """

    def __init__(
        self,
        app: ASGIApp,
        root: CompositionRoot,
        store: RequestScopedValueStore = request_store,
    ) -> None:
        self.app = app
        self.root = root
        self.store = store

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in _SCOPED_TYPES:
            await self.app(scope, receive, send)
            return

        request_scope = self.root.begin_request()
        scope[REQUEST_SCOPE_KEY] = request_scope
        token = self.store.bind(request_scope)
        try:
            await self.app(scope, receive, send)
        finally:
            try:
                self.root.end_request(request_scope)
            finally:
                self.store.reset(token)


class HandlerMiddleware:
    """Build a middleware handler of ``kind`` per request and run it."""

    def __init__(self, app: ASGIApp, root: CompositionRoot, kind: HandlerKind) -> None:
        self.app = app
        self.root = root
        self.kind = kind

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        handler = self.root.create(self.kind, _request_scope_from(scope))
        try:
            await handler.invoke(scope, receive, send, self.app)
        finally:
            self.root.release(self.kind, handler)


def _request_scope_from(scope: Scope) -> RequestScope:
    request_scope = scope.get(REQUEST_SCOPE_KEY)
    if request_scope is None:
        msg = (
            "Request scope is not set. Call setup_puredi(app, root) so that "
            "RequestScopeMiddleware wraps every handler."
        )
        raise PureDIScopedValueNotFoundError(msg)
    return request_scope


def get_request_scope(request: Request) -> RequestScope:
    """Return the scope opened for ``request``."""
    return _request_scope_from(request.scope)


def get_composition_root(request: Request) -> CompositionRoot:
    return getattr(request.app.state, _ROOT_STATE_ATTR)


def controller(kind: HandlerKind) -> Callable[[Request], AsyncIterator[Any]]:
    """Return a FastAPI dependency building the controller of ``kind``.

    Examples:
        .. code-block:: python

            @router.get("/hello")
            async def hello(
                hello_controller: Annotated[
                    HelloController,
                    Depends(controller(HandlerKind.HELLO_CONTROLLER)),
                ],
            ) -> str:
                return hello_controller.index()

    """

    async def provide_controller(request: Request) -> AsyncIterator[Any]:
        root = get_composition_root(request)
        handler = root.create(kind, get_request_scope(request))
        try:
            yield handler
        finally:
            root.release(kind, handler)

    provide_controller.__name__ = f"provide_{kind.value}"
    return provide_controller


def setup_puredi(
    app: FastAPI,
    root: CompositionRoot,
    *,
    middleware: Sequence[HandlerKind] = (HandlerKind.GREETING_MIDDLEWARE,),
) -> None:
    """Route handler construction of ``app`` through ``root``.

    Args:
        app: Application to configure; must not be started yet.
        root: Composition root building every handler.
        middleware: Middleware kinds, outermost first.

    """
    setattr(app.state, _ROOT_STATE_ATTR, root)
    for kind in reversed(middleware):
        app.add_middleware(HandlerMiddleware, root=root, kind=kind)
    app.add_middleware(RequestScopeMiddleware, root=root)
    logger.debug("puredi configured with middleware %s", [kind.value for kind in middleware])


__all__ = [
    "REQUEST_SCOPE_KEY",
    "HandlerMiddleware",
    "RequestScopeMiddleware",
    "controller",
    "get_composition_root",
    "get_request_scope",
    "setup_puredi",
]
