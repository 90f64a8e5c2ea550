"""Request handlers wired by hand in ``CompositionRoot``.

Handlers know nothing about how their dependencies are created or released;
they receive them through ``__init__`` (or, for ``ConventionalMiddleware``,
look them up while handling the request).
"""

from __future__ import annotations

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from puredi.dependencies import Dependency
from puredi.request_context import RequestScopedValueStore

GREETING_HEADER = "x-middleware-greeting"
CONVENTIONAL_HEADER = "x-conventional-middleware"


class HelloController:
    """Controller greeting the caller with its singleton and scoped dependencies."""

    def __init__(self, singleton_dependency: Dependency, scoped_dependency: Dependency) -> None:
        self.singleton_dependency = singleton_dependency
        self.scoped_dependency = scoped_dependency

    def index(self) -> str:
        return (
            f"Hello from controller with {self.singleton_dependency} "
            f"and {self.scoped_dependency}!"
        )


class GreetingMiddleware:
    """Add a greeting header naming the middleware's dependencies."""

    def __init__(self, singleton_dependency: Dependency, scoped_dependency: Dependency) -> None:
        self.singleton_dependency = singleton_dependency
        self.scoped_dependency = scoped_dependency

    @property
    def greeting(self) -> str:
        return (
            f"Also, hello from middleware with {self.singleton_dependency} "
            f"and {self.scoped_dependency}!"
        )

    async def invoke(self, scope: Scope, receive: Receive, send: Send, call_next: ASGIApp) -> None:
        async def send_with_greeting(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(GREETING_HEADER, self.greeting)
            await send(message)

        await call_next(scope, receive, send_with_greeting)


class ConventionalMiddleware:
    """Middleware built without dependencies.

    The scoped dependency is looked up in the current request while handling
    it, so it must have been created earlier in the same request.
    """

    def __init__(self, store: RequestScopedValueStore) -> None:
        self._store = store

    async def invoke(self, scope: Scope, receive: Receive, send: Send, call_next: ASGIApp) -> None:
        dependency = self._store.get_for_current_request(Dependency)

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(
                    CONVENTIONAL_HEADER,
                    f"HELLO FROM MIDDLEWARE {dependency}",
                )
            await send(message)

        await call_next(scope, receive, send_with_header)
