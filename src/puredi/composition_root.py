from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any

from typing_extensions import Self

from puredi.dependencies import Dependency, DisposableDependency, SupportsClose
from puredi.dispatch import FactoryDispatch, HandlerKind
from puredi.exceptions import PureDIRegistryClosedError
from puredi.handlers import ConventionalMiddleware, GreetingMiddleware, HelloController
from puredi.registry import DisposalRegistry
from puredi.request_context import RequestScope, RequestScopedValueStore, request_store

logger = logging.getLogger(__name__)

DependencyFactory = Callable[[], Dependency]


class CompositionRoot:
    """Build every request handler of the application by hand.

    The root owns the singleton dependencies and the ``DisposalRegistry``.
    It is constructed explicitly at startup, handed to the application
    factory, and closed once by the process lifecycle when the server stops.

    For each request the host calls ``begin_request`` before building any
    handler, ``create``/``release`` around each handler, and ``end_request``
    when the request is finished, whatever the outcome.

    Scoped dependencies are stored in the request's ``RequestScope`` under the
    ``Dependency`` capability, so the middleware and the controller of one
    request share a single instance. With ``share_scoped_dependencies=False``
    every handler receives its own scoped dependency instead, owned by the
    handler and released by ``release``.

    Examples:
        .. code-block:: python

            with CompositionRoot() as root:
                scope = root.begin_request()
                try:
                    controller = root.create(HandlerKind.HELLO_CONTROLLER, scope)
                    print(controller.index())
                finally:
                    root.end_request(scope)

    """

    def __init__(
        self,
        *,
        singleton_factory: DependencyFactory = DisposableDependency,
        scoped_factory: DependencyFactory = DisposableDependency,
        share_scoped_dependencies: bool = True,
        store: RequestScopedValueStore = request_store,
    ) -> None:
        """Create the singleton dependencies and register the handler kinds.

        Args:
            singleton_factory: Builds the dependency shared by all requests.
                Tests pass instrumented fakes here.
            scoped_factory: Builds the dependency of a single request.
            share_scoped_dependencies: Share one scoped dependency between all
                handlers of a request.
            store: Ambient accessor used by handlers built without their
                scoped dependency.

        """
        self._scoped_factory = scoped_factory
        self._share_scoped_dependencies = share_scoped_dependencies
        self._store = store

        self.registry = DisposalRegistry()
        self._singleton_dependency = self._register_for_dispose(singleton_factory())

        self.dispatch = FactoryDispatch(self.registry)
        self.dispatch.register(HandlerKind.HELLO_CONTROLLER, self._build_hello_controller)
        self.dispatch.register(HandlerKind.GREETING_MIDDLEWARE, self._build_greeting_middleware)
        self.dispatch.register(
            HandlerKind.CONVENTIONAL_MIDDLEWARE,
            self._build_conventional_middleware,
        )

    @property
    def singleton_dependency(self) -> Dependency:
        return self._singleton_dependency

    @property
    def is_closed(self) -> bool:
        return self.registry.is_disposed

    # region Request lifecycle

    def begin_request(self) -> RequestScope:
        """Open the scope of a new request.

        Raises:
            PureDIRegistryClosedError: If the root is already closed.

        """
        self.registry.assert_not_disposed()
        scope = RequestScope()
        logger.debug("Request scope %s opened", scope.scope_id)
        return scope

    def end_request(self, scope: RequestScope) -> None:
        """Release everything created for ``scope`` and forget its values.

        Safe to call more than once, and after ``close`` (which already
        released the scope's resources).
        """
        try:
            self.registry.release_scope(scope)
        finally:
            scope.clear()
            logger.debug("Request scope %s closed", scope.scope_id)

    def create(self, kind: HandlerKind | str, scope: RequestScope) -> Any:
        """Build the handler of ``kind`` for the request of ``scope``.

        Raises:
            PureDIRegistryClosedError: If the root is already closed.
            PureDIScopeClosedError: If the request of ``scope`` already ended.
            PureDIUnknownKindError: If ``kind`` is not a registered handler kind.

        """
        self.registry.assert_not_disposed()
        return self.dispatch.create(kind, scope)

    def release(self, kind: HandlerKind | str, handler: Any) -> None:
        """Release the resources owned by ``handler``."""
        self.dispatch.release(kind, handler)

    # endregion Request lifecycle

    # region Handler constructors

    def _build_hello_controller(self, scope: RequestScope) -> HelloController:
        if self._share_scoped_dependencies:
            return HelloController(
                self._singleton_dependency,
                self._shared_scoped_dependency(scope),
            )
        scoped_dependency = self._scoped_factory()
        controller = HelloController(self._singleton_dependency, scoped_dependency)
        self._register_for_dispose(scoped_dependency, owner=controller)
        return controller

    def _build_greeting_middleware(self, scope: RequestScope) -> GreetingMiddleware:
        if self._share_scoped_dependencies:
            return GreetingMiddleware(
                self._singleton_dependency,
                self._shared_scoped_dependency(scope),
            )
        scoped_dependency = self._scoped_factory()
        middleware = GreetingMiddleware(self._singleton_dependency, scoped_dependency)
        self._register_for_dispose(scoped_dependency, owner=middleware)
        return middleware

    def _build_conventional_middleware(self, scope: RequestScope) -> ConventionalMiddleware:
        # Looked up through the store while the request is handled.
        self._shared_scoped_dependency(scope)
        return ConventionalMiddleware(self._store)

    def _shared_scoped_dependency(self, scope: RequestScope) -> Dependency:
        return scope.get_or_create(
            Dependency,
            lambda: self._register_for_dispose(self._scoped_factory(), owner=scope),
        )

    def _register_for_dispose(self, dependency: Dependency, *, owner: Any = None) -> Dependency:
        if not isinstance(dependency, SupportsClose):
            return dependency
        try:
            if owner is None:
                self.registry.register_singleton(dependency)
            else:
                self.registry.register_scoped(owner, dependency)
        except PureDIRegistryClosedError:
            # release_all() already ran and will not see this dependency.
            dependency.close()
            raise
        return dependency

    # endregion Handler constructors

    # region Disposal

    def close(self) -> None:
        """Release every remaining resource; later calls do nothing."""
        if self.registry.is_disposed:
            return
        logger.info("Closing composition root")
        self.registry.release_all()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    # endregion Disposal
