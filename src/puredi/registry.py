from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterable
from typing import TypeVar

from puredi.dependencies import SupportsClose
from puredi.exceptions import PureDIDisposalError, PureDIRegistryClosedError

T = TypeVar("T", bound=SupportsClose)

logger = logging.getLogger(__name__)


class DisposalRegistry:
    """Track disposable resources and release each of them exactly once.

    Singletons are registered once (at composition root construction) and
    released only by ``release_all``. Scoped resources are grouped by an owner
    key, usually a ``RequestScope`` or a handler instance, and released together
    by ``release_scope`` when the owner is done.

    The owner mapping is mutated by many in-flight requests at once, so every
    read and write happens under one ``threading.Lock``. Resources are closed
    outside the lock.

    Examples:
        .. code-block:: python

            registry = DisposalRegistry()
            pool = registry.register_singleton(ConnectionPool())

            session = registry.register_scoped(request_scope, Session(pool))
            ...
            registry.release_scope(request_scope)  # closes ``session``

            registry.release_all()  # closes ``pool``

    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._singletons: list[SupportsClose] = []
        self._scoped: dict[Hashable, list[SupportsClose]] = {}
        self._disposed = False

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def assert_not_disposed(self) -> None:
        """Fail when the registry was already released.

        Raises:
            PureDIRegistryClosedError: If ``release_all`` already ran.

        """
        if self._disposed:
            msg = f"{type(self).__name__} is closed; nothing can be registered after release_all()."
            raise PureDIRegistryClosedError(msg)

    def register_singleton(self, resource: T) -> T:
        """Register a resource released at shutdown and return it unchanged.

        Args:
            resource: Resource owned for the lifetime of the process.

        Returns:
            The same ``resource``, for chaining.

        Raises:
            PureDIRegistryClosedError: If the registry is already released.

        """
        with self._lock:
            self.assert_not_disposed()
            self._singletons.append(resource)
        return resource

    def register_scoped(self, owner_key: Hashable, resource: T) -> T:
        """Register a resource released together with ``owner_key``.

        Args:
            owner_key: Identity of the owner, e.g. a request scope or a handler.
            resource: Resource to release when the owner is released.

        Returns:
            The same ``resource``, for chaining.

        Raises:
            PureDIRegistryClosedError: If the registry is already released.

        """
        with self._lock:
            self.assert_not_disposed()
            self._scoped.setdefault(owner_key, []).append(resource)
        return resource

    def release_scope(self, owner_key: Hashable) -> None:
        """Release every resource registered under ``owner_key``.

        Unknown keys are ignored, so releasing the same owner twice is a no-op
        the second time.

        Raises:
            PureDIDisposalError: If one or more resources failed to close. All
                other resources of the owner are still released.

        """
        with self._lock:
            resources = self._scoped.pop(owner_key, None)
        if not resources:
            return
        logger.debug("Releasing %d scoped resource(s) of %r", len(resources), owner_key)
        errors = _close_all(reversed(resources))
        if errors:
            msg = f"Failed to release {len(errors)} resource(s) of {owner_key!r}."
            raise PureDIDisposalError(msg, errors)

    def release_all(self) -> None:
        """Release leftover scoped resources, then singletons, then close.

        Scoped resources still registered belong to requests that were
        interrupted by shutdown. Only the first call releases anything; later
        calls return immediately.

        Raises:
            PureDIDisposalError: If one or more resources failed to close.

        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            leftovers = list(self._scoped.items())
            self._scoped.clear()
            singletons = self._singletons[:]
            self._singletons.clear()

        if leftovers:
            logger.info("Releasing resources of %d unfinished owner(s)", len(leftovers))
        errors: list[BaseException] = []
        for _, resources in leftovers:
            errors.extend(_close_all(reversed(resources)))
        errors.extend(_close_all(reversed(singletons)))
        if errors:
            msg = f"Failed to release {len(errors)} resource(s) during shutdown."
            raise PureDIDisposalError(msg, errors)

    def scoped_count(self, owner_key: Hashable) -> int:
        with self._lock:
            return len(self._scoped.get(owner_key, ()))

    def active_owners(self) -> list[Hashable]:
        with self._lock:
            return list(self._scoped)


def _close_all(resources: Iterable[SupportsClose]) -> list[BaseException]:
    errors: list[BaseException] = []
    for resource in resources:
        try:
            resource.close()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to release %s", resource)
            errors.append(exc)
    return errors
