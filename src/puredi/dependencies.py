from __future__ import annotations

import itertools
import logging
import threading
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Dependency(Protocol):
    """Represent something a request handler needs.

    Handlers only render their dependencies, so ``__str__`` is the whole
    capability.
    """

    def __str__(self) -> str: ...


@runtime_checkable
class SupportsClose(Protocol):
    """Protocol for resources released by the disposal registry."""

    def close(self) -> None: ...


class DisposableDependency:
    """Dependency that holds a (pretend) resource and must be closed.

    Every construction takes the next number from a process-wide counter so
    instances are easy to tell apart in logs, e.g. ``DisposableDependency3``.
    """

    _instance_counter = itertools.count(1)
    _counter_lock = threading.Lock()

    def __init__(self) -> None:
        with DisposableDependency._counter_lock:
            self._id = next(DisposableDependency._instance_counter)
        self._closed = False

    @property
    def id(self) -> int:
        return self._id

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("%s disposed", self)

    def __str__(self) -> str:
        return f"{type(self).__name__}{self._id}"

    def __repr__(self) -> str:
        return f"<{self} closed={self._closed}>"
