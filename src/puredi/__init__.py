from puredi.composition_root import CompositionRoot
from puredi.dependencies import Dependency, DisposableDependency, SupportsClose
from puredi.dispatch import FactoryDispatch, HandlerKind
from puredi.exceptions import (
    PureDIDisposalError,
    PureDIError,
    PureDIInvalidRegistrationError,
    PureDIRegistryClosedError,
    PureDIScopeClosedError,
    PureDIScopedValueNotFoundError,
    PureDIUnknownKindError,
)
from puredi.registry import DisposalRegistry
from puredi.request_context import RequestScope, RequestScopedValueStore, request_store

__all__ = [
    "CompositionRoot",
    "Dependency",
    "DisposableDependency",
    "DisposalRegistry",
    "FactoryDispatch",
    "HandlerKind",
    "PureDIDisposalError",
    "PureDIError",
    "PureDIInvalidRegistrationError",
    "PureDIRegistryClosedError",
    "PureDIScopeClosedError",
    "PureDIScopedValueNotFoundError",
    "PureDIUnknownKindError",
    "RequestScope",
    "RequestScopedValueStore",
    "SupportsClose",
    "request_store",
]
