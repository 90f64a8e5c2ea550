from __future__ import annotations

from collections.abc import Sequence


class PureDIError(Exception):
    """Represent a base class for all puredi-specific failures.

    Catch this type when you want to handle any puredi error path without
    matching each concrete exception class individually.
    """


class PureDIUnknownKindError(PureDIError):
    """Signal a request for a handler kind with no registered constructor.

    Raised by ``FactoryDispatch.create`` and ``CompositionRoot.create``. Nothing
    is constructed when this error is raised. The host framework turns it into
    a server error response.

    Typical fix is registering a constructor for the kind at startup.
    """


class PureDIRegistryClosedError(PureDIError):
    """Signal use of a composition root or registry after it was disposed.

    Raised by every creation and registration operation once
    ``DisposalRegistry.release_all`` (or ``CompositionRoot.close``) ran. All
    singletons are already released at that point, so handlers built from
    them would be unusable.
    """


class PureDIScopeClosedError(PureDIError):
    """Signal use of a request scope after its request ended.

    Raised by ``RequestScope.get_or_create``, ``RequestScope.set`` and
    ``CompositionRoot.create`` once ``CompositionRoot.end_request`` cleared the
    scope. Its disposables were already released, so nothing new may be
    registered under it.

    Typical fix is building handlers before the request finishes, or opening
    a new scope with ``CompositionRoot.begin_request``.
    """


class PureDIScopedValueNotFoundError(PureDIError, LookupError):
    """Signal a read of a request-scoped value that was never set.

    Raised by ``RequestScope.get`` and by
    ``RequestScopedValueStore.get_for_current_request`` when the value is missing
    or when no request scope is active. This points to a sequencing bug in
    handler wiring rather than to a recoverable runtime condition.
    """


class PureDIInvalidRegistrationError(PureDIError):
    """Signal an invalid handler registration.

    Raised by ``FactoryDispatch.register`` when a kind is registered twice.
    """


class PureDIDisposalError(PureDIError):
    """Aggregate every failure raised while releasing resources.

    Release keeps going after an individual ``close()`` fails; the collected
    exceptions are available through ``errors`` once all releases ran.
    """

    def __init__(self, msg: str, errors: Sequence[BaseException]) -> None:
        super().__init__(msg)
        self.errors = tuple(errors)
