"""Tests for thread safety of the composition root and disposal registry."""

import threading
from concurrent.futures import ThreadPoolExecutor

from puredi.composition_root import CompositionRoot
from puredi.dependencies import DisposableDependency
from puredi.dispatch import HandlerKind
from puredi.registry import DisposalRegistry
from tests.fakes import RecordingDependency, RecordingFactory


class TestConcurrentRequests:
    def test_concurrent_requests_get_their_own_scoped_dependency(
        self,
        root: CompositionRoot,
        scoped_factory: RecordingFactory,
    ) -> None:
        """Requests handled on different threads never share a scoped instance."""
        results: list[tuple[object, object]] = []
        errors: list[Exception] = []
        barrier = threading.Barrier(10)

        def handle_request() -> None:
            try:
                barrier.wait()
                scope = root.begin_request()
                try:
                    middleware = root.create(HandlerKind.GREETING_MIDDLEWARE, scope)
                    controller = root.create(HandlerKind.HELLO_CONTROLLER, scope)
                    results.append((middleware.scoped_dependency, controller.scoped_dependency))
                finally:
                    root.end_request(scope)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=handle_request) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(results) == 10
        assert all(a is b for a, b in results)
        assert len({id(a) for a, _ in results}) == 10
        assert all(dependency.close_calls == 1 for dependency in scoped_factory.created)
        assert root.registry.active_owners() == []

    def test_handlers_of_one_request_on_different_threads_share(
        self,
        root: CompositionRoot,
        scoped_factory: RecordingFactory,
    ) -> None:
        """Handlers of one request built concurrently still share one instance."""
        scope = root.begin_request()

        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [
                executor.submit(root.create, HandlerKind.HELLO_CONTROLLER, scope)
                for _ in range(50)
            ]
            controllers = [f.result() for f in futures]

        assert len(scoped_factory.created) == 1
        assert all(c.scoped_dependency is scoped_factory.created[0] for c in controllers)
        root.end_request(scope)


class TestConcurrentRegistry:
    def test_concurrent_registration_no_corruption(self) -> None:
        """Concurrent scoped registration doesn't lose resources."""
        registry = DisposalRegistry()
        owners = [object() for _ in range(20)]
        errors: list[Exception] = []

        def register(owner: object) -> None:
            try:
                for i in range(25):
                    registry.register_scoped(owner, RecordingDependency(str(i)))
            except Exception as e:
                errors.append(e)

        with ThreadPoolExecutor(max_workers=10) as executor:
            list(executor.map(register, owners))

        assert not errors
        assert all(registry.scoped_count(owner) == 25 for owner in owners)

    def test_concurrent_release_all_releases_once(self) -> None:
        """Disposal triggered from several threads releases each singleton once."""
        registry = DisposalRegistry()
        singletons = [registry.register_singleton(RecordingDependency(str(i))) for i in range(5)]
        barrier = threading.Barrier(8)

        def dispose() -> None:
            barrier.wait()
            registry.release_all()

        threads = [threading.Thread(target=dispose) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(singleton.close_calls == 1 for singleton in singletons)

    def test_concurrent_release_scope_releases_once(self) -> None:
        registry = DisposalRegistry()
        resource = registry.register_scoped("owner", RecordingDependency("scoped"))

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(registry.release_scope, ["owner"] * 16))

        assert resource.close_calls == 1


class TestInstanceCounter:
    def test_concurrent_construction_yields_unique_ids(self) -> None:
        with ThreadPoolExecutor(max_workers=8) as executor:
            dependencies = list(executor.map(lambda _: DisposableDependency(), range(200)))

        assert len({d.id for d in dependencies}) == 200
