"""Tests for DisposalRegistry."""

from __future__ import annotations

import pytest

from puredi.exceptions import PureDIDisposalError, PureDIRegistryClosedError
from puredi.registry import DisposalRegistry
from tests.fakes import RecordingDependency


class FailingResource:
    def __init__(self) -> None:
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        msg = "boom"
        raise RuntimeError(msg)


class OrderedResource:
    def __init__(self, name: str, log: list[str]) -> None:
        self.name = name
        self.log = log

    def close(self) -> None:
        self.log.append(self.name)


class TestRegistration:
    def test_register_singleton_returns_same_resource(self) -> None:
        registry = DisposalRegistry()
        resource = RecordingDependency("a")

        assert registry.register_singleton(resource) is resource

    def test_register_scoped_returns_same_resource(self) -> None:
        registry = DisposalRegistry()
        resource = RecordingDependency("a")

        assert registry.register_scoped("owner", resource) is resource
        assert registry.scoped_count("owner") == 1
        assert registry.active_owners() == ["owner"]

    def test_register_scoped_appends_to_existing_owner(self) -> None:
        registry = DisposalRegistry()
        registry.register_scoped("owner", RecordingDependency("a"))
        registry.register_scoped("owner", RecordingDependency("b"))

        assert registry.scoped_count("owner") == 2

    def test_registration_after_release_all_fails(self) -> None:
        registry = DisposalRegistry()
        registry.release_all()

        with pytest.raises(PureDIRegistryClosedError):
            registry.register_singleton(RecordingDependency("a"))
        with pytest.raises(PureDIRegistryClosedError):
            registry.register_scoped("owner", RecordingDependency("b"))

    def test_assert_not_disposed(self) -> None:
        registry = DisposalRegistry()
        registry.assert_not_disposed()

        registry.release_all()

        assert registry.is_disposed
        with pytest.raises(PureDIRegistryClosedError, match="closed"):
            registry.assert_not_disposed()


class TestReleaseScope:
    def test_releases_only_the_owner_resources(self) -> None:
        registry = DisposalRegistry()
        mine = registry.register_scoped("mine", RecordingDependency("mine"))
        other = registry.register_scoped("other", RecordingDependency("other"))
        singleton = registry.register_singleton(RecordingDependency("singleton"))

        registry.release_scope("mine")

        assert mine.close_calls == 1
        assert other.close_calls == 0
        assert singleton.close_calls == 0
        assert registry.active_owners() == ["other"]

    def test_second_release_is_noop(self) -> None:
        registry = DisposalRegistry()
        resource = registry.register_scoped("owner", RecordingDependency("a"))

        registry.release_scope("owner")
        registry.release_scope("owner")

        assert resource.close_calls == 1

    def test_unknown_owner_is_noop(self) -> None:
        DisposalRegistry().release_scope("missing")

    def test_releases_in_reverse_registration_order(self) -> None:
        registry = DisposalRegistry()
        log: list[str] = []
        registry.register_scoped("owner", OrderedResource("first", log))
        registry.register_scoped("owner", OrderedResource("second", log))

        registry.release_scope("owner")

        assert log == ["second", "first"]

    def test_failure_does_not_stop_other_releases(self) -> None:
        registry = DisposalRegistry()
        before = registry.register_scoped("owner", RecordingDependency("before"))
        failing = registry.register_scoped("owner", FailingResource())
        after = registry.register_scoped("owner", RecordingDependency("after"))

        with pytest.raises(PureDIDisposalError) as exc_info:
            registry.release_scope("owner")

        assert before.close_calls == 1
        assert after.close_calls == 1
        assert failing.close_calls == 1
        assert len(exc_info.value.errors) == 1
        assert isinstance(exc_info.value.errors[0], RuntimeError)
        assert registry.scoped_count("owner") == 0


class TestReleaseAll:
    def test_releases_leftover_scopes_and_singletons(self) -> None:
        registry = DisposalRegistry()
        scoped = registry.register_scoped("unfinished", RecordingDependency("scoped"))
        singleton = registry.register_singleton(RecordingDependency("singleton"))

        registry.release_all()

        assert scoped.close_calls == 1
        assert singleton.close_calls == 1
        assert registry.active_owners() == []

    def test_scopes_are_released_before_singletons(self) -> None:
        registry = DisposalRegistry()
        log: list[str] = []
        registry.register_singleton(OrderedResource("singleton", log))
        registry.register_scoped("owner", OrderedResource("scoped", log))

        registry.release_all()

        assert log == ["scoped", "singleton"]

    def test_is_idempotent(self) -> None:
        registry = DisposalRegistry()
        singleton = registry.register_singleton(RecordingDependency("singleton"))

        registry.release_all()
        registry.release_all()

        assert singleton.close_calls == 1

    def test_release_scope_after_release_all_does_not_release_again(self) -> None:
        registry = DisposalRegistry()
        scoped = registry.register_scoped("owner", RecordingDependency("scoped"))

        registry.release_all()
        registry.release_scope("owner")

        assert scoped.close_calls == 1

    def test_collects_all_failures(self) -> None:
        registry = DisposalRegistry()
        registry.register_scoped("owner", FailingResource())
        registry.register_singleton(FailingResource())
        singleton = registry.register_singleton(RecordingDependency("singleton"))

        with pytest.raises(PureDIDisposalError) as exc_info:
            registry.release_all()

        assert len(exc_info.value.errors) == 2
        assert singleton.close_calls == 1
        assert registry.is_disposed
