"""Shared pytest fixtures for puredi tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from puredi.composition_root import CompositionRoot
from tests.fakes import RecordingFactory


@pytest.fixture()
def singleton_factory() -> RecordingFactory:
    return RecordingFactory("singleton")


@pytest.fixture()
def scoped_factory() -> RecordingFactory:
    return RecordingFactory("scoped")


@pytest.fixture()
def root(
    singleton_factory: RecordingFactory,
    scoped_factory: RecordingFactory,
) -> Iterator[CompositionRoot]:
    """Composition root wired with recording fakes."""
    composition_root = CompositionRoot(
        singleton_factory=singleton_factory,
        scoped_factory=scoped_factory,
    )
    yield composition_root
    composition_root.close()
