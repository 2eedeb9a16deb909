"""Shared fixtures."""

import pytest

from fakes import FakeTransport
from Strata.app import StateContainer


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def container():
    return StateContainer()


@pytest.fixture
def ctx(container, transport):
    return container.context(transport=transport)
