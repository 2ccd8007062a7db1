"""Shared fixtures."""

import pendulum
import pytest

from atlasfeed.config import ConfigModel
from atlasfeed.db import MemoryStore

from .helpers import NOW, FakeClock


@pytest.fixture
def now() -> pendulum.DateTime:
    return NOW


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def config() -> ConfigModel:
    return ConfigModel()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
