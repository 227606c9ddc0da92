"""
Shared pytest fixtures.

Engine operations are coroutines; tests drive them with ``asyncio.run`` so
no async test plugin is needed.
"""

import asyncio
from typing import Optional

import pytest

from ragmemory import ContextManager, InMemoryKeyValueStore, MemoryEngineConfig
from ragmemory.domain.context.memory.key_value_store import (
    KeyValueStore,
    PersistenceReadError,
    PersistenceWriteError,
)


class FailingKeyValueStore(KeyValueStore):
    """Backend whose every call fails, either by raising or by returning False"""

    def __init__(self, raise_errors: bool = True):
        self.raise_errors = raise_errors
        self.calls = []

    async def get(self, key: str) -> Optional[str]:
        self.calls.append(("get", key))
        raise PersistenceReadError(key, "backend unavailable")

    async def set(self, key: str, value: str) -> bool:
        self.calls.append(("set", key))
        if self.raise_errors:
            raise PersistenceWriteError(key, "backend unavailable")
        return False

    async def remove(self, key: str) -> bool:
        self.calls.append(("remove", key))
        if self.raise_errors:
            raise PersistenceWriteError(key, "backend unavailable")
        return False


class CountingKeyValueStore(InMemoryKeyValueStore):
    """In-memory backend that counts reads and can stall them"""

    def __init__(self, delay: float = 0.0):
        super().__init__()
        self.delay = delay
        self.get_calls = 0

    async def get(self, key: str) -> Optional[str]:
        self.get_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return await super().get(key)


@pytest.fixture
def storage():
    return InMemoryKeyValueStore()


@pytest.fixture
def config():
    return MemoryEngineConfig()


@pytest.fixture
def engine(storage, config):
    return ContextManager(storage=storage, config=config)


@pytest.fixture
def failing_storage():
    return FailingKeyValueStore(raise_errors=True)


@pytest.fixture
def rejecting_storage():
    return FailingKeyValueStore(raise_errors=False)


@pytest.fixture
def slow_storage():
    return CountingKeyValueStore(delay=0.01)
