import pytest

from anime_sync.core.kv_store import MemoryKeyValueStore


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memstore():
    return MemoryKeyValueStore()
