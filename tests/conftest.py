from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Tuple

import pytest

from carecadence.channels.base import NotificationSink
from carecadence.events import Bus
from carecadence.storage.kv import KVStore, MemoryKVStore

UTC = timezone.utc


def at(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


class RecordingSink(NotificationSink):
    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, bool]] = []

    def notify(self, title: str, body: str, play_sound: bool) -> None:
        self.calls.append((title, body, play_sound))


class FailingStore(KVStore):
    async def get(self, key: str) -> Optional[str]:
        raise RuntimeError("store unavailable")

    async def set(self, key: str, value: str) -> None:
        raise RuntimeError("store unavailable")

    async def remove(self, key: str) -> None:
        raise RuntimeError("store unavailable")


@pytest.fixture
def store() -> MemoryKVStore:
    return MemoryKVStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def bus() -> Bus:
    return Bus()
