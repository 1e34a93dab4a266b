"""实体集合的读写

整个集合序列化为一个 JSON 列表存放在单个 key 下，save 一次 set 完成替换，
读方不会看到写了一半的集合。
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Generic, List, TypeVar

from carecadence.datamodel import Appointment, Medication, Task
from carecadence.storage.kv import KVStore

__all__ = ["APPOINTMENTS_KEY", "MEDICATIONS_KEY", "TASKS_KEY", "EntityCollection",
           "appointments_collection", "medications_collection", "tasks_collection"]

APPOINTMENTS_KEY = "appointments"
MEDICATIONS_KEY = "medications"
TASKS_KEY = "tasks"

T = TypeVar("T")


class EntityCollection(Generic[T]):
    def __init__(
        self,
        store: KVStore,
        key: str,
        loader: Callable[[Dict[str, Any]], T],
        dumper: Callable[[T], Dict[str, Any]],
    ) -> None:
        self.store = store
        self.key = key
        self._loader = loader
        self._dumper = dumper

    async def load(self) -> List[T]:
        raw = await self.store.get(self.key)
        if not raw:
            return []
        return [self._loader(item) for item in json.loads(raw)]

    async def save(self, entities: List[T]) -> None:
        payload = json.dumps([self._dumper(e) for e in entities], ensure_ascii=False)
        await self.store.set(self.key, payload)


def appointments_collection(store: KVStore) -> EntityCollection[Appointment]:
    return EntityCollection(store, APPOINTMENTS_KEY, Appointment.from_dict, Appointment.to_dict)


def medications_collection(store: KVStore) -> EntityCollection[Medication]:
    return EntityCollection(store, MEDICATIONS_KEY, Medication.from_dict, Medication.to_dict)


def tasks_collection(store: KVStore) -> EntityCollection[Task]:
    return EntityCollection(store, TASKS_KEY, Task.from_dict, Task.to_dict)
