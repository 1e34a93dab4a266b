"""通知去重

每个 (实体 id, 发生时间) 对应一个标记 key，时间推进后自然得到新 key。
标记不会过期，清理策略以后只需要改这里。
"""

from datetime import datetime

from carecadence.datamodel import EntityKind
from carecadence.storage.kv import KVStore
from carecadence.utils import to_iso

__all__ = ["NotificationDeduplicator"]


class NotificationDeduplicator:
    def __init__(self, store: KVStore, kind: EntityKind) -> None:
        self.store = store
        self.kind = kind

    def key(self, entity_id: str, occurrence: datetime) -> str:
        # 各实体类型的 key 以类型前缀区分，互不冲突
        return f"notified-{self.kind.value}-{entity_id}-{to_iso(occurrence)}"

    async def has_fired(self, key: str) -> bool:
        return await self.store.get(key) is not None

    async def mark_fired(self, key: str) -> None:
        await self.store.set(key, "true")
