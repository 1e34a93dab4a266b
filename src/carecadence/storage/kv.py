"""键值存储

调度器只依赖 get/set/remove 三个操作：实体集合以 JSON 列表整体存放，去重标记按 key 存放。
读写失败直接抛出，由调用方决定是否重试。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

import aiosqlite

import carecadence.storage.db_config as db_config
from carecadence.logger import logger

__all__ = ["KVStore", "SqliteKVStore", "MemoryKVStore"]


class KVStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        pass


class SqliteKVStore(KVStore):
    """基于 aiosqlite 的持久化存储, 未显式传入连接时使用 db_config.conn"""

    def __init__(self, connection: aiosqlite.Connection | None = None) -> None:
        self._conn = connection

    def _ensure_conn(self) -> aiosqlite.Connection:
        conn = self._conn or db_config.conn
        if conn is None:
            raise RuntimeError("数据库未初始化，请先调用 init_db()")
        return conn

    async def get(self, key: str) -> Optional[str]:
        conn = self._ensure_conn()
        async with conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        conn = self._ensure_conn()
        await conn.execute(
            "INSERT INTO kv_store (key, value, updated_at_utc) VALUES (?, ?, CURRENT_TIMESTAMP) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at_utc = CURRENT_TIMESTAMP",
            (key, value),
        )
        await conn.commit()
        logger.trace(f"写入 key: {key}")

    async def remove(self, key: str) -> None:
        conn = self._ensure_conn()
        await conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        await conn.commit()
        logger.trace(f"删除 key: {key}")


class MemoryKVStore(KVStore):
    """进程内存储，重启即丢失"""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)
