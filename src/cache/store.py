"""Key-value storage backing the result cache."""

import asyncio
import json
import re
from pathlib import Path
from typing import Optional, Protocol

import aiosqlite
import structlog

logger = structlog.get_logger()

STORAGE_PREFIX = "cache:"


class KVStore(Protocol):
    """get/put by string key on one logical instance."""

    async def get(self, key: str) -> Optional[dict]: ...

    async def put(self, key: str, value: dict) -> None: ...


class MemoryKVStore:
    """In-process store, used in tests and when persistence is disabled."""

    def __init__(self):
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[dict]:
        raw = self._data.get(STORAGE_PREFIX + key)
        return json.loads(raw) if raw is not None else None

    async def put(self, key: str, value: dict) -> None:
        self._data[STORAGE_PREFIX + key] = json.dumps(value)

    def __len__(self) -> int:
        return len(self._data)


class SqliteKVStore:
    """SQLite-backed store; each instance name maps to its own table.

    All access to one instance goes through a single lock so reads and
    writes from concurrent requests are serialized.
    """

    def __init__(self, db_path: Path, instance: str = "main"):
        if not re.fullmatch(r"[A-Za-z0-9_]+", instance):
            raise ValueError(f"Invalid cache instance name: {instance!r}")
        self._db_path = db_path
        self._table = f"kv_{instance}"
        self._lock = asyncio.Lock()
        self._initialized = False

    async def _ensure_initialized(self, db: aiosqlite.Connection) -> None:
        if self._initialized:
            return
        await db.execute(f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        await db.commit()
        self._initialized = True
        logger.debug("Cache table initialized", path=str(self._db_path), table=self._table)

    async def get(self, key: str) -> Optional[dict]:
        async with self._lock:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self._db_path) as db:
                await self._ensure_initialized(db)
                cursor = await db.execute(
                    f"SELECT value FROM {self._table} WHERE key = ?",
                    (STORAGE_PREFIX + key,),
                )
                row = await cursor.fetchone()

        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("Corrupt cache value ignored", key=key)
            return None

    async def put(self, key: str, value: dict) -> None:
        serialized = json.dumps(value)
        async with self._lock:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self._db_path) as db:
                await self._ensure_initialized(db)
                await db.execute(
                    f"INSERT OR REPLACE INTO {self._table} (key, value) VALUES (?, ?)",
                    (STORAGE_PREFIX + key, serialized),
                )
                await db.commit()
