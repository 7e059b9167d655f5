"""
Примитивы ключ-значение для хранения коллекции заказов одним документом.
"""
import asyncio
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from menu_orders.errors import StorageFailure


class KeyValueStore(ABC):
    @abstractmethod
    async def read(self, key: str) -> Optional[bytes]:
        """Возвращает значение или None, если ключа нет."""

    @abstractmethod
    async def write(self, key: str, value: bytes) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[str, bytes] = {}

    async def read(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def write(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)


class FileKeyValueStore(KeyValueStore):
    """
    Один файл на ключ. Запись через временный файл и os.replace,
    поэтому после сбоя на диске остаётся либо старая, либо новая версия.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def _write(self, key: str, value: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(value)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def read(self, key: str) -> Optional[bytes]:
        try:
            return await asyncio.to_thread(self._read, key)
        except OSError as e:
            raise StorageFailure(f"Cannot read '{key}': {e}") from e

    async def write(self, key: str, value: bytes) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except OSError as e:
            raise StorageFailure(f"Cannot write '{key}': {e}") from e


class RedisKeyValueStore(KeyValueStore):
    def __init__(self, client: "redis.Redis", prefix: str = "menu_orders"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "menu_orders") -> "RedisKeyValueStore":
        client = redis.from_url(url, socket_connect_timeout=1)
        return cls(client, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def read(self, key: str) -> Optional[bytes]:
        try:
            return await self.client.get(self._key(key))
        except RedisError as e:
            raise StorageFailure(f"Redis read failed for '{key}': {e}") from e

    async def write(self, key: str, value: bytes) -> None:
        try:
            await self.client.set(self._key(key), value)
        except RedisError as e:
            raise StorageFailure(f"Redis write failed for '{key}': {e}") from e

    async def close(self) -> None:
        await self.client.aclose()
